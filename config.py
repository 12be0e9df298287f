"""Runtime settings read from environment variables.

All values have defaults so the scraper runs without any configuration.
Operators tune politeness (``STORELOC_DELAY``) and the batch failure policy
(``STORELOC_ON_ITEM_ERROR``) here rather than in code.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from pathlib import Path

BASE_DIR = Path(__file__).resolve().parent

DEFAULT_USER_AGENT = "Mozilla/5.0 (compatible; StoreLocatorScraper/1.0)"


def _env(key: str, default: str) -> str:
    value = os.environ.get(key)
    return value if value is not None and value.strip() else default


@dataclass(frozen=True)
class Settings:
    user_agent: str
    timeout: float
    delay: float
    on_item_error: str
    max_pages: int
    log_level: int
    browsers_path: Path


def get_settings() -> Settings:
    """Build :class:`Settings` from the current environment."""
    level_name = _env("LOG_LEVEL", "INFO").upper()
    return Settings(
        user_agent=_env("STORELOC_USER_AGENT", DEFAULT_USER_AGENT),
        timeout=float(_env("STORELOC_TIMEOUT", "30")),
        delay=float(_env("STORELOC_DELAY", "1.5")),
        on_item_error=_env("STORELOC_ON_ITEM_ERROR", "skip-and-record"),
        max_pages=int(_env("STORELOC_MAX_PAGES", "20")),
        log_level=getattr(logging, level_name, logging.INFO),
        browsers_path=Path(_env("PLAYWRIGHT_BROWSERS_PATH", str(BASE_DIR / "ms-playwright"))),
    )
