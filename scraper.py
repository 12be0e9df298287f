"""Fetching and batch scraping for store locator sources.

This module is the glue around the record extractor.  It retrieves the
locator page (plain HTTP via requests, or a headless Chromium through
Playwright for script-rendered pages) or pages through a JSON API, turns the
response into store fragments and hands them to ``extract_all`` with the
configured ``on_item_error`` policy.  The result is returned as a pandas
DataFrame together with the record set and the progress log.

There is no retry, caching or concurrency here.  The only politeness
measure is a fixed delay between API pages chosen by the operator.
"""

from __future__ import annotations

import argparse
import asyncio
import datetime
import json
import logging
import os
import subprocess
import sys
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional

import pandas as pd
import requests
from bs4 import BeautifulSoup, Tag
from playwright.async_api import Error as PlaywrightError
from playwright.async_api import async_playwright

from config import Settings, get_settings
from exceptions import CapabilityFault, FetchError
from extractor import OnItemError, extract_all
from models import RecordSet
from query import HtmlQuery
from selectors_def import HTML, SOURCES, StoreSource
from utils import dataframe_to_excel_bytes, records_to_dataframe

logger = logging.getLogger(__name__)


def _run(cmd: List[str]) -> None:
    """Run a subprocess, raising on non-zero exit for clear failures."""
    subprocess.run(cmd, check=True)


def ensure_chromium(settings: Optional[Settings] = None) -> None:
    """Ensure that a Chromium build is available for Playwright.

    Chromium is installed once into the configured browsers directory and
    reused afterwards.  The current interpreter runs the installer so a
    virtualenv without ``playwright`` on PATH still works.
    """
    settings = settings or get_settings()
    browsers_path = settings.browsers_path
    browsers_path.mkdir(parents=True, exist_ok=True)
    # Playwright reads the install location from the environment
    os.environ.setdefault("PLAYWRIGHT_BROWSERS_PATH", str(browsers_path))
    if any(browsers_path.glob("chromium-*")):
        logger.debug("Chromium already present in %s", browsers_path)
        return
    logger.info("Installing Chromium via Playwright into %s", browsers_path)
    _run([sys.executable, "-m", "playwright", "install", "chromium"])
    logger.info("Chromium install completed")


# ----------------------------- fetching -------------------------------------
def fetch(
    url: str,
    params: Optional[Dict[str, Any]] = None,
    session: Optional[requests.Session] = None,
    settings: Optional[Settings] = None,
) -> str:
    """GET ``url`` and return the response body.

    Raises
    ------
    FetchError
        On connection problems, timeouts or a non-2xx status.
    """
    settings = settings or get_settings()
    if session is not None:
        return _get(session, url, params, settings)
    with requests.Session() as own:
        return _get(own, url, params, settings)


def _get(session: requests.Session, url: str, params: Optional[Dict[str, Any]], settings: Settings) -> str:
    try:
        resp = session.get(
            url,
            params=params,
            headers={"User-Agent": settings.user_agent},
            timeout=settings.timeout,
        )
    except requests.RequestException as exc:
        raise FetchError(url, str(exc)) from exc
    if not resp.ok:
        raise FetchError(url, resp.reason or "bad status", status=resp.status_code)
    return resp.text


async def _render_async(url: str, headless: bool, settings: Settings) -> str:
    async with async_playwright() as p:
        browser = await p.chromium.launch(headless=headless)
        try:
            context = await browser.new_context(user_agent=settings.user_agent)
            page = await context.new_page()
            await page.goto(url, timeout=settings.timeout * 1000, wait_until="load")
            # give store widgets a chance to populate
            await page.wait_for_load_state("networkidle", timeout=settings.timeout * 1000)
            return await page.content()
        finally:
            await browser.close()


def fetch_rendered(url: str, headless: bool = True, settings: Optional[Settings] = None) -> str:
    """Load ``url`` in headless Chromium and return the rendered HTML."""
    settings = settings or get_settings()
    ensure_chromium(settings)
    try:
        return asyncio.run(_render_async(url, headless, settings))
    except PlaywrightError as exc:
        raise FetchError(url, f"browser fetch failed: {exc}") from exc


# ----------------------------- parsing --------------------------------------
def parse_html(raw: str) -> BeautifulSoup:
    return BeautifulSoup(raw, "html.parser")


def select_fragments(root: Tag, selector: str) -> List[Tag]:
    """Return the store blocks under ``root`` in document order."""
    return HtmlQuery().select(root, selector)


def decode_json(raw: str, records_path: str = "") -> List[Any]:
    """Decode a JSON response and return the list of store objects.

    ``records_path`` is a dotted path to the store collection.  The
    collection may be a list or an object keyed by store id, in which case
    its values are returned in response order.  Without a path a top-level
    object is always a single store.  A missing path yields an empty list.
    """
    try:
        data = json.loads(raw)
    except ValueError as exc:
        raise CapabilityFault(f"response is not valid JSON: {exc}") from exc

    for key in filter(None, records_path.split(".")):
        if not isinstance(data, dict) or key not in data:
            return []
        data = data[key]

    if data is None:
        return []
    if isinstance(data, list):
        return data
    if isinstance(data, dict) and records_path:
        values = list(data.values())
        if values and all(isinstance(v, dict) for v in values):
            return values
        return [data]
    return [data]


# ----------------------------- driver ---------------------------------------
@dataclass
class ScrapeResult:
    """Container for the result of a scrape.

    Attributes
    ----------
    dataframe : pd.DataFrame
        One row per successfully extracted store, one column per field.
    records : RecordSet
        Every item in input order, including failure placeholders.
    log_lines : List[str]
        Timestamped progress messages.
    errors : List[str]
        Fetch problems that ended paging early.  Records gathered before the
        problem are still included.
    """

    dataframe: pd.DataFrame
    records: RecordSet
    log_lines: List[str] = field(default_factory=list)
    errors: List[str] = field(default_factory=list)

    @property
    def failed_indices(self) -> List[int]:
        return self.records.failed_indices


def _collect_fragments(
    source: StoreSource,
    session: requests.Session,
    settings: Settings,
    delay: float,
    max_pages: int,
    headless: bool,
    append_log,
    errors: List[str],
) -> List[Any]:
    if source.kind == HTML:
        raw = fetch_rendered(source.url, headless, settings) if source.render else \
            fetch(source.url, source.params or None, session, settings)
        fragments = select_fragments(parse_html(raw), source.item_selector)
        append_log(f"Found {len(fragments)} store blocks on {source.url}")
        return fragments

    if not source.page_param:
        raw = fetch(source.url, source.params or None, session, settings)
        fragments = decode_json(raw, source.records_path)
        append_log(f"Decoded {len(fragments)} store objects from {source.url}")
        return fragments

    collected: List[Any] = []
    previous: Optional[List[Any]] = None
    for page in range(1, max_pages + 1):
        params = dict(source.params)
        params[source.page_param] = str(page)
        try:
            raw = fetch(source.url, params, session, settings)
        except FetchError as exc:
            if page == 1:
                raise
            errors.append(str(exc))
            append_log(f"Stopped paging at page {page}: {exc}")
            break
        page_items = decode_json(raw, source.records_path)
        if not page_items or page_items == previous:
            append_log(f"No new stores on page {page}; paging finished")
            break
        collected.extend(page_items)
        previous = page_items
        append_log(f"Page {page}: {len(page_items)} store objects")
        if page < max_pages and delay > 0:
            time.sleep(delay)
    return collected


def scrape_source(
    source: StoreSource,
    on_item_error: Optional[str] = None,
    delay: Optional[float] = None,
    max_pages: Optional[int] = None,
    headless: bool = True,
    session: Optional[requests.Session] = None,
    settings: Optional[Settings] = None,
    logger: Optional[logging.Logger] = None,
) -> ScrapeResult:
    """Fetch ``source`` and extract one record per store.

    Parameters
    ----------
    source : StoreSource
        What to fetch and how to read each store.
    on_item_error : str, optional
        ``"abort"`` or ``"skip-and-record"``; defaults to the configured
        policy.
    delay : float, optional
        Seconds to wait between API pages.
    max_pages : int, optional
        Upper bound on API pages requested.
    headless : bool, optional
        Browser mode for rendered sources, by default True.
    session : requests.Session, optional
        Reused for every request when given.
    logger : logging.Logger, optional
        Receives progress messages in addition to ``log_lines``.

    Raises
    ------
    FetchError
        The first page could not be retrieved.
    CapabilityFault
        A store block faulted under the ``abort`` policy (the stores read
        before it are on ``exc.partial``), or the response
        could not be decoded.
    """
    settings = settings or get_settings()
    log = logger or logging.getLogger(__name__)
    policy = on_item_error or settings.on_item_error
    logs: List[str] = []

    def append_log(message: str) -> None:
        """Helper to record a log line with timestamp."""
        ts = datetime.datetime.now().strftime("%H:%M:%S")
        logs.append(f"[{ts}] {message}")
        log.info(message)

    errors: List[str] = []
    append_log(f"Scraping {source.name} ({source.kind}) from {source.url}")
    http = session or requests.Session()
    try:
        fragments = _collect_fragments(
            source,
            http,
            settings,
            settings.delay if delay is None else delay,
            settings.max_pages if max_pages is None else max_pages,
            headless,
            append_log,
            errors,
        )
    finally:
        if session is None:
            http.close()

    try:
        records = extract_all(fragments, source.rules, on_item_error=policy)
    except CapabilityFault as exc:
        kept = len(exc.partial) if exc.partial is not None else 0
        append_log(f"Aborted at store {exc.index} after {kept} stores: {exc}")
        raise
    for failure in records.failures:
        append_log(f"Store {failure.index} could not be read: {failure.error}")
    df = records_to_dataframe(records.records, records.columns)
    append_log(
        f"Extracted {len(df)} of {len(records)} stores from {source.name}"
        + (f" ({len(records.failed_indices)} failed)" if records.failed_indices else "")
    )
    return ScrapeResult(dataframe=df, records=records, log_lines=logs, errors=errors)


def scrape_locations(name: str, **kwargs: Any) -> ScrapeResult:
    """Scrape a registered source by name; see :func:`scrape_source`."""
    try:
        source = SOURCES[name]
    except KeyError:
        raise ValueError(f"unknown source {name!r}; choose from {sorted(SOURCES)}") from None
    return scrape_source(source, **kwargs)


def write_table(df: pd.DataFrame, out: Path) -> None:
    """Write ``df`` as Excel for ``.xlsx`` paths, CSV otherwise."""
    if out.suffix.lower() == ".xlsx":
        out.write_bytes(dataframe_to_excel_bytes(df))
    else:
        df.to_csv(out, index=False)


def main(argv: Optional[List[str]] = None) -> int:
    settings = get_settings()
    parser = argparse.ArgumentParser(description="Scrape a store locator into a table.")
    parser.add_argument("source", choices=sorted(SOURCES))
    parser.add_argument("--out", type=Path, help="CSV or .xlsx file (default: stdout CSV)")
    parser.add_argument(
        "--on-item-error", choices=OnItemError.CHOICES, default=settings.on_item_error
    )
    parser.add_argument("--delay", type=float, default=settings.delay)
    parser.add_argument("--max-pages", type=int, default=settings.max_pages)
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=settings.log_level, format="%(asctime)s - %(levelname)s - %(message)s"
    )
    result = scrape_locations(
        args.source,
        on_item_error=args.on_item_error,
        delay=args.delay,
        max_pages=args.max_pages,
        settings=settings,
    )
    if args.out:
        write_table(result.dataframe, args.out)
        logger.info("Wrote %d rows to %s", len(result.dataframe), args.out)
    else:
        result.dataframe.to_csv(sys.stdout, index=False)
    return 1 if result.failed_indices or result.errors else 0


if __name__ == "__main__":
    sys.exit(main())
