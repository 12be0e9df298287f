"""Exception types for the store locator scraper.

Missing data is not an error here: a selector that matches nothing or an
absent attribute becomes a null value in the record.  The exceptions below
cover the cases that are errors, either a failure to obtain a document at
all or a fault in the query layer (a malformed selector or fragment) that
points at a configuration defect.
"""

from __future__ import annotations

from typing import Optional


class StoreLocatorError(Exception):
    """Base class for all errors raised by this project."""


class FetchError(StoreLocatorError):
    """Network or HTTP failure while retrieving a page or API response."""

    def __init__(self, url: str, message: str = "fetch failed", status: Optional[int] = None):
        detail = f"{message}: {url}"
        if status is not None:
            detail = f"{detail} (HTTP {status})"
        super().__init__(detail)
        self.url = url
        self.status = status


class CapabilityFault(StoreLocatorError):
    """The selector engine itself failed.

    Raised for malformed selectors, fragments of an unsupported type and
    undecodable JSON.  ``index`` is filled in by the batch driver with the
    position of the offending fragment, and ``partial`` with the record set
    built before the fault when the batch is aborted.
    """

    def __init__(self, message: str, selector: Optional[str] = None, index: Optional[int] = None):
        super().__init__(message)
        self.message = message
        self.selector = selector
        self.index = index
        self.partial = None

    def __str__(self) -> str:
        parts = [self.message]
        if self.selector is not None:
            parts.append(f"selector={self.selector!r}")
        if self.index is not None:
            parts.append(f"item={self.index}")
        return " ".join(parts)


class RuleSetError(StoreLocatorError, ValueError):
    """A field rule list is empty, has duplicate names or an invalid rule."""
