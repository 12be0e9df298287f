"""Field rules and source definitions for the supported store locators.

Each source pairs a URL with the declarative rules that turn one store block
into one table row.  Foodland publishes every store in the static HTML of
its locator page, one ``.brand-foodland-store-location`` element per store
with the coordinates held in ``data-*`` attributes.  Circle K loads its
stores from a JSON endpoint, one object per store, paged with a ``page``
query parameter.

When a site changes its markup only the rules here need updating; the
extraction code stays the same.  Use an empty selector to read from the
store block itself.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple

from models import FieldRule

HTML = "html"
JSON = "json"


@dataclass(frozen=True)
class StoreSource:
    """A store locator page or API and the rules for reading it.

    Attributes
    ----------
    name : str
        Registry key, also used in log messages.
    url : str
        Page or endpoint to fetch.
    kind : str
        ``"html"`` or ``"json"``.
    rules : tuple of FieldRule
        Output columns, in order.
    item_selector : str
        CSS selector for one store block (HTML sources).
    records_path : str
        Dotted path to the store list in the decoded response (JSON sources).
        Empty when the response body is the list itself.
    params : dict
        Fixed query parameters.
    page_param : str, optional
        Query parameter carrying the page number; ``None`` for single-page
        sources.
    render : bool
        Fetch through a headless browser instead of a plain HTTP request.
    """

    name: str
    url: str
    kind: str
    rules: Tuple[FieldRule, ...]
    item_selector: str = ""
    records_path: str = ""
    params: Dict[str, str] = field(default_factory=dict)
    page_param: Optional[str] = None
    render: bool = False


FOODLAND_URL = "https://foodland.ca/store-locator/"

# One element per store on the locator page.
FOODLAND_STORE_SELECTOR = ".brand-foodland-store-location"

FOODLAND_RULES: Tuple[FieldRule, ...] = (
    FieldRule.attr("id", "data-id"),
    FieldRule.text("name", ".name"),
    FieldRule.text("address", ".location_address_address_1"),
    FieldRule.text("city", ".city"),
    FieldRule.text("province", ".province"),
    FieldRule.text("postal_code", ".postal_code"),
    FieldRule.text("phone", ".phone"),
    FieldRule.attr("lon", "data-lng"),
    FieldRule.attr("lat", "data-lat"),
)

CIRCLEK_URL = "https://www.circlek.com/stores_master.php"

# Centre of the search and radius in miles; the endpoint pages through
# every store within the radius.
CIRCLEK_PARAMS: Dict[str, str] = {
    "lat": "45.4215",
    "lng": "-75.6972",
    "distance": "25",
    "services": "",
    "region": "global",
}

CIRCLEK_RULES: Tuple[FieldRule, ...] = (
    FieldRule.attr("id", "cost_center"),
    FieldRule.text("name", "display_brand"),
    FieldRule.text("address", "address"),
    FieldRule.text("city", "city"),
    FieldRule.text("province", "state"),
    FieldRule.text("country", "country"),
    FieldRule.text("postal_code", "zip"),
    FieldRule.text("phone", "phone"),
    FieldRule.attr("lon", "longitude"),
    FieldRule.attr("lat", "latitude"),
)

SOURCES: Dict[str, StoreSource] = {
    "foodland": StoreSource(
        name="foodland",
        url=FOODLAND_URL,
        kind=HTML,
        rules=FOODLAND_RULES,
        item_selector=FOODLAND_STORE_SELECTOR,
    ),
    "circlek": StoreSource(
        name="circlek",
        url=CIRCLEK_URL,
        kind=JSON,
        rules=CIRCLEK_RULES,
        records_path="stores",
        params=CIRCLEK_PARAMS,
        page_param="page",
    ),
}


def source_names() -> List[str]:
    return sorted(SOURCES)
