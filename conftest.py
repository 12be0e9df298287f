"""Shared pytest fixtures: sample locator markup, API pages and settings."""

from __future__ import annotations

import json
import logging

import pytest

from config import Settings
from scraper import parse_html

FOODLAND_HTML = """
<html><body>
<div class="store-list">
  <div class="brand-foodland-store-location" data-id="101" data-lat="45.421" data-lng="-75.69">
    <h3 class="name">Foodland
        Ottawa</h3>
    <p class="location_address_address_1">123 Bank St</p>
    <span class="city">Ottawa</span>, <span class="province">ON</span>
    <span class="postal_code">K1P 5N2</span>
    <span class="phone">613-555-0101</span>
  </div>
  <div class="brand-foodland-store-location" data-id="102" data-lat="44.2312" data-lng="-76.486">
    <h3 class="name">Foodland Kingston</h3>
    <p class="location_address_address_1">9 Princess St</p>
    <span class="city">Kingston</span> <span class="province">ON</span>
    <span class="postal_code">K7L 1A1</span>
  </div>
  <div class="brand-foodland-store-location" data-id="103">
    <h3 class="name">Foodland Perth</h3>
    <span class="city">Perth</span>
  </div>
</div>
</body></html>
"""


@pytest.fixture
def foodland_html() -> str:
    return FOODLAND_HTML


@pytest.fixture
def foodland_soup():
    return parse_html(FOODLAND_HTML)


@pytest.fixture
def store_fragments(foodland_soup):
    return foodland_soup.select(".brand-foodland-store-location")


@pytest.fixture
def circlek_pages():
    """Two pages of store objects keyed by id, then an empty page."""
    page1 = {
        "count": 3,
        "stores": {
            "2701": {
                "cost_center": "2701", "display_brand": "Circle K", "address": "1 Main St",
                "city": "Ottawa", "state": "ON", "country": "CA", "zip": "K1A 0A1", "phone": "613-555-0000",
                "latitude": "45.40", "longitude": "-75.70",
            },
            "2702": {
                "cost_center": "2702", "display_brand": "Circle K", "address": "2 Elm St",
                "city": "Gatineau", "state": "QC", "country": "CA", "zip": "J8X 1A1", "phone": None,
                "latitude": "45.47", "longitude": "-75.74",
            },
        },
    }
    page2 = {
        "count": 3,
        "stores": {
            "2703": {
                "cost_center": "2703", "display_brand": "Couche-Tard", "address": "3 Oak St",
                "city": "Orleans", "state": "ON", "country": "CA", "zip": "K1C 1A1",
                "latitude": 45.47, "longitude": -75.51,
            },
        },
    }
    page3 = {"count": 3, "stores": []}
    return [json.dumps(page1), json.dumps(page2), json.dumps(page3)]


@pytest.fixture
def settings(tmp_path) -> Settings:
    return Settings(
        user_agent="StoreLocatorTest/1.0",
        timeout=5.0,
        delay=0.0,
        on_item_error="skip-and-record",
        max_pages=10,
        log_level=logging.INFO,
        browsers_path=tmp_path / "ms-playwright",
    )
