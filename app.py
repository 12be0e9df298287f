"""Streamlit application for scraping store locator data.

The user picks a source (a static HTML locator page or a JSON store API),
the batch failure policy and paging limits, and optionally a centre
address.  The application runs the scraper, shows the progress log, the
resulting table and any stores that could not be read, plots the stores on
a folium map and offers the table as an Excel download.
"""

from __future__ import annotations

import datetime
import logging
import os
import traceback
from typing import Optional, Tuple

import folium  # for map rendering
import pandas as pd
import streamlit as st
from geopy.geocoders import Nominatim
from streamlit_folium import st_folium

from config import get_settings
from extractor import OnItemError
from scraper import ScrapeResult, scrape_locations
from selectors_def import source_names
from utils import add_distance_columns, coerce_coordinates, dataframe_to_excel_bytes


# ----------------------------- Geocoding ------------------------------------
def geocode_address(query: str) -> Optional[Tuple[float, float]]:
    """Resolve an address to (lat, lon); ``None`` when it cannot be found."""
    if not query.strip():
        return None
    try:
        geolocator = Nominatim(user_agent="storelocator_app")
        loc = geolocator.geocode(query)
    except Exception as e:
        logging.getLogger("storelocator_app").warning("Geocoding failed for %r: %s", query, e)
        return None
    if loc:
        return float(loc.latitude), float(loc.longitude)
    return None


# ----------------------------- Logging --------------------------------------
def setup_logging() -> logging.Logger:
    logs_dir = os.path.join(os.path.dirname(__file__), "logs")
    os.makedirs(logs_dir, exist_ok=True)
    ts = datetime.datetime.now().strftime("%Y%m%d_%H%M%S")
    logfile = os.path.join(logs_dir, f"app_{ts}.log")

    logger = logging.getLogger("storelocator_app")
    logger.setLevel(get_settings().log_level)
    for h in list(logger.handlers):
        logger.removeHandler(h)

    fmt = logging.Formatter("%(asctime)s - %(levelname)s - %(message)s")
    fh = logging.FileHandler(logfile, encoding="utf-8")
    fh.setFormatter(fmt)
    logger.addHandler(fh)
    return logger


# ----------------------------- Map ------------------------------------------
def build_store_map(df: pd.DataFrame, origin: Optional[Tuple[float, float]] = None) -> Optional[folium.Map]:
    if {"lat", "lon"} <= set(df.columns):
        stores = coerce_coordinates(df).dropna(subset=["lat", "lon"])
    else:
        stores = df.iloc[0:0]
    if stores.empty and origin is None:
        return None
    centre = origin or (float(stores["lat"].mean()), float(stores["lon"].mean()))
    m = folium.Map(location=list(centre), zoom_start=11)
    if origin is not None:
        folium.Marker(list(origin), tooltip="Centre", icon=folium.Icon(color="red")).add_to(m)
    for _, row in stores.iterrows():
        label = row.get("name") or row.get("id") or "store"
        popup = ", ".join(str(row[c]) for c in ("address", "city", "province") if c in row and pd.notna(row[c]))
        folium.CircleMarker(
            [float(row["lat"]), float(row["lon"])],
            radius=5,
            tooltip=str(label),
            popup=popup or None,
            fill=True,
        ).add_to(m)
    return m


# ----------------------------------- UI -------------------------------------
def main() -> None:
    settings = get_settings()
    st.set_page_config(page_title="Store Locator Scraper", layout="wide")
    st.title("Store Locator Scraper")

    col1, col2 = st.columns([1, 2], gap="small")

    with col1:
        st.header("Settings")
        source = st.selectbox("Source", options=source_names())
        centre_address = st.text_input(
            "Centre address (optional)",
            value="",
            help="Adds a distance column and centres the map on this address.",
        )
        policy = st.radio(
            "When a store cannot be read",
            options=list(OnItemError.CHOICES),
            index=list(OnItemError.CHOICES).index(settings.on_item_error)
            if settings.on_item_error in OnItemError.CHOICES else 1,
            help="abort stops the whole batch; skip-and-record keeps going and lists the failed stores.",
        )
        max_pages = st.number_input(
            "Maximum API pages", min_value=1, max_value=500, value=int(settings.max_pages), step=1
        )
        delay = st.number_input(
            "Delay between pages (seconds)", min_value=0.0, max_value=60.0,
            value=float(settings.delay), step=0.5,
        )
        execute = st.button("Run scrape")

    if execute:
        logger = setup_logging()
        try:
            with st.spinner("Scraping... please wait."):
                result: ScrapeResult = scrape_locations(
                    source,
                    on_item_error=policy,
                    delay=float(delay),
                    max_pages=int(max_pages),
                    logger=logger,
                )
        except Exception as e:
            logger.exception("Scrape failed")
            st.session_state.pop("scrape", None)
            st.error("The scrape failed. See the log for details.")
            partial = getattr(e, "partial", None)
            if partial is not None:
                st.warning(f"Stopped after reading {len(partial)} stores.")
            with st.expander("Exception (developer details)"):
                st.code("".join(traceback.format_exception_only(type(e), e)).strip())
            return

        df = result.dataframe
        origin = geocode_address(centre_address)
        if origin is not None and not df.empty:
            df = add_distance_columns(df, origin).sort_values("distance_km", na_position="last")
        # widget interaction reruns the script, so results live in the session
        st.session_state.scrape = {"source": source, "result": result, "df": df, "origin": origin}

    scrape = st.session_state.get("scrape")
    if scrape is None:
        with col2:
            st.info("Choose a source and press Run scrape.")
        return
    render_results(scrape, col2)


def render_results(scrape: dict, map_column) -> None:
    result: ScrapeResult = scrape["result"]
    df: pd.DataFrame = scrape["df"]
    origin = scrape["origin"]

    st.text_area("Progress log", "\n".join(result.log_lines), height=200, disabled=True)

    if result.failed_indices:
        st.warning(f"{len(result.failed_indices)} stores could not be read: items {result.failed_indices}")
    for err in result.errors:
        st.warning(err)

    if df.empty:
        st.warning("No stores were extracted.")
        return

    st.success(f"Extracted {len(df)} stores from {scrape['source']}.")
    st.dataframe(df, use_container_width=True)

    with map_column:
        try:
            store_map = build_store_map(df, origin)
            if store_map is not None:
                st_folium(store_map, key="store_map", width="100%", height=500, returned_objects=[])
        except Exception as e:
            st.error("Could not draw the map.")
            with st.expander("Details (developer)"):
                st.code("".join(traceback.format_exception_only(type(e), e)).strip())

    ts = datetime.datetime.now().strftime("%Y%m%d_%H%M%S")
    st.download_button(
        label="Download Excel",
        data=dataframe_to_excel_bytes(df),
        file_name=f"{scrape['source']}_stores_{ts}.xlsx",
        mime="application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
    )


if __name__ == "__main__":
    main()
