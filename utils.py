"""Helper routines for cleaning and tabulating extracted store records.

Extraction produces strings (or ``None``).  Everything that interprets
those strings lives here: whitespace cleanup, numeric coercion of the
coordinate columns, distances from a chosen origin and conversion of a
record set into a DataFrame or an Excel workbook.  Keeping these outside
the scraper keeps the extraction code free of type coercion.
"""

from __future__ import annotations

import io
import math
import re
from typing import Any, Iterable, List, Optional, Sequence, Tuple

import pandas as pd
from openpyxl.utils import get_column_letter

_WS_RE = re.compile(r"\s+")


def clean_text(text: Optional[str]) -> str:
    """Collapse runs of whitespace (including newlines) and strip the ends."""
    if not text:
        return ""
    return _WS_RE.sub(" ", text).strip()


def to_float(value: Any) -> Optional[float]:
    """Convert a scraped value to float, or ``None`` if it is missing or not numeric."""
    if value is None:
        return None
    try:
        result = float(value)
    except (TypeError, ValueError):
        return None
    if math.isnan(result):
        return None
    return result


def haversine_distance(lat1: float, lon1: float, lat2: float, lon2: float) -> Tuple[float, float]:
    """Compute the great circle distance between two points.

    Returns the distance in metres and kilometres.  If any input is not a
    number a distance of 0 is returned.
    """
    try:
        phi1, phi2 = math.radians(lat1), math.radians(lat2)
        dphi = phi2 - phi1
        dlambda = math.radians(lon2 - lon1)
        a = math.sin(dphi / 2)**2 + math.cos(phi1) * math.cos(phi2) * math.sin(dlambda / 2)**2
        c = 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))
        distance_m = 6371000.0 * c
        return distance_m, distance_m / 1000.0
    except (TypeError, ValueError):
        return 0.0, 0.0


def records_to_dataframe(records: Iterable[dict], columns: Sequence[str]) -> pd.DataFrame:
    """Tabulate records with one column per field, in field order.

    Missing values export as empty cells.
    """
    return pd.DataFrame(list(records), columns=list(columns))


def coerce_coordinates(df: pd.DataFrame, lat: str = "lat", lon: str = "lon") -> pd.DataFrame:
    """Return a copy of ``df`` with numeric latitude/longitude columns."""
    out = df.copy()
    for col in (lat, lon):
        if col in out.columns:
            out[col] = pd.to_numeric(out[col], errors="coerce")
    return out


def add_distance_columns(
    df: pd.DataFrame,
    origin: Tuple[float, float],
    lat: str = "lat",
    lon: str = "lon",
) -> pd.DataFrame:
    """Add ``distance_m`` and ``distance_km`` from ``origin`` to every store.

    Rows without usable coordinates get empty distances.
    """
    out = coerce_coordinates(df, lat=lat, lon=lon)
    origin_lat, origin_lon = origin
    dist_m: List[Optional[float]] = []
    dist_km: List[Optional[float]] = []
    for row_lat, row_lon in zip(out.get(lat, []), out.get(lon, [])):
        if to_float(row_lat) is None or to_float(row_lon) is None:
            dist_m.append(None)
            dist_km.append(None)
            continue
        dm, dk = haversine_distance(origin_lat, origin_lon, float(row_lat), float(row_lon))
        dist_m.append(round(dm, 2))
        dist_km.append(round(dk, 3))
    if len(dist_m) == len(out):
        out["distance_m"] = dist_m
        out["distance_km"] = dist_km
    return out


def dataframe_to_excel_bytes(df: pd.DataFrame) -> bytes:
    output = io.BytesIO()
    with pd.ExcelWriter(output, engine="openpyxl") as writer:
        df.to_excel(writer, index=False, sheet_name="stores")
        ws = writer.sheets["stores"]
        for i, col in enumerate(df.columns, start=1):
            max_len = max([len(str(x)) for x in df[col].tolist() if x is not None] + [len(str(col))])
            ws.column_dimensions[get_column_letter(i)].width = max_len + 2
    return output.getvalue()
