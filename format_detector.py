# format_detector.py
# Picks a parser for an upload and finds the coordinate columns of tabular data

import logging
from typing import List, Optional, Sequence, Tuple

from coastal_errors import ColumnDetectionError, UnsupportedFormatError

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------
FORMAT_CSV = "CSV"
FORMAT_GEOJSON = "GeoJSON"
FORMAT_SHAPEFILE = "Shapefile (ZIP)"

CSV_MIMETYPE = "text/csv"
GEOJSON_SUFFIXES = (".json", ".geojson")

# substring keywords, matched against lowercased headers
LAT_KEYWORDS = ("lat", "latitude", "y", "north")
LON_KEYWORDS = ("lon", "lng", "longitude", "x", "east")


def detect_format(filename: str, mimetype: Optional[str] = None) -> str:
    """Return one of FORMAT_CSV / FORMAT_GEOJSON / FORMAT_SHAPEFILE."""
    name = (filename or "").strip().lower()
    mime = (mimetype or "").split(";")[0].strip().lower()

    if mime == CSV_MIMETYPE or name.endswith(".csv"):
        return FORMAT_CSV
    if name.endswith(GEOJSON_SUFFIXES):
        return FORMAT_GEOJSON
    if name.endswith(".zip"):
        return FORMAT_SHAPEFILE
    raise UnsupportedFormatError()


def _first_match(headers: Sequence[str], keywords: Sequence[str], skip: Optional[int] = None) -> int:
    for i, h in enumerate(headers):
        if i == skip:
            continue
        if any(k in h for k in keywords):
            return i
    return -1


def detect_columns(headers: Sequence[str]) -> Tuple[int, int]:
    """
    Locate (lat_idx, lon_idx) in a header row.

    Left-to-right scan, first match wins. Latitude is resolved first and the
    longitude scan never reuses that column, so a header such as
    "y_longitude" cannot be picked for both axes.
    """
    norm: List[str] = [str(h).strip().lower() for h in headers]
    lat_idx = _first_match(norm, LAT_KEYWORDS)
    lon_idx = _first_match(norm, LON_KEYWORDS, skip=lat_idx)

    if lat_idx == -1 or lon_idx == -1:
        logger.info("No coordinate columns in headers %s", list(headers))
        raise ColumnDetectionError(list(headers))
    return lat_idx, lon_idx
