# crs_check.py
# Coarse check for layers that look projected (metres) instead of lon/lat degrees.
# Only flags; nothing is reprojected.

from typing import Dict, Iterable, List, Optional, Sequence

import numpy as np

from geometry_utils import iter_coordinates

CRS_WARNING = "GeoJSON CRS mismatch suspected (UTM detected)"
MAX_ABS_LON = 180.0
MAX_ABS_LAT = 90.0


def check_crs(coordinates: Iterable[Sequence[float]]) -> Optional[str]:
    """
    Return CRS_WARNING if the bounding box of `coordinates` leaves the
    geographic range, else None.
    """
    pts = [c[:2] for c in coordinates if len(c) >= 2]
    if not pts:
        return None
    arr = np.abs(np.asarray(pts, dtype=float))
    if np.nanmax(arr[:, 0]) > MAX_ABS_LON or np.nanmax(arr[:, 1]) > MAX_ABS_LAT:
        return CRS_WARNING
    return None


def check_geojson_crs(geojson: Dict) -> Optional[str]:
    return check_crs(iter_coordinates(geojson))


def sample_coordinate(geojson: Dict) -> Optional[List[float]]:
    """First position of a GeoJSON object, handy when debugging a warning."""
    return next(iter_coordinates(geojson), None)
