# geometry_utils.py
# Point/line/polygon helpers, distances and areas on WGS84 lon/lat degrees

import logging
from dataclasses import dataclass
from typing import Dict, Iterator, List, Optional, Sequence, Tuple

import numpy as np
from pyproj import Geod
from shapely import make_valid
from shapely.errors import GEOSException
from shapely.geometry import LineString, MultiPolygon, Point, Polygon
from shapely.geometry.base import BaseGeometry
from shapely.geometry.polygon import orient

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------
EARTH_RADIUS_M = 6_371_008.8          # mean radius, same as turf/haversine tools
CLOSURE_OFFSET_DEG = (0.0, -0.01)     # ~1.1 km due south

GEOD = Geod(ellps="WGS84")

Coordinate = Sequence[float]


# ---------------------------------------------------------------------
# Distances
# ---------------------------------------------------------------------
def haversine_m(lon1, lat1, lon2, lat2) -> np.ndarray:
    """Great-circle distance in metres. Accepts scalars or arrays (degrees)."""
    lon1, lat1, lon2, lat2 = (np.radians(np.asarray(v, dtype=float)) for v in (lon1, lat1, lon2, lat2))
    dlat = lat2 - lat1
    dlon = lon2 - lon1
    a = np.sin(dlat / 2.0) ** 2 + np.cos(lat1) * np.cos(lat2) * np.sin(dlon / 2.0) ** 2
    return 2.0 * EARTH_RADIUS_M * np.arcsin(np.sqrt(np.clip(a, 0.0, 1.0)))


def pairwise_distances_m(a: Sequence[Coordinate], b: Sequence[Coordinate]) -> np.ndarray:
    """Distance between a[i] and b[i] for every i (both [lon, lat])."""
    if len(a) == 0:
        return np.zeros(0, dtype=float)
    a_arr = np.asarray(a, dtype=float)[:, :2]
    b_arr = np.asarray(b, dtype=float)[:, :2]
    return haversine_m(a_arr[:, 0], a_arr[:, 1], b_arr[:, 0], b_arr[:, 1])


def nearest_on_line(points: Sequence[Coordinate], coords: Sequence[Coordinate]) -> List[Tuple[float, float]]:
    """
    Project each point onto the polyline through `coords` and return the
    closest positions. Planar projection in degree space; fine for the short
    spans of a single survey site.
    """
    target = to_line(coords)
    out = []
    for x, y in (p[:2] for p in points):
        if isinstance(target, Point):
            out.append((target.x, target.y))
            continue
        snapped = target.interpolate(target.project(Point(x, y)))
        out.append((snapped.x, snapped.y))
    return out


# ---------------------------------------------------------------------
# Construction
# ---------------------------------------------------------------------
def to_line(coords: Sequence[Coordinate]) -> BaseGeometry:
    """LineString through the vertices, or a Point when there is only one."""
    pts = [tuple(c[:2]) for c in coords]
    if not pts:
        raise ValueError("Cannot build a line from an empty coordinate sequence")
    if len(pts) == 1:
        return Point(pts[0])
    return LineString(pts)


def close_curve(coords: Sequence[Coordinate], offset: Tuple[float, float] = CLOSURE_OFFSET_DEG) -> BaseGeometry:
    """
    Turn an open shoreline into a ring: walk the curve, step from the last
    vertex by `offset`, back to the first vertex shifted by `offset`, then
    close on the first vertex.

    When the closure runs back across the curve (a north-south coast closed
    southward) the ring self-intersects. It is repaired into its polygonal
    parts so later overlay operations see valid input.
    """
    pts = [(float(c[0]), float(c[1])) for c in coords]
    if not pts:
        raise ValueError("Cannot close an empty curve")
    dx, dy = offset
    first, last = pts[0], pts[-1]
    ring = pts + [(last[0] + dx, last[1] + dy), (first[0] + dx, first[1] + dy), first]
    poly = Polygon(ring)
    if poly.is_valid:
        return poly

    parts = _polygons(make_valid(poly))
    logger.debug("Closed curve was invalid; repaired into %d polygon(s)", len(parts))
    if len(parts) == 1:
        return parts[0]
    return MultiPolygon(parts)


# ---------------------------------------------------------------------
# Areas and set difference
# ---------------------------------------------------------------------
def _polygons(geom: BaseGeometry) -> List[Polygon]:
    if geom is None or geom.is_empty:
        return []
    if isinstance(geom, Polygon):
        return [geom]
    parts = []
    for g in getattr(geom, "geoms", []):
        parts.extend(_polygons(g))
    return parts


def geodesic_area_m2(geom: Optional[BaseGeometry]) -> float:
    """WGS84 area (m²) of the polygonal parts of `geom`; lines/points count as 0."""
    total = 0.0
    for poly in _polygons(geom):
        area, _ = GEOD.geometry_area_perimeter(orient(poly, sign=1.0))
        total += abs(area)
    return float(total)


@dataclass(frozen=True)
class GeometryResult:
    """Outcome of a geometric operation that is allowed to fail."""

    geometry: Optional[BaseGeometry] = None
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    def area_m2(self) -> float:
        return geodesic_area_m2(self.geometry) if self.ok else 0.0


def safe_difference(a: BaseGeometry, b: BaseGeometry) -> GeometryResult:
    """a minus b; GEOS/topology failures come back as an error result."""
    try:
        return GeometryResult(geometry=a.difference(b))
    except (GEOSException, ValueError) as e:
        return GeometryResult(error=str(e) or e.__class__.__name__)


# ---------------------------------------------------------------------
# GeoJSON traversal
# ---------------------------------------------------------------------
def _walk_positions(coords) -> Iterator[List[float]]:
    if not isinstance(coords, (list, tuple)) or not coords:
        return
    if isinstance(coords[0], (int, float)) and not isinstance(coords[0], bool):
        yield list(coords)
        return
    for c in coords:
        yield from _walk_positions(c)


def iter_coordinates(obj: Optional[Dict]) -> Iterator[List[float]]:
    """Every position in a GeoJSON geometry, Feature or FeatureCollection."""
    if not isinstance(obj, dict):
        return
    t = obj.get("type")
    if t == "FeatureCollection":
        for f in obj.get("features") or []:
            yield from iter_coordinates(f)
    elif t == "Feature":
        yield from iter_coordinates(obj.get("geometry"))
    elif t == "GeometryCollection":
        for g in obj.get("geometries") or []:
            yield from iter_coordinates(g)
    else:
        yield from _walk_positions(obj.get("coordinates"))
