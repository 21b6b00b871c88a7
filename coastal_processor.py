# coastal_processor.py
# Shoreline change analysis between two dated shoreline traces
# Separated from ingestion and serving so it can be tested on plain coordinate lists

import logging
from dataclasses import dataclass
from typing import Dict, List, Optional, Sequence, Tuple

import numpy as np
from shapely.errors import GEOSException

from coastal_errors import MissingParametersError
from geometry_utils import (
    CLOSURE_OFFSET_DEG,
    GeometryResult,
    close_curve,
    nearest_on_line,
    pairwise_distances_m,
    safe_difference,
)

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------
HEATMAP_FULL_SCALE_M = 50.0     # shift that maps to intensity 1.0
ALIGNMENT_AUTO = "auto"         # index when vertex counts match, nearest otherwise
ALIGNMENT_INDEX = "index"
ALIGNMENT_NEAREST = "nearest"
ALIGNMENTS = (ALIGNMENT_AUTO, ALIGNMENT_INDEX, ALIGNMENT_NEAREST)


# ---------------------------------------------------------------------
# Report
# ---------------------------------------------------------------------
@dataclass(frozen=True)
class ChangeReport:
    site: str
    baseline_year: int
    comparison_year: int
    max_shift_m: float
    avg_shift_m: float
    erosion_sqm: float
    accretion_sqm: float
    net_change_sqm: float
    heatmap_points: Tuple[Tuple[float, float, float], ...]
    changed_layers: Tuple[str, str]
    alignment: str = ALIGNMENT_INDEX

    def to_dict(self) -> Dict:
        return {
            "site": self.site,
            "baselineYear": self.baseline_year,
            "comparisonYear": self.comparison_year,
            "maxShiftM": self.max_shift_m,
            "avgShiftM": self.avg_shift_m,
            "erosionSqm": self.erosion_sqm,
            "accretionSqm": self.accretion_sqm,
            "netChangeSqm": self.net_change_sqm,
            "heatmapPoints": [list(p) for p in self.heatmap_points],
            "changedLayers": list(self.changed_layers),
            "alignment": self.alignment,
        }


def shoreline_layer_name(site: str, year: int) -> str:
    return f"Site{site}_{year}_Shoreline"


def as_curve(obj) -> List[List[float]]:
    """
    Coerce a shoreline to [[lon, lat], ...]. Accepts a coordinate list, a
    GeoJSON LineString geometry/Feature, or anything with shapely-style .coords.
    """
    if isinstance(obj, dict):
        if obj.get("type") == "Feature":
            obj = obj.get("geometry") or {}
        coords = obj.get("coordinates") or []
    elif hasattr(obj, "coords"):
        coords = list(obj.coords)
    else:
        coords = obj or []

    curve = [[float(c[0]), float(c[1])] for c in coords]
    finite = [c for c in curve if np.isfinite(c).all()]
    if len(finite) != len(curve):
        logger.warning("Dropped %d non-finite shoreline vertices", len(curve) - len(finite))
    return finite


def _is_year(value) -> bool:
    return isinstance(value, (int, np.integer)) and not isinstance(value, bool)


# ---------------------------------------------------------------------
# Main analyzer
# ---------------------------------------------------------------------
class ShorelineChangeAnalyzer:
    """Displacement and area change between a baseline and a comparison shoreline."""

    def __init__(self, params: Dict):
        self.params = params
        self.site = params.get('site')
        self.baseline_year = params.get('baseline_year')
        self.target_year = params.get('target_year')
        self.alignment = params.get('alignment', ALIGNMENT_AUTO)
        self.closure_offset = tuple(params.get('closure_offset', CLOSURE_OFFSET_DEG))
        self.full_scale_m = float(params.get('heatmap_full_scale_m', HEATMAP_FULL_SCALE_M))

        if not isinstance(self.site, str) or not self.site.strip():
            raise MissingParametersError("Missing parameters: site")
        if not _is_year(self.baseline_year) or not _is_year(self.target_year):
            raise MissingParametersError("Missing parameters: baseline/comparison year")
        if self.alignment not in ALIGNMENTS:
            raise ValueError(f"Unknown alignment {self.alignment!r}; expected one of {ALIGNMENTS}")
        if len(self.closure_offset) != 2:
            raise ValueError("closure_offset must be a (dlon, dlat) pair")
        if self.full_scale_m <= 0:
            raise ValueError("heatmap_full_scale_m must be positive")

    # -----------------------------------------------------------------
    # Displacement
    # -----------------------------------------------------------------
    def _displacements(self, base: List[List[float]], target: List[List[float]]) -> Tuple[np.ndarray, List[List[float]], str]:
        """Return (shift per compared vertex, compared baseline vertices, method)."""
        method = self.alignment
        if method == ALIGNMENT_AUTO:
            method = ALIGNMENT_INDEX if len(base) == len(target) else ALIGNMENT_NEAREST

        if method == ALIGNMENT_NEAREST and base and target:
            if len(base) != len(target):
                logger.info("Vertex counts differ (%d vs %d); using nearest-point alignment",
                            len(base), len(target))
            snapped = nearest_on_line(base, target)
            return pairwise_distances_m(base, snapped), base, ALIGNMENT_NEAREST

        n = min(len(base), len(target))
        if len(base) != len(target):
            logger.warning("Comparing only the first %d of %d/%d vertices", n, len(base), len(target))
        return pairwise_distances_m(base[:n], target[:n]), base[:n], ALIGNMENT_INDEX

    def _heatmap(self, coords: List[List[float]], shifts: np.ndarray) -> Tuple[Tuple[float, float, float], ...]:
        # [lat, lon, intensity] for the map layer
        intensity = np.clip(np.nan_to_num(shifts / self.full_scale_m), 0.0, 1.0)
        return tuple(
            (lat, lon, float(i))
            for (lon, lat), i in zip(coords, intensity)
        )

    # -----------------------------------------------------------------
    # Area change
    # -----------------------------------------------------------------
    def _closed_polygon(self, coords: List[List[float]]) -> GeometryResult:
        try:
            return GeometryResult(geometry=close_curve(coords, self.closure_offset))
        except (GEOSException, ValueError) as e:
            return GeometryResult(error=str(e) or e.__class__.__name__)

    def _difference_area(self, a: GeometryResult, b: GeometryResult, label: str) -> float:
        if a.ok and b.ok:
            result = safe_difference(a.geometry, b.geometry)
        else:
            result = GeometryResult(error=a.error or b.error)

        if not result.ok:
            logger.warning("%s calculation failed: %s", label, result.error)
            return 0.0
        return result.area_m2()

    def run(self, baseline, target) -> ChangeReport:
        base = as_curve(baseline)
        tgt = as_curve(target)
        logger.info("Analyzing site %s: %s -> %s (%d/%d vertices)",
                    self.site, self.baseline_year, self.target_year, len(base), len(tgt))

        # 1. Max / average shift
        shifts, compared, method = self._displacements(base, tgt)
        max_shift = float(shifts.max()) if shifts.size else 0.0
        avg_shift = float(shifts.mean()) if shifts.size else 0.0
        heatmap = self._heatmap(compared, shifts)

        # 2. Area change from curves closed inland
        poly_base = self._closed_polygon(base)
        poly_target = self._closed_polygon(tgt)
        erosion = round(self._difference_area(poly_base, poly_target, "Erosion"), 2)
        accretion = round(self._difference_area(poly_target, poly_base, "Accretion"), 2)

        return ChangeReport(
            site=self.site,
            baseline_year=int(self.baseline_year),
            comparison_year=int(self.target_year),
            max_shift_m=round(max_shift, 2),
            avg_shift_m=round(avg_shift, 2),
            erosion_sqm=erosion,
            accretion_sqm=accretion,
            net_change_sqm=round(accretion - erosion, 2),
            heatmap_points=heatmap,
            changed_layers=(
                shoreline_layer_name(self.site, self.baseline_year),
                shoreline_layer_name(self.site, self.target_year),
            ),
            alignment=method,
        )


def analyze_change(
    baseline_curve: Sequence,
    target_curve: Sequence,
    site: str,
    baseline_year: int,
    target_year: int,
    params: Optional[Dict] = None,
) -> ChangeReport:
    p = dict(params or {})
    p.update(site=site, baseline_year=baseline_year, target_year=target_year)
    return ShorelineChangeAnalyzer(p).run(baseline_curve, target_curve)
