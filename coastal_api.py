# coastal_api.py
# Transport-neutral operations: ingest an upload, analyze shoreline change, serve layers.
# Every call returns plain dicts so any web/CLI layer can wrap it.

import logging
from typing import Callable, Dict, Iterable, List, Optional, Sequence

from coastal_processor import analyze_change
from coastal_errors import CoastalError, LayerNotFoundError, MissingParametersError
from ingest import ingest
from layer_catalog import LayerDescriptor, filter_layers, find_layer, serve_layer

logger = logging.getLogger(__name__)

CurveSource = Callable[[str, int], Sequence]
GeometrySource = Callable[[LayerDescriptor], Dict]


def error_payload(err: CoastalError) -> Dict:
    return {"success": False, "error": err.to_dict()}


# ---------------------------------------------------------------------
# Ingest
# ---------------------------------------------------------------------
def ingest_upload(raw_bytes: bytes, filename: str, mimetype: str = "") -> Dict:
    try:
        fc, metadata = ingest(raw_bytes, filename, mimetype)
    except CoastalError as e:
        logger.warning("Upload %s rejected: %s", filename, e.message)
        return error_payload(e)
    return {"success": True, "metadata": metadata.to_dict(), "data": fc}


# ---------------------------------------------------------------------
# Shoreline change
# ---------------------------------------------------------------------
def _is_int(v) -> bool:
    return isinstance(v, int) and not isinstance(v, bool)


def parse_analysis_request(request: Optional[Dict]):
    """Return (site, baseline_year, target_year); the target is the last comparison year."""
    request = request or {}
    site = request.get("site")
    baseline_year = request.get("baselineYear")
    comparison_years = request.get("comparisonYears")

    if (not site or not isinstance(site, str)
            or not _is_int(baseline_year)
            or not isinstance(comparison_years, list) or not comparison_years
            or not all(_is_int(y) for y in comparison_years)):
        raise MissingParametersError()
    return site, baseline_year, comparison_years[-1]


def analyze_shoreline_change(request: Dict, curve_source: CurveSource, params: Optional[Dict] = None) -> Dict:
    try:
        site, baseline_year, target_year = parse_analysis_request(request)
        baseline = curve_source(site, baseline_year)
        target = curve_source(site, target_year)
        report = analyze_change(baseline, target, site, baseline_year, target_year, params=params)
    except CoastalError as e:
        logger.warning("Shoreline analysis rejected: %s", e.message)
        return error_payload(e)
    except Exception:
        logger.exception("Analysis error")
        raise
    return {"success": True, "report": report.to_dict()}


# ---------------------------------------------------------------------
# Layers
# ---------------------------------------------------------------------
def list_layers(descriptors: Iterable[LayerDescriptor], **filters) -> List[Dict]:
    return [d.to_dict() for d in filter_layers(descriptors, **filters)]


def get_layer(layer_name: str, descriptors: Iterable[LayerDescriptor], geometry_source: GeometrySource) -> Dict:
    descriptor = find_layer(descriptors, layer_name)
    if descriptor is None:
        err = LayerNotFoundError(layer_name)
        logger.info(err.message)
        return error_payload(err)
    return {"success": True, "data": serve_layer(descriptor, geometry_source(descriptor))}
