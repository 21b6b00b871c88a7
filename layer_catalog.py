# layer_catalog.py
# Read-only queries over layer descriptors, and per-layer serving with a CRS flag

import logging
from dataclasses import asdict, dataclass
from typing import Dict, Iterable, List, Optional

from crs_check import check_geojson_crs, sample_coordinate

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class LayerDescriptor:
    layer_name: str
    site: str
    year: int
    parameter: str
    geometry: str = ""
    crs: str = ""
    source: str = ""
    description: Optional[str] = None

    @classmethod
    def from_dict(cls, d: Dict) -> "LayerDescriptor":
        return cls(
            layer_name=d["layer_name"],
            site=d["site"],
            year=int(d["year"]),
            parameter=d["parameter"],
            geometry=d.get("geometry") or d.get("geometry_type") or "",
            crs=d.get("crs", ""),
            source=d.get("source", ""),
            description=d.get("description"),
        )

    def to_dict(self) -> Dict:
        d = asdict(self)
        if d["description"] is None:
            del d["description"]
        return d


def load_descriptors(records: Iterable[Dict]) -> List[LayerDescriptor]:
    return [r if isinstance(r, LayerDescriptor) else LayerDescriptor.from_dict(r) for r in records]


def filter_layers(
    descriptors: Iterable[LayerDescriptor],
    site: Optional[str] = None,
    year=None,
    parameter: Optional[str] = None,
    query: Optional[str] = None,
) -> List[LayerDescriptor]:
    """Empty filters are ignored; `query` is a case-insensitive substring of layer_name."""
    out = list(descriptors)
    if site:
        out = [d for d in out if d.site == site]
    if year:
        out = [d for d in out if str(d.year) == str(year)]
    if parameter:
        out = [d for d in out if d.parameter == parameter]
    if query:
        q = query.lower()
        out = [d for d in out if q in d.layer_name.lower()]
    return out


def find_layer(descriptors: Iterable[LayerDescriptor], layer_name: str) -> Optional[LayerDescriptor]:
    return next((d for d in descriptors if d.layer_name == layer_name), None)


def serve_layer(descriptor: LayerDescriptor, geojson: Dict) -> Dict:
    """
    Attach the descriptor and a CRS sanity flag to a resolved layer geometry.
    The geometry itself is returned unchanged.
    """
    warning = check_geojson_crs(geojson)
    if warning:
        logger.warning("Layer %s: %s", descriptor.layer_name, warning)

    served = dict(geojson)
    served["properties"] = {
        **(geojson.get("properties") or {}),
        **descriptor.to_dict(),
        "crs_warning": warning,
        "debug_coords": sample_coordinate(geojson),
    }
    return served
