# ingest.py
# Upload ingestion: CSV / GeoJSON / zipped shapefile -> one FeatureCollection

import csv
import datetime
import io
import json
import logging
import math
import zipfile
from dataclasses import dataclass
from pathlib import PurePosixPath
from typing import Dict, List, Optional, Tuple

import shapefile  # pyshp

from coastal_errors import CoastalError, EmptyInputError, InvalidGeoJSONError, ProcessingFailedError
from format_detector import FORMAT_CSV, FORMAT_GEOJSON, FORMAT_SHAPEFILE, detect_columns, detect_format

logger = logging.getLogger(__name__)

MIXED_GEOMETRY = "Mixed"


@dataclass(frozen=True)
class IngestionMetadata:
    filename: str
    format: str
    feature_count: int
    detected_geometry: str
    dropped_rows: int = 0

    def to_dict(self) -> Dict:
        return {
            "filename": self.filename,
            "format": self.format,
            "featureCount": self.feature_count,
            "detectedGeometry": self.detected_geometry,
            "droppedRows": self.dropped_rows,
        }


def feature_collection(features: Optional[List[Dict]] = None) -> Dict:
    return {"type": "FeatureCollection", "features": list(features or [])}


def detected_geometry_type(features: List[Dict]) -> str:
    """Common geometry type of all features, else "Mixed"."""
    types = set()
    for f in features:
        geom = f.get("geometry") if isinstance(f, dict) else None
        types.add(geom.get("type") if isinstance(geom, dict) else None)
    if len(types) != 1 or None in types:
        return MIXED_GEOMETRY
    return types.pop()


# ---------------------------------------------------------------------
# CSV
# ---------------------------------------------------------------------
def _parse_coord(value: Optional[str]) -> Optional[float]:
    if value is None:
        return None
    try:
        v = float(value.strip())
    except (ValueError, AttributeError):
        return None
    return v if math.isfinite(v) else None


def parse_csv(data: bytes) -> Tuple[Dict, int]:
    """
    Parse delimited text into Point features.

    Returns (collection, dropped_rows). Rows whose latitude or longitude
    cannot be read as a finite float are skipped, not reported.
    """
    text = data.decode("utf-8-sig")
    rows = [r for r in csv.reader(io.StringIO(text)) if r]
    if len(rows) < 2:
        raise EmptyInputError()

    headers = rows[0]
    lat_idx, lon_idx = detect_columns(headers)

    features, dropped = [], 0
    for row in rows[1:]:
        lat = _parse_coord(row[lat_idx] if lat_idx < len(row) else None)
        lon = _parse_coord(row[lon_idx] if lon_idx < len(row) else None)
        if lat is None or lon is None:
            dropped += 1
            continue

        properties = {}
        for i, h in enumerate(headers):
            if i != lat_idx and i != lon_idx:
                properties[h] = row[i] if i < len(row) else ""

        features.append({
            "type": "Feature",
            "properties": properties,
            "geometry": {"type": "Point", "coordinates": [lon, lat]},
        })

    if dropped:
        logger.warning("Dropped %d CSV row(s) without parseable coordinates", dropped)
    return feature_collection(features), dropped


# ---------------------------------------------------------------------
# GeoJSON
# ---------------------------------------------------------------------
def parse_geojson(data: bytes) -> Dict:
    parsed = json.loads(data.decode("utf-8-sig"))
    kind = parsed.get("type") if isinstance(parsed, dict) else None

    if kind == "FeatureCollection":
        if not isinstance(parsed.get("features"), list):
            raise InvalidGeoJSONError("FeatureCollection without a features list")
        return parsed
    if kind == "Feature":
        return feature_collection([parsed])
    raise InvalidGeoJSONError()


# ---------------------------------------------------------------------
# Shapefile (ZIP)
# ---------------------------------------------------------------------
def _listify(obj):
    if isinstance(obj, (list, tuple)):
        return [_listify(o) for o in obj]
    return obj


def _scalar(value):
    if value is None or isinstance(value, (str, int, float, bool)):
        return value
    if isinstance(value, (datetime.date, datetime.datetime)):
        return value.isoformat()
    if isinstance(value, bytes):
        return value.decode("utf-8", errors="replace")
    return str(value)


def _read_shapefile_layer(zf: zipfile.ZipFile, members: Dict[str, str]) -> Dict:
    """Read one .shp (+ .shx/.dbf/.cpg siblings) into a FeatureCollection."""
    streams = {ext: io.BytesIO(zf.read(name)) for ext, name in members.items() if ext in ("shp", "shx", "dbf")}
    encoding = "utf-8"
    if "cpg" in members:
        encoding = zf.read(members["cpg"]).decode("ascii", errors="ignore").strip() or encoding

    sf = shapefile.Reader(encoding=encoding, encodingErrors="replace", **streams)
    try:
        shapes = sf.shapes()
        if "dbf" in streams:
            fields = [f[0] for f in sf.fields[1:]]
            records = [dict(zip(fields, (_scalar(v) for v in r))) for r in sf.records()]
        else:
            records = [{} for _ in shapes]

        features = []
        for shp, props in zip(shapes, records):
            geometry = None
            if shp.shapeType != shapefile.NULL:
                geometry = _listify(shp.__geo_interface__)
            features.append({"type": "Feature", "properties": props, "geometry": geometry})
        return feature_collection(features)
    finally:
        sf.close()


def parse_shapefile_zip(data: bytes) -> List[Dict]:
    """One FeatureCollection per .shp found in the archive, in archive order."""
    collections = []
    with zipfile.ZipFile(io.BytesIO(data)) as zf:
        layers: Dict[str, Dict[str, str]] = {}
        for name in zf.namelist():
            path = PurePosixPath(name)
            if name.endswith("/") or "__MACOSX" in path.parts:
                continue
            ext = path.suffix.lower().lstrip(".")
            stem = str(path.with_suffix("")).lower()
            layers.setdefault(stem, {})[ext] = name

        for stem, members in layers.items():
            if "shp" not in members:
                continue
            logger.info("Reading shapefile layer %s", stem)
            collections.append(_read_shapefile_layer(zf, members))

    if not collections:
        raise ValueError("Archive contains no .shp file")
    return collections


# ---------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------
def ingest(file_bytes: bytes, filename: str, mimetype: Optional[str] = None) -> Tuple[Dict, IngestionMetadata]:
    """Normalize an upload into (FeatureCollection, IngestionMetadata)."""
    fmt = detect_format(filename, mimetype)
    logger.info("Ingesting %s as %s (%d bytes)", filename, fmt, len(file_bytes or b""))

    dropped = 0
    try:
        if fmt == FORMAT_CSV:
            fc, dropped = parse_csv(file_bytes)
            geometry_type = "Point"
        elif fmt == FORMAT_GEOJSON:
            fc = parse_geojson(file_bytes)
            geometry_type = detected_geometry_type(fc["features"])
        else:
            layers = parse_shapefile_zip(file_bytes)
            if len(layers) == 1:
                fc = layers[0]
            else:
                fc = feature_collection([f for layer in layers for f in layer["features"]])
            geometry_type = detected_geometry_type(fc["features"])
    except CoastalError:
        raise
    except Exception as e:
        logger.exception("Ingestion error for %s", filename)
        raise ProcessingFailedError(str(e) or e.__class__.__name__) from e

    metadata = IngestionMetadata(
        filename=filename,
        format=fmt,
        feature_count=len(fc["features"]),
        detected_geometry=geometry_type,
        dropped_rows=dropped,
    )
    logger.info("Ingested %d feature(s) from %s", metadata.feature_count, filename)
    return fc, metadata
