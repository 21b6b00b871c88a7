"""Shared fixtures: synthetic shoreline curves and in-memory shapefile archives."""

import io
import json
import math
import zipfile

import pytest
import shapefile

EARTH_RADIUS_M = 6_371_008.8


@pytest.fixture
def make_curve():
    """
    Factory for an east-west shoreline with a gentle northward bulge, shifted
    by `east_m` / `north_m` metres. Land is to the south, so the default
    southward closure yields a simple polygon.
    """

    def _make(n_vertices=81, east_m=0.0, north_m=0.0, lon0=72.80, lat0=19.10, span=0.06, bulge=0.002):
        coords = []
        for i in range(n_vertices):
            f = i / (n_vertices - 1) if n_vertices > 1 else 0.0
            lat = lat0 + bulge * math.sin(math.pi * f)
            lon = lon0 + span * f
            lat += math.degrees(north_m / EARTH_RADIUS_M)
            lon += math.degrees(east_m / (EARTH_RADIUS_M * math.cos(math.radians(lat))))
            coords.append([lon, lat])
        return coords

    return _make


@pytest.fixture
def north_south_curve():
    """
    Site-A style coastline running south to north (closure overlaps the curve).
    Shifts east 0.00008 deg per year after 2011, or `east_m_per_year` metres.
    """

    def _make(year, n_vertices=81, east_m_per_year=None):
        coords = []
        for i in range(n_vertices):
            f = i / (n_vertices - 1)
            lat = 19.0850 + f * 0.06
            lng = (72.8260 - math.sin(f * math.pi) * 0.003
                   + math.sin(f * 15) * 0.0005 + math.cos(f * 8) * 0.0003)
            if east_m_per_year is None:
                lng += (year - 2011) * 0.00008
            else:
                east_m = east_m_per_year * (year - 2011)
                lng += math.degrees(east_m / (EARTH_RADIUS_M * math.cos(math.radians(lat))))
            coords.append([lng, lat])
        return coords

    return _make


@pytest.fixture
def shapefile_zip():
    """
    Build a zipped shapefile archive in memory.

    `layers` maps layer name -> (shapefile.POINT | shapefile.POLYLINE, [(name, coords), ...]).
    """

    def _build(layers, include_dbf=True):
        buf = io.BytesIO()
        with zipfile.ZipFile(buf, "w", zipfile.ZIP_DEFLATED) as zf:
            for layer_name, (shape_type, rows) in layers.items():
                shp, shx, dbf = io.BytesIO(), io.BytesIO(), io.BytesIO()
                w = shapefile.Writer(shp=shp, shx=shx, dbf=dbf, shapeType=shape_type)
                w.field("NAME", "C", 40)
                w.field("RANK", "N", 10, 0)
                for rank, (label, coords) in enumerate(rows):
                    if shape_type == shapefile.POINT:
                        w.point(*coords)
                    else:
                        w.line([coords])
                    w.record(label, rank)
                w.close()

                zf.writestr(f"{layer_name}.shp", shp.getvalue())
                zf.writestr(f"{layer_name}.shx", shx.getvalue())
                if include_dbf:
                    zf.writestr(f"{layer_name}.dbf", dbf.getvalue())
        return buf.getvalue()

    return _build


@pytest.fixture
def feature_collection_bytes():
    fc = {
        "type": "FeatureCollection",
        "features": [
            {"type": "Feature", "properties": {"name": "a"},
             "geometry": {"type": "LineString", "coordinates": [[72.82, 19.08], [72.83, 19.09]]}},
            {"type": "Feature", "properties": {"name": "b"},
             "geometry": {"type": "LineString", "coordinates": [[72.84, 19.10], [72.85, 19.11]]}},
        ],
    }
    return json.dumps(fc).encode("utf-8")
