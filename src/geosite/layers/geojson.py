"""Validate GeoJSON (RFC 7946) feature collections for shapefile layers.

Shapefiles arrive already converted to GeoJSON.  Before a layer is drawn
its collection is checked here: FeatureCollection envelope, Feature
objects, a known geometry type and coordinate arrays nested to the depth
that geometry type requires.  Coordinates are [lng, lat].
"""

from __future__ import annotations

import json
from collections import Counter

from geosite.errors import MalformedGeometryError
from geosite.layers.layer import GeometryType

# Nesting depth of the coordinates array per geometry type
_COORD_DEPTH = {
    "Point": 1,
    "MultiPoint": 2,
    "LineString": 2,
    "MultiLineString": 3,
    "Polygon": 3,
    "MultiPolygon": 4,
}


def parse_geojson(geojson_string: str) -> dict:
    """Parse and validate a GeoJSON string.

    A single Feature is wrapped into a one-feature collection.

    Returns:
        A validated FeatureCollection dict.

    Raises:
        MalformedGeometryError: On invalid JSON or a malformed collection.
    """
    try:
        data = json.loads(geojson_string)
    except (json.JSONDecodeError, TypeError) as e:
        raise MalformedGeometryError(f"Invalid GeoJSON text: {e}") from e

    if isinstance(data, dict) and data.get("type") == "Feature":
        data = {"type": "FeatureCollection", "features": [data]}

    validate_feature_collection(data)
    return data


def validate_feature_collection(data) -> None:
    """Raise MalformedGeometryError unless ``data`` is a well-formed collection."""
    if not isinstance(data, dict) or data.get("type") != "FeatureCollection":
        raise MalformedGeometryError("Expected a GeoJSON FeatureCollection")

    features = data.get("features")
    if not isinstance(features, list):
        raise MalformedGeometryError("FeatureCollection has no features array")

    for idx, feature in enumerate(features):
        _validate_feature(feature, idx)


def _validate_feature(feature, idx: int) -> None:
    if not isinstance(feature, dict) or feature.get("type") != "Feature":
        raise MalformedGeometryError(f"Feature {idx} is not a GeoJSON Feature")

    geometry = feature.get("geometry")
    if not isinstance(geometry, dict):
        raise MalformedGeometryError(f"Feature {idx} has no geometry")

    geom_type = geometry.get("type")
    if geom_type not in _COORD_DEPTH:
        raise MalformedGeometryError(f"Feature {idx} has unsupported geometry type {geom_type!r}")

    if not _has_depth(geometry.get("coordinates"), _COORD_DEPTH[geom_type]):
        raise MalformedGeometryError(f"Feature {idx} has malformed {geom_type} coordinates")

    props = feature.get("properties")
    if props is not None and not isinstance(props, dict):
        raise MalformedGeometryError(f"Feature {idx} properties must be an object")


def _has_depth(coords, depth: int) -> bool:
    """True if coords is a non-empty array nested ``depth`` levels down to numbers."""
    if depth == 1:
        return (
            isinstance(coords, list)
            and len(coords) >= 2
            and all(isinstance(c, (int, float)) and not isinstance(c, bool) for c in coords)
        )
    return (
        isinstance(coords, list)
        and len(coords) > 0
        and all(_has_depth(c, depth - 1) for c in coords)
    )


def infer_geometry_type(data: dict) -> GeometryType:
    """Most common geometry type in a (validated) collection; Point if empty."""
    counts = Counter(f["geometry"]["type"] for f in data.get("features", []))
    if not counts:
        return GeometryType.POINT
    return GeometryType(counts.most_common(1)[0][0])
