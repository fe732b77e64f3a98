"""Spatial math for the site map: distances, areas, UTM zones.

Pure functions over (lat, lng) tuples in decimal degrees.  No side effects,
no renderer dependencies; the canvas adapter and the tool sessions call
these to turn clicked points into readouts.

Convention:
    - A point is a ``(lat, lng)`` tuple (Leaflet order, not GeoJSON order)
    - Distances are metres, areas are square metres
    - NaN in, NaN out: nothing here raises for NaN, callers must guard
"""

from __future__ import annotations

import math
from typing import Iterable, Sequence

EARTH_RADIUS_M = 6_371_000.0

LatLng = tuple[float, float]


# ---------------------------------------------------------------------------
# Distance
# ---------------------------------------------------------------------------

def haversine_distance(a: LatLng, b: LatLng) -> float:
    """Great-circle distance between two points in metres.

    Uses the mean Earth radius (6 371 000 m).  Symmetric, and zero for
    identical points.
    """
    lat1, lng1 = math.radians(a[0]), math.radians(a[1])
    lat2, lng2 = math.radians(b[0]), math.radians(b[1])
    dlat = lat2 - lat1
    dlng = lng2 - lng1
    h = math.sin(dlat / 2) ** 2 + math.cos(lat1) * math.cos(lat2) * math.sin(dlng / 2) ** 2
    # Rounding can push h just above 1 for antipodes
    if h > 1.0:
        h = 1.0
    return 2 * EARTH_RADIUS_M * math.asin(math.sqrt(h))


def path_length(points: Sequence[LatLng]) -> float:
    """Cumulative length of a polyline: sum of consecutive haversine legs.

    Raises:
        ValueError: If fewer than 2 points are given.
    """
    if len(points) < 2:
        raise ValueError(f"Path length needs at least 2 points, got {len(points)}")
    return sum(
        haversine_distance(points[i], points[i + 1])
        for i in range(len(points) - 1)
    )


# ---------------------------------------------------------------------------
# Area
# ---------------------------------------------------------------------------

def polygon_area(points: Sequence[LatLng]) -> float:
    """Approximate polygon area in square metres.

    Planar shoelace formula over coordinates converted to radians, scaled
    by R².  The ring is closed implicitly (last point wraps to first).
    This is an approximation, not a geodesic area: it is good for small
    site-scale polygons and self-intersecting rings give a defined but
    meaningless number.

    Raises:
        ValueError: If fewer than 3 points are given.
    """
    n = len(points)
    if n < 3:
        raise ValueError(f"Polygon area needs at least 3 points, got {n}")

    acc = 0.0
    for i in range(n):
        j = (i + 1) % n
        xi = math.radians(points[i][1])
        yi = math.radians(points[i][0])
        xj = math.radians(points[j][1])
        yj = math.radians(points[j][0])
        acc += xi * yj - xj * yi
    return abs(acc / 2) * EARTH_RADIUS_M * EARTH_RADIUS_M


# ---------------------------------------------------------------------------
# UTM
# ---------------------------------------------------------------------------

def utm_zone(lng: float) -> int:
    """UTM zone number for a longitude: floor((lng + 180) / 6) + 1.

    No Norway/Svalbard exceptions; the readout only needs the nominal zone.
    """
    return math.floor((lng + 180) / 6) + 1


def utm_hemisphere(lat: float) -> str:
    """'N' for the northern hemisphere (including the equator), else 'S'."""
    return "N" if lat >= 0 else "S"


# ---------------------------------------------------------------------------
# Helpers used by overlays and labels
# ---------------------------------------------------------------------------

def mean_center(points: Iterable[LatLng]) -> LatLng | None:
    """Arithmetic mean of a set of points, or None when there are none."""
    pts = list(points)
    if not pts:
        return None
    lat = sum(p[0] for p in pts) / len(pts)
    lng = sum(p[1] for p in pts) / len(pts)
    return (lat, lng)


def midpoint(a: LatLng, b: LatLng) -> LatLng:
    """Planar midpoint of two points (fine for label placement)."""
    return ((a[0] + b[0]) / 2, (a[1] + b[1]) / 2)


def meters_per_pixel(lat: float, zoom: int) -> float:
    """Ground resolution of a Web Mercator tile pixel at a latitude and zoom."""
    return 156_543.033_92 * math.cos(math.radians(lat)) / (2 ** zoom)


def format_distance(meters: float) -> str:
    """Distance readout, e.g. ``'1.23 km (1234 m)'``."""
    return f"{meters / 1000:.2f} km ({meters:.0f} m)"


def format_area(square_meters: float) -> str:
    """Area readout: km² with 2 decimals above one square kilometre, else m²."""
    if square_meters > 1_000_000:
        return f"{square_meters / 1_000_000:.2f} km²"
    return f"{square_meters:.0f} m²"
