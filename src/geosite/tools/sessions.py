"""Transient tool sessions: measurement, coordinate probe, cross-section.

Sessions are immutable; every click returns a new session.  They hold
points and derive readouts through :mod:`geosite.geo`; drawing them is the
canvas adapter's job.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, replace
from typing import Iterable

from geosite.assets import Asset
from geosite.geo import (
    LatLng,
    format_area,
    format_distance,
    haversine_distance,
    midpoint,
    path_length,
    polygon_area,
    utm_hemisphere,
    utm_zone,
)
from geosite.tools.modes import MeasurementMode


@dataclass(frozen=True)
class MeasurementSession:
    """Clicked points and the derived distance or area."""

    mode: MeasurementMode = MeasurementMode.DISTANCE
    points: tuple[LatLng, ...] = ()

    def add_point(self, point: LatLng) -> "MeasurementSession":
        return replace(self, points=self.points + (point,))

    def with_mode(self, mode: MeasurementMode) -> "MeasurementSession":
        """Switch sub-mode; the collected points are discarded on a change."""
        if mode == self.mode:
            return self
        return MeasurementSession(mode=mode)

    def cleared(self) -> "MeasurementSession":
        return MeasurementSession(mode=self.mode)

    @property
    def value(self) -> float | None:
        """Metres (distance) or square metres (area); None until enough points."""
        if self.mode == MeasurementMode.DISTANCE:
            return path_length(self.points) if len(self.points) >= 2 else None
        return polygon_area(self.points) if len(self.points) >= 3 else None

    @property
    def result(self) -> str:
        value = self.value
        if value is None:
            return ""
        if self.mode == MeasurementMode.DISTANCE:
            return f"Distance: {format_distance(value)}"
        return f"Area: {format_area(value)}"


@dataclass(frozen=True)
class CoordinateProbe:
    """The single most recent probed coordinate."""

    lat: float
    lng: float

    @property
    def latlng(self) -> LatLng:
        return (self.lat, self.lng)

    @property
    def zone(self) -> int:
        return utm_zone(self.lng)

    def readout(self) -> dict:
        return {
            "lat": f"{self.lat:.6f}°",
            "lng": f"{self.lng:.6f}°",
            "utm": f"Zone {self.zone}{utm_hemisphere(self.lat)}",
        }


@dataclass(frozen=True)
class CrossSectionSession:
    """Two-slot ring buffer of section endpoints.

    A click with two points already present starts over from the new
    point; the session never holds more than two.
    """

    points: tuple[LatLng, ...] = ()

    def add_point(self, point: LatLng) -> "CrossSectionSession":
        if len(self.points) < 2:
            return CrossSectionSession(points=self.points + (point,))
        return CrossSectionSession(points=(point,))

    @property
    def complete(self) -> bool:
        return len(self.points) == 2

    @property
    def distance(self) -> float | None:
        if not self.complete:
            return None
        return haversine_distance(self.points[0], self.points[1])

    @property
    def midpoint(self) -> LatLng | None:
        if not self.complete:
            return None
        return midpoint(self.points[0], self.points[1])

    @property
    def label(self) -> str:
        distance = self.distance
        return "" if distance is None else f"{distance / 1000:.2f} km"


def _segment_offset_m(point: LatLng, a: LatLng, b: LatLng) -> float:
    """Distance in metres from a point to segment a-b (local equirectangular)."""
    lat0 = math.radians((a[0] + b[0]) / 2)

    def to_xy(p: LatLng) -> tuple[float, float]:
        return (
            math.radians(p[1]) * math.cos(lat0) * 6_371_000.0,
            math.radians(p[0]) * 6_371_000.0,
        )

    px, py = to_xy(point)
    ax, ay = to_xy(a)
    bx, by = to_xy(b)
    dx, dy = bx - ax, by - ay
    seg_len2 = dx * dx + dy * dy
    if seg_len2 == 0:
        return math.hypot(px - ax, py - ay)
    t = max(0.0, min(1.0, ((px - ax) * dx + (py - ay) * dy) / seg_len2))
    return math.hypot(px - (ax + t * dx), py - (ay + t * dy))


def assets_near_section(
    session: CrossSectionSession, assets: Iterable[Asset], limit: int = 2,
) -> list[Asset]:
    """Assets closest to a complete section line, nearest first."""
    if not session.complete:
        return []
    a, b = session.points
    ranked = sorted(assets, key=lambda asset: _segment_offset_m(asset.location.latlng, a, b))
    return ranked[:limit]
