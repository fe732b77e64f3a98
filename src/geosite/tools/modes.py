"""Interaction modes for the map toolbar."""

from __future__ import annotations

from enum import Enum


class ToolMode(str, Enum):
    """Mutually exclusive click-handling tools."""
    NONE = "none"
    MEASUREMENT = "measurement"
    COORDINATES = "coordinates"
    CROSS_SECTION = "cross_section"
    HEATMAP = "heatmap"


class MeasurementMode(str, Enum):
    DISTANCE = "distance"
    AREA = "area"


class HeatmapCategory(str, Enum):
    """Heatmap themes, each with a three-step palette and a display unit."""
    SETTLEMENT = "settlement"
    GROUNDWATER = "groundwater"
    STRENGTH = "strength"

    @property
    def palette(self) -> tuple[str, str, str]:
        return _PALETTES[self]

    @property
    def unit(self) -> str:
        return _UNITS[self]


_PALETTES = {
    HeatmapCategory.SETTLEMENT: ("#ef4444", "#f59e0b", "#fbbf24"),
    HeatmapCategory.GROUNDWATER: ("#3b82f6", "#60a5fa", "#93c5fd"),
    HeatmapCategory.STRENGTH: ("#22c55e", "#84cc16", "#facc15"),
}

_UNITS = {
    HeatmapCategory.SETTLEMENT: "mm",
    HeatmapCategory.GROUNDWATER: "m",
    HeatmapCategory.STRENGTH: "kPa",
}

# Tools whose map clicks feed a session
CLICK_TOOLS = frozenset({ToolMode.MEASUREMENT, ToolMode.COORDINATES, ToolMode.CROSS_SECTION})
