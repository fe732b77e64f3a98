"""Map interaction tools: modes, sessions, heatmap placeholder, playback."""

from geosite.tools.modes import HeatmapCategory, MeasurementMode, ToolMode
from geosite.tools.sessions import CoordinateProbe, CrossSectionSession, MeasurementSession
from geosite.tools.timeline import ManualTicker, ThreadTicker, TimeSeriesPlayer

__all__ = [
    "CoordinateProbe",
    "CrossSectionSession",
    "HeatmapCategory",
    "ManualTicker",
    "MeasurementMode",
    "MeasurementSession",
    "ThreadTicker",
    "TimeSeriesPlayer",
    "ToolMode",
]
