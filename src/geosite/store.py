"""MapStore: explicit state container for one map view.

Every change to the map goes through :meth:`MapStore.dispatch` as a typed
action.  Tool and selection state lives in the immutable :class:`MapState`
and is advanced by the pure :func:`reduce`; overlay and shapefile actions
are applied to the view's :class:`LayerRegistry`.  Each dispatched action
is appended to an audit log and handed to subscribers along with the
before/after state, which is where the view hooks its redraws.

Actions serialise as ``{"type": "TOGGLE_OVERLAY", ...}`` for the API.
"""

from __future__ import annotations

import threading
from dataclasses import asdict, dataclass, field, fields, replace
from datetime import date
from typing import Callable, ClassVar, Optional

from loguru import logger

from geosite.canvas.primitives import BaseLayer
from geosite.layers.registry import LayerRegistry
from geosite.tools.modes import HeatmapCategory, MeasurementMode, ToolMode
from geosite.tools.sessions import CoordinateProbe, CrossSectionSession, MeasurementSession
from geosite.tools.timeline import DEFAULT_START


# ---------------------------------------------------------------------------
# State
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class MapState:
    """Tool, selection and modifier state of a mounted map."""

    base_layer: BaseLayer = BaseLayer.STREET
    selected_asset_id: Optional[str] = None
    tool: ToolMode = ToolMode.NONE
    measurement: MeasurementSession = MeasurementSession()
    probe: Optional[CoordinateProbe] = None
    cross_section: CrossSectionSession = CrossSectionSession()
    heatmap_category: Optional[HeatmapCategory] = None
    clustering: bool = False
    time_series: bool = False
    time_series_date: date = DEFAULT_START


# ---------------------------------------------------------------------------
# Actions
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class Action:
    type: ClassVar[str] = ""
    layer_action: ClassVar[bool] = False

    def to_dict(self) -> dict:
        payload = {"type": self.type}
        for key, value in asdict(self).items():
            payload[key] = value.value if hasattr(value, "value") else value
        return payload


@dataclass(frozen=True)
class ToggleOverlay(Action):
    type: ClassVar[str] = "TOGGLE_OVERLAY"
    layer_action: ClassVar[bool] = True
    overlay_id: str


@dataclass(frozen=True)
class ToggleShapefile(Action):
    type: ClassVar[str] = "TOGGLE_SHAPEFILE"
    layer_action: ClassVar[bool] = True
    layer_id: str


@dataclass(frozen=True)
class SetShapefileOpacity(Action):
    type: ClassVar[str] = "SET_SHAPEFILE_OPACITY"
    layer_action: ClassVar[bool] = True
    layer_id: str
    opacity: float


@dataclass(frozen=True)
class SetShapefileColor(Action):
    type: ClassVar[str] = "SET_SHAPEFILE_COLOR"
    layer_action: ClassVar[bool] = True
    layer_id: str
    color: str


@dataclass(frozen=True)
class SetShapefilesEnabled(Action):
    type: ClassVar[str] = "SET_SHAPEFILES_ENABLED"
    layer_action: ClassVar[bool] = True
    enabled: bool


@dataclass(frozen=True)
class SetBaseLayer(Action):
    type: ClassVar[str] = "SET_BASE_LAYER"
    base_layer: BaseLayer


@dataclass(frozen=True)
class SelectAsset(Action):
    type: ClassVar[str] = "SELECT_ASSET"
    asset_id: Optional[str] = None


@dataclass(frozen=True)
class SetToolMode(Action):
    type: ClassVar[str] = "SET_TOOL_MODE"
    tool: ToolMode


@dataclass(frozen=True)
class SetMeasurementMode(Action):
    type: ClassVar[str] = "SET_MEASUREMENT_MODE"
    mode: MeasurementMode


@dataclass(frozen=True)
class AddMeasurementPoint(Action):
    type: ClassVar[str] = "ADD_MEASUREMENT_POINT"
    lat: float
    lng: float


@dataclass(frozen=True)
class ResetMeasurement(Action):
    type: ClassVar[str] = "RESET_MEASUREMENT"


@dataclass(frozen=True)
class ProbeCoordinate(Action):
    type: ClassVar[str] = "PROBE_COORDINATE"
    lat: float
    lng: float


@dataclass(frozen=True)
class AddCrossSectionPoint(Action):
    type: ClassVar[str] = "ADD_CROSS_SECTION_POINT"
    lat: float
    lng: float


@dataclass(frozen=True)
class SetHeatmapCategory(Action):
    type: ClassVar[str] = "SET_HEATMAP_CATEGORY"
    category: Optional[HeatmapCategory] = None


@dataclass(frozen=True)
class SetClustering(Action):
    type: ClassVar[str] = "SET_CLUSTERING"
    enabled: bool


@dataclass(frozen=True)
class SetTimeSeries(Action):
    type: ClassVar[str] = "SET_TIME_SERIES"
    enabled: bool


@dataclass(frozen=True)
class SetTimeSeriesDate(Action):
    type: ClassVar[str] = "SET_TIME_SERIES_DATE"
    value: date

    def to_dict(self) -> dict:
        return {"type": self.type, "value": self.value.isoformat()}


ACTION_TYPES: dict[str, type[Action]] = {
    cls.type: cls
    for cls in (
        ToggleOverlay, ToggleShapefile, SetShapefileOpacity, SetShapefileColor,
        SetShapefilesEnabled, SetBaseLayer, SelectAsset, SetToolMode,
        SetMeasurementMode, AddMeasurementPoint, ResetMeasurement, ProbeCoordinate,
        AddCrossSectionPoint, SetHeatmapCategory, SetClustering, SetTimeSeries,
        SetTimeSeriesDate,
    )
}

# Field coercions for actions built from JSON
_COERCE = {
    "base_layer": BaseLayer,
    "tool": ToolMode,
    "mode": MeasurementMode,
    "category": lambda v: None if v is None else HeatmapCategory(v),
    "value": lambda v: v if isinstance(v, date) else date.fromisoformat(v),
    "lat": float,
    "lng": float,
    "opacity": float,
    "enabled": bool,
}


def action_from_dict(payload: dict) -> Action:
    """Build an action from its ``{"type": ..., **fields}`` form.

    Raises:
        KeyError: Unknown action type.
        TypeError / ValueError: Missing or invalid fields.
    """
    cls = ACTION_TYPES[payload["type"]]
    kwargs = {}
    for f in fields(cls):
        if f.name in payload:
            value = payload[f.name]
            coerce = _COERCE.get(f.name)
            kwargs[f.name] = coerce(value) if coerce is not None else value
    return cls(**kwargs)


# ---------------------------------------------------------------------------
# Reducer
# ---------------------------------------------------------------------------

def _activate(state: MapState, tool: ToolMode) -> MapState:
    """Switch tools, dropping every tool session and restoring defaults."""
    return replace(
        state,
        tool=tool,
        measurement=MeasurementSession(mode=MeasurementMode.DISTANCE),
        probe=None,
        cross_section=CrossSectionSession(),
        heatmap_category=HeatmapCategory.SETTLEMENT if tool == ToolMode.HEATMAP else None,
    )


def reduce(state: MapState, action: Action) -> MapState:
    """Pure transition function for tool/selection/modifier state."""
    if isinstance(action, SetToolMode):
        if action.tool == state.tool:
            return _activate(state, ToolMode.NONE)
        return _activate(state, action.tool)

    if isinstance(action, SetMeasurementMode):
        return replace(state, measurement=state.measurement.with_mode(action.mode))

    if isinstance(action, AddMeasurementPoint):
        if state.tool != ToolMode.MEASUREMENT:
            return state
        return replace(state, measurement=state.measurement.add_point((action.lat, action.lng)))

    if isinstance(action, ResetMeasurement):
        return replace(state, measurement=state.measurement.cleared())

    if isinstance(action, ProbeCoordinate):
        if state.tool != ToolMode.COORDINATES:
            return state
        return replace(state, probe=CoordinateProbe(action.lat, action.lng))

    if isinstance(action, AddCrossSectionPoint):
        if state.tool != ToolMode.CROSS_SECTION:
            return state
        return replace(state, cross_section=state.cross_section.add_point((action.lat, action.lng)))

    if isinstance(action, SetHeatmapCategory):
        if action.category is None:
            return replace(state, heatmap_category=None)
        if state.tool != ToolMode.HEATMAP:
            state = _activate(state, ToolMode.HEATMAP)
        return replace(state, heatmap_category=action.category)

    if isinstance(action, SetBaseLayer):
        return replace(state, base_layer=action.base_layer)

    if isinstance(action, SelectAsset):
        return replace(state, selected_asset_id=action.asset_id)

    if isinstance(action, SetClustering):
        return replace(state, clustering=action.enabled)

    if isinstance(action, SetTimeSeries):
        return replace(state, time_series=action.enabled)

    if isinstance(action, SetTimeSeriesDate):
        return replace(state, time_series_date=action.value)

    # Layer actions do not touch MapState
    return state


def apply_layer_action(registry: LayerRegistry, action: Action) -> bool:
    """Apply an overlay/shapefile action to a registry.  False if it was a no-op."""
    if isinstance(action, ToggleOverlay):
        return registry.toggle_overlay(action.overlay_id)
    if isinstance(action, ToggleShapefile):
        return registry.toggle_shapefile_visibility(action.layer_id)
    if isinstance(action, SetShapefileOpacity):
        return registry.set_opacity(action.layer_id, action.opacity)
    if isinstance(action, SetShapefileColor):
        return registry.set_color(action.layer_id, action.color)
    if isinstance(action, SetShapefilesEnabled):
        registry.set_shapefiles_enabled(action.enabled)
        return True
    return False


# ---------------------------------------------------------------------------
# Store
# ---------------------------------------------------------------------------

Subscriber = Callable[[MapState, MapState, Action], None]


@dataclass
class MapStore:
    """Holds the current state, the layer registry and the action log."""

    registry: LayerRegistry = field(default_factory=LayerRegistry)
    state: MapState = field(default_factory=MapState)
    log: list[Action] = field(default_factory=list)
    _subscribers: list[Subscriber] = field(default_factory=list, repr=False)
    _lock: threading.RLock = field(default_factory=threading.RLock, repr=False)

    @property
    def lock(self) -> threading.RLock:
        """The dispatch lock; hold it to act atomically with respect to dispatch."""
        return self._lock

    def subscribe(self, fn: Subscriber) -> Callable[[], None]:
        """Register a (before, after, action) listener; returns an unsubscribe."""
        self._subscribers.append(fn)

        def _unsubscribe() -> None:
            if fn in self._subscribers:
                self._subscribers.remove(fn)

        return _unsubscribe

    def dispatch(self, action: Action) -> MapState:
        """Apply an action and notify subscribers.

        Serialised with a re-entrant lock: the playback ticker dispatches from
        its own thread, and subscribers may dispatch while being notified.
        """
        with self._lock:
            before = self.state
            if action.layer_action:
                apply_layer_action(self.registry, action)
            after = reduce(before, action)
            self.state = after
            self.log.append(action)
            logger.debug(f"dispatch {action.type}")
            for fn in list(self._subscribers):
                fn(before, after, action)
            return self.state

    def reset(self) -> None:
        """Back to the initial state (remount); the audit log is kept."""
        self.registry.reset()
        self.state = MapState()
