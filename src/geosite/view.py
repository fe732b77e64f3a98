"""MapView, one mounted map: store, renderer, adapter and playback.

The view is the component-level owner.  ``mount()`` claims the renderer
and draws the initial scene; after that every state change arrives as a
store action and the view diffs the before/after state to decide which
concerns to redraw.  ``unmount()`` cancels playback, unbinds click
handlers, removes every primitive and releases the renderer.

Asset data only flows in.  The view never mutates assets; it reports
marker clicks through ``on_asset_click``.
"""

from __future__ import annotations

from datetime import date
from typing import Callable, Iterable, Optional

import numpy as np
from loguru import logger

from geosite.assets import Asset, asset_to_dict, recorded_date
from geosite.canvas.adapter import MapCanvasAdapter
from geosite.canvas.clustering import ClusterProvider
from geosite.canvas.primitives import BaseLayer
from geosite.canvas.renderer import ClickHandler, MapRenderer
from geosite.geo import mean_center
from geosite.layers.layer import ShapefileLayer
from geosite.layers.registry import LayerRegistry
from geosite.store import (
    Action,
    AddCrossSectionPoint,
    AddMeasurementPoint,
    MapState,
    MapStore,
    ProbeCoordinate,
    SelectAsset,
    SetTimeSeries,
    SetTimeSeriesDate,
    ToggleOverlay,
)
from geosite.tools.heatmap import Heatmap, build_heatmap
from geosite.tools.modes import CLICK_TOOLS, ToolMode
from geosite.tools.sessions import assets_near_section
from geosite.tools.timeline import DEFAULT_START, ManualTicker, Ticker, TimeSeriesPlayer

_SHAPEFILE_ACTIONS = frozenset({
    "TOGGLE_SHAPEFILE", "SET_SHAPEFILE_OPACITY", "SET_SHAPEFILE_COLOR", "SET_SHAPEFILES_ENABLED",
})

_CLICK_ACTIONS = {
    ToolMode.MEASUREMENT: AddMeasurementPoint,
    ToolMode.COORDINATES: ProbeCoordinate,
    ToolMode.CROSS_SECTION: AddCrossSectionPoint,
}


class MapView:
    """A mounted site map.

    Args:
        assets: Project assets (read-only).
        renderer: Renderer this view will own while mounted.
        on_asset_click: Called once per marker click with the asset.
        registry: Overlay/shapefile state; a default registry if omitted.
        cluster_provider: Clustering capability for the adapter.
        ticker: Time-series timer; a manual ticker if omitted.
        rng: Random generator for the heatmap placeholder.
        zoom: Initial zoom.
        base_layer: Initial base layer.
        project_id: Project that uploaded shapefile layers belong to.
    """

    def __init__(
        self,
        assets: Iterable[Asset],
        renderer: MapRenderer,
        on_asset_click: Optional[Callable[[Asset], None]] = None,
        registry: Optional[LayerRegistry] = None,
        cluster_provider: Optional[ClusterProvider] = None,
        ticker: Optional[Ticker] = None,
        rng: Optional[np.random.Generator] = None,
        zoom: int = 13,
        base_layer: BaseLayer = BaseLayer.STREET,
        cluster_threshold: int = 5,
        cluster_radius_px: int = 50,
        timeseries_interval: float = 1.0,
        timeseries_start: date = DEFAULT_START,
        today: Callable[[], date] = date.today,
        project_id: str = "default",
    ) -> None:
        self.assets: tuple[Asset, ...] = tuple(assets)
        self._by_id = {a.asset_id: a for a in self.assets}
        self.renderer = renderer
        self._on_asset_click = on_asset_click
        self._initial_base = BaseLayer(base_layer)
        self.store = MapStore(
            registry=registry or LayerRegistry(),
            state=MapState(base_layer=self._initial_base, time_series_date=timeseries_start),
        )
        self.adapter = MapCanvasAdapter(
            renderer,
            self._handle_asset_click,
            cluster_provider=cluster_provider,
            cluster_threshold=cluster_threshold,
            cluster_radius_px=cluster_radius_px,
            cluster_zoom=zoom,
        )
        self.player = TimeSeriesPlayer(
            ticker or ManualTicker(),
            on_change=self._on_player_date,
            start=timeseries_start,
            interval=timeseries_interval,
            today=today,
            lock=self.store.lock,
        )
        self._rng = rng
        self.zoom = zoom
        self.project_id = project_id
        self.heatmap: Optional[Heatmap] = None
        self.mounted = False
        self._click_handler: Optional[ClickHandler] = None
        self._unsubscribe: Optional[Callable[[], None]] = None

    @property
    def state(self) -> MapState:
        return self.store.state

    @property
    def registry(self) -> LayerRegistry:
        return self.store.registry

    # -- Lifecycle ----------------------------------------------------------

    def mount(self) -> None:
        """Claim the renderer and draw the initial scene."""
        if self.mounted:
            return
        self.renderer.claim(self)
        self.store.reset()
        self.store.state = MapState(base_layer=self._initial_base, time_series_date=self.player.start_date)
        self.player.current = self.player.start_date
        center = mean_center(a.location.latlng for a in self.assets) or (0.0, 0.0)
        self.renderer.set_view(center, self.zoom)
        self._unsubscribe = self.store.subscribe(self._on_change)
        self.adapter.set_base_layer(self.state.base_layer)
        self._render_markers()
        self._render_overlays()
        self.adapter.render_shapefiles(self.registry.visible_shapefiles())
        self.mounted = True
        logger.info(f"Map mounted with {len(self.assets)} assets")

    def unmount(self) -> None:
        """Cancel playback, unbind handlers, clear the scene, release the renderer."""
        if not self.mounted:
            return
        self.player.cancel()
        self._bind_click(None)
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None
        self.adapter.teardown()
        self.heatmap = None
        self.renderer.release(self)
        self.mounted = False
        logger.info("Map unmounted")

    # -- Inbound events -----------------------------------------------------

    def dispatch(self, action: Action) -> MapState:
        return self.store.dispatch(action)

    def click(self, lat: float, lng: float) -> None:
        """A raw map click; routed to whichever tool handler is bound."""
        self.renderer.emit_click(lat, lng)

    def click_marker(self, asset_id: str) -> bool:
        return self.renderer.click_marker(asset_id)

    def upload_shapefile(self, text: str, name: Optional[str] = None, color: str = "#186181") -> ShapefileLayer:
        """Import GeoJSON text as a shapefile layer and draw it.

        Raises:
            MalformedGeometryError: The payload is not a valid collection.
        """
        layer = self.registry.import_geojson_text(text, self.project_id, name=name, color=color)
        if self.mounted:
            self.adapter.render_shapefiles(self.registry.visible_shapefiles())
        return layer

    def _handle_asset_click(self, asset: Asset) -> None:
        self.dispatch(SelectAsset(asset.asset_id))
        if self._on_asset_click is not None:
            self._on_asset_click(asset)

    # -- Time series controls -----------------------------------------------

    def play(self) -> None:
        if not self.state.time_series:
            self.dispatch(SetTimeSeries(True))
        self.player.play()

    def pause(self) -> None:
        self.player.pause()

    def step_forward(self) -> None:
        self.player.step_forward()

    def step_back(self) -> None:
        self.player.step_back()

    def reset_timeseries(self) -> None:
        """Stop playback and return to the start date."""
        self.player.reset()

    def _on_player_date(self, value: date) -> None:
        self.dispatch(SetTimeSeriesDate(value))

    # -- Derived data -------------------------------------------------------

    def visible_assets(self) -> list[Asset]:
        """Assets after overlay filtering and, if enabled, the time filter."""
        visible = self.registry.visible_assets(self.assets)
        if self.state.time_series:
            cutoff = self.state.time_series_date
            visible = [a for a in visible if recorded_date(a) <= cutoff]
        return visible

    def readouts(self) -> dict:
        """What the floating result cards would show."""
        state = self.state
        out: dict = {"tool": state.tool.value}
        if state.tool == ToolMode.MEASUREMENT:
            out["measurement"] = {
                "mode": state.measurement.mode.value,
                "points": len(state.measurement.points),
                "result": state.measurement.result,
            }
        elif state.tool == ToolMode.COORDINATES and state.probe is not None:
            out["coordinates"] = state.probe.readout()
        elif state.tool == ToolMode.CROSS_SECTION:
            section = state.cross_section
            out["cross_section"] = {
                "points": len(section.points),
                "distance": section.label,
                "nearby_assets": [a.name for a in assets_near_section(section, self.assets)],
            }
        elif state.tool == ToolMode.HEATMAP and self.heatmap is not None:
            out["heatmap"] = {
                "category": self.heatmap.category.value,
                "samples": [
                    {"value": round(s.value, 1), "intensity": s.intensity, "unit": s.unit}
                    for s in self.heatmap.samples
                ],
            }
        if state.time_series:
            out["time_series"] = {
                "date": state.time_series_date.isoformat(),
                "playing": self.player.playing,
            }
        return out

    def snapshot(self) -> dict:
        """Serializable view state for the API."""
        state = self.state
        return {
            "base_layer": state.base_layer.value,
            "selected_asset_id": state.selected_asset_id,
            "tool": state.tool.value,
            "clustering": state.clustering,
            "time_series": state.time_series,
            "time_series_date": state.time_series_date.isoformat(),
            "overlays": [
                {"id": o.overlay_id, "name": o.name, "enabled": o.enabled, "color": o.color}
                for o in self.registry.list_overlays()
            ],
            "shapefiles_enabled": self.registry.shapefiles_enabled,
            "shapefiles": [
                {
                    "id": s.layer_id, "name": s.name, "visible": s.visible,
                    "opacity": s.opacity, "color": s.color,
                    "geometry_type": s.geometry_type.value, "feature_count": s.feature_count,
                }
                for s in self.registry.list_shapefiles()
            ],
            "visible_assets": [asset_to_dict(a) for a in self.visible_assets()],
            "readouts": self.readouts(),
        }

    # -- Effects ------------------------------------------------------------

    def _render_markers(self) -> None:
        self.adapter.render_assets(self.visible_assets(), self.state.selected_asset_id, self.state.clustering)

    def _render_overlays(self) -> None:
        self.adapter.render_overlays(self.registry, self.assets, self.renderer.bounds())

    def _bind_click(self, handler: Optional[ClickHandler]) -> None:
        if self._click_handler is not None:
            self.renderer.off_click(self._click_handler)
        self._click_handler = handler
        if handler is not None:
            self.renderer.on_click(handler)

    def _handler_for(self, tool: ToolMode) -> Optional[ClickHandler]:
        if tool not in CLICK_TOOLS:
            return None
        action_type = _CLICK_ACTIONS[tool]
        return lambda lat, lng: self.dispatch(action_type(lat, lng))

    def _on_change(self, before: MapState, after: MapState, action: Action) -> None:
        if isinstance(action, ToggleOverlay):
            self._render_markers()
            self._render_overlays()
        elif action.type in _SHAPEFILE_ACTIONS:
            self.adapter.render_shapefiles(self.registry.visible_shapefiles())

        if before.base_layer != after.base_layer:
            self.adapter.set_base_layer(after.base_layer)

        if (
            before.selected_asset_id != after.selected_asset_id
            or before.clustering != after.clustering
            or before.time_series != after.time_series
            or before.time_series_date != after.time_series_date
        ):
            self._render_markers()

        if before.selected_asset_id != after.selected_asset_id and after.selected_asset_id:
            asset = self._by_id.get(after.selected_asset_id)
            if asset is not None:
                self.adapter.focus(asset, self.zoom)
                if self.registry.is_enabled("grid"):
                    # Grid spans the viewport bounds
                    self._render_overlays()

        if before.time_series and not after.time_series:
            # Dispatch holds the tick lock here
            self.player.cancel(wait=False)

        if before.tool != after.tool:
            self.adapter.clear_tool(before.tool)
            if before.tool == ToolMode.HEATMAP:
                self.heatmap = None
            self._bind_click(self._handler_for(after.tool))
            logger.info(f"Tool {before.tool.value} -> {after.tool.value}")

        if after.tool == ToolMode.MEASUREMENT and before.measurement != after.measurement:
            self.adapter.draw_measurement(after.measurement)
        if before.probe != after.probe and after.tool == ToolMode.COORDINATES:
            self.adapter.draw_probe(after.probe)
        if before.cross_section != after.cross_section and after.tool == ToolMode.CROSS_SECTION:
            self.adapter.draw_cross_section(after.cross_section)

        if after.tool == ToolMode.HEATMAP and (
            before.tool != after.tool or before.heatmap_category != after.heatmap_category
        ):
            self.heatmap = (
                build_heatmap(after.heatmap_category, self.assets, self._rng)
                if after.heatmap_category is not None else None
            )
            self.adapter.draw_heatmap(self.heatmap)
