"""MapCanvasAdapter: turns layer and tool state into renderer primitives.

The adapter owns every handle it adds, grouped by concern ("assets",
"overlays", "shapefiles", one group per tool).  Each redraw of a concern
removes that concern's previous primitives before mounting new ones, so
no two base layers, no two cluster groups and no stale tool drawings ever
coexist on the renderer.
"""

from __future__ import annotations

import math
from collections import defaultdict
from typing import Callable, Iterable, Sequence

from loguru import logger

from geosite.assets import Asset
from geosite.canvas.clustering import ClusterProvider, RadiusClusterProvider
from geosite.canvas.primitives import (
    BaseLayer,
    Circle,
    CircleMarker,
    GeoJsonShape,
    Label,
    Marker,
    MarkerStyle,
    Polygon,
    Polyline,
    Primitive,
    TileLayer,
)
from geosite.canvas.renderer import MapRenderer
from geosite.canvas.symbology import marker_style, popup_html, shapefile_popup, shapefile_style
from geosite.errors import ClusterProviderUnavailable, MalformedGeometryError
from geosite.geo import mean_center, meters_per_pixel
from geosite.layers.geojson import validate_feature_collection
from geosite.layers.layer import ShapefileLayer
from geosite.layers.registry import LayerRegistry
from geosite.tools.heatmap import Heatmap
from geosite.tools.modes import MeasurementMode, ToolMode
from geosite.tools.sessions import CoordinateProbe, CrossSectionSession, MeasurementSession

ASSETS = "assets"
OVERLAYS = "overlays"
SHAPEFILES = "shapefiles"

TOOL_COLOR = "#186181"
SECTION_COLOR = "#ef4444"
GRID_SPACING_DEG = 0.005
SOIL_OFFSETS = ((0.001, 0.0), (-0.001, 0.001), (0.0, -0.001))


class MapCanvasAdapter:
    """Draws assets, overlays, shapefiles and tool sessions onto a renderer.

    Args:
        renderer: Target renderer (already claimed by the owning view).
        on_asset_click: Called with the asset when its marker is clicked.
        cluster_provider: Clustering capability; defaults to radius clustering.
        cluster_threshold: Cluster only when more assets than this are visible.
        cluster_radius_px: Cluster radius in screen pixels at ``cluster_zoom``.
        cluster_zoom: Zoom level used to convert the pixel radius to metres.
    """

    def __init__(
        self,
        renderer: MapRenderer,
        on_asset_click: Callable[[Asset], None],
        cluster_provider: ClusterProvider | None = None,
        cluster_threshold: int = 5,
        cluster_radius_px: int = 50,
        cluster_zoom: int = 13,
    ) -> None:
        self._renderer = renderer
        self._on_asset_click = on_asset_click
        self._cluster_provider = cluster_provider or RadiusClusterProvider()
        self.cluster_threshold = cluster_threshold
        self.cluster_radius_px = cluster_radius_px
        self.cluster_zoom = cluster_zoom
        self._handles: dict[str, list[int]] = defaultdict(list)
        self._base_handle: int | None = None
        self.clustered = False

    # -- Handle bookkeeping -------------------------------------------------

    def clear(self, group: str) -> None:
        """Remove every primitive this adapter mounted for a group."""
        for handle in self._handles.pop(group, []):
            self._renderer.remove(handle)

    def _mount(self, group: str, primitives: Iterable[Primitive]) -> None:
        for primitive in primitives:
            primitive.group = group
            self._handles[group].append(self._renderer.add(primitive))

    def _replace(self, group: str, primitives: Iterable[Primitive]) -> None:
        self.clear(group)
        self._mount(group, primitives)

    def handle_count(self, group: str | None = None) -> int:
        if group is not None:
            return len(self._handles.get(group, []))
        return sum(len(h) for h in self._handles.values()) + (0 if self._base_handle is None else 1)

    # -- Base layer ---------------------------------------------------------

    def set_base_layer(self, base_layer: BaseLayer) -> None:
        """Swap the tile layer: old one out before the new one goes in."""
        if self._base_handle is not None:
            self._renderer.remove(self._base_handle)
            self._base_handle = None
        self._base_handle = self._renderer.add(TileLayer.for_base(BaseLayer(base_layer)))

    # -- Asset markers ------------------------------------------------------

    def _marker_for(self, asset: Asset, selected: bool) -> Marker:
        def _clicked(asset=asset) -> None:
            self._on_asset_click(asset)

        return Marker(
            location=asset.location.latlng,
            style=marker_style(asset, selected),
            popup=popup_html(asset),
            asset_id=asset.asset_id,
            on_click=_clicked,
        )

    def render_assets(
        self, assets: Sequence[Asset], selected_id: str | None, clustering: bool,
    ) -> None:
        """Tear down all asset markers and rebuild them.

        With clustering on and more than ``cluster_threshold`` assets the
        markers are grouped into one cluster group; if the provider is
        unavailable the markers are mounted individually.
        """
        self.clear(ASSETS)
        markers = [self._marker_for(a, a.asset_id == selected_id) for a in assets]
        self.clustered = False

        if clustering and len(markers) > self.cluster_threshold:
            center = mean_center(m.location for m in markers)
            radius_m = meters_per_pixel(center[0], self.cluster_zoom) * self.cluster_radius_px
            try:
                group = self._cluster_provider.group(markers, radius_m)
            except ClusterProviderUnavailable as e:
                logger.warning(f"Marker clustering unavailable, drawing plain markers: {e}")
            else:
                self._mount(ASSETS, [group])
                self.clustered = True
                logger.debug(f"Clustered {len(markers)} markers into {len(group.clusters)} clusters")
                return

        self._mount(ASSETS, markers)

    def focus(self, asset: Asset, current_zoom: int) -> None:
        """Centre on an asset, zooming in to at least 15."""
        self._renderer.set_view(asset.location.latlng, max(current_zoom, 15))

    # -- Thematic overlays --------------------------------------------------

    def render_overlays(
        self,
        registry: LayerRegistry,
        assets: Sequence[Asset],
        bounds: tuple[float, float, float, float] | None = None,
    ) -> None:
        """Redraw settlement contours, soil samples and the survey grid."""
        primitives: list[Primitive] = []
        center = mean_center(a.location.latlng for a in assets)

        if center is not None and registry.is_enabled("settlement"):
            for radius, color in ((300.0, "#ef4444"), (500.0, "#f59e0b")):
                primitives.append(Circle(
                    center=center, radius_m=radius, color=color, fill_color=color,
                    fill_opacity=0.05, weight=2, dash_array="5, 5",
                ))

        if center is not None and registry.is_enabled("soil"):
            for dlat, dlng in SOIL_OFFSETS:
                primitives.append(Marker(
                    location=(center[0] + dlat, center[1] + dlng),
                    style=MarkerStyle(color="#f97316", background="#f97316",
                                      icon_color="#ffffff", icon="flask", size=24),
                    popup="Soil Sample",
                ))

        if bounds is not None and registry.is_enabled("grid"):
            primitives.extend(_grid_lines(bounds))

        self._replace(OVERLAYS, primitives)

    # -- Shapefiles ---------------------------------------------------------

    def render_shapefiles(self, layers: Iterable[ShapefileLayer]) -> None:
        """Redraw shapefile layers; a malformed layer is logged and skipped."""
        shapes: list[Primitive] = []
        for layer in layers:
            if not layer.visible or not layer.geojson:
                continue
            try:
                validate_feature_collection(layer.geojson)
            except MalformedGeometryError as e:
                logger.warning(f"Skipping shapefile layer {layer.name!r}: {e}")
                continue
            shapes.append(GeoJsonShape(
                layer_id=layer.layer_id,
                name=layer.name,
                data=layer.geojson,
                style=shapefile_style(layer),
                point_color=layer.color,
                popups=[shapefile_popup(layer, f.get("properties")) for f in layer.geojson["features"]],
            ))
        self._replace(SHAPEFILES, shapes)

    # -- Tool drawings ------------------------------------------------------

    def clear_tool(self, tool: ToolMode) -> None:
        if tool != ToolMode.NONE:
            self.clear(tool.value)

    def draw_measurement(self, session: MeasurementSession) -> None:
        """Redraw the measurement line/polygon and its numbered vertices."""
        primitives: list[Primitive] = []
        points = list(session.points)
        if session.value is not None:
            if len(points) >= 3 and session.mode == MeasurementMode.AREA:
                primitives.append(Polygon(points=points, color=TOOL_COLOR, fill_color=TOOL_COLOR,
                                          fill_opacity=0.2, weight=3))
            else:
                primitives.append(Polyline(points=points, color=TOOL_COLOR, weight=3,
                                           opacity=0.7, dash_array="10, 5"))
        for idx, point in enumerate(points):
            primitives.append(CircleMarker(location=point, radius=6, color=TOOL_COLOR,
                                           fill_color="#ffffff", popup=f"Point {idx + 1}"))
        self._replace(ToolMode.MEASUREMENT.value, primitives)

    def draw_probe(self, probe: CoordinateProbe | None) -> None:
        """Replace the single coordinate marker."""
        primitives: list[Primitive] = []
        if probe is not None:
            readout = probe.readout()
            primitives.append(Marker(
                location=probe.latlng,
                style=MarkerStyle(color=SECTION_COLOR, background=SECTION_COLOR,
                                  icon_color="#ffffff", icon="dot", size=12),
                popup=f"{readout['lat']}, {readout['lng']} ({readout['utm']})",
            ))
        self._replace(ToolMode.COORDINATES.value, primitives)

    def draw_cross_section(self, session: CrossSectionSession) -> None:
        primitives: list[Primitive] = []
        if session.complete:
            primitives.append(Polyline(points=list(session.points), color=SECTION_COLOR,
                                       weight=4, opacity=0.8))
            for idx, point in enumerate(session.points):
                primitives.append(CircleMarker(
                    location=point, radius=8, color=SECTION_COLOR, fill_color="#ffffff",
                    popup=f"Cross-section {'Start' if idx == 0 else 'End'}",
                ))
            primitives.append(Label(location=session.midpoint, text=session.label, color=SECTION_COLOR))
        elif session.points:
            primitives.append(CircleMarker(
                location=session.points[0], radius=8, color=SECTION_COLOR, fill_color="#ffffff",
                popup="Cross-section Start - Click another point",
            ))
        self._replace(ToolMode.CROSS_SECTION.value, primitives)

    def draw_heatmap(self, heatmap: Heatmap | None) -> None:
        primitives: list[Primitive] = []
        if heatmap is not None:
            for ring in heatmap.rings:
                primitives.append(Circle(center=ring.center, radius_m=ring.radius_m, color=ring.color,
                                         fill_color=ring.color, fill_opacity=ring.fill_opacity,
                                         weight=1, opacity=0.4))
            title = heatmap.category.value.capitalize()
            for sample in heatmap.samples:
                primitives.append(CircleMarker(location=sample.location, radius=5, color=sample.color,
                                               fill_color=sample.color, fill_opacity=0.6, weight=2,
                                               popup=f"{title}: {sample.popup}"))
        self._replace(ToolMode.HEATMAP.value, primitives)

    # -- Lifecycle ----------------------------------------------------------

    def teardown(self) -> None:
        """Remove everything this adapter ever mounted."""
        for group in list(self._handles):
            self.clear(group)
        if self._base_handle is not None:
            self._renderer.remove(self._base_handle)
            self._base_handle = None


def _grid_lines(bounds: tuple[float, float, float, float]) -> list[Polyline]:
    south, west, north, east = bounds
    style = dict(color="#9ca3af", weight=1, opacity=0.3, dash_array="2, 4")
    lines: list[Polyline] = []

    lng = math.floor(west / GRID_SPACING_DEG) * GRID_SPACING_DEG
    while lng <= east:
        lines.append(Polyline(points=[(south, lng), (north, lng)], **style))
        lng += GRID_SPACING_DEG

    lat = math.floor(south / GRID_SPACING_DEG) * GRID_SPACING_DEG
    while lat <= north:
        lines.append(Polyline(points=[(lat, west), (lat, east)], **style))
        lat += GRID_SPACING_DEG
    return lines
