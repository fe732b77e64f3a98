"""Materialise a scene as an interactive Leaflet map with Folium.

Reads the primitives mounted on a :class:`SceneRenderer` and builds the
equivalent ``folium.Map``: one tile layer, icon markers, circles, lines,
polygons, styled GeoJSON and a ``MarkerCluster`` for clustered assets.
The map can be saved to HTML or rendered to a string for the API.
"""

from __future__ import annotations

import folium
from folium import plugins
from loguru import logger

from geosite.canvas.primitives import (
    Circle,
    CircleMarker,
    ClusterGroup,
    GeoJsonShape,
    Label,
    Marker,
    Polygon,
    Polyline,
    TileLayer,
)
from geosite.canvas.renderer import SceneRenderer

POPUP_FIELD = "_popup"


def _icon_html(marker: Marker) -> str:
    style = marker.style
    size = style.size
    transform = f"transform: scale({style.scale});" if style.scale != 1.0 else ""
    return (
        f'<div title="{style.icon}" style="width: {size}px; height: {size}px; '
        f"background-color: {style.background}; border: 3px solid {style.color}; "
        f"border-radius: 50%; box-shadow: 0 4px 6px -1px rgba(0,0,0,0.1); {transform}"
        f'"><span style="color: {style.icon_color};"></span></div>'
    )


def _folium_marker(marker: Marker) -> folium.Marker:
    size = marker.style.size
    return folium.Marker(
        location=list(marker.location),
        icon=folium.DivIcon(
            html=_icon_html(marker),
            icon_size=(size, size),
            icon_anchor=(size // 2, size // 2),
            class_name="custom-marker",
        ),
        popup=folium.Popup(marker.popup) if marker.popup else None,
    )


def _geojson(shape: GeoJsonShape) -> folium.GeoJson:
    style = dict(shape.style)
    features = []
    for feature, popup in zip(shape.data.get("features", []), shape.popups):
        properties = dict(feature.get("properties") or {})
        properties[POPUP_FIELD] = popup or ""
        features.append({**feature, "properties": properties})
    return folium.GeoJson(
        {"type": "FeatureCollection", "features": features},
        name=shape.name,
        style_function=lambda _feature: style,
        marker=folium.CircleMarker(radius=6, color="#ffffff", weight=2, fill=True,
                                   fill_color=shape.point_color, fill_opacity=1.0),
        popup=folium.GeoJsonPopup(fields=[POPUP_FIELD], labels=False) if features else None,
    )


def to_folium(renderer: SceneRenderer) -> folium.Map:
    """Build a folium map from everything mounted on the renderer."""
    fmap = folium.Map(location=list(renderer.center), zoom_start=renderer.zoom, tiles=None)

    for primitive in renderer:
        if isinstance(primitive, TileLayer):
            folium.TileLayer(
                tiles=primitive.url,
                attr=primitive.attribution,
                max_zoom=primitive.max_zoom,
                name=primitive.base_layer.value,
            ).add_to(fmap)
        elif isinstance(primitive, Marker):
            _folium_marker(primitive).add_to(fmap)
        elif isinstance(primitive, ClusterGroup):
            cluster = plugins.MarkerCluster(
                name="Assets",
                options={"maxClusterRadius": 50, "spiderfyOnMaxZoom": True,
                         "showCoverageOnHover": False, "zoomToBoundsOnClick": True},
            )
            for marker in primitive.markers:
                _folium_marker(marker).add_to(cluster)
            cluster.add_to(fmap)
        elif isinstance(primitive, CircleMarker):
            folium.CircleMarker(
                location=list(primitive.location),
                radius=primitive.radius,
                color=primitive.color,
                weight=primitive.weight,
                fill=True,
                fill_color=primitive.fill_color,
                fill_opacity=primitive.fill_opacity,
                popup=primitive.popup,
            ).add_to(fmap)
        elif isinstance(primitive, Circle):
            folium.Circle(
                location=list(primitive.center),
                radius=primitive.radius_m,
                color=primitive.color,
                weight=primitive.weight,
                opacity=primitive.opacity,
                fill=True,
                fill_color=primitive.fill_color,
                fill_opacity=primitive.fill_opacity,
                dash_array=primitive.dash_array,
            ).add_to(fmap)
        elif isinstance(primitive, Polygon):
            folium.Polygon(
                locations=[list(p) for p in primitive.points],
                color=primitive.color,
                weight=primitive.weight,
                fill=True,
                fill_color=primitive.fill_color,
                fill_opacity=primitive.fill_opacity,
            ).add_to(fmap)
        elif isinstance(primitive, Polyline):
            folium.PolyLine(
                locations=[list(p) for p in primitive.points],
                color=primitive.color,
                weight=primitive.weight,
                opacity=primitive.opacity,
                dash_array=primitive.dash_array,
            ).add_to(fmap)
        elif isinstance(primitive, Label):
            folium.Marker(
                location=list(primitive.location),
                icon=folium.DivIcon(
                    html=(f'<div style="background-color: {primitive.color}; color: white; '
                          f'padding: 4px 8px; border-radius: 4px; font-size: 11px; '
                          f'font-weight: 600; white-space: nowrap;">{primitive.text}</div>'),
                    icon_size=(60, 24),
                    icon_anchor=(30, 12),
                    class_name="cross-section-label",
                ),
            ).add_to(fmap)
        elif isinstance(primitive, GeoJsonShape):
            _geojson(primitive).add_to(fmap)
        else:
            logger.debug(f"to_folium: no folium mapping for {type(primitive).__name__}")

    return fmap


def render_html(renderer: SceneRenderer) -> str:
    """Standalone HTML page for the current scene."""
    return to_folium(renderer).get_root().render()
