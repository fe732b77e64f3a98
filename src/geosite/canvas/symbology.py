"""Marker appearance and popup content.

Everything here is a pure function of its inputs so the same asset in the
same selection state always looks the same.
"""

from __future__ import annotations

from html import escape

from geosite.assets import Asset, Borehole, Infrastructure, MonitoringPoint, unknown_asset
from geosite.canvas.primitives import MarkerStyle
from geosite.layers.layer import ShapefileLayer

BOREHOLE_COLOR = "#186181"
MONITORING_COLOR = "#769f86"
INFRASTRUCTURE_COLOR = "#1d2759"

MAX_POPUP_PROPERTIES = 5


def asset_color_icon(asset: Asset) -> tuple[str, str]:
    """(color, icon name) for an asset variant."""
    if isinstance(asset, Borehole):
        return BOREHOLE_COLOR, "layers"
    if isinstance(asset, MonitoringPoint):
        return MONITORING_COLOR, "activity"
    if isinstance(asset, Infrastructure):
        return INFRASTRUCTURE_COLOR, "building-2"
    unknown_asset(asset)


def marker_style(asset: Asset, selected: bool) -> MarkerStyle:
    """Icon style for an asset marker.

    Selected markers invert (filled with the type color, white glyph) and
    are scaled up by 1.2.
    """
    color, icon = asset_color_icon(asset)
    if selected:
        return MarkerStyle(color=color, background=color, icon_color="#ffffff", icon=icon, scale=1.2)
    return MarkerStyle(color=color, background="#ffffff", icon_color=color, icon=icon)


def popup_html(asset: Asset) -> str:
    """Popup body: name, capitalised type, and a type-specific highlight."""
    lines = [
        f'<div style="font-weight: 500; margin-bottom: 4px;">{escape(asset.name)}</div>',
        f'<div style="font-size: 12px; color: #6b7280;">{asset.type.capitalize()}</div>',
    ]
    if isinstance(asset, Borehole):
        lines.append(f'<div style="font-size: 12px; color: #6b7280;">Depth: {asset.depth:g}m</div>')
    elif isinstance(asset, MonitoringPoint):
        if asset.instrument_type:
            lines.append(f'<div style="font-size: 12px; color: #6b7280;">{escape(asset.instrument_type)}</div>')
    elif isinstance(asset, Infrastructure):
        lines.append(f'<div style="font-size: 12px; color: #6b7280;">Status: {escape(asset.status)}</div>')
    else:
        unknown_asset(asset)
    return '<div style="padding: 8px;">' + "".join(lines) + "</div>"


def cluster_size(count: int) -> str:
    """Cluster badge size class by member count."""
    if count > 10:
        return "large"
    if count > 5:
        return "medium"
    return "small"


def shapefile_style(layer: ShapefileLayer) -> dict:
    """Leaflet path style for a shapefile layer."""
    return {
        "color": layer.color,
        "fillColor": layer.color,
        "fillOpacity": layer.opacity * 0.5,
        "weight": 2,
        "opacity": layer.opacity,
    }


def shapefile_popup(layer: ShapefileLayer, properties: dict | None) -> str | None:
    """Popup listing the first few feature properties, or None without any."""
    if not properties:
        return None
    rows = [
        f'<div style="font-size: 11px;"><span style="color: #6b7280;">{escape(str(k))}:</span> '
        f"{escape(str(v))}</div>"
        for k, v in list(properties.items())[:MAX_POPUP_PROPERTIES]
    ]
    extra = len(properties) - MAX_POPUP_PROPERTIES
    if extra > 0:
        rows.append(f'<div style="font-size: 10px; color: #9ca3af;">+{extra} more properties</div>')
    header = f'<div style="font-weight: 500; color: {layer.color};">{escape(layer.name)}</div>'
    return '<div style="padding: 8px; min-width: 150px;">' + header + "".join(rows) + "</div>"
