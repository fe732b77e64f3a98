"""Renderable primitives for the map canvas.

Each primitive is a plain dataclass describing one thing drawn on the
map.  A renderer stores them by handle; the folium exporter turns them
into Leaflet objects.  Points are (lat, lng).

``group`` names the adapter concern that owns a primitive ("assets",
"measurement", ...), which keeps scene inspection simple.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, Optional

from geosite.geo import LatLng


class BaseLayer(str, Enum):
    """Tiled base maps the view can switch between."""
    STREET = "street"
    SATELLITE = "satellite"
    TERRAIN = "terrain"
    TOPO = "topo"


@dataclass(frozen=True)
class TileSource:
    url: str
    attribution: str
    max_zoom: int


TILE_SOURCES: dict[BaseLayer, TileSource] = {
    BaseLayer.STREET: TileSource(
        "https://{s}.tile.openstreetmap.org/{z}/{x}/{y}.png",
        "© OpenStreetMap contributors",
        19,
    ),
    BaseLayer.SATELLITE: TileSource(
        "https://server.arcgisonline.com/ArcGIS/rest/services/World_Imagery/MapServer/tile/{z}/{y}/{x}",
        "© Esri, Maxar, Earthstar Geographics",
        19,
    ),
    BaseLayer.TERRAIN: TileSource(
        "https://{s}.tile.opentopomap.org/{z}/{x}/{y}.png",
        "© OpenTopoMap contributors",
        17,
    ),
    BaseLayer.TOPO: TileSource(
        "https://server.arcgisonline.com/ArcGIS/rest/services/World_Topo_Map/MapServer/tile/{z}/{y}/{x}",
        "© Esri",
        19,
    ),
}


@dataclass
class TileLayer:
    base_layer: BaseLayer
    url: str
    attribution: str
    max_zoom: int
    group: str = "base"

    @classmethod
    def for_base(cls, base_layer: BaseLayer) -> "TileLayer":
        source = TILE_SOURCES[base_layer]
        return cls(base_layer, source.url, source.attribution, source.max_zoom)


@dataclass
class MarkerStyle:
    """Appearance of an icon marker."""
    color: str
    background: str
    icon_color: str
    icon: str
    size: int = 32
    scale: float = 1.0


@dataclass
class Marker:
    location: LatLng
    style: MarkerStyle
    popup: Optional[str] = None
    asset_id: Optional[str] = None
    group: str = "assets"
    on_click: Optional[Callable[[], None]] = field(default=None, compare=False, repr=False)


@dataclass
class CircleMarker:
    """Fixed pixel-radius circle (measurement vertices, sample points)."""
    location: LatLng
    radius: int
    color: str
    fill_color: str
    fill_opacity: float = 1.0
    weight: int = 3
    popup: Optional[str] = None
    group: str = ""


@dataclass
class Circle:
    """Ground-radius circle in metres (contours, heatmap rings)."""
    center: LatLng
    radius_m: float
    color: str
    fill_color: str
    fill_opacity: float
    weight: int = 2
    opacity: float = 1.0
    dash_array: Optional[str] = None
    group: str = ""


@dataclass
class Polyline:
    points: list[LatLng]
    color: str
    weight: int = 3
    opacity: float = 1.0
    dash_array: Optional[str] = None
    group: str = ""


@dataclass
class Polygon:
    points: list[LatLng]
    color: str
    fill_color: str
    fill_opacity: float = 0.2
    weight: int = 3
    group: str = ""


@dataclass
class Label:
    """Text badge anchored at a point (cross-section distance)."""
    location: LatLng
    text: str
    color: str
    group: str = ""


@dataclass
class GeoJsonShape:
    """A styled GeoJSON feature collection from a shapefile layer."""
    layer_id: str
    name: str
    data: dict
    style: dict
    point_color: str
    popups: list[Optional[str]] = field(default_factory=list)
    group: str = "shapefiles"


@dataclass
class Cluster:
    center: LatLng
    members: list[Marker]
    size: str  # small | medium | large

    @property
    def count(self) -> int:
        return len(self.members)


@dataclass
class ClusterGroup:
    clusters: list[Cluster]
    radius_m: float
    group: str = "assets"

    @property
    def markers(self) -> list[Marker]:
        return [m for c in self.clusters for m in c.members]


Primitive = (
    TileLayer | Marker | CircleMarker | Circle | Polyline | Polygon | Label
    | GeoJsonShape | ClusterGroup
)
