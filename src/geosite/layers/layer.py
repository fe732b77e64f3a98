"""Overlay and ShapefileLayer dataclasses for the site map.

Shapefile geometry is stored as a GeoJSON FeatureCollection dict, so all
coordinates follow GeoJSON convention: [lng, lat].
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum


class GeometryType(str, Enum):
    """Geometry family of an uploaded shapefile."""
    POINT = "Point"
    LINE_STRING = "LineString"
    POLYGON = "Polygon"
    MULTI_POINT = "MultiPoint"
    MULTI_LINE_STRING = "MultiLineString"
    MULTI_POLYGON = "MultiPolygon"


@dataclass
class Overlay:
    """A toggleable thematic layer not tied to an uploaded file.

    Attributes:
        overlay_id: Stable identifier ("boreholes", "settlement", ...).
        name: Human-readable display name.
        enabled: Whether the overlay is drawn.
        color: Display color used by legends and badges.
    """

    overlay_id: str
    name: str
    enabled: bool
    color: str


@dataclass
class ShapefileLayer:
    """An uploaded shapefile, converted to GeoJSON, shown as a map layer.

    Attributes:
        layer_id: Unique identifier for this layer.
        name: Human-readable display name.
        project_id: Owning project.
        geometry_type: Dominant geometry family of the features.
        geojson: GeoJSON FeatureCollection dict.
        visible: Whether the layer is currently rendered.
        opacity: Rendering opacity (0.0 to 1.0).
        color: Stroke/fill color.
        projection: Source projection of the original shapefile.
        description: Optional free text.
        uploaded_by: Who uploaded it.
        uploaded_at: When it was uploaded.
    """

    layer_id: str
    name: str
    project_id: str
    geometry_type: GeometryType
    geojson: dict
    visible: bool = True
    opacity: float = 0.6
    color: str = "#186181"
    projection: str = "EPSG:4326"
    description: str = ""
    uploaded_by: str = ""
    uploaded_at: datetime = field(default_factory=datetime.now)

    @property
    def feature_count(self) -> int:
        features = self.geojson.get("features") if isinstance(self.geojson, dict) else None
        return len(features) if isinstance(features, list) else 0


def default_overlays() -> list[Overlay]:
    """The fixed overlay list a freshly mounted map starts from."""
    return [
        Overlay("insar", "InSAR Data", False, "#a855f7"),
        Overlay("soil", "Soil Sample Results", False, "#f97316"),
        Overlay("monitoring", "Monitoring Points", True, "#769f86"),
        Overlay("settlement", "Settlement Contours", False, "#ef4444"),
        Overlay("boreholes", "Borehole Locations", True, "#186181"),
        Overlay("grid", "Survey Grid", False, "#6b7280"),
    ]
