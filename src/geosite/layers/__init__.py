"""Map layer state: thematic overlays and uploaded shapefile layers."""

from geosite.layers.layer import GeometryType, Overlay, ShapefileLayer, default_overlays
from geosite.layers.registry import LayerRegistry

__all__ = ["GeometryType", "LayerRegistry", "Overlay", "ShapefileLayer", "default_overlays"]
