"""Map canvas: drawing primitives, renderers and the asset/overlay adapter."""

from geosite.canvas.adapter import MapCanvasAdapter
from geosite.canvas.clustering import ClusterProvider, RadiusClusterProvider, load_cluster_provider
from geosite.canvas.primitives import BaseLayer, TileLayer
from geosite.canvas.renderer import MapRenderer, SceneRenderer

__all__ = [
    "BaseLayer",
    "ClusterProvider",
    "MapCanvasAdapter",
    "MapRenderer",
    "RadiusClusterProvider",
    "SceneRenderer",
    "TileLayer",
    "load_cluster_provider",
]
