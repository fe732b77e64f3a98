"""API routers for Geosite."""

from geosite_app.routers.map import router as map_router

__all__ = ["map_router"]
