"""Geosite - site map service for geotechnical project assets."""

from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from loguru import logger

from geosite import __version__
from geosite_app.config import settings
from geosite_app.routers import map_router
from geosite_app.routers.map import get_map_view, shutdown_map_view


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler."""
    logger.info("=" * 60)
    logger.info(f"  {settings.app_name.upper()} v{__version__} - INITIALIZING")
    logger.info("=" * 60)

    view = get_map_view()
    logger.info(f"Map view ready: {len(view.assets)} assets, base layer {view.state.base_layer.value}")

    yield

    logger.info(f"{settings.app_name} shutting down...")
    shutdown_map_view()


# Create FastAPI app
app = FastAPI(
    title=settings.app_name,
    description="Interactive site map for boreholes, monitoring points and infrastructure",
    version=__version__,
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(map_router)


@app.get("/api/health")
async def health():
    """Health check endpoint."""
    return {
        "status": "operational",
        "version": __version__,
        "system": settings.app_name,
    }


def run() -> None:
    """Console entry point."""
    import uvicorn

    uvicorn.run("geosite_app.main:app", host=settings.host, port=settings.port, reload=settings.debug)
