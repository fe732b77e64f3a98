"""Site map API endpoints.

One map view per process, built from the configured project file and
mounted on an in-memory scene.  Clients drive it with the same typed
actions the view uses internally and read back its state or a rendered
Leaflet page.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Literal, Optional

import numpy as np
from fastapi import APIRouter, Depends, HTTPException
from fastapi.responses import HTMLResponse
from loguru import logger
from pydantic import BaseModel, ConfigDict

from geosite.assets import Asset, asset_to_dict, load_assets
from geosite.canvas.clustering import load_cluster_provider
from geosite.canvas.folium_export import render_html
from geosite.canvas.primitives import BaseLayer
from geosite.canvas.renderer import SceneRenderer
from geosite.errors import MalformedGeometryError
from geosite.layers.registry import LayerRegistry
from geosite.store import action_from_dict
from geosite.tools.timeline import ThreadTicker
from geosite.view import MapView
from geosite_app.config import settings

router = APIRouter(prefix="/api/map", tags=["map"])

_map_view: Optional[MapView] = None


def _on_asset_click(asset: Asset) -> None:
    logger.info(f"Asset clicked: {asset.asset_id} ({asset.type})")


def _load_project(path: Path) -> tuple[list[Asset], LayerRegistry]:
    """Assets and shapefile layers from the project file; empty if absent."""
    registry = LayerRegistry()
    if not path.exists():
        logger.warning(f"Project file not found: {path} (starting with an empty map)")
        return [], registry

    assets = load_assets(path)
    with open(path, "r", encoding="utf-8") as f:
        data = json.load(f)
    shapefiles = data.get("shapefiles", []) if isinstance(data, dict) else []
    for entry in shapefiles:
        options = dict(name=entry.get("name"), color=entry.get("color", "#186181"))
        try:
            if "path" in entry:
                # Relative to the project file
                registry.import_geojson_file(path.parent / entry["path"], settings.project_id, **options)
            else:
                registry.import_geojson_text(json.dumps(entry["geojson"]), settings.project_id, **options)
        except (KeyError, OSError, MalformedGeometryError) as e:
            logger.warning(f"Skipping shapefile {entry.get('name', '?')!r} in {path}: {e}")
    # Loaded layers survive remounts
    layers = registry.list_shapefiles()
    logger.info(f"Project loaded: {len(assets)} assets, {len(layers)} shapefile layers")
    return assets, LayerRegistry(shapefiles=layers)


def get_map_view() -> MapView:
    """Get or create the mounted map view singleton."""
    global _map_view
    if _map_view is None:
        assets, registry = _load_project(settings.project_file)
        rng = np.random.default_rng(settings.heatmap_seed)
        _map_view = MapView(
            assets,
            SceneRenderer(zoom=settings.default_zoom),
            on_asset_click=_on_asset_click,
            registry=registry,
            cluster_provider=load_cluster_provider(),
            ticker=ThreadTicker(),
            rng=rng,
            zoom=settings.default_zoom,
            base_layer=BaseLayer(settings.default_base_layer),
            cluster_threshold=settings.cluster_threshold,
            cluster_radius_px=settings.cluster_radius_px,
            timeseries_interval=settings.timeseries_interval,
            timeseries_start=settings.timeseries_start,
            project_id=settings.project_id,
        )
        _map_view.mount()
    return _map_view


def shutdown_map_view() -> None:
    """Unmount the singleton (app shutdown)."""
    global _map_view
    if _map_view is not None:
        _map_view.unmount()
        _map_view = None


# ==================
# Request/Response Models
# ==================

class ActionRequest(BaseModel):
    """A typed map action, e.g. {"type": "TOGGLE_OVERLAY", "overlay_id": "insar"}."""
    model_config = ConfigDict(extra="allow")

    type: str


class ClickRequest(BaseModel):
    """A map click."""
    lat: float
    lng: float


class ShapefileUploadRequest(BaseModel):
    """GeoJSON upload as a new shapefile layer."""
    geojson: Any
    name: Optional[str] = None
    color: str = "#186181"


class ShapefileResponse(BaseModel):
    """Uploaded layer summary."""
    id: str
    name: str
    geometry_type: str
    feature_count: int
    color: str
    opacity: float
    visible: bool


class StepRequest(BaseModel):
    """Time series step."""
    direction: Literal["forward", "back"] = "forward"


# ==================
# Endpoints
# ==================

@router.get("/state")
async def get_state(view: MapView = Depends(get_map_view)):
    """Current map state: layers, tool readouts and visible assets."""
    return view.snapshot()


@router.post("/actions")
async def dispatch_action(request: ActionRequest, view: MapView = Depends(get_map_view)):
    """Dispatch a typed action and return the resulting state."""
    try:
        action = action_from_dict(request.model_dump())
    except KeyError as e:
        raise HTTPException(status_code=422, detail=f"Unknown action: {e}")
    except (TypeError, ValueError) as e:
        raise HTTPException(status_code=422, detail=f"Invalid action: {e}")
    view.dispatch(action)
    return view.snapshot()


@router.post("/click")
async def click_map(request: ClickRequest, view: MapView = Depends(get_map_view)):
    """Deliver a map click to the active tool."""
    view.click(request.lat, request.lng)
    return view.readouts()


@router.post("/markers/{asset_id}/click")
async def click_marker(asset_id: str, view: MapView = Depends(get_map_view)):
    """Click an asset marker: selects it and fires the asset-click callback."""
    if not view.click_marker(asset_id):
        raise HTTPException(status_code=404, detail=f"No marker for asset {asset_id}")
    asset = next(a for a in view.assets if a.asset_id == asset_id)
    return {"selected_asset_id": view.state.selected_asset_id, "asset": asset_to_dict(asset)}


@router.post("/shapefiles", response_model=ShapefileResponse)
async def upload_shapefile(request: ShapefileUploadRequest, view: MapView = Depends(get_map_view)):
    """Import a GeoJSON FeatureCollection (object or text) as a shapefile layer.

    A string is always parsed as GeoJSON, never opened as a server path.
    """
    text = request.geojson if isinstance(request.geojson, str) else json.dumps(request.geojson)
    try:
        layer = view.upload_shapefile(text, name=request.name, color=request.color)
    except MalformedGeometryError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return ShapefileResponse(
        id=layer.layer_id,
        name=layer.name,
        geometry_type=layer.geometry_type.value,
        feature_count=layer.feature_count,
        color=layer.color,
        opacity=layer.opacity,
        visible=layer.visible,
    )


@router.post("/timeseries/step")
async def step_timeseries(request: StepRequest, view: MapView = Depends(get_map_view)):
    """Move the displayed date one month."""
    if request.direction == "forward":
        view.step_forward()
    else:
        view.step_back()
    return {"date": view.state.time_series_date.isoformat(), "playing": view.player.playing}


@router.post("/timeseries/play")
async def play_timeseries(view: MapView = Depends(get_map_view)):
    """Start playback (enables the time filter)."""
    view.play()
    return {"date": view.state.time_series_date.isoformat(), "playing": view.player.playing}


@router.post("/timeseries/pause")
async def pause_timeseries(view: MapView = Depends(get_map_view)):
    """Stop playback, keeping the displayed date."""
    view.pause()
    return {"date": view.state.time_series_date.isoformat(), "playing": view.player.playing}


@router.post("/timeseries/reset")
async def reset_timeseries(view: MapView = Depends(get_map_view)):
    """Stop playback and rewind to the start date."""
    view.reset_timeseries()
    return {"date": view.state.time_series_date.isoformat(), "playing": view.player.playing}


@router.get("/render", response_class=HTMLResponse)
async def render_map(view: MapView = Depends(get_map_view)):
    """The current scene as a standalone Leaflet page."""
    if not isinstance(view.renderer, SceneRenderer):
        raise HTTPException(status_code=501, detail="Renderer cannot be exported")
    return HTMLResponse(content=render_html(view.renderer))
