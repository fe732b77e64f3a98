"""LayerRegistry: overlay and shapefile layer state for one map view.

Holds enabled/visible/opacity/color state for every thematic overlay and
shapefile layer, exposes the one-field mutations the toolbar drives, and
answers "which assets are visible" for the canvas adapter.

Unknown ids are a logged no-op, never an error.  Nothing is persisted:
``reset()`` returns to the fixed initial overlay list.
"""

from __future__ import annotations

import copy
import os
import uuid
from datetime import datetime
from typing import Iterable

from loguru import logger

from geosite.assets import Asset, Borehole, Infrastructure, MonitoringPoint, unknown_asset
from geosite.layers.geojson import infer_geometry_type, parse_geojson
from geosite.layers.layer import Overlay, ShapefileLayer, default_overlays


def overlay_id_for(asset: Asset) -> str | None:
    """Overlay id that gates an asset's visibility, or None if ungated."""
    if isinstance(asset, Borehole):
        return "boreholes"
    if isinstance(asset, MonitoringPoint):
        return "monitoring"
    if isinstance(asset, Infrastructure):
        return None
    unknown_asset(asset)


def clamp_opacity(value: float) -> float:
    """Clamp an opacity into [0, 1]."""
    return max(0.0, min(1.0, float(value)))


class LayerRegistry:
    """Registry of overlays and shapefile layers for a mounted map."""

    def __init__(
        self,
        overlays: Iterable[Overlay] | None = None,
        shapefiles: Iterable[ShapefileLayer] | None = None,
    ) -> None:
        self._initial_overlays = list(overlays) if overlays is not None else default_overlays()
        self._initial_shapefiles = list(shapefiles or [])
        self._overlays: dict[str, Overlay] = {}
        self._shapefiles: dict[str, ShapefileLayer] = {}
        self.shapefiles_enabled = True
        self.reset()

    def reset(self) -> None:
        """Restore the initial overlay and shapefile state (remount)."""
        self._overlays = {o.overlay_id: copy.copy(o) for o in self._initial_overlays}
        self._shapefiles = {s.layer_id: copy.copy(s) for s in self._initial_shapefiles}
        self.shapefiles_enabled = True

    # -- Overlays -----------------------------------------------------------

    def list_overlays(self) -> list[Overlay]:
        return list(self._overlays.values())

    def get_overlay(self, overlay_id: str) -> Overlay | None:
        return self._overlays.get(overlay_id)

    def is_enabled(self, overlay_id: str) -> bool:
        overlay = self._overlays.get(overlay_id)
        return overlay is not None and overlay.enabled

    def toggle_overlay(self, overlay_id: str) -> bool:
        """Flip one overlay's enabled flag.

        Returns:
            True if an overlay was toggled, False for an unknown id.
        """
        overlay = self._overlays.get(overlay_id)
        if overlay is None:
            logger.debug(f"toggle_overlay: unknown overlay {overlay_id!r}")
            return False
        overlay.enabled = not overlay.enabled
        return True

    # -- Shapefiles ---------------------------------------------------------

    def list_shapefiles(self) -> list[ShapefileLayer]:
        return list(self._shapefiles.values())

    def get_shapefile(self, layer_id: str) -> ShapefileLayer | None:
        return self._shapefiles.get(layer_id)

    def add_shapefile(self, layer: ShapefileLayer) -> str:
        """Register a shapefile layer and return its id."""
        layer.opacity = clamp_opacity(layer.opacity)
        self._shapefiles[layer.layer_id] = layer
        return layer.layer_id

    def remove_shapefile(self, layer_id: str) -> bool:
        if layer_id in self._shapefiles:
            del self._shapefiles[layer_id]
            return True
        return False

    def toggle_shapefile_visibility(self, layer_id: str) -> bool:
        layer = self._shapefiles.get(layer_id)
        if layer is None:
            logger.debug(f"toggle_shapefile_visibility: unknown layer {layer_id!r}")
            return False
        layer.visible = not layer.visible
        return True

    def set_opacity(self, layer_id: str, value: float) -> bool:
        """Set a shapefile layer's opacity, clamped to [0, 1]."""
        layer = self._shapefiles.get(layer_id)
        if layer is None:
            logger.debug(f"set_opacity: unknown layer {layer_id!r}")
            return False
        layer.opacity = clamp_opacity(value)
        return True

    def set_color(self, layer_id: str, value: str) -> bool:
        layer = self._shapefiles.get(layer_id)
        if layer is None:
            logger.debug(f"set_color: unknown layer {layer_id!r}")
            return False
        layer.color = value
        return True

    def set_shapefiles_enabled(self, enabled: bool) -> None:
        """Master switch over every shapefile layer."""
        self.shapefiles_enabled = bool(enabled)

    def visible_shapefiles(self) -> list[ShapefileLayer]:
        """Shapefile layers that should be drawn: visible and carrying features."""
        if not self.shapefiles_enabled:
            return []
        return [s for s in self._shapefiles.values() if s.visible and s.geojson]

    def import_geojson_text(
        self,
        text: str,
        project_id: str,
        name: str | None = None,
        color: str = "#186181",
        projection: str = "EPSG:4326",
        uploaded_by: str = "",
    ) -> ShapefileLayer:
        """Import GeoJSON text as a new shapefile layer.

        The payload is only ever parsed, never treated as a path, so this is
        the entry point for client uploads.

        Raises:
            MalformedGeometryError: If the payload is not a valid collection.
        """
        data = parse_geojson(text)
        return self._add_imported(
            data, project_id, name or data.get("name") or "Uploaded layer",
            color, projection, uploaded_by,
        )

    def import_geojson_file(
        self,
        path: str | os.PathLike,
        project_id: str,
        name: str | None = None,
        color: str = "#186181",
        projection: str = "EPSG:4326",
        uploaded_by: str = "",
    ) -> ShapefileLayer:
        """Import a GeoJSON file from local disk as a new shapefile layer.

        The layer is named after the file unless ``name`` or the
        collection's own ``name`` says otherwise.

        Raises:
            OSError: If the file cannot be read.
            MalformedGeometryError: If the file is not a valid collection.
        """
        with open(path, "r", encoding="utf-8") as f:
            data = parse_geojson(f.read())
        default_name = os.path.splitext(os.path.basename(path))[0]
        return self._add_imported(
            data, project_id, name or data.get("name") or default_name,
            color, projection, uploaded_by,
        )

    def _add_imported(
        self,
        data: dict,
        project_id: str,
        name: str,
        color: str,
        projection: str,
        uploaded_by: str,
    ) -> ShapefileLayer:
        layer = ShapefileLayer(
            layer_id=f"shp-{uuid.uuid4().hex[:8]}",
            name=name,
            project_id=project_id,
            geometry_type=infer_geometry_type(data),
            geojson=data,
            color=color,
            projection=projection,
            uploaded_by=uploaded_by,
            uploaded_at=datetime.now(),
        )
        self.add_shapefile(layer)
        logger.info(f"Imported shapefile layer {layer.layer_id} ({layer.feature_count} features)")
        return layer

    # -- Asset filtering ----------------------------------------------------

    def visible_assets(self, assets: Iterable[Asset]) -> list[Asset]:
        """Assets not hidden by a disabled overlay.

        An asset is hidden only when its gating overlay exists and is
        disabled; with no matching overlay it stays visible.
        """
        visible = []
        for asset in assets:
            overlay_id = overlay_id_for(asset)
            if overlay_id is not None:
                overlay = self._overlays.get(overlay_id)
                if overlay is not None and not overlay.enabled:
                    continue
            visible.append(asset)
        return visible
