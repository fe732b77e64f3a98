"""Map renderer interface and the in-memory scene implementation.

The canvas adapter never talks to a mapping library directly.  It talks
to a :class:`MapRenderer`: add a primitive and get a handle back, remove
by handle, register map-click handlers, move the view.  A renderer is
owned by exactly one mounted view at a time.

:class:`SceneRenderer` keeps the scene in memory.  It is what the view
draws into, what tests inspect, and what the folium exporter reads.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Callable, Iterator

from loguru import logger

from geosite.canvas.primitives import ClusterGroup, Marker, Primitive
from geosite.errors import RendererBusyError
from geosite.geo import LatLng, meters_per_pixel

ClickHandler = Callable[[float, float], None]

METERS_PER_DEG_LAT = 111_320.0


class MapRenderer(ABC):
    """Interface the canvas adapter draws through."""

    @abstractmethod
    def add(self, primitive: Primitive) -> int:
        """Mount a primitive and return its handle."""

    @abstractmethod
    def remove(self, handle: int) -> None:
        """Unmount a primitive.  Unknown handles are ignored."""

    @abstractmethod
    def on_click(self, handler: ClickHandler) -> None:
        """Register a map-click handler receiving (lat, lng)."""

    @abstractmethod
    def off_click(self, handler: ClickHandler) -> None:
        """Unregister a map-click handler."""

    @abstractmethod
    def set_view(self, center: LatLng, zoom: int) -> None:
        """Move the viewport."""

    @abstractmethod
    def claim(self, owner: object) -> None:
        """Take exclusive ownership.  Raises RendererBusyError if taken."""

    @abstractmethod
    def release(self, owner: object) -> None:
        """Give up ownership."""

    @abstractmethod
    def emit_click(self, lat: float, lng: float) -> None:
        """Deliver a map click at (lat, lng) to the registered handlers."""

    @abstractmethod
    def click_marker(self, asset_id: str) -> bool:
        """Deliver a click on an asset marker.  False if none is mounted."""

    @abstractmethod
    def bounds(self) -> tuple[float, float, float, float]:
        """(south, west, north, east) of the current viewport."""


class SceneRenderer(MapRenderer):
    """In-memory renderer: a handle -> primitive scene plus click routing.

    Args:
        center: Initial view centre.
        zoom: Initial zoom level.
        viewport: Viewport size in pixels (width, height), used for bounds.
    """

    def __init__(
        self,
        center: LatLng = (0.0, 0.0),
        zoom: int = 13,
        viewport: tuple[int, int] = (1024, 768),
    ) -> None:
        self._scene: dict[int, Primitive] = {}
        self._next_handle = 1
        self._click_handlers: list[ClickHandler] = []
        self._owner: object | None = None
        self.center = center
        self.zoom = zoom
        self.viewport = viewport

    # -- MapRenderer --------------------------------------------------------

    def add(self, primitive: Primitive) -> int:
        handle = self._next_handle
        self._next_handle += 1
        self._scene[handle] = primitive
        return handle

    def remove(self, handle: int) -> None:
        self._scene.pop(handle, None)

    def on_click(self, handler: ClickHandler) -> None:
        if handler not in self._click_handlers:
            self._click_handlers.append(handler)

    def off_click(self, handler: ClickHandler) -> None:
        if handler in self._click_handlers:
            self._click_handlers.remove(handler)

    def set_view(self, center: LatLng, zoom: int) -> None:
        self.center = center
        self.zoom = zoom

    def claim(self, owner: object) -> None:
        if self._owner is not None and self._owner is not owner:
            raise RendererBusyError("Renderer is already attached to another map view")
        self._owner = owner

    def release(self, owner: object) -> None:
        if self._owner is owner:
            self._owner = None

    # -- Scene access -------------------------------------------------------

    @property
    def owner(self) -> object | None:
        return self._owner

    @property
    def click_handler_count(self) -> int:
        return len(self._click_handlers)

    def __len__(self) -> int:
        return len(self._scene)

    def __iter__(self) -> Iterator[Primitive]:
        return iter(list(self._scene.values()))

    def get(self, handle: int) -> Primitive | None:
        return self._scene.get(handle)

    def primitives(self, kind: type | None = None, group: str | None = None) -> list[Primitive]:
        """Primitives in mount order, optionally filtered by class and group."""
        return [
            p for p in self._scene.values()
            if (kind is None or isinstance(p, kind))
            and (group is None or getattr(p, "group", None) == group)
        ]

    def bounds(self) -> tuple[float, float, float, float]:
        """(south, west, north, east) of the current viewport."""
        lat, lng = self.center
        mpp = meters_per_pixel(lat, self.zoom)
        half_h = self.viewport[1] / 2 * mpp / METERS_PER_DEG_LAT
        # meters_per_pixel already carries cos(lat), so longitude uses the equatorial scale
        half_w = self.viewport[0] / 2 * meters_per_pixel(0.0, self.zoom) / METERS_PER_DEG_LAT
        return (lat - half_h, lng - half_w, lat + half_h, lng + half_w)

    # -- Events -------------------------------------------------------------

    def emit_click(self, lat: float, lng: float) -> None:
        """Deliver a map click to every registered handler."""
        for handler in list(self._click_handlers):
            handler(lat, lng)

    def find_marker(self, asset_id: str) -> Marker | None:
        """Locate an asset marker, standalone or inside a cluster group."""
        for primitive in self._scene.values():
            if isinstance(primitive, Marker) and primitive.asset_id == asset_id:
                return primitive
            if isinstance(primitive, ClusterGroup):
                for marker in primitive.markers:
                    if marker.asset_id == asset_id:
                        return marker
        return None

    def click_marker(self, asset_id: str) -> bool:
        """Click an asset marker.  Returns False if no such marker is mounted."""
        marker = self.find_marker(asset_id)
        if marker is None:
            logger.debug(f"click_marker: no marker mounted for {asset_id!r}")
            return False
        if marker.on_click is not None:
            marker.on_click()
        return True
