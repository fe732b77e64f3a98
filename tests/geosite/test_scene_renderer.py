"""Tests for SceneRenderer: handles, ownership, click routing, bounds."""

import pytest

from geosite.canvas.primitives import (
    BaseLayer,
    Cluster,
    ClusterGroup,
    Marker,
    MarkerStyle,
    Polyline,
    TileLayer,
)
from geosite.canvas.renderer import SceneRenderer
from geosite.errors import RendererBusyError

STYLE = MarkerStyle(color="#186181", background="#ffffff", icon_color="#186181", icon="layers")


@pytest.mark.unit
class TestSceneHandles:
    def test_add_returns_unique_handles(self):
        renderer = SceneRenderer()
        h1 = renderer.add(TileLayer.for_base(BaseLayer.STREET))
        h2 = renderer.add(Polyline(points=[(0, 0), (1, 1)], color="#000"))
        assert h1 != h2
        assert len(renderer) == 2

    def test_remove_and_unknown_handle(self):
        renderer = SceneRenderer()
        handle = renderer.add(Polyline(points=[(0, 0), (1, 1)], color="#000"))
        renderer.remove(handle)
        renderer.remove(handle)
        renderer.remove(999)
        assert len(renderer) == 0
        assert renderer.get(handle) is None

    def test_primitives_filter(self):
        renderer = SceneRenderer()
        renderer.add(Polyline(points=[(0, 0), (1, 1)], color="#000", group="measurement"))
        renderer.add(Polyline(points=[(0, 0), (1, 1)], color="#000", group="overlays"))
        renderer.add(TileLayer.for_base(BaseLayer.TOPO))
        assert len(renderer.primitives(Polyline)) == 2
        assert len(renderer.primitives(group="measurement")) == 1
        assert len(renderer.primitives(TileLayer, group="base")) == 1


@pytest.mark.unit
class TestOwnership:
    def test_second_owner_rejected(self):
        renderer = SceneRenderer()
        first, second = object(), object()
        renderer.claim(first)
        renderer.claim(first)
        with pytest.raises(RendererBusyError):
            renderer.claim(second)

    def test_release_frees_renderer(self):
        renderer = SceneRenderer()
        first, second = object(), object()
        renderer.claim(first)
        renderer.release(second)
        assert renderer.owner is first
        renderer.release(first)
        renderer.claim(second)
        assert renderer.owner is second


@pytest.mark.unit
class TestClickRouting:
    def test_emit_click_reaches_handlers(self):
        renderer = SceneRenderer()
        clicks = []
        handler = lambda lat, lng: clicks.append((lat, lng))
        renderer.on_click(handler)
        renderer.on_click(handler)
        assert renderer.click_handler_count == 1
        renderer.emit_click(51.5, -0.17)
        renderer.off_click(handler)
        renderer.emit_click(0.0, 0.0)
        assert clicks == [(51.5, -0.17)]

    def test_click_marker_standalone_and_clustered(self):
        renderer = SceneRenderer()
        hits = []
        plain = Marker((0.0, 0.0), STYLE, asset_id="A", on_click=lambda: hits.append("A"))
        member = Marker((1.0, 1.0), STYLE, asset_id="B", on_click=lambda: hits.append("B"))
        renderer.add(plain)
        renderer.add(ClusterGroup(clusters=[Cluster((1.0, 1.0), [member], "small")], radius_m=100.0))
        assert renderer.click_marker("A") is True
        assert renderer.click_marker("B") is True
        assert renderer.click_marker("C") is False
        assert hits == ["A", "B"]


@pytest.mark.unit
class TestBounds:
    def test_bounds_contain_center(self):
        renderer = SceneRenderer(center=(51.5154, -0.1755), zoom=13)
        south, west, north, east = renderer.bounds()
        assert south < 51.5154 < north
        assert west < -0.1755 < east

    def test_higher_zoom_narrows_bounds(self):
        wide = SceneRenderer(center=(51.5, -0.17), zoom=12).bounds()
        narrow = SceneRenderer(center=(51.5, -0.17), zoom=15).bounds()
        assert (narrow[2] - narrow[0]) < (wide[2] - wide[0])
        assert (narrow[3] - narrow[1]) < (wide[3] - wide[1])

    def test_set_view(self):
        renderer = SceneRenderer()
        renderer.set_view((51.5, -0.17), 16)
        assert renderer.center == (51.5, -0.17)
        assert renderer.zoom == 16
