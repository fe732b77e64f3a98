"""Unit tests for the site map API endpoints.

Tests:
  - GET  /api/map/state - snapshot of layers, tools and visible assets
  - POST /api/map/actions - typed action dispatch
  - POST /api/map/click - tool clicks
  - POST /api/map/markers/{asset_id}/click - asset selection
  - POST /api/map/shapefiles - GeoJSON upload
  - POST /api/map/timeseries/* - playback controls
  - GET  /api/map/render - Leaflet HTML export
"""
from __future__ import annotations

import json

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from geosite.canvas.renderer import SceneRenderer
from geosite.tools.timeline import ManualTicker
from geosite.view import MapView
from geosite_app.routers import map as map_router_module
from geosite_app.routers.map import get_map_view, router


@pytest.fixture
def view(assets):
    v = MapView(assets, SceneRenderer(), ticker=ManualTicker())
    v.mount()
    yield v
    v.unmount()


@pytest.fixture
def client(view):
    app = FastAPI()
    app.include_router(router)
    app.dependency_overrides[get_map_view] = lambda: view
    return TestClient(app)


@pytest.mark.unit
class TestStateEndpoint:
    def test_get_state(self, client):
        resp = client.get("/api/map/state")
        assert resp.status_code == 200
        data = resp.json()
        assert data["base_layer"] == "street"
        assert data["tool"] == "none"
        assert len(data["visible_assets"]) == 6
        assert {o["id"] for o in data["overlays"]} == {
            "insar", "soil", "monitoring", "settlement", "boreholes", "grid",
        }


@pytest.mark.unit
class TestActionsEndpoint:
    def test_toggle_overlay(self, client):
        resp = client.post("/api/map/actions", json={"type": "TOGGLE_OVERLAY", "overlay_id": "boreholes"})
        assert resp.status_code == 200
        data = resp.json()
        assert all(a["type"] != "borehole" for a in data["visible_assets"])

    def test_set_tool_mode(self, client):
        resp = client.post("/api/map/actions", json={"type": "SET_TOOL_MODE", "tool": "heatmap"})
        assert resp.status_code == 200
        assert resp.json()["readouts"]["heatmap"]["category"] == "settlement"

    def test_unknown_action_type(self, client):
        resp = client.post("/api/map/actions", json={"type": "LAUNCH_ROCKET"})
        assert resp.status_code == 422

    def test_invalid_action_fields(self, client):
        resp = client.post("/api/map/actions", json={"type": "SET_BASE_LAYER", "base_layer": "lunar"})
        assert resp.status_code == 422

    def test_missing_type(self, client):
        resp = client.post("/api/map/actions", json={"overlay_id": "grid"})
        assert resp.status_code == 422


@pytest.mark.unit
class TestClickEndpoints:
    def test_coordinate_probe(self, client):
        client.post("/api/map/actions", json={"type": "SET_TOOL_MODE", "tool": "coordinates"})
        resp = client.post("/api/map/click", json={"lat": 51.5154, "lng": -0.1755})
        assert resp.status_code == 200
        assert resp.json()["coordinates"] == {
            "lat": "51.515400°", "lng": "-0.175500°", "utm": "Zone 30N",
        }

    def test_click_without_tool_is_ignored(self, client):
        resp = client.post("/api/map/click", json={"lat": 51.5, "lng": -0.17})
        assert resp.status_code == 200
        assert resp.json() == {"tool": "none"}

    def test_marker_click(self, client, view):
        resp = client.post("/api/map/markers/BH-01/click")
        assert resp.status_code == 200
        data = resp.json()
        assert data["selected_asset_id"] == "BH-01"
        assert data["asset"]["name"] == "BH-01 Praed Street"
        assert view.state.selected_asset_id == "BH-01"

    def test_unknown_marker_404(self, client):
        resp = client.post("/api/map/markers/NOPE/click")
        assert resp.status_code == 404


@pytest.mark.unit
class TestShapefileUpload:
    def test_upload_object(self, client, polygon_geojson):
        resp = client.post("/api/map/shapefiles", json={"geojson": polygon_geojson, "name": "Boundary"})
        assert resp.status_code == 200
        data = resp.json()
        assert data["id"].startswith("shp-")
        assert data["geometry_type"] == "Polygon"
        assert data["feature_count"] == 1
        state = client.get("/api/map/state").json()
        assert [s["name"] for s in state["shapefiles"]] == ["Boundary"]

    def test_upload_text(self, client, polygon_geojson):
        resp = client.post("/api/map/shapefiles", json={"geojson": json.dumps(polygon_geojson)})
        assert resp.status_code == 200

    def test_upload_malformed_400(self, client):
        resp = client.post("/api/map/shapefiles", json={"geojson": {"type": "FeatureCollection"}})
        assert resp.status_code == 400

    def test_server_path_is_not_read(self, client, tmp_path, polygon_geojson):
        feature = polygon_geojson["features"][0]
        feature["properties"]["owner"] = "server-only"
        path = tmp_path / "secret_site.geojson"
        path.write_text(json.dumps(polygon_geojson))

        resp = client.post("/api/map/shapefiles", json={"geojson": str(path)})
        assert resp.status_code == 400
        missing = client.post("/api/map/shapefiles", json={"geojson": str(tmp_path / "absent.geojson")})
        assert missing.status_code == 400
        assert resp.json()["detail"] == missing.json()["detail"]

        assert client.get("/api/map/state").json()["shapefiles"] == []
        assert "server-only" not in client.get("/api/map/render").text


@pytest.mark.unit
class TestTimeSeriesEndpoints:
    def test_step_forward_and_back(self, client):
        resp = client.post("/api/map/timeseries/step", json={"direction": "forward"})
        assert resp.json()["date"] == "2024-02-01"
        resp = client.post("/api/map/timeseries/step", json={"direction": "back"})
        assert resp.json()["date"] == "2024-01-01"

    def test_bad_direction(self, client):
        resp = client.post("/api/map/timeseries/step", json={"direction": "sideways"})
        assert resp.status_code == 422

    def test_play_pause(self, client, view):
        resp = client.post("/api/map/timeseries/play")
        assert resp.json()["playing"] is True
        assert view.state.time_series is True
        resp = client.post("/api/map/timeseries/pause")
        assert resp.json()["playing"] is False

    def test_reset(self, client):
        client.post("/api/map/timeseries/step", json={"direction": "forward"})
        resp = client.post("/api/map/timeseries/reset")
        assert resp.json() == {"date": "2024-01-01", "playing": False}


@pytest.mark.unit
class TestRenderEndpoint:
    def test_render_html(self, client):
        resp = client.get("/api/map/render")
        assert resp.status_code == 200
        assert resp.headers["content-type"].startswith("text/html")
        assert "leaflet" in resp.text.lower()


@pytest.mark.unit
class TestProjectLoading:
    def test_missing_project_file_gives_empty_map(self, tmp_path):
        assets, registry = map_router_module._load_project(tmp_path / "missing.json")
        assert assets == []
        assert registry.list_shapefiles() == []

    def test_project_file_with_shapefiles(self, tmp_path, polygon_geojson):
        path = tmp_path / "project.json"
        path.write_text(json.dumps({
            "assets": [{
                "id": "BH-9", "type": "borehole", "name": "BH-9", "depth": 12,
                "location": {"lat": 51.51, "lng": -0.17},
            }],
            "shapefiles": [
                {"name": "Boundary", "geojson": polygon_geojson},
                {"name": "Broken", "geojson": {"type": "Polygon"}},
            ],
        }))
        assets, registry = map_router_module._load_project(path)
        assert [a.asset_id for a in assets] == ["BH-9"]
        assert [s.name for s in registry.list_shapefiles()] == ["Boundary"]

    def test_project_file_references_geojson_file(self, tmp_path, polygon_geojson):
        (tmp_path / "layers").mkdir()
        (tmp_path / "layers" / "boundary.geojson").write_text(json.dumps(polygon_geojson))
        path = tmp_path / "project.json"
        path.write_text(json.dumps({
            "assets": [],
            "shapefiles": [
                {"path": "layers/boundary.geojson"},
                {"name": "Missing", "path": "layers/absent.geojson"},
            ],
        }))
        _, registry = map_router_module._load_project(path)
        assert [s.name for s in registry.list_shapefiles()] == ["boundary"]
