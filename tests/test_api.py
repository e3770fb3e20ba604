"""Tests for the FastAPI viewer routes."""

import pytest
from fastapi.testclient import TestClient

from backend.app import app
from backend.session import get_viewer
from pointviewer.controller import VisualizationController
from pointviewer.jobs import JobOrchestrator


@pytest.fixture
def viewer(api, service, sleep):
    # Submissions fail fast so background tasks never reach the network
    service.submit_status = 503
    return VisualizationController(api=api, orchestrator=JobOrchestrator(api, sleep=sleep),
                                   use_geocoded_zone=False)


@pytest.fixture
def client(viewer):
    app.dependency_overrides[get_viewer] = lambda: viewer
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


class TestVisualizeRoutes:

    def test_health(self, client):
        response = client.get("/")
        assert response.status_code == 200
        assert response.json()["status"] == "ok"

    def test_start_returns_pending_state(self, client, viewer):
        response = client.post("/api/visualize",
                               json={"address": "1250 Wildwood Road, Boulder, CO", "buffer_km": 0.5})

        assert response.status_code == 200
        body = response.json()
        assert body["status"] == "pending"
        assert body["error"] is None
        assert "points" not in body or body["points"] is None
        assert viewer.generation == 1

    def test_start_validates_request(self, client, viewer):
        assert client.post("/api/visualize", json={"address": ""}).status_code == 422
        assert client.post("/api/visualize",
                           json={"address": "Boulder", "buffer_km": 0}).status_code == 422
        assert viewer.generation == 0

    def test_state_includes_points_on_request(self, client):
        body = client.get("/api/visualize/state").json()
        assert body["points"] == []
        assert body["point_count"] == 0
        assert body["view_state"]["zoom"] == 15.0

        body = client.get("/api/visualize/state", params={"include_points": False}).json()
        assert body["points"] is None

    def test_view_update_is_clamped(self, client):
        response = client.patch("/api/visualize/view", json={"pitch": 120, "bearing": -30})

        view = response.json()["view_state"]
        assert view["pitch"] == 85.0
        assert view["bearing"] == -30.0
        assert view["zoom"] == 15.0

    def test_preset_and_reset(self, client):
        view = client.post("/api/visualize/view/preset/side").json()["view_state"]
        assert (view["pitch"], view["bearing"]) == (85.0, 0.0)

        view = client.post("/api/visualize/view/reset").json()["view_state"]
        assert (view["pitch"], view["bearing"]) == (60.0, 0.0)

    def test_unknown_preset(self, client):
        response = client.post("/api/visualize/view/preset/fisheye")
        assert response.status_code == 404
        assert "fisheye" in response.json()["detail"]

    def test_point_size(self, client):
        assert client.put("/api/visualize/point-size",
                          json={"point_size": 75}).json()["point_size"] == 50.0
        assert client.put("/api/visualize/point-size",
                          json={"point_size": -1}).status_code == 422
