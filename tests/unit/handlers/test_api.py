#!/usr/bin/env python3
"""Unit tests for the explorer REST and WebSocket API."""

import pytest
from fastapi.testclient import TestClient

from explorer_backend.main import app, reset_explorers


@pytest.fixture
def client():
    reset_explorers()
    with TestClient(app) as test_client:
        yield test_client
    reset_explorers()


@pytest.fixture
def loaded(client, chain_schema):
    response = client.put("/api/explorers/main/schema", json={"schema": chain_schema})
    assert response.status_code == 200
    return client


@pytest.mark.unit
class TestHealthAndExplorers:
    """Tests for health and explorer lifecycle endpoints."""

    def test_health(self, client):
        response = client.get("/api/health")

        assert response.status_code == 200
        assert response.json()["status"] == "ok"

    def test_load_creates_explorer(self, loaded):
        """Test that loading a schema creates the explorer on demand."""
        response = loaded.get("/api/explorers")

        assert response.json()["explorers"] == ["main"]

    def test_delete_explorer(self, loaded):
        """Test that a deleted explorer is gone."""
        assert loaded.delete("/api/explorers/main").status_code == 200
        assert loaded.get("/api/explorers/main/graph").status_code == 404
        assert loaded.delete("/api/explorers/main").status_code == 404

    def test_unknown_explorer(self, client):
        """Test that reading an unknown explorer is a 404."""
        assert client.get("/api/explorers/nope/graph").status_code == 404


@pytest.mark.unit
class TestSchemaEndpoints:
    """Tests for loading schema text."""

    def test_load_returns_state(self, client, chain_schema):
        """Test that the load response carries the new diagram."""
        response = client.put("/api/explorers/main/schema", json={"schema": chain_schema})

        data = response.json()
        assert data["success"] is True
        assert data["state"]["node_count"] == 5
        assert data["state"]["edge_count"] == 3
        assert len(data["state"]["graph"]["nodes"]) == 5

    def test_parse_error_is_400(self, loaded):
        """Test that a broken schema is rejected and the diagram kept."""
        response = loaded.put("/api/explorers/main/schema", json={"schema": "type A {"})

        assert response.status_code == 400
        assert "line" in response.json()["detail"]

        state = loaded.get("/api/explorers/main/graph").json()["state"]
        assert state["node_count"] == 5
        assert state["error"] == response.json()["detail"]

    def test_missing_schema_field_is_422(self, client):
        """Test request validation on the load body."""
        response = client.put("/api/explorers/main/schema", json={})

        assert response.status_code == 422

    def test_diagnostics(self, client):
        """Test that unresolved references show up as warnings."""
        client.put("/api/explorers/main/schema", json={"schema": "type A { b: Missing }"})

        data = client.get("/api/explorers/main/diagnostics").json()

        assert data["summary"]["warnings"] == 1

    def test_summary(self, loaded):
        data = loaded.get("/api/explorers/main/summary").json()

        assert data["summary"]["total_types"] == 5


@pytest.mark.unit
class TestFocusEndpoints:
    """Tests for focus navigation over HTTP."""

    def test_click_focuses_and_unfocuses(self, loaded):
        """Test the focus round trip through node clicks."""
        focused = loaded.post("/api/explorers/main/nodes/A/click").json()["state"]
        assert focused["focus"] == {"focused_id": "A", "depth": 1}
        assert focused["node_count"] == 2

        unfocused = loaded.post("/api/explorers/main/nodes/A/click").json()["state"]
        assert unfocused["focus"]["focused_id"] is None
        assert unfocused["node_count"] == 5

    def test_click_unknown_node_is_404(self, loaded):
        assert loaded.post("/api/explorers/main/nodes/Nope/click").status_code == 404

    def test_depth(self, loaded):
        """Test that depth changes widen the focus neighbourhood."""
        loaded.post("/api/explorers/main/nodes/A/click")

        state = loaded.post("/api/explorers/main/depth", json={"delta": 2}).json()["state"]

        assert state["focus"]["depth"] == 3
        assert state["node_count"] == 4

    def test_depth_without_focus_is_400(self, loaded):
        assert loaded.post("/api/explorers/main/depth", json={"delta": 1}).status_code == 400

    def test_canvas_click(self, loaded):
        loaded.post("/api/explorers/main/nodes/B/click")

        state = loaded.post("/api/explorers/main/canvas/click").json()["state"]

        assert state["focus"]["focused_id"] is None

    def test_search(self, loaded):
        state = loaded.post("/api/explorers/main/search", json={"query": "c"}).json()["state"]

        assert state["search"] == "c"
        assert state["node_count"] == 2


@pytest.mark.unit
class TestLayoutEndpoints:
    """Tests for drag, layout and viewport endpoints."""

    def test_drag_round_trip(self, loaded):
        """Test that dragging pins a node until released."""
        start = loaded.post("/api/explorers/main/drag/start", json={"node_id": "C", "x": 10, "y": 20})
        assert start.status_code == 200

        move = loaded.post("/api/explorers/main/drag/move", json={"node_id": "C", "x": 30, "y": 40})
        assert move.json() == {"success": True}

        end = loaded.post("/api/explorers/main/drag/end", json={"node_id": "C"}).json()
        pinned = {n["id"]: n["pinned"] for n in end["state"]["graph"]["nodes"]}
        assert pinned["C"] is False

    def test_drag_focused_node_is_400(self, loaded):
        loaded.post("/api/explorers/main/nodes/A/click")

        response = loaded.post("/api/explorers/main/drag/start", json={"node_id": "A", "x": 0, "y": 0})

        assert response.status_code == 400

    def test_improve_and_reset(self, loaded):
        improved = loaded.post("/api/explorers/main/layout/improve").json()
        assert improved["state"]["layout"]["running"] is True

        assert loaded.post("/api/explorers/main/layout/reset").status_code == 200

    def test_step_returns_frame(self, loaded):
        """Test that a synchronous step returns fresh positions."""
        data = loaded.post("/api/explorers/main/layout/step", json={"ticks": 1}).json()

        assert data["ticks"] <= 1
        assert set(data["frame"]["positions"]) == {"A", "B", "C", "D", "E"}

    def test_step_limits(self, loaded):
        assert loaded.post("/api/explorers/main/layout/step", json={"ticks": 0}).status_code == 422

    def test_viewport(self, loaded):
        state = loaded.patch(
            "/api/explorers/main/viewport", json={"width": 640, "height": 480, "zoom": 1.5}
        ).json()["state"]

        assert state["viewport"]["width"] == 640
        assert state["viewport"]["zoom"] == 1.5


@pytest.mark.unit
class TestWebSocket:
    """Tests for the WebSocket endpoint."""

    def test_ping_pong(self, client):
        with client.websocket_connect("/ws") as websocket:
            websocket.send_text("ping")

            assert websocket.receive_json() == {"type": "pong"}
