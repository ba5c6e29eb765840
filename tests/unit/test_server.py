"""Tests for the FastAPI query API and the WebSocket refresh channel."""

from __future__ import annotations

from collections.abc import Callable, Iterator
from pathlib import Path

import pytest
from fastapi.testclient import TestClient

from workboard.config import BoardConfig
from workboard.core.coordinator import SyncCoordinator
from workboard.server.app import create_app


@pytest.fixture
def coordinator(board_config: BoardConfig, sample_tree: Path) -> SyncCoordinator:
    return SyncCoordinator(board_config)


@pytest.fixture
def client(coordinator: SyncCoordinator) -> Iterator[TestClient]:
    with TestClient(create_app(coordinator)) as test_client:
        yield test_client


class TestStatusEndpoints:
    def test_health(self, client: TestClient):
        body = client.get("/api/health").json()
        assert body["status"] == "ok"
        assert body["loaded"] is True
        assert body["generation"] == 1
        assert body["watching"] is False
        assert isinstance(body["timestamp"], int)

    def test_stats(self, client: TestClient):
        body = client.get("/api/stats").json()
        assert body["total"] == 7
        assert body["by_type"] == {"epic": 2, "story": 3, "task": 2}
        assert body["warnings"] == 1

    def test_stats_before_load(self, coordinator: SyncCoordinator):
        client = TestClient(create_app(coordinator, manage_lifecycle=False))
        assert client.get("/api/stats").status_code == 503
        assert client.get("/api/health").json()["loaded"] is False

    def test_warnings(self, client: TestClient):
        body = client.get("/api/warnings").json()
        assert body["total"] == 1
        assert body["warnings"][0]["kind"] == "orphan"
        assert body["warnings"][0]["item_id"] == "story-0009-0001"


class TestWorkItemEndpoints:
    def test_flat_listing(self, client: TestClient):
        body = client.get("/api/work-items").json()
        assert body["total"] == 7
        assert body["roots"] == ["epic-0001", "epic-0002", "story-0009-0001"]

    def test_filters(self, client: TestClient):
        body = client.get("/api/work-items", params={"type": "story,task"}).json()
        assert body["total"] == 5
        body = client.get("/api/work-items", params={"status": "on-hold"}).json()
        assert [i["id"] for i in body["items"]] == ["task-0001-0001-0002"]

    def test_tree_view(self, client: TestClient):
        body = client.get("/api/work-items", params={"view": "tree"}).json()
        assert [i["id"] for i in body["items"]] == [
            "epic-0001",
            "epic-0002",
            "story-0009-0001",
        ]
        assert [c["id"] for c in body["items"][0]["children"]] == [
            "story-0001-0001",
            "story-0001-0002",
        ]

    def test_bad_view_is_rejected(self, client: TestClient):
        assert client.get("/api/work-items", params={"view": "graph"}).status_code == 422

    def test_grouped(self, client: TestClient):
        body = client.get("/api/work-items/grouped").json()
        assert list(body) == [
            "Backlog",
            "Ready",
            "In Progress",
            "Review",
            "Done",
            "Blocked",
            "Other",
        ]
        assert [i["id"] for i in body["Blocked"]["items"]] == ["task-0001-0001-0001"]

    def test_item_detail(self, client: TestClient):
        body = client.get("/api/work-items/story-0001-0001").json()
        assert body["parent_id"] == "epic-0001"
        assert body["description"] == "First story of the first epic"
        assert body["documentation"].startswith("# Story one")
        assert body["context"] is None

    def test_unknown_item(self, client: TestClient):
        response = client.get("/api/work-items/epic-9999")
        assert response.status_code == 404
        assert response.json()["detail"] == "Work item not found"

    def test_doc_is_rendered(self, client: TestClient):
        response = client.get("/api/work-items/story-0001-0001/doc")
        assert response.status_code == 200
        assert response.headers["content-type"].startswith("text/html")
        assert "<h1>Story one</h1>" in response.text
        assert "<em>text</em>" in response.text

    def test_missing_context(self, client: TestClient):
        assert client.get("/api/work-items/story-0001-0001/context").status_code == 404


class TestRefresh:
    def test_manual_refresh_picks_up_changes(
        self, client: TestClient, write_item: Callable[..., Path]
    ):
        write_item("epic-0003", "ready")
        body = client.post("/api/refresh").json()
        assert body["items"] == 8
        assert body["generation"] == 2
        assert client.get("/api/work-items/epic-0003").status_code == 200

    def test_websocket_init_ping_and_refresh(self, client: TestClient):
        with client.websocket_connect("/ws") as ws:
            init = ws.receive_json()
            assert init["type"] == "init"
            assert init["data"]["generation"] == 1

            ws.send_json({"type": "ping"})
            assert ws.receive_json()["type"] == "pong"

            client.post("/api/refresh")
            signal = ws.receive_json()
            assert signal["type"] == "refresh"
            assert signal["generation"] == 2

    def test_websocket_ignores_garbage(self, client: TestClient, coordinator: SyncCoordinator):
        with client.websocket_connect("/ws") as ws:
            ws.receive_json()
            ws.send_text("not json")
            ws.send_json({"type": "ping"})
            assert ws.receive_json()["type"] == "pong"
            assert coordinator.broadcaster.listener_count == 1
