"""Tests for API endpoints."""

from __future__ import annotations

import pytest
from fastapi.testclient import TestClient

from storyprint.main import app
from tests.conftest import FRIEND_GRAPH, story_request

client = TestClient(app)


def _payload(**kwargs) -> dict:
    return story_request(**kwargs).model_dump(by_alias=True, mode="json")


def test_health():
    response = client.get("/api/health")
    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "ok"
    assert data["stages_registered"] == 9


def test_layout_returns_scene():
    response = client.post("/api/layout", json=_payload())
    assert response.status_code == 200
    data = response.json()
    assert len(data["scene"]["nodes"]) == 8
    assert set(data["community_positions"]) == {"A", "B"}
    assert data["stages_failed"] == 0
    assert data["processing_time_ms"] > 0


def test_layout_accepts_camel_case_document():
    body = {
        "graph": FRIEND_GRAPH.model_dump(by_alias=True),
        "communityMap": {"alice": "c1", "bob": "c1"},
        "metaNodes": [{"communityId": "c1", "order": 1, "title": "Friends"}],
        "settings": {"showEdgeLabels": True, "layoutOrientation": "horizontal"},
        "width": 800,
        "height": 600,
    }
    response = client.post("/api/layout", json=body)
    assert response.status_code == 200
    labels = response.json()["scene"]["edge_labels"]
    assert [label["text"] for label in labels] == ["FRIEND …"]


def test_dangling_edges_are_dropped():
    body = {
        "graph": {
            "nodes": [{"id": "a"}],
            "relationships": [{"id": "r", "type": "X", "sourceId": "a", "targetId": "ghost"}],
        },
        "width": 500,
        "height": 500,
    }
    response = client.post("/api/layout", json=body)
    assert response.status_code == 200
    scene = response.json()["scene"]
    assert scene["edges"] == []
    assert len(scene["nodes"]) == 1


def test_layout_rejects_invalid_body():
    response = client.post("/api/layout", json={"graph": {"nodes": [{"name": "no id"}]}})
    assert response.status_code == 422


def test_layout_svg():
    response = client.post("/api/layout/svg", json=_payload(workspace_title="Story"))
    assert response.status_code == 200
    assert response.headers["content-type"].startswith("image/svg+xml")
    assert response.text.startswith("<?xml")
    assert "<line" in response.text


def test_page_size():
    response = client.get("/api/page-size", params={"template": "A0"})
    assert response.status_code == 200
    data = response.json()
    assert data["width"] == pytest.approx((841 - 20) * 3.779527559)
    assert data["height"] == pytest.approx((1189 - 20) * 3.779527559)


def test_page_size_landscape_swaps():
    portrait = client.get("/api/page-size", params={"template": "A1"}).json()
    landscape = client.get("/api/page-size", params={"template": "A1", "orientation": "landscape"}).json()
    assert landscape["width"] == portrait["height"]
    assert landscape["height"] == portrait["width"]
