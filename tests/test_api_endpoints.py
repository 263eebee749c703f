"""Tests for FastAPI endpoints via TestClient."""

import pytest

from fastapi import FastAPI
from fastapi.testclient import TestClient

from flagwar.game.board import ConfigError
from flagwar.match.dependencies import init_app
from flagwar.match.server import app as _shared_app


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------

_APP_CONFIG = {
    "board": {
        "starting_positions": {
            "A": [{"id": 1, "x": 1, "y": 10}, {"id": 2, "x": 2, "y": 10}],
            "B": [{"id": 1, "x": 1, "y": 2}, {"id": 2, "x": 2, "y": 2}],
        },
    },
    "search": {"time_budget": 0},
    "match": {"tick_seconds": 0, "default_ai_sides": []},
}


@pytest.fixture
def client():
    init_app(_shared_app, _APP_CONFIG)
    return TestClient(_shared_app)


def _create(client, **body):
    resp = client.post("/matches", json=body)
    assert resp.status_code == 201
    return resp.json()["match_id"]


def _started(client):
    match_id = _create(client)
    assert client.post(f"/matches/{match_id}/start").status_code == 200
    return match_id


# ---------------------------------------------------------------------------
# Tests
# ---------------------------------------------------------------------------

class TestCreate:
    def test_create_match(self, client):
        resp = client.post("/matches", json={})
        assert resp.status_code == 201
        data = resp.json()
        assert data["status"] == "waiting"
        assert data["ai_sides"] == []
        assert len(data["state"]["sides"]["A"]["pieces"]) == 2

    def test_create_with_ai(self, client):
        resp = client.post("/matches", json={"ai_sides": ["A"]})
        assert resp.json()["ai_sides"] == ["A"]

    def test_invalid_side(self, client):
        resp = client.post("/matches", json={"ai_sides": ["C"]})
        assert resp.status_code == 422


class TestStatus:
    def test_get_status(self, client):
        match_id = _create(client)
        resp = client.get(f"/matches/{match_id}")
        assert resp.status_code == 200
        assert resp.json()["round"] == 0

    def test_unknown_match(self, client):
        assert client.get("/matches/nope").status_code == 404
        assert client.get("/matches/nope/state").status_code == 404
        assert client.post("/matches/nope/tick").status_code == 404
        assert client.delete("/matches/nope").status_code == 404

    def test_state(self, client):
        match_id = _create(client)
        data = client.get(f"/matches/{match_id}/state").json()
        assert data["state"]["round"] == 0
        assert "Round 0" in data["board_text"]


class TestPlay:
    def test_tick_before_start_conflicts(self, client):
        match_id = _create(client)
        resp = client.post(f"/matches/{match_id}/tick")
        assert resp.status_code == 409

    def test_start_twice_conflicts(self, client):
        match_id = _started(client)
        assert client.post(f"/matches/{match_id}/start").status_code == 409

    def test_commands_and_tick(self, client):
        match_id = _started(client)
        resp = client.post(f"/matches/{match_id}/commands", json={
            "side": "A",
            "movements": [{"piece_id": 1, "direction": "down", "distance": 2}],
        })
        assert resp.status_code == 200
        assert resp.json()["round"] == 0

        resp = client.post(f"/matches/{match_id}/tick")
        assert resp.status_code == 200
        data = resp.json()
        assert data["record"]["round"] == 0
        piece = data["state"]["sides"]["A"]["pieces"][0]
        assert (piece["x"], piece["y"]) == (1, 8)

    def test_invalid_movement_ignored(self, client):
        match_id = _started(client)
        resp = client.post(f"/matches/{match_id}/commands", json={
            "side": "A",
            "movements": [{"piece_id": 1, "direction": "diagonal", "distance": 2}],
        })
        assert resp.status_code == 200
        data = client.post(f"/matches/{match_id}/tick").json()
        piece = data["state"]["sides"]["A"]["pieces"][0]
        assert (piece["x"], piece["y"]) == (1, 10)

    def test_pause(self, client):
        match_id = _started(client)
        resp = client.post(f"/matches/{match_id}/pause")
        assert resp.json()["status"] == "paused"
        assert client.post(f"/matches/{match_id}/tick").status_code == 409
        assert client.post(f"/matches/{match_id}/pause").status_code == 409

    def test_history_and_score(self, client):
        match_id = _started(client)
        client.post(f"/matches/{match_id}/tick")
        client.post(f"/matches/{match_id}/tick")
        rounds = client.get(f"/matches/{match_id}/history").json()["rounds"]
        assert [r["round"] for r in rounds] == [0, 1]
        scores = client.get(f"/matches/{match_id}/score").json()["scores"]
        assert set(scores) == {"A", "B"}
        assert scores["A"]["total"] == 0

    def test_suggest(self, client):
        match_id = _started(client)
        resp = client.get(f"/matches/{match_id}/suggest", params={"side": "B"})
        assert resp.status_code == 200
        data = resp.json()
        assert [m["piece_id"] for m in data["movements"]] == [1, 2]
        assert data["analysis"]["timed_out"] is False

    def test_delete(self, client):
        match_id = _create(client)
        assert client.delete(f"/matches/{match_id}").status_code == 200
        assert client.get(f"/matches/{match_id}").status_code == 404


class TestInitApp:
    def test_bad_board_fails_at_startup(self):
        with pytest.raises(ConfigError):
            init_app(FastAPI(), {"board": {"width": -3}})

    def test_defaults(self):
        app = FastAPI()
        init_app(app, {})
        manager = app.state.match_manager
        assert manager.tick_seconds == 0
        assert manager.board.width == 19
