from __future__ import annotations

from fastapi.testclient import TestClient

from webchess.engine.position import START_ROWS
from webchess.protocol.http.app import create_app


def _client() -> TestClient:
    return TestClient(create_app())


def test_create_game_and_get_state() -> None:
    client = _client()
    r = client.post("/api/games")
    assert r.status_code == 200
    body = r.json()
    assert "game_id" in body and isinstance(body["game_id"], str) and body["game_id"]
    game_id = body["game_id"]
    assert body["state"]["board"] == list(START_ROWS)

    r2 = client.get(f"/api/games/{game_id}/state")
    assert r2.status_code == 200
    state = r2.json()
    assert state["game_id"] == game_id
    assert state["side_to_move"] == "white"
    assert state["in_check"] is False
    assert state["game_over"] is False
    assert state["promotion_pending"] is None
    assert state["move_history"] == []
    assert state["last_move"] is None
    assert (state["halfmove_clock"], state["fullmove_number"]) == (0, 1)


def test_games_are_independent() -> None:
    client = _client()
    a = client.post("/api/games").json()["game_id"]
    b = client.post("/api/games").json()["game_id"]
    assert a != b
    assert client.post(f"/api/games/{a}/move", json={"move": "e2e4"}).status_code == 200
    assert client.get(f"/api/games/{b}/state").json()["move_history"] == []


def test_get_state_unknown_id_404() -> None:
    client = _client()
    r = client.get("/api/games/does-not-exist/state")
    assert r.status_code == 404
    body = r.json()
    assert "error" in body
    assert body["error"]["code"] == "not_found"


def test_delete_game() -> None:
    client = _client()
    game_id = client.post("/api/games").json()["game_id"]
    assert client.delete(f"/api/games/{game_id}").json() == {"deleted": True}
    assert client.get(f"/api/games/{game_id}/state").status_code == 404
    assert client.delete(f"/api/games/{game_id}").status_code == 404


def test_reads_take_the_game_lock(monkeypatch) -> None:
    app = create_app(search_depth=1)
    client = TestClient(app)
    game_id = client.post("/api/games").json()["game_id"]

    store = app.state.store
    locked = []
    lock_for = store.lock_for

    def recording_lock_for(gid: str):
        locked.append(gid)
        return lock_for(gid)

    monkeypatch.setattr(store, "lock_for", recording_lock_for)
    for path in ("state", "moves?square=e2", "export", "replay/-1"):
        assert client.get(f"/api/games/{game_id}/{path}").status_code == 200, path
    assert locked == [game_id] * 4
