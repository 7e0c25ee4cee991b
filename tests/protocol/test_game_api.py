from __future__ import annotations

from fastapi.testclient import TestClient

from webchess.engine.piece import Color
from webchess.engine.position import START_ROWS, Position
from webchess.protocol.http.app import create_app


PROMO_ROWS = ["....k...", "P.......", *["........"] * 5, "....K..."]


def _client() -> tuple[TestClient, str]:
    client = TestClient(create_app(search_depth=1))
    game_id = client.post("/api/games").json()["game_id"]
    return client, game_id


def _load(client: TestClient, game_id: str, rows: list[str], **kwargs) -> None:
    snapshot = Position.from_rows(rows, **kwargs).to_snapshot()
    r = client.post(f"/api/games/{game_id}/import", json={"position": snapshot})
    assert r.status_code == 200


def test_legal_moves_for_square() -> None:
    client, game_id = _client()
    r = client.get(f"/api/games/{game_id}/moves", params={"square": "e2"})
    assert r.status_code == 200
    body = r.json()
    assert body["square"] == "e2"
    assert {m["to"]: m["kind"] for m in body["moves"]} == {
        "e3": "normal",
        "e4": "double_pawn_push",
    }
    assert client.get(f"/api/games/{game_id}/moves", params={"square": "e5"}).json()["moves"] == []


def test_legal_moves_bad_square() -> None:
    client, game_id = _client()
    r = client.get(f"/api/games/{game_id}/moves", params={"square": "z9"})
    assert r.status_code == 400
    assert r.json()["error"]["code"] == "bad_request"


def test_move_updates_state() -> None:
    client, game_id = _client()
    r = client.post(f"/api/games/{game_id}/move", json={"move": "e2e4"})
    assert r.status_code == 200
    body = r.json()
    assert body["result"]["move"] == "e2e4"
    assert body["result"]["kind"] == "double_pawn_push"
    assert body["result"]["captured"] is None
    state = body["state"]
    assert state["side_to_move"] == "black"
    assert state["en_passant"] == "e3"
    assert state["last_move"] == "e2e4"
    assert state["board"][4] == "....P..."


def test_rejected_moves_use_domain_codes() -> None:
    client, game_id = _client()
    cases = {
        "e3e4": "no_piece_at_source",
        "e7e5": "wrong_side_to_move",
        "e2e5": "illegal_destination",
    }
    for move, code in cases.items():
        r = client.post(f"/api/games/{game_id}/move", json={"move": move})
        assert r.status_code == 400, move
        err = r.json()["error"]
        assert err["code"] == code
        assert err["type"] == "client_error"
    assert client.get(f"/api/games/{game_id}/state").json()["board"] == list(START_ROWS)


def test_malformed_move_is_bad_request() -> None:
    client, game_id = _client()
    r = client.post(f"/api/games/{game_id}/move", json={"move": "e2"})
    assert r.status_code == 400
    assert r.json()["error"]["code"] == "bad_request"


def test_two_step_promotion() -> None:
    client, game_id = _client()
    _load(client, game_id, PROMO_ROWS, castling="-")

    r = client.post(f"/api/games/{game_id}/move", json={"move": "a7a8"})
    assert r.status_code == 200
    assert r.json()["result"]["promotion_pending"] is True
    assert r.json()["state"]["promotion_pending"] == "a8"
    assert r.json()["state"]["side_to_move"] == "white"

    blocked = client.post(f"/api/games/{game_id}/move", json={"move": "e1e2"})
    assert blocked.status_code == 409
    assert blocked.json()["error"]["code"] == "pending_promotion_required"

    bad = client.post(f"/api/games/{game_id}/promote", json={"piece": "king"})
    assert bad.status_code == 400
    assert bad.json()["error"]["code"] == "invalid_promotion_piece"

    ok = client.post(f"/api/games/{game_id}/promote", json={"piece": "knight"})
    assert ok.status_code == 200
    state = ok.json()["state"]
    assert state["board"][0][0] == "N"
    assert state["side_to_move"] == "black"
    assert state["promotion_pending"] is None
    assert state["last_move"] == "a7a8n"


def test_promotion_piece_in_move_string() -> None:
    client, game_id = _client()
    _load(client, game_id, PROMO_ROWS, castling="-")
    r = client.post(f"/api/games/{game_id}/move", json={"move": "a7a8q"})
    assert r.status_code == 200
    body = r.json()
    assert body["result"]["is_check"] is True
    assert body["state"]["board"][0][0] == "Q"


def test_promote_without_pending_is_conflict() -> None:
    client, game_id = _client()
    r = client.post(f"/api/games/{game_id}/promote", json={"piece": "queen"})
    assert r.status_code == 409
    assert r.json()["error"]["code"] == "no_pending_promotion"


def test_hint_does_not_move() -> None:
    client, game_id = _client()
    r = client.post(f"/api/games/{game_id}/hint", json={})
    assert r.status_code == 200
    body = r.json()
    assert isinstance(body["best_move"], str) and len(body["best_move"]) == 4
    assert body["depth"] == 1
    assert body["nodes"] > 0
    assert client.get(f"/api/games/{game_id}/state").json()["move_history"] == []


def test_hint_depth_out_of_range() -> None:
    client, game_id = _client()
    r = client.post(f"/api/games/{game_id}/hint", json={"depth": 9})
    assert r.status_code == 422


def test_ai_move_plays_for_side_to_move() -> None:
    client, game_id = _client()
    client.post(f"/api/games/{game_id}/move", json={"move": "e2e4"})
    r = client.post(f"/api/games/{game_id}/ai-move", json={"depth": 1})
    assert r.status_code == 200
    state = r.json()["state"]
    assert state["side_to_move"] == "white"
    assert len(state["move_history"]) == 2


def test_ai_move_after_checkmate_is_conflict() -> None:
    client, game_id = _client()
    for move in ("f2f3", "e7e5", "g2g4", "d8h4"):
        assert client.post(f"/api/games/{game_id}/move", json={"move": move}).status_code == 200
    state = client.get(f"/api/games/{game_id}/state").json()
    assert state["checkmate"] is True and state["game_over"] is True
    r = client.post(f"/api/games/{game_id}/ai-move", json={})
    assert r.status_code == 409
    assert r.json()["error"]["code"] == "game_over"


def test_export_and_import_round_trip() -> None:
    client, game_id = _client()
    client.post(f"/api/games/{game_id}/move", json={"move": "e2e4"})
    exported = client.get(f"/api/games/{game_id}/export").json()
    assert exported["position"]["en_passant"] == "e3"
    assert exported["history"][0]["from"] == "e2"
    assert exported["history"][0]["kind"] == "double_pawn_push"

    other = client.post("/api/games").json()["game_id"]
    r = client.post(f"/api/games/{other}/import", json={"position": exported["position"]})
    assert r.status_code == 200
    state = r.json()
    assert state["side_to_move"] == "black"
    assert state["en_passant"] == "e3"
    assert state["move_history"] == []


def test_invalid_import_keeps_game() -> None:
    client, game_id = _client()
    client.post(f"/api/games/{game_id}/move", json={"move": "d2d4"})
    before = client.get(f"/api/games/{game_id}/state").json()

    snapshot = Position.startpos().to_snapshot()
    snapshot["board"][0][4] = None
    r = client.post(f"/api/games/{game_id}/import", json={"position": snapshot})
    assert r.status_code == 400
    assert r.json()["error"]["code"] == "invalid_loaded_position"
    assert client.get(f"/api/games/{game_id}/state").json() == before


def test_replay_positions() -> None:
    client, game_id = _client()
    for move in ("e2e4", "e7e5"):
        client.post(f"/api/games/{game_id}/move", json={"move": move})
    start = client.get(f"/api/games/{game_id}/replay/-1").json()
    assert start["board"] == list(START_ROWS)
    first = client.get(f"/api/games/{game_id}/replay/0").json()
    assert first["position"]["side_to_move"] == Color.BLACK.value
    assert first["board"][4] == "....P..."
    assert client.get(f"/api/games/{game_id}/replay/5").status_code == 400


def test_promotion_suffix_on_ordinary_move_is_rejected() -> None:
    client, game_id = _client()
    r = client.post(f"/api/games/{game_id}/move", json={"move": "e2e4q"})
    assert r.status_code == 400
    assert r.json()["error"]["code"] == "illegal_destination"
    state = client.get(f"/api/games/{game_id}/state").json()
    assert state["board"] == list(START_ROWS)
    assert state["move_history"] == []


def test_export_during_pending_promotion_round_trips() -> None:
    client, game_id = _client()
    _load(client, game_id, PROMO_ROWS, castling="-")
    client.post(f"/api/games/{game_id}/move", json={"move": "a7a8"})
    exported = client.get(f"/api/games/{game_id}/export").json()["position"]
    assert exported["pending_promotion"] == "a8"

    other = client.post("/api/games").json()["game_id"]
    state = client.post(f"/api/games/{other}/import", json={"position": exported}).json()
    assert state["promotion_pending"] == "a8"
    assert state["side_to_move"] == "white"

    blocked = client.post(f"/api/games/{other}/move", json={"move": "e1e2"})
    assert blocked.status_code == 409
    done = client.post(f"/api/games/{other}/promote", json={"piece": "queen"})
    assert done.status_code == 200
    assert done.json()["result"]["move"] is None
    assert done.json()["state"]["board"][0][0] == "Q"
    assert done.json()["state"]["side_to_move"] == "black"
