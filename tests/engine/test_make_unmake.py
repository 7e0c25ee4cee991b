from __future__ import annotations

from webchess.engine.executor import apply_move, undo_move
from webchess.engine.game import Game
from webchess.engine.move import Move, str_to_square as sq
from webchess.engine.piece import Color
from webchess.engine.position import Position


LINE = [
    "e2e4", "e7e5", "g1f3", "b8c6", "f1c4", "g8f6",
    "e1g1", "f8c5", "d2d4", "e5d4", "e4e5", "d7d5",
    "e5d6", "e8g8",
]


def test_undo_walks_back_every_state() -> None:
    game = Game.new()
    snapshots = [game.export_position()]
    histories = [list(game.position.position_history)]
    for uci in LINE:
        res = game.attempt_move(sq(uci[:2]), sq(uci[2:4]))
        assert res.valid, uci
        snapshots.append(game.export_position())
        histories.append(list(game.position.position_history))

    for i in range(len(LINE), 0, -1):
        assert game.export_position() == snapshots[i]
        game.undo()
        assert game.export_position() == snapshots[i - 1]
        assert game.position.position_history == histories[i - 1]
    assert game.move_history() == []


def test_undo_restores_castling_rights_after_king_move() -> None:
    pos = Position.from_rows(["r...k..r", *["........"] * 6, "R...K..R"])
    before = pos.to_snapshot()
    assert apply_move(pos, Move(sq("e1"), sq("f1"))).valid
    assert not pos.castling[Color.WHITE].king_side
    record = undo_move(pos)
    assert record.from_sq == sq("e1")
    assert pos.to_snapshot() == before
    assert pos.castling[Color.WHITE].king_side and pos.castling[Color.WHITE].queen_side
    assert pos.king_square(Color.WHITE) == sq("e1")


def test_undo_castle_puts_rook_back_unmoved() -> None:
    pos = Position.from_rows(["r...k..r", *["........"] * 6, "R...K..R"])
    before = pos.to_snapshot()
    assert apply_move(pos, Move(sq("e1"), sq("c1"))).valid
    undo_move(pos)
    assert pos.to_snapshot() == before
    rook = pos.piece_at(sq("a1"))
    assert rook is not None and not rook.has_moved
    assert pos.piece_at(sq("d1")) is None


def test_undo_restores_clocks_and_side() -> None:
    pos = Position.from_rows(
        ["....k...", *["........"] * 6, "R...K..."],
        castling="-",
        halfmove_clock=17,
        fullmove_number=40,
    )
    assert apply_move(pos, Move(sq("a1"), sq("a5"))).valid
    assert apply_move(pos, Move(sq("e8"), sq("d8"))).valid
    assert pos.fullmove_number == 41
    undo_move(pos)
    undo_move(pos)
    assert pos.halfmove_clock == 17
    assert pos.fullmove_number == 40
    assert pos.side_to_move is Color.WHITE
