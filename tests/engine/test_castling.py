from __future__ import annotations

from webchess.engine.executor import apply_move
from webchess.engine.move import CastlingSide, Move, square_to_str, str_to_square as sq
from webchess.engine.movegen import legal_moves
from webchess.engine.piece import Color, PieceType
from webchess.engine.position import Position


EMPTY = "........"


def rows_with(*middle: str) -> list[str]:
    """Kings and rooks on their home squares plus six middle rows."""
    return ["r...k..r", *middle, "R...K..R"]


def king_targets(position: Position, square: str = "e1") -> set[str]:
    return {square_to_str(m.to_sq) for m in legal_moves(position, sq(square))}


def test_both_sides_available_when_clear_and_not_in_check() -> None:
    pos = Position.from_rows(rows_with(*[EMPTY] * 6))
    targets = king_targets(pos)
    assert "g1" in targets
    assert "c1" in targets


def test_no_castling_while_in_check() -> None:
    # Black rook on e5 checks the white king along the e-file
    pos = Position.from_rows(rows_with(EMPTY, EMPTY, "....r...", EMPTY, EMPTY, EMPTY))
    targets = king_targets(pos)
    assert "g1" not in targets
    assert "c1" not in targets


def test_no_castling_through_attacked_square() -> None:
    # f1 is covered by the rook on f5; the queen side stays available
    pos = Position.from_rows(rows_with(EMPTY, EMPTY, ".....r..", EMPTY, EMPTY, EMPTY))
    targets = king_targets(pos)
    assert "g1" not in targets
    assert "c1" in targets


def test_queenside_allowed_when_only_b_file_is_attacked() -> None:
    # b1 must be empty but the king never crosses it
    pos = Position.from_rows(rows_with(EMPTY, EMPTY, ".r......", EMPTY, EMPTY, EMPTY))
    assert "c1" in king_targets(pos)


def test_no_castling_with_piece_in_between() -> None:
    pos = Position.from_rows(["r...k..r", *[EMPTY] * 6, "RN..K.NR"])
    targets = king_targets(pos)
    assert "g1" not in targets
    assert "c1" not in targets


def test_no_castling_without_right() -> None:
    pos = Position.from_rows(rows_with(*[EMPTY] * 6), castling="Qkq")
    targets = king_targets(pos)
    assert "g1" not in targets
    assert "c1" in targets


def test_kingside_castle_moves_rook_and_revokes_rights() -> None:
    pos = Position.from_rows(rows_with(*[EMPTY] * 6))
    res = apply_move(pos, Move(sq("e1"), sq("g1")))
    assert res.valid
    assert res.castling_side is CastlingSide.KINGSIDE

    king = pos.piece_at(sq("g1"))
    rook = pos.piece_at(sq("f1"))
    assert king is not None and king.type is PieceType.KING and king.has_moved
    assert rook is not None and rook.type is PieceType.ROOK and rook.has_moved
    assert pos.piece_at(sq("h1")) is None
    assert pos.piece_at(sq("e1")) is None
    assert pos.king_square(Color.WHITE) == sq("g1")
    assert not pos.castling[Color.WHITE].king_side
    assert not pos.castling[Color.WHITE].queen_side
    # Opponent rights untouched
    assert pos.castling[Color.BLACK].king_side
    assert pos.move_history[-1].castling_side is CastlingSide.KINGSIDE


def test_queenside_castle_for_black() -> None:
    pos = Position.from_rows(rows_with(*[EMPTY] * 6), side_to_move=Color.BLACK)
    res = apply_move(pos, Move(sq("e8"), sq("c8")))
    assert res.valid
    assert res.castling_side is CastlingSide.QUEENSIDE
    rook = pos.piece_at(sq("d8"))
    assert rook is not None and rook.type is PieceType.ROOK and rook.color is Color.BLACK
    assert pos.piece_at(sq("a8")) is None


def test_rook_move_revokes_only_its_side() -> None:
    pos = Position.from_rows(rows_with(*[EMPTY] * 6))
    assert apply_move(pos, Move(sq("a1"), sq("a2"))).valid
    assert not pos.castling[Color.WHITE].queen_side
    assert pos.castling[Color.WHITE].king_side

    assert apply_move(pos, Move(sq("e8"), sq("e7"))).valid
    # Moving the rook back does not restore the right
    assert apply_move(pos, Move(sq("a2"), sq("a1"))).valid
    assert not pos.castling[Color.WHITE].queen_side
    assert pos.castling[Color.WHITE].king_side


def test_capturing_rook_on_its_corner_revokes_victims_right() -> None:
    pos = Position.from_rows(rows_with(*[EMPTY] * 6))
    res = apply_move(pos, Move(sq("h1"), sq("h8")))
    assert res.valid
    assert res.captured is not None and res.captured.type is PieceType.ROOK
    assert not pos.castling[Color.BLACK].king_side
    assert pos.castling[Color.BLACK].queen_side
    assert not pos.castling[Color.WHITE].king_side


def test_moved_rook_cannot_castle_even_with_flag() -> None:
    snapshot = Position.from_rows(rows_with(*[EMPTY] * 6)).to_snapshot()
    snapshot["board"][7][7]["has_moved"] = True
    pos = Position.from_snapshot(snapshot)
    # Rights are sanitized against the placement on load
    assert not pos.castling[Color.WHITE].king_side
    assert "g1" not in king_targets(pos)
