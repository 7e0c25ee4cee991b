"""Terminal-state classification: check, mate, stalemate and the draw rules."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from .attacks import is_square_attacked
from .movegen import has_legal_move
from .piece import Color, PieceType
from .position import Position


FIFTY_MOVE_HALFMOVES = 100
REPETITION_COUNT = 3


@dataclass(frozen=True)
class GameStatus:
    side_to_move: Color
    in_check: bool
    checkmate: bool
    stalemate: bool
    draw_by_repetition: bool
    draw_by_insufficient_material: bool
    draw_by_fifty_move_rule: bool

    @property
    def draw(self) -> bool:
        return (
            self.stalemate
            or self.draw_by_repetition
            or self.draw_by_insufficient_material
            or self.draw_by_fifty_move_rule
        )

    @property
    def game_over(self) -> bool:
        return self.checkmate or self.draw


def in_check(position: Position, color: Optional[Color] = None) -> bool:
    side = position.side_to_move if color is None else color
    return is_square_attacked(position.board, position.king_square(side), side)


def has_no_legal_moves(position: Position, color: Optional[Color] = None) -> bool:
    return not has_legal_move(position, color)


def is_checkmate(position: Position, color: Optional[Color] = None) -> bool:
    return in_check(position, color) and has_no_legal_moves(position, color)


def is_stalemate(position: Position, color: Optional[Color] = None) -> bool:
    return not in_check(position, color) and has_no_legal_moves(position, color)


def is_draw_by_repetition(position: Position) -> bool:
    current = position.fingerprint()
    return position.position_history.count(current) >= REPETITION_COUNT


def is_draw_by_fifty_move_rule(position: Position) -> bool:
    return position.halfmove_clock >= FIFTY_MOVE_HALFMOVES


def is_draw_by_insufficient_material(position: Position) -> bool:
    """Recognise only K v K, K+minor v K and K+NN v K.

    Other dead positions (for example K+B v K+B) are deliberately not
    classified as automatic draws.
    """
    pieces = [p for _, p in position.pieces()]
    if len(pieces) == 2:
        return True
    non_kings = [p for p in pieces if p.type is not PieceType.KING]
    if len(pieces) == 3:
        return non_kings[0].type in (PieceType.BISHOP, PieceType.KNIGHT)
    if len(pieces) == 4:
        colors = {p.color for p in non_kings}
        return len(colors) == 1 and all(p.type is PieceType.KNIGHT for p in non_kings)
    return False


def is_game_over(position: Position) -> bool:
    return (
        has_no_legal_moves(position)
        or is_draw_by_repetition(position)
        or is_draw_by_insufficient_material(position)
        or is_draw_by_fifty_move_rule(position)
    )


def game_status(position: Position) -> GameStatus:
    """Classify the position for the side to move."""
    check = in_check(position)
    stuck = has_no_legal_moves(position)
    return GameStatus(
        side_to_move=position.side_to_move,
        in_check=check,
        checkmate=check and stuck,
        stalemate=(not check) and stuck,
        draw_by_repetition=is_draw_by_repetition(position),
        draw_by_insufficient_material=is_draw_by_insufficient_material(position),
        draw_by_fifty_move_rule=is_draw_by_fifty_move_rule(position),
    )
