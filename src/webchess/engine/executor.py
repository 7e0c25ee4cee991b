from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Optional, Tuple

from .errors import MoveErrorKind
from .move import CastlingSide, Move, MoveKind, MoveRecord
from .movegen import castling_rook_squares, legal_moves
from .piece import PROMOTION_TYPES, CastlingRights, Color, Piece, PieceType, Square
from .position import Position
from .status import game_status


@dataclass(frozen=True)
class MoveResult:
    """Outcome of a move or promotion attempt.

    A rejected attempt has ``valid=False`` and a classified ``error``; the
    position is left untouched in that case.
    """

    valid: bool
    error: Optional[MoveErrorKind] = None
    move: Optional[Move] = None
    captured: Optional[Piece] = None
    promotion_pending: bool = False
    castling_side: Optional[CastlingSide] = None
    is_check: bool = False
    is_checkmate: bool = False
    is_stalemate: bool = False
    is_draw_by_repetition: bool = False
    is_draw_by_insufficient_material: bool = False
    is_draw_by_fifty_move_rule: bool = False

    @classmethod
    def rejected(cls, error: MoveErrorKind) -> "MoveResult":
        return cls(valid=False, error=error)

    @property
    def game_over(self) -> bool:
        return (
            self.is_checkmate
            or self.is_stalemate
            or self.is_draw_by_repetition
            or self.is_draw_by_insufficient_material
            or self.is_draw_by_fifty_move_rule
        )


def apply_move(position: Position, move: Move) -> MoveResult:
    """Apply ``move`` to ``position`` in place.

    This is the only legality gate for live positions: the destination must
    be among the legal moves of the piece on ``move.from_sq``. The kind carried
    by ``move`` is ignored and re-derived from the generator.

    A pawn reaching the last rank leaves the move pending; the side to move
    does not change until :func:`promote` completes it.
    """
    if position.pending_promotion is not None:
        return MoveResult.rejected(MoveErrorKind.PENDING_PROMOTION_REQUIRED)
    piece = position.piece_at(move.from_sq)
    if piece is None:
        return MoveResult.rejected(MoveErrorKind.NO_PIECE_AT_SOURCE)
    if piece.color is not position.side_to_move:
        return MoveResult.rejected(MoveErrorKind.WRONG_SIDE_TO_MOVE)
    resolved = next(
        (m for m in legal_moves(position, move.from_sq) if m.to_sq == move.to_sq), None
    )
    if resolved is None:
        return MoveResult.rejected(MoveErrorKind.ILLEGAL_DESTINATION)

    fr, to = resolved.from_sq, resolved.to_sq
    color = piece.color
    prev_castling = (position.castling[Color.WHITE], position.castling[Color.BLACK])
    prev_ep = position.en_passant

    # Captured piece bookkeeping; the en-passant victim sits beside the origin
    captured: Optional[Piece] = None
    captured_sq: Optional[Square] = None
    if resolved.kind is MoveKind.EN_PASSANT:
        captured_sq = Square(fr.row, to.col)
        captured = position.piece_at(captured_sq)
        position.set_piece(captured_sq, None)
    else:
        captured = position.piece_at(to)
        if captured is not None:
            captured_sq = to

    castling_side: Optional[CastlingSide] = None
    if resolved.kind in (MoveKind.CASTLE_KINGSIDE, MoveKind.CASTLE_QUEENSIDE):
        rook_from, rook_to = castling_rook_squares(fr, resolved.kind)
        rook = position.piece_at(rook_from)
        if rook is not None:
            position.set_piece(rook_to, rook.moved())
            position.set_piece(rook_from, None)
        castling_side = (
            CastlingSide.KINGSIDE
            if resolved.kind is MoveKind.CASTLE_KINGSIDE
            else CastlingSide.QUEENSIDE
        )

    position.en_passant = None
    if resolved.kind is MoveKind.DOUBLE_PAWN_PUSH:
        position.en_passant = Square((fr.row + to.row) // 2, fr.col)

    position.set_piece(to, piece.moved())
    position.set_piece(fr, None)
    _revoke_castling_rights(position, piece, fr, captured, captured_sq)

    position.move_history.append(
        MoveRecord(
            piece=piece,
            from_sq=fr,
            to_sq=to,
            kind=resolved.kind,
            captured=captured,
            captured_sq=captured_sq,
            castling_side=castling_side,
            en_passant=resolved.kind is MoveKind.EN_PASSANT,
            prev_castling=prev_castling,
            prev_en_passant=prev_ep,
            prev_halfmove_clock=position.halfmove_clock,
            prev_fullmove_number=position.fullmove_number,
        )
    )

    if piece.type is PieceType.PAWN and to.row == color.last_row:
        position.pending_promotion = to
        return MoveResult(
            valid=True,
            move=resolved,
            captured=captured,
            promotion_pending=True,
        )
    return _complete_move(position, resolved)


def promote(position: Position, square: Tuple[int, int], piece_type: PieceType) -> MoveResult:
    """Finish a pending promotion by replacing the pawn on ``square``.

    A position loaded while a promotion was pending has no history entry for
    the pawn move; the promotion then completes without one and the result
    carries no ``move``.
    """
    pending = position.pending_promotion
    if pending is None or pending != tuple(square):
        return MoveResult.rejected(MoveErrorKind.NO_PENDING_PROMOTION)
    if piece_type not in PROMOTION_TYPES:
        return MoveResult.rejected(MoveErrorKind.INVALID_PROMOTION_PIECE)
    pawn = position.piece_at(pending)
    if pawn is None or pawn.type is not PieceType.PAWN:
        return MoveResult.rejected(MoveErrorKind.NO_PENDING_PROMOTION)

    position.set_piece(pending, Piece(piece_type, pawn.color, True))
    position.pending_promotion = None
    history = position.move_history
    if not history or history[-1].to_sq != pending:
        position.halfmove_clock = 0
        return _finish_turn(position, None, pawn.color)
    record = history[-1]
    history[-1] = replace(record, promotion=piece_type)
    move = Move(record.from_sq, record.to_sq, record.kind, piece_type)
    return _complete_move(position, move)


def play(position: Position, move: Move) -> MoveResult:
    """Apply ``move`` and complete any promotion in one step.

    The promotion piece comes from ``move.promotion`` and defaults to a
    queen. Used by the search, perft and replay, which never pause for input.
    """
    result = apply_move(position, move)
    if result.promotion_pending:
        return promote(position, result.move.to_sq, move.promotion or PieceType.QUEEN)
    return result


def undo_move(position: Position) -> MoveRecord:
    """Revert the last applied move, including a still-pending promotion.

    Returns:
        MoveRecord: The record that was undone.

    Raises:
        ValueError: If there is no move to undo.
    """
    if not position.move_history:
        raise ValueError("no moves to undo")
    record = position.move_history.pop()
    # A pending promotion has not pushed its fingerprint yet
    if position.pending_promotion is None:
        position.position_history.pop()
    position.pending_promotion = None

    fr, to = record.from_sq, record.to_sq
    position.set_piece(to, None)
    position.set_piece(fr, record.piece)
    if record.captured is not None and record.captured_sq is not None:
        position.set_piece(record.captured_sq, record.captured)
    if record.castling_side is not None:
        rook_from, rook_to = castling_rook_squares(fr, record.kind)
        rook = position.piece_at(rook_to)
        if rook is not None:
            position.set_piece(rook_from, Piece(rook.type, rook.color, False))
            position.set_piece(rook_to, None)

    position.castling = {Color.WHITE: record.prev_castling[0], Color.BLACK: record.prev_castling[1]}
    position.en_passant = record.prev_en_passant
    position.halfmove_clock = record.prev_halfmove_clock
    position.fullmove_number = record.prev_fullmove_number
    position.side_to_move = record.piece.color
    return record


def _complete_move(position: Position, move: Move) -> MoveResult:
    record = position.move_history[-1]
    if record.piece.type is PieceType.PAWN or record.captured is not None:
        position.halfmove_clock = 0
    else:
        position.halfmove_clock += 1
    result = _finish_turn(position, move, record.piece.color)
    position.move_history[-1] = replace(
        record, is_check=result.is_check, is_checkmate=result.is_checkmate
    )
    return replace(result, captured=record.captured, castling_side=record.castling_side)


def _finish_turn(position: Position, move: Optional[Move], mover: Color) -> MoveResult:
    position.side_to_move = mover.opponent
    position.position_history.append(position.fingerprint())
    status = game_status(position)
    if mover is Color.BLACK:
        position.fullmove_number += 1
    return MoveResult(
        valid=True,
        move=move,
        is_check=status.in_check,
        is_checkmate=status.checkmate,
        is_stalemate=status.stalemate,
        is_draw_by_repetition=status.draw_by_repetition,
        is_draw_by_insufficient_material=status.draw_by_insufficient_material,
        is_draw_by_fifty_move_rule=status.draw_by_fifty_move_rule,
    )


def _revoke_castling_rights(
    position: Position,
    piece: Piece,
    from_sq: Square,
    captured: Optional[Piece],
    captured_sq: Optional[Square],
) -> None:
    """Update castling rights based on king/rook moves and rook captures."""
    color = piece.color
    if piece.type is PieceType.KING:
        position.castling[color] = CastlingRights(False, False)
    elif piece.type is PieceType.ROOK and from_sq.row == color.home_row:
        if from_sq.col == 0:
            position.castling[color] = position.castling[color].without(queen_side=True)
        elif from_sq.col == 7:
            position.castling[color] = position.castling[color].without(king_side=True)
    # Rook captured on its original square
    if captured is not None and captured.type is PieceType.ROOK and captured_sq is not None:
        victim = captured.color
        if captured_sq.row == victim.home_row:
            if captured_sq.col == 0:
                position.castling[victim] = position.castling[victim].without(queen_side=True)
            elif captured_sq.col == 7:
                position.castling[victim] = position.castling[victim].without(king_side=True)
