from __future__ import annotations

from typing import Iterable, Iterator, List, Optional, Sequence, Tuple

from .attacks import (
    BISHOP_DIRECTIONS,
    KING_OFFSETS,
    KNIGHT_OFFSETS,
    ROOK_DIRECTIONS,
    is_square_attacked,
)
from .move import Move, MoveKind
from .piece import PROMOTION_TYPES, Color, Piece, PieceType, Square
from .position import Position


QUEEN_DIRECTIONS = ROOK_DIRECTIONS + BISHOP_DIRECTIONS


def pseudo_legal_moves(position: Position, square: Tuple[int, int]) -> List[Move]:
    """Return moves that follow the piece's movement rules from ``square``.

    Moves may still leave the mover's own king in check, except king steps
    which are already screened against attacked squares.
    """
    piece = position.piece_at(square)
    if piece is None:
        return []
    sq = Square(*square)
    kind = piece.type
    if kind is PieceType.PAWN:
        return _pawn_moves(position, sq, piece.color)
    if kind is PieceType.KNIGHT:
        return _step_moves(position, sq, piece.color, KNIGHT_OFFSETS)
    if kind is PieceType.BISHOP:
        return _slide_moves(position, sq, piece.color, BISHOP_DIRECTIONS)
    if kind is PieceType.ROOK:
        return _slide_moves(position, sq, piece.color, ROOK_DIRECTIONS)
    if kind is PieceType.QUEEN:
        return _slide_moves(position, sq, piece.color, QUEEN_DIRECTIONS)
    if kind is PieceType.KING:
        return _king_moves(position, sq, piece)
    raise ValueError(f"unknown piece type: {kind!r}")


def legal_moves(position: Position, square: Tuple[int, int]) -> List[Move]:
    """Return the strictly legal moves of the piece on ``square``.

    Purely advisory: the position is never mutated.
    """
    piece = position.piece_at(square)
    if piece is None:
        return []
    return [m for m in pseudo_legal_moves(position, square) if leaves_king_safe(position, m, piece)]


def iter_legal_moves(position: Position, color: Optional[Color] = None) -> Iterator[Move]:
    """Yield legal moves for ``color`` (default: side to move) in board order."""
    side = position.side_to_move if color is None else color
    for sq, piece in list(position.pieces(side)):
        for m in pseudo_legal_moves(position, sq):
            if leaves_king_safe(position, m, piece):
                yield m


def all_legal_moves(position: Position, color: Optional[Color] = None) -> List[Move]:
    return list(iter_legal_moves(position, color))


def has_legal_move(position: Position, color: Optional[Color] = None) -> bool:
    return next(iter_legal_moves(position, color), None) is not None


def expand_promotions(moves: Iterable[Move]) -> List[Move]:
    """Split promotion moves into one move per promotion piece (Q, R, B, N)."""
    out: List[Move] = []
    for m in moves:
        if m.kind is MoveKind.PROMOTION and m.promotion is None:
            out.extend(m.with_promotion(t) for t in PROMOTION_TYPES)
        else:
            out.append(m)
    return out


def leaves_king_safe(position: Position, move: Move, piece: Piece) -> bool:
    """Simulate ``move`` on a copied board and report whether the king survives."""
    board = position.copy_board()
    fr, to = move.from_sq, move.to_sq
    board[to.row][to.col] = piece
    board[fr.row][fr.col] = None
    if move.kind is MoveKind.EN_PASSANT:
        board[fr.row][to.col] = None
    elif move.kind in (MoveKind.CASTLE_KINGSIDE, MoveKind.CASTLE_QUEENSIDE):
        rook_from, rook_to = castling_rook_squares(fr, move.kind)
        board[rook_to.row][rook_to.col] = board[rook_from.row][rook_from.col]
        board[rook_from.row][rook_from.col] = None
    king_sq = to if piece.type is PieceType.KING else position.king_positions[piece.color]
    return not is_square_attacked(board, king_sq, piece.color)


def castling_rook_squares(king_from: Square, kind: MoveKind) -> Tuple[Square, Square]:
    """Return (rook origin, rook destination) for a castling move."""
    row = king_from.row
    if kind is MoveKind.CASTLE_KINGSIDE:
        return Square(row, 7), Square(row, king_from.col + 1)
    return Square(row, 0), Square(row, king_from.col - 1)


# --- per-piece generators ---
def _pawn_moves(position: Position, sq: Square, color: Color) -> List[Move]:
    moves: List[Move] = []
    step = color.forward
    last_row = color.last_row

    one = sq.offset(step, 0)
    if one is not None and position.piece_at(one) is None:
        moves.append(Move(sq, one, MoveKind.PROMOTION if one.row == last_row else MoveKind.NORMAL))
        # Double push from the home rank
        if sq.row == color.pawn_row:
            two = sq.offset(2 * step, 0)
            if two is not None and position.piece_at(two) is None:
                moves.append(Move(sq, two, MoveKind.DOUBLE_PAWN_PUSH))

    for dc in (-1, 1):
        target = sq.offset(step, dc)
        if target is None:
            continue
        occupant = position.piece_at(target)
        if occupant is not None and occupant.color is not color:
            kind = MoveKind.PROMOTION if target.row == last_row else MoveKind.CAPTURE
            moves.append(Move(sq, target, kind))
        elif (
            occupant is None
            and position.en_passant == target
            and color is position.side_to_move
        ):
            moves.append(Move(sq, target, MoveKind.EN_PASSANT))
    return moves


def _step_moves(
    position: Position, sq: Square, color: Color, offsets: Sequence[Tuple[int, int]]
) -> List[Move]:
    moves: List[Move] = []
    for dr, dc in offsets:
        target = sq.offset(dr, dc)
        if target is None:
            continue
        occupant = position.piece_at(target)
        if occupant is None:
            moves.append(Move(sq, target, MoveKind.NORMAL))
        elif occupant.color is not color:
            moves.append(Move(sq, target, MoveKind.CAPTURE))
    return moves


def _slide_moves(
    position: Position, sq: Square, color: Color, directions: Sequence[Tuple[int, int]]
) -> List[Move]:
    moves: List[Move] = []
    for dr, dc in directions:
        r, c = sq.row + dr, sq.col + dc
        while 0 <= r < 8 and 0 <= c < 8:
            occupant = position.board[r][c]
            if occupant is None:
                moves.append(Move(sq, Square(r, c), MoveKind.NORMAL))
            else:
                if occupant.color is not color:
                    moves.append(Move(sq, Square(r, c), MoveKind.CAPTURE))
                break
            r += dr
            c += dc
    return moves


def _king_moves(position: Position, sq: Square, king: Piece) -> List[Move]:
    moves: List[Move] = []
    color = king.color
    for dr, dc in KING_OFFSETS:
        target = sq.offset(dr, dc)
        if target is None:
            continue
        occupant = position.piece_at(target)
        if occupant is not None and occupant.color is color:
            continue
        # Never step onto an attacked square
        if is_square_attacked(position.board, target, color):
            continue
        moves.append(Move(sq, target, MoveKind.NORMAL if occupant is None else MoveKind.CAPTURE))
    moves.extend(_castling_moves(position, sq, king))
    return moves


def _castling_moves(position: Position, sq: Square, king: Piece) -> List[Move]:
    color = king.color
    if king.has_moved or sq.row != color.home_row:
        return []
    rights = position.castling[color]
    if not (rights.king_side or rights.queen_side):
        return []
    if is_square_attacked(position.board, sq, color):
        return []

    moves: List[Move] = []
    for enabled, rook_col, direction, kind in (
        (rights.king_side, 7, 1, MoveKind.CASTLE_KINGSIDE),
        (rights.queen_side, 0, -1, MoveKind.CASTLE_QUEENSIDE),
    ):
        if not enabled:
            continue
        dest_col = sq.col + 2 * direction
        if not (0 <= dest_col < 8):
            continue
        rook = position.board[sq.row][rook_col]
        if (
            rook is None
            or rook.type is not PieceType.ROOK
            or rook.color is not color
            or rook.has_moved
        ):
            continue
        lo, hi = sorted((sq.col, rook_col))
        if any(position.board[sq.row][c] is not None for c in range(lo + 1, hi)):
            continue
        # King transit squares, destination included, must be safe
        transit = (Square(sq.row, sq.col + direction), Square(sq.row, dest_col))
        if any(is_square_attacked(position.board, t, color) for t in transit):
            continue
        moves.append(Move(sq, Square(sq.row, dest_col), kind))
    return moves
