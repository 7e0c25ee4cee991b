from __future__ import annotations

from typing import Optional, Sequence, Tuple

from .piece import Color, Piece, PieceType


KNIGHT_OFFSETS = ((-2, -1), (-2, 1), (-1, -2), (-1, 2), (1, -2), (1, 2), (2, -1), (2, 1))
KING_OFFSETS = ((-1, -1), (-1, 0), (-1, 1), (0, -1), (0, 1), (1, -1), (1, 0), (1, 1))
ROOK_DIRECTIONS = ((-1, 0), (1, 0), (0, -1), (0, 1))
BISHOP_DIRECTIONS = ((-1, -1), (-1, 1), (1, -1), (1, 1))

BoardLike = Sequence[Sequence[Optional[Piece]]]


def is_square_attacked(board: BoardLike, square: Tuple[int, int], defender: Color) -> bool:
    """Return True if the opponent of ``defender`` attacks ``square`` on ``board``.

    Covers: pawns, knights, king, and slider rays for bishops/rooks/queens.
    The board may be any snapshot, not only the live position's grid.
    """
    row, col = square
    attacker = defender.opponent

    # Pawn attacks come from the side the attacking pawns advance from
    pawn_row = row - attacker.forward
    if 0 <= pawn_row < 8:
        for c in (col - 1, col + 1):
            if 0 <= c < 8:
                piece = board[pawn_row][c]
                if piece is not None and piece.color is attacker and piece.type is PieceType.PAWN:
                    return True

    # Knight attacks
    for dr, dc in KNIGHT_OFFSETS:
        r, c = row + dr, col + dc
        if 0 <= r < 8 and 0 <= c < 8:
            piece = board[r][c]
            if piece is not None and piece.color is attacker and piece.type is PieceType.KNIGHT:
                return True

    # King attacks
    for dr, dc in KING_OFFSETS:
        r, c = row + dr, col + dc
        if 0 <= r < 8 and 0 <= c < 8:
            piece = board[r][c]
            if piece is not None and piece.color is attacker and piece.type is PieceType.KING:
                return True

    # Rook-like directions
    if _ray_hits(board, row, col, ROOK_DIRECTIONS, attacker, (PieceType.ROOK, PieceType.QUEEN)):
        return True

    # Bishop-like directions
    return _ray_hits(
        board, row, col, BISHOP_DIRECTIONS, attacker, (PieceType.BISHOP, PieceType.QUEEN)
    )


def _ray_hits(
    board: BoardLike,
    row: int,
    col: int,
    directions: Sequence[Tuple[int, int]],
    attacker: Color,
    sliders: Tuple[PieceType, ...],
) -> bool:
    for dr, dc in directions:
        r, c = row + dr, col + dc
        while 0 <= r < 8 and 0 <= c < 8:
            piece = board[r][c]
            if piece is not None:
                if piece.color is attacker and piece.type in sliders:
                    return True
                break
            r += dr
            c += dc
    return False
