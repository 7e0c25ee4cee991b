"""Evaluation heuristics and related utilities.

Pure, deterministic, and side-effect free. Scores are in pawn units from the
point of view of the requested color.
"""

from __future__ import annotations

from typing import Final, Tuple

from webchess.engine.movegen import all_legal_moves
from webchess.engine.piece import Color, Piece, PieceType
from webchess.engine.position import Board, Position
from webchess.engine.status import in_check


PIECE_VALUES: Final = {
    PieceType.PAWN: 1,
    PieceType.KNIGHT: 3,
    PieceType.BISHOP: 3,
    PieceType.ROOK: 5,
    PieceType.QUEEN: 9,
    PieceType.KING: 100,
}

# Heuristic weights (pawn units)
MOBILITY_WEIGHT: Final = 0.1
CHECK_BONUS: Final = 0.5
MATE_BONUS: Final = 100
PAWN_ADVANCE: Final = 0.05
CENTER_PAWN_BONUS: Final = 0.1
DOUBLED_PAWN_PENALTY: Final = 0.2
KNIGHT_CENTER: Final = 0.05
KNIGHT_FORWARD_BONUS: Final = 0.1
BISHOP_DIAGONAL: Final = 0.02
BISHOP_OPEN_BONUS: Final = 0.2
ROOK_OPEN_FILE_BONUS: Final = 0.3
ROOK_SEVENTH_BONUS: Final = 0.3
QUEEN_EARLY_PENALTY: Final = 0.3
QUEEN_SEVENTH_BONUS: Final = 0.2
KING_CASTLED_BONUS: Final = 0.5
KING_UNCASTLED_PENALTY: Final = 0.3
KING_EXPOSED_PENALTY: Final = 0.5
KING_CENTER: Final = 0.05

KNIGHT_HOME_COLS: Final = (1, 6)
BISHOP_HOME_COLS: Final = (2, 5)
KING_HOME_COL: Final = 4
# Castled king squares: home rank, next to either corner
CASTLED_KING_COLS: Final = (0 + 1, 7 - 1)

_DIAGONALS: Final = ((-1, -1), (-1, 1), (1, -1), (1, 1))


def is_early_game(board: Board) -> bool:
    """True while fewer than 4 of the 8 home knight/bishop squares are vacated."""
    developed = 0
    for home_row in (Color.WHITE.home_row, Color.BLACK.home_row):
        for cols, kind in ((KNIGHT_HOME_COLS, PieceType.KNIGHT), (BISHOP_HOME_COLS, PieceType.BISHOP)):
            for col in cols:
                piece = board[home_row][col]
                if piece is None or piece.type is not kind:
                    developed += 1
    return developed < 4


def is_end_game(board: Board) -> bool:
    """True with at most 6 officers left, or at most 10 and no queens."""
    officers = 0
    has_queens = False
    for row in board:
        for piece in row:
            if piece is not None and piece.type not in (PieceType.KING, PieceType.PAWN):
                officers += 1
                if piece.type is PieceType.QUEEN:
                    has_queens = True
    return officers <= 6 or (officers <= 10 and not has_queens)


def _centrality(row: int, col: int) -> float:
    return 4 - abs(col - 3.5) - abs(row - 3.5)


def _open_diagonal_squares(board: Board, row: int, col: int) -> int:
    count = 0
    for dr, dc in _DIAGONALS:
        r, c = row + dr, col + dc
        while 0 <= r < 8 and 0 <= c < 8 and board[r][c] is None:
            count += 1
            r += dr
            c += dc
    return count


def _file_has_pawn(board: Board, col: int, skip_row: int) -> bool:
    return any(
        board[r][col] is not None and board[r][col].type is PieceType.PAWN
        for r in range(8)
        if r != skip_row
    )


def position_bonus(board: Board, piece: Piece, row: int, col: int, phase: Tuple[bool, bool]) -> float:
    """Positional bonus for ``piece`` on ``(row, col)`` from its owner's view.

    ``phase`` is ``(early_game, end_game)`` for the board being evaluated.
    """
    early, end = phase
    color = piece.color
    # Rows counted from the piece's own side: 7 is home, 1 is the 7th rank
    rel = color.relative_row(row)
    bonus = 0.0
    kind = piece.type

    if kind is PieceType.PAWN:
        bonus += PAWN_ADVANCE * (7 - rel)
        if col in (3, 4) and rel > 4:
            bonus += CENTER_PAWN_BONUS
        doubled = sum(
            1
            for r in range(8)
            if r != row
            and board[r][col] is not None
            and board[r][col].type is PieceType.PAWN
            and board[r][col].color is color
        )
        bonus -= DOUBLED_PAWN_PENALTY * doubled
    elif kind is PieceType.KNIGHT:
        bonus += KNIGHT_CENTER * _centrality(rel, col)
        if rel < 4:
            bonus += KNIGHT_FORWARD_BONUS
    elif kind is PieceType.BISHOP:
        open_squares = _open_diagonal_squares(board, row, col)
        bonus += BISHOP_DIAGONAL * open_squares
        if open_squares > 6:
            bonus += BISHOP_OPEN_BONUS
    elif kind is PieceType.ROOK:
        if not _file_has_pawn(board, col, row):
            bonus += ROOK_OPEN_FILE_BONUS
        if rel == 1:
            bonus += ROOK_SEVENTH_BONUS
    elif kind is PieceType.QUEEN:
        if early and (rel > 5 or (2 < col < 5 and rel > 4)):
            bonus -= QUEEN_EARLY_PENALTY
        if rel == 1:
            bonus += QUEEN_SEVENTH_BONUS
    elif kind is PieceType.KING:
        if not end:
            on_home = row == color.home_row
            if on_home and col in CASTLED_KING_COLS:
                bonus += KING_CASTLED_BONUS
            elif on_home and col == KING_HOME_COL:
                bonus -= KING_UNCASTLED_PENALTY
            else:
                bonus -= KING_EXPOSED_PENALTY
        else:
            bonus += KING_CENTER * _centrality(rel, col)
    return bonus


def evaluate(position: Position, color: Color) -> float:
    """Static evaluation of ``position`` from ``color``'s point of view.

    Combines material, per-piece positional bonuses, mobility and check /
    checkmate terms.
    """
    board = position.board
    phase = (is_early_game(board), is_end_game(board))
    score = 0.0

    for (row, col), piece in position.pieces():
        value = PIECE_VALUES[piece.type] + position_bonus(board, piece, row, col, phase)
        if piece.color is color:
            score += value
        else:
            score -= value

    opponent = color.opponent
    my_moves = len(all_legal_moves(position, color))
    their_moves = len(all_legal_moves(position, opponent))
    score += MOBILITY_WEIGHT * (my_moves - their_moves)

    if in_check(position, opponent):
        score += CHECK_BONUS
        if their_moves == 0:
            score += MATE_BONUS
    if in_check(position, color):
        score -= CHECK_BONUS
        if my_moves == 0:
            score -= MATE_BONUS
    return score
