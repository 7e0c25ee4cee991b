from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Iterator, List, Mapping, Optional, Sequence, Tuple

from .errors import InvalidPositionError
from .move import MoveRecord, square_to_str, str_to_square
from .piece import CastlingRights, Color, Piece, PieceType, Square
from .zobrist import compute_fingerprint


Board = List[List[Optional[Piece]]]

START_ROWS = (
    "rnbqkbnr",
    "pppppppp",
    "........",
    "........",
    "........",
    "........",
    "PPPPPPPP",
    "RNBQKBNR",
)

KING_START_COL = 4
ROOK_CORNERS = {"king_side": 7, "queen_side": 0}


def empty_board() -> Board:
    return [[None] * 8 for _ in range(8)]


@dataclass
class Position:
    """Full game state: placement plus the auxiliary rule state.

    Notes:
    - Squares are ``(row, col)``; row 0 is black's home rank.
    - Pieces and castling rights are immutable values, so ``clone()`` only
      needs to copy the containers.
    - ``position_history`` starts with the fingerprint of the initial
      position and gains one entry per completed move.
    """

    board: Board
    side_to_move: Color
    castling: Dict[Color, CastlingRights]
    en_passant: Optional[Square]
    halfmove_clock: int
    fullmove_number: int
    king_positions: Dict[Color, Square]
    position_history: List[int] = field(default_factory=list)
    move_history: List[MoveRecord] = field(default_factory=list, repr=False)
    pending_promotion: Optional[Square] = None

    # --- construction ---
    @classmethod
    def startpos(cls) -> "Position":
        """Create a position set up for a new game."""
        return cls.from_rows(START_ROWS)

    @classmethod
    def from_rows(
        cls,
        rows: Sequence[str],
        side_to_move: Color = Color.WHITE,
        castling: Optional[str] = None,
        en_passant: Optional[str] = None,
        halfmove_clock: int = 0,
        fullmove_number: int = 1,
    ) -> "Position":
        """Create a position from an eight-row diagram.

        Args:
            rows (Sequence[str]): Eight strings of eight characters, row 0
                (rank 8) first. ``.`` marks an empty square, letters follow the
                usual piece symbols (uppercase white).
            side_to_move (Color): Side to move.
            castling (Optional[str]): Subset of ``"KQkq"``; ``None`` grants
                every right the placement supports, ``"-"`` grants none.
            en_passant (Optional[str]): Target square such as ``"e3"``.
            halfmove_clock (int): Half-move clock.
            fullmove_number (int): Full-move number.

        Returns:
            Position: The position, with has-moved flags derived from home
                squares.

        Raises:
            InvalidPositionError: On malformed rows or an invalid position.
        """
        if len(rows) != 8 or any(len(r) != 8 for r in rows):
            raise InvalidPositionError("diagram must have 8 rows of 8 squares")
        board = empty_board()
        for row_idx, row in enumerate(rows):
            for col_idx, ch in enumerate(row):
                if ch == ".":
                    continue
                try:
                    piece = Piece.from_symbol(ch)
                except ValueError as e:
                    raise InvalidPositionError(str(e)) from e
                home = _is_home_square(piece, row_idx, col_idx)
                board[row_idx][col_idx] = Piece(piece.type, piece.color, not home)

        if castling is None:
            rights = {c: CastlingRights() for c in Color}
        else:
            flags = "" if castling == "-" else castling
            if any(ch not in "KQkq" for ch in flags):
                raise InvalidPositionError(f"invalid castling rights: {castling!r}")
            rights = {
                Color.WHITE: CastlingRights("K" in flags, "Q" in flags),
                Color.BLACK: CastlingRights("k" in flags, "q" in flags),
            }

        ep: Optional[Square] = None
        if en_passant is not None and en_passant != "-":
            try:
                ep = str_to_square(en_passant)
            except ValueError as e:
                raise InvalidPositionError("invalid en passant square") from e
        return cls._build(board, side_to_move, rights, ep, halfmove_clock, fullmove_number)

    @classmethod
    def from_snapshot(cls, data: Mapping[str, Any]) -> "Position":
        """Rebuild a position from :meth:`to_snapshot` output.

        Validation happens before anything is returned, so a failed load never
        produces a partially initialised position.

        Raises:
            InvalidPositionError: If the snapshot is structurally invalid.
        """
        try:
            raw_board = data["board"]
            if not isinstance(raw_board, (list, tuple)) or len(raw_board) != 8:
                raise InvalidPositionError("board must have 8 rows")
            board = empty_board()
            for row_idx, row in enumerate(raw_board):
                if not isinstance(row, (list, tuple)) or len(row) != 8:
                    raise InvalidPositionError("board rows must have 8 squares")
                for col_idx, cell in enumerate(row):
                    if cell is None:
                        continue
                    board[row_idx][col_idx] = Piece(
                        PieceType(cell["type"]),
                        Color(cell["color"]),
                        bool(cell.get("has_moved", False)),
                    )
            side = Color(data.get("side_to_move", "white"))
            raw_rights = data.get("castling") or {}
            rights = {}
            for color in Color:
                entry = raw_rights.get(color.value) or {}
                rights[color] = CastlingRights(
                    bool(entry.get("king_side", False)), bool(entry.get("queen_side", False))
                )
            ep_raw = data.get("en_passant")
            ep = str_to_square(ep_raw) if ep_raw else None
            halfmove = int(data.get("halfmove_clock", 0))
            fullmove = int(data.get("fullmove_number", 1))
            pending_raw = data.get("pending_promotion")
            pending = str_to_square(pending_raw) if pending_raw else None
        except InvalidPositionError:
            raise
        except (KeyError, TypeError, ValueError, AttributeError) as e:
            raise InvalidPositionError(f"malformed position snapshot: {e}") from e
        return cls._build(board, side, rights, ep, halfmove, fullmove, pending)

    @classmethod
    def _build(
        cls,
        board: Board,
        side_to_move: Color,
        castling: Dict[Color, CastlingRights],
        en_passant: Optional[Square],
        halfmove_clock: int,
        fullmove_number: int,
        pending_promotion: Optional[Square] = None,
    ) -> "Position":
        kings: Dict[Color, List[Square]] = {Color.WHITE: [], Color.BLACK: []}
        for row_idx, row in enumerate(board):
            for col_idx, piece in enumerate(row):
                if piece is not None and piece.type is PieceType.KING:
                    kings[piece.color].append(Square(row_idx, col_idx))
        for color, found in kings.items():
            if len(found) != 1:
                raise InvalidPositionError(
                    f"expected exactly one {color.value} king, found {len(found)}"
                )
        if halfmove_clock < 0 or fullmove_number < 1:
            raise InvalidPositionError("invalid move counters")
        if en_passant is not None:
            _check_en_passant(board, side_to_move, en_passant)
        _check_back_rank_pawns(board, side_to_move, pending_promotion)
        if pending_promotion is not None and en_passant is not None:
            raise InvalidPositionError("en passant target while a promotion is pending")

        rights = {c: _supported_rights(board, c, castling[c]) for c in Color}
        position = cls(
            board=board,
            side_to_move=side_to_move,
            castling=rights,
            en_passant=en_passant,
            halfmove_clock=halfmove_clock,
            fullmove_number=fullmove_number,
            king_positions={c: kings[c][0] for c in Color},
            pending_promotion=pending_promotion,
        )
        position.position_history.append(position.fingerprint())
        return position

    # --- queries ---
    def piece_at(self, square: Tuple[int, int]) -> Optional[Piece]:
        row, col = square
        if 0 <= row < 8 and 0 <= col < 8:
            return self.board[row][col]
        return None

    def set_piece(self, square: Tuple[int, int], piece: Optional[Piece]) -> None:
        row, col = square
        self.board[row][col] = piece
        if piece is not None and piece.type is PieceType.KING:
            self.king_positions[piece.color] = Square(row, col)

    def pieces(self, color: Optional[Color] = None) -> Iterator[Tuple[Square, Piece]]:
        """Yield occupied squares in row-major order, optionally for one color."""
        for row_idx, row in enumerate(self.board):
            for col_idx, piece in enumerate(row):
                if piece is not None and (color is None or piece.color is color):
                    yield Square(row_idx, col_idx), piece

    def king_square(self, color: Color) -> Square:
        return self.king_positions[color]

    def fingerprint(self) -> int:
        return compute_fingerprint(self)

    def copy_board(self) -> Board:
        return [row[:] for row in self.board]

    def clone(self) -> "Position":
        """Return an independent copy sharing no mutable state."""
        return Position(
            board=self.copy_board(),
            side_to_move=self.side_to_move,
            castling=dict(self.castling),
            en_passant=self.en_passant,
            halfmove_clock=self.halfmove_clock,
            fullmove_number=self.fullmove_number,
            king_positions=dict(self.king_positions),
            position_history=list(self.position_history),
            move_history=list(self.move_history),
            pending_promotion=self.pending_promotion,
        )

    # --- export ---
    def to_snapshot(self) -> Dict[str, Any]:
        """Serialize placement and rule state into plain JSON-friendly data."""
        return {
            "board": [
                [
                    None
                    if piece is None
                    else {
                        "type": piece.type.value,
                        "color": piece.color.value,
                        "has_moved": piece.has_moved,
                    }
                    for piece in row
                ]
                for row in self.board
            ],
            "side_to_move": self.side_to_move.value,
            "castling": {
                c.value: {
                    "king_side": self.castling[c].king_side,
                    "queen_side": self.castling[c].queen_side,
                }
                for c in Color
            },
            "en_passant": square_to_str(self.en_passant) if self.en_passant else None,
            "halfmove_clock": self.halfmove_clock,
            "fullmove_number": self.fullmove_number,
            "pending_promotion": (
                square_to_str(self.pending_promotion) if self.pending_promotion else None
            ),
        }

    def to_rows(self) -> List[str]:
        return ["".join(p.symbol if p else "." for p in row) for row in self.board]


def _is_home_square(piece: Piece, row: int, col: int) -> bool:
    color = piece.color
    if piece.type is PieceType.PAWN:
        return row == color.pawn_row
    if piece.type is PieceType.KING:
        return row == color.home_row and col == KING_START_COL
    if piece.type is PieceType.ROOK:
        return row == color.home_row and col in ROOK_CORNERS.values()
    return row == color.home_row


def _supported_rights(board: Board, color: Color, rights: CastlingRights) -> CastlingRights:
    # A right survives only if the king and that rook still stand unmoved at home.
    home = color.home_row
    king = board[home][KING_START_COL]
    if king is None or king.type is not PieceType.KING or king.color is not color or king.has_moved:
        return CastlingRights(False, False)

    def rook_ready(col: int) -> bool:
        rook = board[home][col]
        return (
            rook is not None
            and rook.type is PieceType.ROOK
            and rook.color is color
            and not rook.has_moved
        )

    return CastlingRights(
        rights.king_side and rook_ready(ROOK_CORNERS["king_side"]),
        rights.queen_side and rook_ready(ROOK_CORNERS["queen_side"]),
    )


def _check_en_passant(board: Board, side_to_move: Color, ep: Square) -> None:
    # Target sits behind a pawn of the side that just moved.
    mover = side_to_move.opponent
    expected_row = mover.pawn_row + mover.forward
    if ep.row != expected_row:
        raise InvalidPositionError("invalid en passant square rank")
    pawn = board[ep.row + mover.forward][ep.col]
    if pawn is None or pawn.type is not PieceType.PAWN or pawn.color is not mover:
        raise InvalidPositionError("en passant square without a pawn behind it")


def _check_back_rank_pawns(board: Board, side_to_move: Color, pending: Optional[Square]) -> None:
    # The only pawn allowed on rank 1 or 8 is one waiting for its promotion piece.
    if pending is not None:
        pawn = board[pending.row][pending.col]
        if (
            pawn is None
            or pawn.type is not PieceType.PAWN
            or pawn.color is not side_to_move
            or pending.row != side_to_move.last_row
        ):
            raise InvalidPositionError("pending promotion square without a promoting pawn")
    for row in (0, 7):
        for col in range(8):
            piece = board[row][col]
            if piece is not None and piece.type is PieceType.PAWN and (row, col) != pending:
                raise InvalidPositionError("pawn on the first or last rank")
