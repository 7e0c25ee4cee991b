from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import NamedTuple, Optional


class Color(str, Enum):
    WHITE = "white"
    BLACK = "black"

    @property
    def opponent(self) -> "Color":
        return Color.BLACK if self is Color.WHITE else Color.WHITE

    @property
    def home_row(self) -> int:
        """Row holding this color's king and rooks at the start."""
        return 7 if self is Color.WHITE else 0

    @property
    def pawn_row(self) -> int:
        return 6 if self is Color.WHITE else 1

    @property
    def forward(self) -> int:
        """Row delta of a pawn step (white moves towards row 0)."""
        return -1 if self is Color.WHITE else 1

    @property
    def last_row(self) -> int:
        """Row on which this color's pawns promote."""
        return 0 if self is Color.WHITE else 7

    def relative_row(self, row: int) -> int:
        # Distance-style row as seen from white: 7 is home, 0 is the far rank.
        return row if self is Color.WHITE else 7 - row


class PieceType(str, Enum):
    PAWN = "pawn"
    KNIGHT = "knight"
    BISHOP = "bishop"
    ROOK = "rook"
    QUEEN = "queen"
    KING = "king"


PROMOTION_TYPES = (PieceType.QUEEN, PieceType.ROOK, PieceType.BISHOP, PieceType.KNIGHT)
MINOR_TYPES = (PieceType.KNIGHT, PieceType.BISHOP)

TYPE_TO_CHAR = {
    PieceType.PAWN: "p",
    PieceType.KNIGHT: "n",
    PieceType.BISHOP: "b",
    PieceType.ROOK: "r",
    PieceType.QUEEN: "q",
    PieceType.KING: "k",
}
CHAR_TO_TYPE = {v: k for k, v in TYPE_TO_CHAR.items()}


class Square(NamedTuple):
    """Board coordinate; row 0 is black's home rank (rank 8)."""

    row: int
    col: int

    def offset(self, dr: int, dc: int) -> Optional["Square"]:
        r, c = self.row + dr, self.col + dc
        if 0 <= r < 8 and 0 <= c < 8:
            return Square(r, c)
        return None


@dataclass(frozen=True)
class Piece:
    """Immutable piece value.

    Attributes:
        type (PieceType): Kind of piece.
        color (Color): Owner.
        has_moved (bool): Whether this exact piece has moved. Gates castling
            and double pawn pushes, so it must be set explicitly for pieces
            created by promotion or loaded from a snapshot.
    """

    type: PieceType
    color: Color
    has_moved: bool = False

    @property
    def symbol(self) -> str:
        ch = TYPE_TO_CHAR[self.type]
        return ch.upper() if self.color is Color.WHITE else ch

    def moved(self) -> "Piece":
        if self.has_moved:
            return self
        return Piece(self.type, self.color, True)

    @classmethod
    def from_symbol(cls, ch: str, has_moved: bool = False) -> "Piece":
        if ch.lower() not in CHAR_TO_TYPE:
            raise ValueError(f"invalid piece symbol: {ch!r}")
        color = Color.WHITE if ch.isupper() else Color.BLACK
        return cls(CHAR_TO_TYPE[ch.lower()], color, has_moved)


@dataclass(frozen=True)
class CastlingRights:
    king_side: bool = True
    queen_side: bool = True

    def without(self, *, king_side: bool = False, queen_side: bool = False) -> "CastlingRights":
        """Return rights with the named sides revoked."""
        return CastlingRights(
            self.king_side and not king_side,
            self.queen_side and not queen_side,
        )
