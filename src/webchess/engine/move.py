from __future__ import annotations

from dataclasses import dataclass, replace
from enum import Enum
from typing import Any, Dict, Optional, Tuple

from .piece import (
    CHAR_TO_TYPE,
    PROMOTION_TYPES,
    TYPE_TO_CHAR,
    CastlingRights,
    Color,
    Piece,
    PieceType,
    Square,
)


class MoveKind(str, Enum):
    NORMAL = "normal"
    DOUBLE_PAWN_PUSH = "double_pawn_push"
    CAPTURE = "capture"
    EN_PASSANT = "en_passant"
    CASTLE_KINGSIDE = "castle_kingside"
    CASTLE_QUEENSIDE = "castle_queenside"
    PROMOTION = "promotion"


class CastlingSide(str, Enum):
    KINGSIDE = "kingside"
    QUEENSIDE = "queenside"


@dataclass(frozen=True)
class Move:
    """Engine move value.

    Attributes:
        from_sq (Square): Origin square.
        to_sq (Square): Destination square.
        kind (MoveKind): Classification produced by the move generator.
        promotion (Optional[PieceType]): Piece to promote to, for callers that
            play a promotion in one step. Interactive callers leave it unset
            and complete the promotion separately.
    """

    from_sq: Square
    to_sq: Square
    kind: MoveKind = MoveKind.NORMAL
    promotion: Optional[PieceType] = None

    def with_promotion(self, piece_type: PieceType) -> "Move":
        return replace(self, promotion=piece_type)

    def to_uci(self) -> str:
        """Serialize the move into long algebraic form (``"e2e4"``, ``"e7e8q"``)."""
        promo = TYPE_TO_CHAR[self.promotion] if self.promotion else ""
        return square_to_str(self.from_sq) + square_to_str(self.to_sq) + promo


@dataclass(frozen=True)
class MoveRecord:
    """History entry for an applied move.

    Holds what undo needs (the moved and captured pieces as they were, and the
    castling/en-passant/clock state from before the move) and what notation
    needs (check flags, castling side, en-passant flag, promotion choice).
    """

    piece: Piece
    from_sq: Square
    to_sq: Square
    kind: MoveKind
    captured: Optional[Piece] = None
    captured_sq: Optional[Square] = None
    is_check: bool = False
    is_checkmate: bool = False
    promotion: Optional[PieceType] = None
    castling_side: Optional[CastlingSide] = None
    en_passant: bool = False
    prev_castling: Tuple[CastlingRights, CastlingRights] = (CastlingRights(), CastlingRights())
    prev_en_passant: Optional[Square] = None
    prev_halfmove_clock: int = 0
    prev_fullmove_number: int = 1

    @property
    def color(self) -> Color:
        return self.piece.color

    def to_uci(self) -> str:
        promo = TYPE_TO_CHAR[self.promotion] if self.promotion else ""
        return square_to_str(self.from_sq) + square_to_str(self.to_sq) + promo

    def to_dict(self) -> Dict[str, Any]:
        return {
            "piece": {"type": self.piece.type.value, "color": self.piece.color.value},
            "from": square_to_str(self.from_sq),
            "to": square_to_str(self.to_sq),
            "kind": self.kind.value,
            "captured": (
                {"type": self.captured.type.value, "color": self.captured.color.value}
                if self.captured
                else None
            ),
            "is_check": self.is_check,
            "is_checkmate": self.is_checkmate,
            "promotion": self.promotion.value if self.promotion else None,
            "castling_side": self.castling_side.value if self.castling_side else None,
            "en_passant": self.en_passant,
        }


def parse_uci(uci: str) -> Tuple[Square, Square, Optional[PieceType]]:
    """Parse a long algebraic move string.

    Args:
        uci (str): Move such as ``"e2e4"`` or ``"e7e8q"``.

    Returns:
        Tuple[Square, Square, Optional[PieceType]]: Origin, destination and
            optional promotion piece.

    Raises:
        ValueError: If the string has an invalid length, squares, or promotion
            piece.
    """
    if len(uci) not in (4, 5):
        raise ValueError(f"invalid move length: {uci!r}")
    from_sq = str_to_square(uci[0:2])
    to_sq = str_to_square(uci[2:4])
    promo: Optional[PieceType] = None
    if len(uci) == 5:
        promo = CHAR_TO_TYPE.get(uci[4].lower())
        if promo not in PROMOTION_TYPES:
            raise ValueError(f"invalid promotion piece: {uci[4]!r}")
    return from_sq, to_sq, promo


def str_to_square(s: str) -> Square:
    """Convert algebraic notation (``"e4"``) into a board square.

    Raises:
        ValueError: If ``s`` is not a valid square.
    """
    if len(s) != 2 or s[0] < "a" or s[0] > "h" or s[1] < "1" or s[1] > "8":
        raise ValueError(f"invalid square: {s!r}")
    col = ord(s[0]) - ord("a")
    row = 8 - int(s[1])
    return Square(row, col)


def square_to_str(sq: Tuple[int, int]) -> str:
    """Convert a board square into algebraic notation.

    Raises:
        ValueError: If the square lies outside the board.
    """
    row, col = sq
    if not (0 <= row < 8 and 0 <= col < 8):
        raise ValueError(f"invalid square: {sq!r}")
    return chr(ord("a") + col) + str(8 - row)
