from __future__ import annotations

from enum import Enum


class MoveErrorKind(str, Enum):
    """Classified reasons for a rejected move or promotion.

    Values are stable identifiers meant for clients to translate, not prose.
    """

    NO_PIECE_AT_SOURCE = "no_piece_at_source"
    WRONG_SIDE_TO_MOVE = "wrong_side_to_move"
    ILLEGAL_DESTINATION = "illegal_destination"
    PENDING_PROMOTION_REQUIRED = "pending_promotion_required"
    NO_PENDING_PROMOTION = "no_pending_promotion"
    INVALID_PROMOTION_PIECE = "invalid_promotion_piece"


INVALID_LOADED_POSITION = "invalid_loaded_position"


class InvalidPositionError(ValueError):
    """Raised when an externally supplied position is structurally invalid."""

    kind = INVALID_LOADED_POSITION
