from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional, Tuple, Union

from .errors import MoveErrorKind
from .executor import MoveResult, apply_move, play, promote, undo_move
from .move import Move, MoveKind, MoveRecord
from .movegen import all_legal_moves, legal_moves
from .piece import Color, Piece, PieceType, Square
from .position import Position
from .status import GameStatus, game_status, in_check
from ..search.service import SearchService


logger = logging.getLogger(__name__)

DEFAULT_SEARCH_DEPTH = 3


@dataclass
class Game:
    """Live game wrapper around a position.

    Responsibility: own the live position, gate every mutation through the
    move executor, and expose history, status and hints to callers.
    """

    position: Position
    search_depth: int = DEFAULT_SEARCH_DEPTH
    _initial: Dict[str, Any] = field(default_factory=dict, repr=False)

    def __post_init__(self) -> None:
        if not self._initial:
            self._initial = self.position.to_snapshot()

    @classmethod
    def new(cls, search_depth: int = DEFAULT_SEARCH_DEPTH) -> "Game":
        return cls(position=Position.startpos(), search_depth=search_depth)

    @classmethod
    def from_snapshot(cls, data: Mapping[str, Any]) -> "Game":
        return cls(position=Position.from_snapshot(data))

    def reset(self) -> None:
        self.position = Position.startpos()
        self._initial = self.position.to_snapshot()

    # --- moves ---
    def legal_moves(self, square: Tuple[int, int]) -> List[Move]:
        return legal_moves(self.position, square)

    def all_legal_moves(self) -> List[Move]:
        return all_legal_moves(self.position)

    def attempt_move(self, from_sq: Tuple[int, int], to_sq: Tuple[int, int]) -> MoveResult:
        result = apply_move(self.position, Move(Square(*from_sq), Square(*to_sq)))
        if not result.valid:
            logger.debug("move rejected", extra={"from": from_sq, "to": to_sq, "error": result.error})
        return result

    def promote(self, square: Tuple[int, int], piece_type: Union[PieceType, str]) -> MoveResult:
        try:
            kind = PieceType(piece_type)
        except ValueError:
            return MoveResult.rejected(MoveErrorKind.INVALID_PROMOTION_PIECE)
        result = promote(self.position, Square(*square), kind)
        if result.valid and result.move is None:
            # Loaded mid-promotion: replay starts from the completed position
            self._initial = self.position.to_snapshot()
        return result

    def undo(self) -> MoveRecord:
        return undo_move(self.position)

    # --- state flags ---
    def status(self) -> GameStatus:
        return game_status(self.position)

    def in_check(self, color: Optional[Color] = None) -> bool:
        return in_check(self.position, color)

    def checkmate(self) -> bool:
        return self.status().checkmate

    def stalemate(self) -> bool:
        return self.status().stalemate

    def is_draw(self) -> bool:
        return self.status().draw

    @property
    def promotion_pending(self) -> Optional[Square]:
        return self.position.pending_promotion

    # --- history ---
    def move_history(self) -> List[MoveRecord]:
        return list(self.position.move_history)

    def last_move(self) -> Optional[MoveRecord]:
        return self.position.move_history[-1] if self.position.move_history else None

    def captured_pieces(self) -> List[Piece]:
        return [r.captured for r in self.position.move_history if r.captured is not None]

    def move_history_uci(self) -> List[str]:
        return [r.to_uci() for r in self.position.move_history]

    def position_at(self, index: int) -> Position:
        """Rebuild the position after history entry ``index`` (-1: the start).

        The live game is left untouched.
        """
        records = self.position.move_history
        if index < -1 or index >= len(records):
            raise ValueError(f"history index out of range: {index}")
        replayed = Position.from_snapshot(self._initial)
        for rec in records[: index + 1]:
            move = Move(rec.from_sq, rec.to_sq, rec.kind, rec.promotion)
            if rec.kind is MoveKind.PROMOTION and rec.promotion is None:
                result = apply_move(replayed, move)
            else:
                result = play(replayed, move)
            if not result.valid:
                raise ValueError(f"history entry {rec.to_uci()} no longer applies")
        return replayed

    # --- import / export ---
    def export_position(self) -> Dict[str, Any]:
        return self.position.to_snapshot()

    def export_history(self) -> List[MoveRecord]:
        return list(self.position.move_history)

    def import_position(self, data: Mapping[str, Any]) -> None:
        """Replace the live position with ``data``.

        The snapshot is fully validated first; on ``InvalidPositionError`` the
        current game is unchanged.
        """
        position = Position.from_snapshot(data)
        self.position = position
        self._initial = position.to_snapshot()
        logger.info("position loaded", extra={"side_to_move": position.side_to_move.value})

    # --- hints ---
    def best_move(self, color: Optional[Color] = None, depth: Optional[int] = None) -> Optional[Move]:
        side = self.position.side_to_move if color is None else color
        return SearchService().best_move(self.position, side, depth or self.search_depth)

    def play_best_move(self, depth: Optional[int] = None) -> Optional[MoveResult]:
        """Let the engine move for the side to move (computer opponent)."""
        if self.position.pending_promotion is not None:
            return MoveResult.rejected(MoveErrorKind.PENDING_PROMOTION_REQUIRED)
        move = self.best_move(depth=depth)
        if move is None:
            return None
        return play(self.position, move)
