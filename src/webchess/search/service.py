from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Optional

from webchess.engine.executor import play
from webchess.engine.move import Move
from webchess.engine.movegen import all_legal_moves, expand_promotions
from webchess.engine.piece import Color
from webchess.engine.position import Position
from webchess.engine.status import in_check, is_game_over
from webchess.eval import evaluate


logger = logging.getLogger(__name__)

DEFAULT_DEPTH = 3
INF = float("inf")
MATE_SCORE = 1000


@dataclass
class SearchResult:
    best_move: Optional[Move]
    score: Optional[float]
    nodes: int
    depth: int
    time_ms: int


class SearchService:
    """Depth-limited negamax search with alpha-beta pruning.

    Every node works on its own clone of the position, so the caller's
    position is never touched. Moves are searched in generation order and
    promotions are tried once per promotion piece. There is no internal
    time limit; depth is the only bound.
    """

    def __init__(self) -> None:
        self.nodes = 0

    def search(
        self, position: Position, color: Optional[Color] = None, depth: int = DEFAULT_DEPTH
    ) -> SearchResult:
        if depth < 1:
            raise ValueError("depth must be >= 1")
        start = time.perf_counter()
        self.nodes = 0
        side = position.side_to_move if color is None else color

        best: Optional[Move] = None
        best_score = -INF
        root = self._root(position, side)
        if root is not None:
            for move in expand_promotions(all_legal_moves(root, side)):
                child = root.clone()
                play(child, move)
                score = -self.minimax(child, depth - 1, -INF, INF, side.opponent)
                # Strict comparison keeps the first of equally scored moves
                if score > best_score:
                    best_score = score
                    best = move

        time_ms = int((time.perf_counter() - start) * 1000)
        logger.debug(
            "search finished",
            extra={
                "depth": depth,
                "nodes": self.nodes,
                "time_ms": time_ms,
                "best_move": best.to_uci() if best else None,
            },
        )
        return SearchResult(
            best_move=best,
            score=best_score if best is not None else None,
            nodes=self.nodes,
            depth=depth,
            time_ms=time_ms,
        )

    def best_move(
        self, position: Position, color: Optional[Color] = None, max_depth: int = DEFAULT_DEPTH
    ) -> Optional[Move]:
        return self.search(position, color, max_depth).best_move

    def minimax(
        self, position: Position, depth: int, alpha: float, beta: float, color: Color
    ) -> float:
        """Negamax score of ``position`` for ``color`` (the side to move)."""
        self.nodes += 1
        if depth == 0 or is_game_over(position):
            return evaluate(position, color)

        moves = expand_promotions(all_legal_moves(position, color))
        if not moves:
            # Deeper remaining depth means a faster mate against us
            return -MATE_SCORE - depth if in_check(position, color) else 0

        best = -INF
        for move in moves:
            child = position.clone()
            play(child, move)
            score = -self.minimax(child, depth - 1, -beta, -alpha, color.opponent)
            best = max(best, score)
            alpha = max(alpha, score)
            if alpha >= beta:
                break  # Beta cutoff
        return best

    @staticmethod
    def _root(position: Position, side: Color) -> Optional[Position]:
        # Nothing to search while a promotion waits for its piece
        if position.pending_promotion is not None:
            return None
        root = position.clone()
        if root.side_to_move is not side:
            # Asked for the other side: search as if the turn passed to it
            root.side_to_move = side
            root.en_passant = None
        return root


def best_move(position: Position, color: Color, max_depth: int = DEFAULT_DEPTH) -> Optional[Move]:
    """Return the suggested move for ``color``, or ``None`` without legal moves."""
    return SearchService().best_move(position, color, max_depth)
