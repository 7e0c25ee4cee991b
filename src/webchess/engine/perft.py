from __future__ import annotations

from .executor import play
from .movegen import all_legal_moves, expand_promotions
from .position import Position


def perft(position: Position, depth: int) -> int:
    """Compute perft node count for ``position`` at ``depth``.

    Definition:
    - depth == 0 returns 1 (the current node).
    - depth > 0 returns the sum over all legal child positions' perft(depth-1),
      counting each promotion piece as its own child.

    Children are produced by cloning and playing through the move executor,
    so the count also exercises castling rights, en passant and promotion
    bookkeeping. Leaves at depth 1 are counted without being played.
    """
    if depth < 0:
        raise ValueError("depth must be >= 0")
    if depth == 0:
        return 1

    moves = expand_promotions(all_legal_moves(position))
    if depth == 1:
        return len(moves)

    nodes = 0
    for m in moves:
        child = position.clone()
        play(child, m)
        nodes += perft(child, depth - 1)
    return nodes
