from __future__ import annotations

from typing import Dict, Iterator, List, Tuple, TYPE_CHECKING

from .piece import Color, PieceType

if TYPE_CHECKING:  # pragma: no cover
    from .position import Position


MASK64 = 0xFFFFFFFFFFFFFFFF
DEFAULT_SEED = 0x5EED_C4E5_5B0A_2D00


def _splitmix64(seed: int) -> Iterator[int]:
    """Endless deterministic stream of 64-bit keys (SplitMix64)."""
    state = seed & MASK64
    while True:
        state = (state + 0x9E3779B97F4A7C15) & MASK64
        z = (state ^ (state >> 30)) * 0xBF58476D1CE4E5B9 & MASK64
        z = (z ^ (z >> 27)) * 0x94D049BB133111EB & MASK64
        yield (z ^ (z >> 31)) & MASK64


class FingerprintKeys:
    """Random keys XOR-ed together to fingerprint a position.

    Attributes:
        placement: ``(color, piece type) -> 8x8 grid`` of keys, indexed
            ``[row][col]`` like the board itself.
        black_to_move: Key mixed in when black is to move.
        castling: ``color -> (king side key, queen side key)``.
        en_passant_col: One key per column of the en-passant target; its row
            is implied by the side to move.
    """

    placement: Dict[Tuple[Color, PieceType], List[List[int]]]
    black_to_move: int
    castling: Dict[Color, Tuple[int, int]]
    en_passant_col: List[int]

    def __init__(self, seed: int = DEFAULT_SEED) -> None:
        keys = _splitmix64(seed)
        self.placement = {
            (color, kind): [[next(keys) for _ in range(8)] for _ in range(8)]
            for color in Color
            for kind in PieceType
        }
        self.black_to_move = next(keys)
        self.castling = {color: (next(keys), next(keys)) for color in Color}
        self.en_passant_col = [next(keys) for _ in range(8)]


KEYS = FingerprintKeys()


def compute_fingerprint(position: "Position") -> int:
    """Compute the 64-bit repetition key of a position.

    Covers piece placement, castling rights, en-passant target and side to
    move. Has-moved flags and move counters are left out since they do not
    change the legal continuations.
    """
    h = 0
    for (row, col), piece in position.pieces():
        h ^= KEYS.placement[(piece.color, piece.type)][row][col]
    if position.side_to_move is Color.BLACK:
        h ^= KEYS.black_to_move
    for color in Color:
        rights = position.castling[color]
        king_key, queen_key = KEYS.castling[color]
        if rights.king_side:
            h ^= king_key
        if rights.queen_side:
            h ^= queen_key
    if position.en_passant is not None:
        h ^= KEYS.en_passant_col[position.en_passant.col]
    return h
