#!/usr/bin/env python3
# ruff: noqa: E402
from __future__ import annotations

import argparse
import time
import os
import sys

# Allow running this script directly via `python scripts/perft.py`
# by adding `src/` to sys.path.
SRC_PATH = os.path.join(os.path.dirname(os.path.dirname(os.path.abspath(__file__))), "src")
if SRC_PATH not in sys.path:
    sys.path.insert(0, SRC_PATH)

from webchess.engine.perft import perft
from webchess.engine.piece import Color
from webchess.engine.position import START_ROWS, Position


def main() -> None:
    parser = argparse.ArgumentParser(description="Count leaf nodes of the move tree to a given depth")
    parser.add_argument(
        "--rows",
        type=str,
        default="/".join(START_ROWS),
        help="Board diagram, 8 rows joined by '/', rank 8 first (default: start position)",
    )
    parser.add_argument("--side", choices=["white", "black"], default="white", help="Side to move")
    parser.add_argument("--castling", type=str, default=None, help="Castling rights, e.g. KQkq or -")
    parser.add_argument("--ep", type=str, default=None, help="En passant target square, e.g. e3")
    parser.add_argument("--depth", type=int, default=3, help="Perft depth (default: 3)")
    args = parser.parse_args()

    position = Position.from_rows(
        args.rows.split("/"),
        side_to_move=Color(args.side),
        castling=args.castling,
        en_passant=args.ep,
    )
    start = time.perf_counter()
    nodes = perft(position, args.depth)
    dt = time.perf_counter() - start
    print(f"nodes={nodes} depth={args.depth} time_ms={int(dt*1000)} nps={int(nodes/max(dt,1e-9))}")


if __name__ == "__main__":
    main()
