from __future__ import annotations

import argparse
import logging
from functools import partial
from typing import List, Optional

import uvicorn

from webchess.engine.game import DEFAULT_SEARCH_DEPTH
from webchess.protocol.http.app import create_app


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Serve the chess game HTTP API")
    parser.add_argument("--host", type=str, default="0.0.0.0", help="Bind address (default: 0.0.0.0)")
    parser.add_argument("--port", type=int, default=8000, help="Port (default: 8000)")
    parser.add_argument(
        "--depth",
        type=int,
        default=DEFAULT_SEARCH_DEPTH,
        help=f"Default search depth for hints and computer moves (default: {DEFAULT_SEARCH_DEPTH})",
    )
    parser.add_argument(
        "--log-level",
        type=str,
        default="info",
        choices=["debug", "info", "warning", "error"],
        help="Log level (default: info)",
    )
    return parser


def main(argv: Optional[List[str]] = None) -> None:
    args = build_parser().parse_args(argv)
    if args.depth < 1:
        raise SystemExit("--depth must be >= 1")
    level = getattr(logging, args.log_level.upper())
    factory = partial(create_app, search_depth=args.depth, log_level=level)
    uvicorn.run(factory, factory=True, host=args.host, port=args.port, log_level=args.log_level)


if __name__ == "__main__":
    main()
