from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

from fastapi import FastAPI, HTTPException
from fastapi.exceptions import RequestValidationError
from pydantic import BaseModel, Field

from .error import (
    api_error,
    exception_handler,
    http_exception_handler,
    request_validation_exception_handler,
)
from .logging_middleware import RequestIDLoggingMiddleware
from .session import InMemorySessionStore
from ...engine.errors import InvalidPositionError, MoveErrorKind
from ...engine.executor import MoveResult
from ...engine.game import DEFAULT_SEARCH_DEPTH, Game
from ...engine.move import parse_uci, square_to_str, str_to_square
from ...engine.piece import PieceType, Square
from ...search.service import SearchService


logger = logging.getLogger(__name__)

MAX_SEARCH_DEPTH = 5

# Conflicts with the game's current phase rather than with chess rules
_CONFLICT_ERRORS = {MoveErrorKind.PENDING_PROMOTION_REQUIRED, MoveErrorKind.NO_PENDING_PROMOTION}


class GameState(BaseModel):
    game_id: str
    board: list[str]
    side_to_move: str
    in_check: bool
    checkmate: bool
    stalemate: bool
    draw_by_repetition: bool
    draw_by_insufficient_material: bool
    draw_by_fifty_move_rule: bool
    game_over: bool
    promotion_pending: Optional[str]
    en_passant: Optional[str]
    halfmove_clock: int
    fullmove_number: int
    last_move: Optional[str]
    move_history: list[str]
    captured: list[str]


class CreateGameResponse(BaseModel):
    game_id: str
    state: GameState


class MoveRequest(BaseModel):
    move: str = Field(..., description="Move in long algebraic form, e.g. e2e4 or e7e8q")


class PromoteRequest(BaseModel):
    piece: str = Field(..., description="queen, rook, bishop or knight")


class SearchRequest(BaseModel):
    depth: Optional[int] = Field(default=None, ge=1, le=MAX_SEARCH_DEPTH)


class ImportRequest(BaseModel):
    position: Dict[str, Any]


class MoveOutcome(BaseModel):
    move: Optional[str]
    kind: Optional[str]
    captured: Optional[str]
    promotion_pending: bool
    castling_side: Optional[str]
    is_check: bool
    is_checkmate: bool
    is_stalemate: bool
    is_draw_by_repetition: bool
    is_draw_by_insufficient_material: bool
    is_draw_by_fifty_move_rule: bool


class MoveResponse(BaseModel):
    result: MoveOutcome
    state: GameState


class LegalMove(BaseModel):
    to: str
    kind: str


class LegalMovesResponse(BaseModel):
    square: str
    moves: List[LegalMove]


class HintResponse(BaseModel):
    best_move: Optional[str]
    score: Optional[float]
    nodes: int
    depth: int
    time_ms: int


class ExportResponse(BaseModel):
    position: Dict[str, Any]
    history: List[Dict[str, Any]]


class ReplayResponse(BaseModel):
    index: int
    board: list[str]
    position: Dict[str, Any]


def create_app(
    search_depth: int = DEFAULT_SEARCH_DEPTH, log_level: int = logging.INFO
) -> FastAPI:
    app = FastAPI(title="Web Chess API", version="0.1.0")

    logging.basicConfig(level=log_level)
    # basicConfig is a no-op once the module-level app configured logging
    logging.getLogger("webchess").setLevel(log_level)

    # Middleware & error handling
    app.add_middleware(RequestIDLoggingMiddleware)
    app.add_exception_handler(HTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, request_validation_exception_handler)
    app.add_exception_handler(Exception, exception_handler)

    store = InMemorySessionStore(search_depth=search_depth)

    @app.get("/healthz")
    async def healthz() -> Dict[str, str]:
        return {"status": "ok"}

    @app.post("/api/games", response_model=CreateGameResponse)
    async def create_game() -> CreateGameResponse:
        game_id = store.create()
        logger.info("game created", extra={"game_id": game_id})
        return CreateGameResponse(game_id=game_id, state=_state(game_id, _require_game(store, game_id)))

    @app.delete("/api/games/{game_id}")
    async def delete_game(game_id: str) -> Dict[str, bool]:
        if not store.delete(game_id):
            raise HTTPException(status_code=404, detail="game not found")
        return {"deleted": True}

    @app.get("/api/games/{game_id}/state", response_model=GameState)
    def get_state(game_id: str) -> GameState:
        game = _require_game(store, game_id)
        with store.lock_for(game_id):
            return _state(game_id, game)

    @app.get("/api/games/{game_id}/moves", response_model=LegalMovesResponse)
    def get_moves(game_id: str, square: str) -> LegalMovesResponse:
        game = _require_game(store, game_id)
        sq = _parse_square(square)
        with store.lock_for(game_id):
            legal = game.legal_moves(sq)
        moves = [LegalMove(to=square_to_str(m.to_sq), kind=m.kind.value) for m in legal]
        return LegalMovesResponse(square=square, moves=moves)

    @app.post("/api/games/{game_id}/move", response_model=MoveResponse)
    def make_move(game_id: str, req: MoveRequest) -> MoveResponse:
        game = _require_game(store, game_id)
        try:
            from_sq, to_sq, promotion = parse_uci(req.move)
        except ValueError as e:
            raise HTTPException(status_code=400, detail=str(e))
        with store.lock_for(game_id):
            if promotion is not None and not _can_promote(game, from_sq, to_sq):
                raise api_error(
                    400,
                    MoveErrorKind.ILLEGAL_DESTINATION.value,
                    "promotion piece given for a move that does not promote",
                )
            result = game.attempt_move(from_sq, to_sq)
            _raise_if_rejected(result)
            if result.promotion_pending and promotion is not None:
                result = game.promote(to_sq, promotion)
                _raise_if_rejected(result)
            return MoveResponse(result=_outcome(result), state=_state(game_id, game))

    @app.post("/api/games/{game_id}/promote", response_model=MoveResponse)
    def promote(game_id: str, req: PromoteRequest) -> MoveResponse:
        game = _require_game(store, game_id)
        with store.lock_for(game_id):
            square = game.promotion_pending
            if square is None:
                raise api_error(409, MoveErrorKind.NO_PENDING_PROMOTION.value, "no promotion pending")
            result = game.promote(square, req.piece.lower())
            _raise_if_rejected(result)
            return MoveResponse(result=_outcome(result), state=_state(game_id, game))

    @app.post("/api/games/{game_id}/undo", response_model=GameState)
    def undo(game_id: str) -> GameState:
        game = _require_game(store, game_id)
        with store.lock_for(game_id):
            try:
                game.undo()
            except ValueError as e:
                raise HTTPException(status_code=400, detail=str(e))
            return _state(game_id, game)

    @app.post("/api/games/{game_id}/hint", response_model=HintResponse)
    def hint(game_id: str, req: SearchRequest) -> HintResponse:
        # Sync handler: FastAPI runs it in a worker thread, keeping the loop free
        game = _require_game(store, game_id)
        depth = req.depth or game.search_depth
        with store.lock_for(game_id):
            res = SearchService().search(game.position, depth=depth)
        return HintResponse(
            best_move=res.best_move.to_uci() if res.best_move else None,
            score=res.score,
            nodes=res.nodes,
            depth=res.depth,
            time_ms=res.time_ms,
        )

    @app.post("/api/games/{game_id}/ai-move", response_model=MoveResponse)
    def ai_move(game_id: str, req: SearchRequest) -> MoveResponse:
        game = _require_game(store, game_id)
        with store.lock_for(game_id):
            result = game.play_best_move(depth=req.depth)
            if result is None:
                raise api_error(409, "game_over", "no legal moves for the side to move")
            _raise_if_rejected(result)
            return MoveResponse(result=_outcome(result), state=_state(game_id, game))

    @app.get("/api/games/{game_id}/export", response_model=ExportResponse)
    def export(game_id: str) -> ExportResponse:
        game = _require_game(store, game_id)
        with store.lock_for(game_id):
            return ExportResponse(
                position=game.export_position(),
                history=[r.to_dict() for r in game.export_history()],
            )

    @app.post("/api/games/{game_id}/import", response_model=GameState)
    def import_position(game_id: str, req: ImportRequest) -> GameState:
        game = _require_game(store, game_id)
        with store.lock_for(game_id):
            try:
                game.import_position(req.position)
            except InvalidPositionError as e:
                raise api_error(400, e.kind, str(e))
            return _state(game_id, game)

    @app.get("/api/games/{game_id}/replay/{index}", response_model=ReplayResponse)
    def replay(game_id: str, index: int) -> ReplayResponse:
        game = _require_game(store, game_id)
        with store.lock_for(game_id):
            try:
                position = game.position_at(index)
            except ValueError as e:
                raise HTTPException(status_code=400, detail=str(e))
        return ReplayResponse(index=index, board=position.to_rows(), position=position.to_snapshot())

    app.state.store = store
    return app


def _require_game(store: InMemorySessionStore, game_id: str) -> Game:
    game = store.get(game_id)
    if game is None:
        raise HTTPException(status_code=404, detail="game not found")
    return game


def _parse_square(square: str):
    try:
        return str_to_square(square)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))


def _can_promote(game: Game, from_sq: Square, to_sq: Square) -> bool:
    """Whether a promotion suffix fits the move.

    Moves that fail for other reasons pass through so the executor can
    classify them.
    """
    piece = game.position.piece_at(from_sq)
    if piece is None or piece.color is not game.position.side_to_move:
        return True
    if game.promotion_pending is not None:
        return True
    return piece.type is PieceType.PAWN and to_sq.row == piece.color.last_row


def _raise_if_rejected(result: MoveResult) -> None:
    if result.valid or result.error is None:
        return
    status_code = 409 if result.error in _CONFLICT_ERRORS else 400
    raise api_error(status_code, result.error.value, result.error.value.replace("_", " "))


def _outcome(result: MoveResult) -> MoveOutcome:
    return MoveOutcome(
        move=result.move.to_uci() if result.move else None,
        kind=result.move.kind.value if result.move else None,
        captured=result.captured.symbol if result.captured else None,
        promotion_pending=result.promotion_pending,
        castling_side=result.castling_side.value if result.castling_side else None,
        is_check=result.is_check,
        is_checkmate=result.is_checkmate,
        is_stalemate=result.is_stalemate,
        is_draw_by_repetition=result.is_draw_by_repetition,
        is_draw_by_insufficient_material=result.is_draw_by_insufficient_material,
        is_draw_by_fifty_move_rule=result.is_draw_by_fifty_move_rule,
    )


def _state(game_id: str, game: Game) -> GameState:
    position = game.position
    status = game.status()
    history = game.move_history_uci()
    pending = position.pending_promotion
    return GameState(
        game_id=game_id,
        board=position.to_rows(),
        side_to_move=position.side_to_move.value,
        in_check=status.in_check,
        checkmate=status.checkmate,
        stalemate=status.stalemate,
        draw_by_repetition=status.draw_by_repetition,
        draw_by_insufficient_material=status.draw_by_insufficient_material,
        draw_by_fifty_move_rule=status.draw_by_fifty_move_rule,
        game_over=status.game_over,
        promotion_pending=square_to_str(pending) if pending else None,
        en_passant=square_to_str(position.en_passant) if position.en_passant else None,
        halfmove_clock=position.halfmove_clock,
        fullmove_number=position.fullmove_number,
        last_move=history[-1] if history else None,
        move_history=history,
        captured=[p.symbol for p in game.captured_pieces()],
    )


# Default app for non-factory servers
app = create_app()
