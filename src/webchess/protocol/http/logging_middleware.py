from __future__ import annotations

import logging
import re
import time
import uuid
from typing import Any, Callable, Dict

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request


logger = logging.getLogger(__name__)

REQUEST_ID_HEADER = "x-request-id"

_GAME_PATH = re.compile(r"^/api/games/(?P<game_id>[^/]+)")


class RequestIDLoggingMiddleware(BaseHTTPMiddleware):
    """Tag each request with an ID and log it together with its game.

    A client-supplied ``x-request-id`` is reused so browser and server logs
    line up; requests under ``/api/games/{id}`` also carry ``game_id`` in the
    log records. 5xx responses are logged at WARNING.
    """

    async def dispatch(self, request: Request, call_next: Callable):
        started = time.perf_counter()
        request_id = request.headers.get(REQUEST_ID_HEADER) or uuid.uuid4().hex
        request.state.request_id = request_id

        fields: Dict[str, Any] = {"request_id": request_id}
        match = _GAME_PATH.match(request.url.path)
        if match:
            fields["game_id"] = match.group("game_id")
        logger.info("request", extra={**fields, "method": request.method, "path": request.url.path})

        response = await call_next(request)
        response.headers[REQUEST_ID_HEADER] = request_id

        elapsed_ms = int((time.perf_counter() - started) * 1000)
        level = logging.WARNING if response.status_code >= 500 else logging.INFO
        logger.log(
            level,
            "response",
            extra={**fields, "status_code": response.status_code, "duration_ms": elapsed_ms},
        )
        return response
