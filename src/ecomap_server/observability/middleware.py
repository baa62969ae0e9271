"""
ecomap_server.observability.middleware

Request context and access logging.

Responsibilities:
- Accept the caller's `x-request-id` or mint one, and echo it on the response.
- Bind request id, method and path into structlog contextvars for every event logged
  while the request is served.
- Emit one `http.request` event per request with status and duration.
"""

from __future__ import annotations

import time
import uuid
from typing import Any

import structlog
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response
from starlette.types import ASGIApp

from ecomap_server.observability.logging import get_logger

REQUEST_ID_HEADER = "x-request-id"
_MAX_REQUEST_ID_LENGTH = 128


class RequestContextMiddleware(BaseHTTPMiddleware):
    def __init__(self, app: ASGIApp, *, log: Any | None = None) -> None:
        super().__init__(app)
        self._log = log or get_logger("ecomap_server.access")

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        request_id = _request_id(request)
        structlog.contextvars.clear_contextvars()
        structlog.contextvars.bind_contextvars(
            request_id=request_id,
            method=request.method,
            path=request.url.path,
        )

        started = time.perf_counter()
        try:
            response = await call_next(request)
        except Exception:
            self._log.error("http.request", status=500, duration_ms=_elapsed_ms(started))
            structlog.contextvars.clear_contextvars()
            raise

        self._log.info("http.request", status=response.status_code, duration_ms=_elapsed_ms(started))
        structlog.contextvars.clear_contextvars()
        response.headers[REQUEST_ID_HEADER] = request_id
        return response


def _request_id(request: Request) -> str:
    # Client-supplied ids are trusted for correlation only; oversized ones are replaced.
    supplied = request.headers.get(REQUEST_ID_HEADER, "").strip()
    if supplied and len(supplied) <= _MAX_REQUEST_ID_LENGTH:
        return supplied
    return str(uuid.uuid4())


def _elapsed_ms(started: float) -> float:
    return round((time.perf_counter() - started) * 1000, 2)


# --- Module Notes -----------------------------------------------------------
# Registered last so it wraps the authorization middleware: 401/403 rejections get a
# request id and an access log line like any other response.
