"""
ecomap_server.api.errors

Translation of domain errors into HTTP responses.

Responsibilities:
- Map each error kind to its status code.
- Render every failure as `{"code", "message"}`; unexpected failures never expose detail.
- Provide the rejection handlers used by the authorization middleware.
"""

from __future__ import annotations

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from starlette.responses import JSONResponse, Response
from starlette.status import (
    HTTP_400_BAD_REQUEST,
    HTTP_401_UNAUTHORIZED,
    HTTP_403_FORBIDDEN,
    HTTP_404_NOT_FOUND,
    HTTP_409_CONFLICT,
    HTTP_500_INTERNAL_SERVER_ERROR,
)

from ecomap_server.domain.errors import (
    ConflictError,
    DomainError,
    ForbiddenError,
    InvariantViolatedError,
    NotFoundError,
    UnauthorizedError,
    UnexpectedError,
    ValidationFailedError,
)
from ecomap_server.observability.logging import get_logger

log = get_logger(__name__)

CODE_BAD_REQUEST = "bad_request"
CODE_INTERNAL_SERVER_ERROR = "internal_server_error"

# Checked in order; the first matching kind wins.
_STATUS_BY_KIND: tuple[tuple[type[DomainError], int], ...] = (
    (UnauthorizedError, HTTP_401_UNAUTHORIZED),
    (ForbiddenError, HTTP_403_FORBIDDEN),
    (ValidationFailedError, HTTP_400_BAD_REQUEST),
    (NotFoundError, HTTP_404_NOT_FOUND),
    (InvariantViolatedError, HTTP_409_CONFLICT),
    (ConflictError, HTTP_409_CONFLICT),
)


def status_for(err: DomainError) -> int:
    for kind, status in _STATUS_BY_KIND:
        if isinstance(err, kind):
            return status
    return HTTP_500_INTERNAL_SERVER_ERROR


def fault(status_code: int, code: str, message: str) -> JSONResponse:
    return JSONResponse({"code": code, "message": message}, status_code=status_code)


def domain_error_response(err: DomainError) -> JSONResponse:
    status = status_for(err)
    if status == HTTP_500_INTERNAL_SERVER_ERROR:
        return fault(status, CODE_INTERNAL_SERVER_ERROR, "internal server error")
    # str(err) is the message only; notes added by services are not rendered.
    return fault(status, err.code, str(err))


async def unauthorized_handler(_: Request, err: DomainError) -> Response:
    return domain_error_response(err)


async def forbidden_handler(_: Request, err: DomainError) -> Response:
    return domain_error_response(err)


def register_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(DomainError)
    async def _domain_error(_: Request, exc: DomainError) -> Response:
        if isinstance(exc, UnexpectedError):
            log.error("http: internal server error", error=str(exc))
        return domain_error_response(exc)

    @app.exception_handler(RequestValidationError)
    async def _request_invalid(_: Request, exc: RequestValidationError) -> Response:
        fields = sorted(
            {".".join(str(p) for p in e.get("loc", ())[1:]) for e in exc.errors()} - {""}
        )
        message = f"invalid request: {', '.join(fields)}" if fields else "invalid request"
        return fault(HTTP_400_BAD_REQUEST, CODE_BAD_REQUEST, message)


# --- Module Notes -----------------------------------------------------------
# Kinds, not concrete classes, drive the status code; new domain errors need no change here.
