"""
ecomap_server.auth.middleware

HTTP authorization middleware.

Responsibilities:
- Resolve the route template and path parameters of the inbound request.
- Apply `Authorizer` to the route, verb and Authorization header.
- Attach the resulting `Principal` to request state, or answer through the
  configured rejection handlers.
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable, Mapping
from typing import Any

import structlog
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import JSONResponse, Response
from starlette.routing import Match
from starlette.status import HTTP_401_UNAUTHORIZED, HTTP_403_FORBIDDEN
from starlette.types import ASGIApp

from ecomap_server.auth.authz import Authorizer
from ecomap_server.domain.errors import DomainError, ForbiddenError, UnauthorizedError
from ecomap_server.observability.logging import get_logger

PRINCIPAL_STATE_KEY = "principal"

ErrorHandler = Callable[[Request, DomainError], Awaitable[Response] | Response]


async def default_unauthorized(_: Request, __: DomainError) -> Response:
    return JSONResponse(
        {"code": "unauthorized", "message": "unauthorized"}, status_code=HTTP_401_UNAUTHORIZED
    )


async def default_forbidden(_: Request, __: DomainError) -> Response:
    return JSONResponse(
        {"code": "forbidden", "message": "forbidden"}, status_code=HTTP_403_FORBIDDEN
    )


class AuthorizationMiddleware(BaseHTTPMiddleware):
    """
    Start -> role requirement -> (public: forward) | (bearer token -> parse -> roles ->
    ownership -> forward | reject).
    """

    def __init__(
        self,
        app: ASGIApp,
        *,
        authorizer: Authorizer,
        unauthorized_handler: ErrorHandler | None = None,
        forbidden_handler: ErrorHandler | None = None,
        log: Any | None = None,
    ) -> None:
        super().__init__(app)
        self._authorizer = authorizer
        self._unauthorized = unauthorized_handler or default_unauthorized
        self._forbidden = forbidden_handler or default_forbidden
        self._log = log or get_logger(__name__)

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        resolved = resolve_route(request)
        if resolved is None:
            # Unknown path: the router answers 404/405.
            return await call_next(request)

        template, path_params = resolved
        method = "GET" if request.method == "HEAD" else request.method

        try:
            principal = self._authorizer.authorize(
                template=template,
                method=method,
                authorization=request.headers.get("authorization"),
                path_params=path_params,
            )
        except UnauthorizedError as e:
            self._log.info("authz: request unauthorized", route=template, error=str(e))
            return await _respond(self._unauthorized, request, e)
        except ForbiddenError as e:
            self._log.info("authz: request forbidden", route=template, error=str(e))
            return await _respond(self._forbidden, request, e)

        if principal is not None:
            setattr(request.state, PRINCIPAL_STATE_KEY, principal)
            structlog.contextvars.bind_contextvars(subject=principal.subject)

        return await call_next(request)


def resolve_route(request: Request) -> tuple[str, Mapping[str, str]] | None:
    """
    Return (route template, path params) of the first route fully matching the request.
    """

    app = request.scope.get("app")
    router = getattr(app, "router", None)
    if router is None:
        return None

    for route in router.routes:
        match, child_scope = route.matches(request.scope)
        if match == Match.FULL:
            params = child_scope.get("path_params", {})
            return route.path, {k: str(v) for k, v in params.items()}
    return None


async def _respond(handler: ErrorHandler, request: Request, err: DomainError) -> Response:
    result = handler(request, err)
    if isinstance(result, Response):
        return result
    return await result


# --- Module Notes -----------------------------------------------------------
# Routers read the identity through `auth.deps.get_principal`, never from request state directly.
