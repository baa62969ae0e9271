"""
ecomap_server.auth.deps

FastAPI dependency functions for authentication.

Responsibilities:
- Expose the `Principal` attached by `AuthorizationMiddleware` as a typed dependency.
"""

from __future__ import annotations

from fastapi import Request

from ecomap_server.auth.middleware import PRINCIPAL_STATE_KEY
from ecomap_server.auth.models import Principal
from ecomap_server.domain.errors import UnauthorizedError


def get_principal(request: Request) -> Principal:
    principal = getattr(request.state, PRINCIPAL_STATE_KEY, None)
    # Routes declared public in the role map carry no principal.
    if not isinstance(principal, Principal):
        raise UnauthorizedError()
    return principal


# --- Module Notes -----------------------------------------------------------
# Role checks happen in the middleware; this dependency only hands the identity over so
# services can attribute changes to the signed-in subject.
