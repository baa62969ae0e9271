"""
ecomap_server.auth.authz

Role and ownership rule evaluation.

Responsibilities:
- Hold the static role requirement map and the ownership wildcards.
- Decide, for one request, whether it is public, rejected (401/403) or allowed with a `Principal`.

This module knows nothing about HTTP objects; `auth.middleware` feeds it the matched route
template, the verb, the Authorization header and the path parameters.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Protocol

from ecomap_server.auth.models import Principal, TokenClaims
from ecomap_server.domain.errors import (
    AuthorizationInvalidError,
    ForbiddenError,
    RolesInvalidError,
    UnauthorizedError,
)

BEARER_PREFIX = "Bearer "

# route template -> HTTP method -> roles allowed to call it (empty: public)
RoleMap = Mapping[str, Mapping[str, frozenset[str]]]


class TokenParser(Protocol):
    def parse_token(self, token: str) -> TokenClaims: ...


class RouteNotConfiguredError(ForbiddenError):
    code = "route_not_configured"
    message = "route not configured"


@dataclass(frozen=True, slots=True)
class AuthorizationRules:
    role_map: RoleMap
    # Path parameters whose value must equal the caller's subject.
    ownership_params: tuple[str, ...] = field(default_factory=tuple)
    # Role that bypasses ownership checks.
    admin_role: str | None = None

    def required_roles(self, template: str, method: str) -> frozenset[str] | None:
        methods = self.role_map.get(template)
        if methods is None:
            return None
        return methods.get(method.upper())


class Authorizer:
    def __init__(self, *, rules: AuthorizationRules, tokens: TokenParser) -> None:
        self._rules = rules
        self._tokens = tokens

    @property
    def rules(self) -> AuthorizationRules:
        return self._rules

    def authorize(
        self,
        *,
        template: str,
        method: str,
        authorization: str | None,
        path_params: Mapping[str, str],
    ) -> Principal | None:
        """
        Return None for public routes, the caller's Principal when allowed.

        Raises UnauthorizedError for a missing/malformed/invalid token and ForbiddenError
        (RolesInvalidError, AuthorizationInvalidError, RouteNotConfiguredError) otherwise.
        """

        required = self._rules.required_roles(template, method)
        if required is None:
            # Matched routes must be listed; unlisted ones are denied.
            raise RouteNotConfiguredError()
        if not required:
            return None

        token = _bearer_token(authorization)
        claims = self._tokens.parse_token(token)
        principal = claims.principal()

        if not principal.roles & required:
            raise RolesInvalidError()

        if self._rules.admin_role is not None and principal.has_role(self._rules.admin_role):
            return principal

        owner: str | None = None
        for name in self._rules.ownership_params:
            value = path_params.get(name)
            if value:
                owner = value

        if owner is not None and owner != principal.subject:
            raise AuthorizationInvalidError()

        return principal


def _bearer_token(authorization: str | None) -> str:
    if not authorization or not authorization.startswith(BEARER_PREFIX):
        raise UnauthorizedError("missing bearer token")
    token = authorization[len(BEARER_PREFIX) :].strip()
    if not token:
        raise UnauthorizedError("missing bearer token")
    return token


# --- Module Notes -----------------------------------------------------------
# The rules are built once at startup (see `api.authz_rules`) and never mutated.
