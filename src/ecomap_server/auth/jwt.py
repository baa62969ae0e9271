"""
ecomap_server.auth.jwt

JWT issuing and validation helpers.

Responsibilities:
- Issue HS256 tokens binding a subject and its roles to the issuer, an issue time and an expiry.
- Decode and validate tokens with strict claim requirements (iss/aud/exp/iat/sub/roles).

Note:
- There is no revocation list; a token stays valid until `exp`.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
from typing import Any

import jwt
from jwt import InvalidTokenError as JwtInvalidTokenError

from ecomap_server.auth.models import TokenClaims
from ecomap_server.domain.errors import InvalidTokenError


@dataclass(frozen=True, slots=True)
class JwtConfig:
    # Algorithm/issuer/audience are enforced during decoding.
    alg: str
    issuer: str
    audience: str
    secret: str
    ttl: timedelta = timedelta(hours=24)


def issue_token(
    *,
    cfg: JwtConfig,
    subject: str,
    roles: Iterable[str],
    now: datetime | None = None,
) -> str:
    issued_at = now or datetime.now(tz=UTC)
    payload: dict[str, Any] = {
        "iss": cfg.issuer,
        "aud": cfg.audience,
        "sub": subject,
        "roles": sorted(set(roles)),
        "iat": int(issued_at.timestamp()),
        "exp": int((issued_at + cfg.ttl).timestamp()),
    }
    return jwt.encode(payload, cfg.secret, algorithm=cfg.alg)


def decode_and_validate(*, cfg: JwtConfig, token: str) -> TokenClaims:
    try:
        # Signature, issuer, audience and expiry are checked by PyJWT.
        payload = jwt.decode(
            token,
            cfg.secret,
            algorithms=[cfg.alg],
            issuer=cfg.issuer,
            audience=cfg.audience,
            options={
                "require": ["exp", "iat", "iss", "aud", "sub"],
            },
        )
    except JwtInvalidTokenError as e:
        raise InvalidTokenError() from e

    subject = payload.get("sub")
    roles = payload.get("roles", [])
    if not isinstance(subject, str) or not subject:
        raise InvalidTokenError()
    if not isinstance(roles, list) or not all(isinstance(r, str) for r in roles):
        raise InvalidTokenError()

    return TokenClaims(
        subject=subject,
        roles=frozenset(roles),
        issued_at=datetime.fromtimestamp(payload["iat"], tz=UTC),
        expires_at=datetime.fromtimestamp(payload["exp"], tz=UTC),
    )


# --- Module Notes -----------------------------------------------------------
# Token issuing is used by `auth.credentials.CredentialService` (sign-in); decoding by the
# authorization middleware through the same service.
