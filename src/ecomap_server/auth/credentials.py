"""
ecomap_server.auth.credentials

Credential service: password hashing/verification and token issuance/parsing.

Responsibilities:
- Hash passwords with bcrypt at a fixed cost and verify them.
- Enforce the password policy.
- Issue and parse signed tokens (delegates to `auth.jwt`).
"""

from __future__ import annotations

import asyncio
from collections.abc import Iterable
from datetime import datetime, timedelta

import bcrypt

from ecomap_server.auth.jwt import JwtConfig, decode_and_validate, issue_token
from ecomap_server.auth.models import TokenClaims
from ecomap_server.settings import Settings

PASSWORD_MIN_LENGTH = 14
# bcrypt only looks at the first 72 bytes of its input.
PASSWORD_MAX_BYTES = 72
PASSWORD_MIN_DIGITS = 1
PASSWORD_MIN_SYMBOLS = 1
# Hashed once per service at the configured cost; the verification outcome is discarded.
PLACEHOLDER_PASSWORD = "ecomap-placeholder-0!"


class MalformedHashError(Exception):
    """Raised when a stored password hash cannot be parsed."""


class CredentialService:
    def __init__(self, *, jwt_cfg: JwtConfig, bcrypt_rounds: int = 12) -> None:
        self._jwt_cfg = jwt_cfg
        self._bcrypt_rounds = bcrypt_rounds
        self._placeholder: str | None = None

    @classmethod
    def from_settings(cls, settings: Settings) -> CredentialService:
        return cls(
            jwt_cfg=JwtConfig(
                alg=settings.jwt_alg,
                issuer=settings.jwt_issuer,
                audience=settings.jwt_audience,
                secret=settings.jwt_secret,
                ttl=timedelta(hours=settings.jwt_ttl_hours),
            ),
            bcrypt_rounds=settings.bcrypt_rounds,
        )

    @property
    def token_ttl(self) -> timedelta:
        return self._jwt_cfg.ttl

    def valid_password(self, password: str) -> bool:
        """
        At least 14 characters (and at most 72 bytes), one digit and one symbol, where a
        symbol is any character that is neither a letter nor a digit.
        """

        if len(password) < PASSWORD_MIN_LENGTH:
            return False
        if len(password.encode("utf-8")) > PASSWORD_MAX_BYTES:
            return False

        digits = sum(1 for c in password if c.isdigit())
        symbols = sum(1 for c in password if not c.isdigit() and not c.isalpha())
        return digits >= PASSWORD_MIN_DIGITS and symbols >= PASSWORD_MIN_SYMBOLS

    async def hash_password(self, password: str) -> str:
        # bcrypt holds the worker thread for the whole cost; keep it off the event loop.
        return await asyncio.to_thread(self._hash, password)

    async def verify_password(self, password: str, password_hash: str) -> bool:
        """
        Return whether `password` matches `password_hash`. A mismatch is `False`, never an
        error; only a malformed hash raises MalformedHashError.
        """

        return await asyncio.to_thread(self._verify, password, password_hash)

    async def verify_unknown(self, password: str) -> None:
        """
        Spend one verification against a fixed hash. Callers run this when the account does
        not exist so the rejection takes as long as a wrong password.
        """

        await asyncio.to_thread(self._verify, password, self._placeholder_hash())

    def _placeholder_hash(self) -> str:
        if self._placeholder is None:
            self._placeholder = self._hash(PLACEHOLDER_PASSWORD)
        return self._placeholder

    def _hash(self, password: str) -> str:
        salt = bcrypt.gensalt(rounds=self._bcrypt_rounds)
        return bcrypt.hashpw(password.encode("utf-8"), salt).decode("ascii")

    def _verify(self, password: str, password_hash: str) -> bool:
        try:
            hashed = password_hash.encode("ascii")
        except UnicodeEncodeError as e:
            raise MalformedHashError("password hash is not ascii") from e

        candidate = password.encode("utf-8")
        if len(candidate) > PASSWORD_MAX_BYTES:
            # Never stored by _hash; still check the hash is well formed.
            candidate = b""
            matches_allowed = False
        else:
            matches_allowed = True

        try:
            matches = bcrypt.checkpw(candidate, hashed)
        except ValueError as e:
            raise MalformedHashError(str(e)) from e
        return matches and matches_allowed

    def issue_token(
        self, subject: str, roles: Iterable[str], *, now: datetime | None = None
    ) -> str:
        return issue_token(cfg=self._jwt_cfg, subject=subject, roles=roles, now=now)

    def parse_token(self, token: str) -> TokenClaims:
        """Raises InvalidTokenError for malformed, badly signed or expired tokens."""

        return decode_and_validate(cfg=self._jwt_cfg, token=token)


# --- Module Notes -----------------------------------------------------------
# The signing key is only held in memory by this service; tokens are never stored server-side.
