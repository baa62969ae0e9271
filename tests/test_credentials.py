"""
tests.test_credentials

Password policy, bcrypt hashing and token issue/parse.
"""

from __future__ import annotations

import asyncio
from datetime import UTC, datetime, timedelta

import pytest

from ecomap_server.auth.credentials import CredentialService, MalformedHashError
from ecomap_server.auth.jwt import JwtConfig
from ecomap_server.auth.models import SubjectRole
from ecomap_server.domain.errors import InvalidTokenError


@pytest.mark.parametrize(
    ("password", "valid"),
    [
        ("correct-horse-battery-7", True),
        ("short-1", False),
        ("no-digits-in-this-one", False),
        ("nosymbols1234567", False),
        ("12345678901234!", True),
        ("ç" * 36 + "1!", False),
    ],
)
def test_password_policy(credentials: CredentialService, password: str, valid: bool) -> None:
    assert credentials.valid_password(password) is valid


async def test_hash_and_verify(credentials: CredentialService) -> None:
    hashed = await credentials.hash_password("correct-horse-battery-7")

    assert hashed != "correct-horse-battery-7"
    assert await credentials.verify_password("correct-horse-battery-7", hashed)
    assert not await credentials.verify_password("correct-horse-battery-8", hashed)


async def test_verify_rejects_malformed_hash(credentials: CredentialService) -> None:
    with pytest.raises(MalformedHashError):
        await credentials.verify_password("correct-horse-battery-7", "not-a-bcrypt-hash")


async def test_verify_unknown_spends_a_real_verification(credentials: CredentialService) -> None:
    await credentials.verify_unknown("correct-horse-battery-7")

    # The placeholder is a bcrypt hash at the configured cost, reused across calls.
    placeholder = credentials._placeholder_hash()
    assert placeholder.startswith("$2b$04$")
    assert credentials._placeholder_hash() == placeholder


async def test_hashing_does_not_block_the_event_loop() -> None:
    credentials = CredentialService(
        jwt_cfg=JwtConfig(alg="HS256", issuer="i", audience="a", secret="s"), bcrypt_rounds=12
    )
    gaps: list[float] = []
    done = asyncio.Event()

    async def tick() -> None:
        loop = asyncio.get_running_loop()
        last = loop.time()
        while not done.is_set():
            await asyncio.sleep(0.005)
            now = loop.time()
            gaps.append(now - last)
            last = now

    ticker = asyncio.create_task(tick())
    hashed = await credentials.hash_password("correct-horse-battery-7")
    assert await credentials.verify_password("correct-horse-battery-7", hashed)
    done.set()
    await ticker

    assert gaps
    assert max(gaps) < 0.1


def test_token_carries_subject_and_roles(credentials: CredentialService) -> None:
    token = credentials.issue_token("subject-1", [SubjectRole.manager])

    claims = credentials.parse_token(token)

    assert claims.subject == "subject-1"
    assert claims.roles == frozenset({"manager"})
    assert claims.expires_at - claims.issued_at == credentials.token_ttl


def test_expired_token_is_rejected(credentials: CredentialService) -> None:
    issued = datetime.now(tz=UTC) - credentials.token_ttl - timedelta(minutes=5)
    token = credentials.issue_token("subject-1", [SubjectRole.user], now=issued)

    with pytest.raises(InvalidTokenError):
        credentials.parse_token(token)


def test_token_signed_with_other_key_is_rejected(credentials: CredentialService) -> None:
    other = CredentialService(
        jwt_cfg=JwtConfig(
            alg="HS256", issuer="ecomap-server", audience="ecomap-api", secret="another-secret"
        ),
        bcrypt_rounds=4,
    )
    token = other.issue_token("subject-1", [SubjectRole.user])

    with pytest.raises(InvalidTokenError):
        credentials.parse_token(token)


def test_garbage_token_is_rejected(credentials: CredentialService) -> None:
    with pytest.raises(InvalidTokenError):
        credentials.parse_token("not.a.token")
