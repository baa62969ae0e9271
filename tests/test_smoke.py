"""
tests.test_smoke

Boot the real app against a throwaway database and hit the public endpoints.

Responsibilities:
- Ensure startup creates the schema and the readiness check reaches it.
- Check request id minting and the per-request access log.
"""

from __future__ import annotations

import uuid

import httpx
from fastapi import FastAPI

from ecomap_server.api.app import create_app
from ecomap_server.observability.logging import _redact
from ecomap_server.observability.middleware import RequestContextMiddleware
from ecomap_server.settings import Settings
from conftest import RecordingLog


async def test_health_endpoints(settings: Settings) -> None:
    app = create_app(settings=settings)

    # httpx ASGITransport does not manage lifespan automatically; do it explicitly.
    await app.router.startup()
    try:
        transport = httpx.ASGITransport(app=app)
        async with httpx.AsyncClient(transport=transport, base_url="http://test") as client:
            r = await client.get("/healthz")
            assert r.status_code == 200
            assert r.json()["status"] == "ok"

            r = await client.get("/readyz")
            assert r.status_code == 200
            assert r.json()["status"] == "ready"

            r = await client.get("/openapi.json")
            assert r.status_code == 200
            assert "/api/routes" in r.json()["paths"]
    finally:
        await app.router.shutdown()


async def test_request_id_minted_and_access_logged() -> None:
    log = RecordingLog()
    app = FastAPI()

    @app.get("/ping")
    async def ping() -> dict[str, str]:
        return {"pong": "ok"}

    app.add_middleware(RequestContextMiddleware, log=log)

    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as client:
        r = await client.get("/ping")
        oversized = await client.get("/ping", headers={"x-request-id": "x" * 500})

    uuid.UUID(r.headers["x-request-id"])
    assert oversized.headers["x-request-id"] != "x" * 500
    assert [(level, event, fields["status"]) for level, event, fields in log.events] == [
        ("info", "http.request", 200),
        ("info", "http.request", 200),
    ]
    assert all(fields["duration_ms"] >= 0 for _, _, fields in log.events)


def test_credentials_are_redacted() -> None:
    event = _redact(None, "info", {"event": "x", "password": "hunter2", "username": "ana"})

    assert event == {"event": "x", "password": "***", "username": "ana"}
