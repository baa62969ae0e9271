"""
ecomap_server.api.routers.health

Health and readiness endpoints.

Responsibilities:
- Provide the liveness check (`/healthz`).
- Provide the readiness check (`/readyz`) with DB connectivity validation.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from ecomap_server.api.deps import sessionmaker_from_app

router = APIRouter()


@router.get("/healthz")
async def healthz() -> dict[str, str]:
    return {"status": "ok"}


@router.get("/readyz")
async def readyz(
    session_factory: async_sessionmaker[AsyncSession] = Depends(sessionmaker_from_app),
) -> dict[str, str]:
    async with session_factory() as session:
        await session.execute(text("SELECT 1"))
    return {"status": "ready"}


# --- Module Notes -----------------------------------------------------------
# Both checks are public in `api.authz_rules`.
