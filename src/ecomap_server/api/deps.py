"""
ecomap_server.api.deps

FastAPI dependency wiring for the API layer.

Responsibilities:
- Provide dependency functions for settings, the service registry and the session factory.
- Parse the shared pagination query parameters.
- Encapsulate app.state access patterns.
"""

from __future__ import annotations

from fastapi import Query, Request
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from ecomap_server.domain.pagination import LIMIT_MAX, Order, PageRequest
from ecomap_server.services.registry import Services
from ecomap_server.settings import Settings, get_settings


def settings_dep() -> Settings:
    return get_settings()


def services_dep(request: Request) -> Services:
    # Built on app startup in `ecomap_server.api.app.create_app` (or injected by tests).
    return request.app.state.services  # type: ignore[attr-defined]


def sessionmaker_from_app(request: Request) -> async_sessionmaker[AsyncSession]:
    return request.app.state.sessionmaker  # type: ignore[attr-defined]


def page_request(
    limit: int = Query(default=LIMIT_MAX),
    offset: int = Query(default=0),
    order: str = Query(default=Order.asc.value),
    sort: str | None = Query(default=None),
) -> PageRequest:
    # Range checks happen in the service (FilterValueInvalidError).
    return PageRequest(limit=limit, offset=offset, order=order, sort=sort)


# --- Module Notes -----------------------------------------------------------
# Routers never open sessions; services own the transaction boundaries.
