"""
tests.conftest

Shared fixtures.

Responsibilities:
- Build settings pointing at a throwaway SQLite database.
- Provide the SQL-backed store and the service registry built on it.
- Provide entity builders used by service and API tests.
"""

from __future__ import annotations

import uuid
from collections.abc import AsyncIterator, Awaitable, Callable
from datetime import date, time
from typing import Any

import pytest
from sqlalchemy.ext.asyncio import AsyncEngine
from tenacity import wait_none

from ecomap_server.auth.credentials import CredentialService
from ecomap_server.db.init_db import init_db
from ecomap_server.db.session import create_engine, create_sessionmaker
from ecomap_server.db.store import SqlStore
from ecomap_server.domain.geojson import Point
from ecomap_server.domain.models import (
    EditableEmployeeWithPassword,
    EditableRoute,
    EditableTruck,
    EditableWarehouse,
    Employee,
    EmployeeRole,
    Route,
    Truck,
    Warehouse,
)
from ecomap_server.services.registry import Services, build_services
from ecomap_server.settings import Settings

PASSWORD = "correct-horse-battery-7"
OTHER_PASSWORD = "staple-and-paper-clip-9"

DEPOT = Point(longitude=-8.6291, latitude=41.1579)


class RecordingLog:
    """Structlog-shaped logger recording (level, event, fields) tuples."""

    def __init__(self, events: list[tuple[str, str, dict[str, Any]]] | None = None, **bound: Any):
        self.events = events if events is not None else []
        self._bound = bound

    def bind(self, **values: Any) -> RecordingLog:
        return RecordingLog(self.events, **{**self._bound, **values})

    def info(self, event: str, **fields: Any) -> None:
        self.events.append(("info", event, {**self._bound, **fields}))

    def error(self, event: str, **fields: Any) -> None:
        self.events.append(("error", event, {**self._bound, **fields}))


@pytest.fixture
def settings(tmp_path) -> Settings:
    return Settings(
        env="test",
        database_url=f"sqlite+aiosqlite:///{tmp_path / 'ecomap.db'}",
        jwt_secret="test-secret",
        bcrypt_rounds=4,
    )


@pytest.fixture
def credentials(settings: Settings) -> CredentialService:
    return CredentialService.from_settings(settings)


@pytest.fixture
async def engine(settings: Settings) -> AsyncIterator[AsyncEngine]:
    engine = create_engine(settings)
    await init_db(engine)
    try:
        yield engine
    finally:
        await engine.dispose()


@pytest.fixture
def store(engine: AsyncEngine) -> SqlStore:
    return SqlStore(create_sessionmaker(engine))


@pytest.fixture
def log() -> RecordingLog:
    return RecordingLog()


@pytest.fixture
def services(
    store: SqlStore, credentials: CredentialService, settings: Settings, log: RecordingLog
) -> Services:
    return build_services(
        store=store, credentials=credentials, settings=settings, log=log, retry_wait=wait_none()
    )


@pytest.fixture
def make_truck(services: Services) -> Callable[..., Awaitable[Truck]]:
    async def make(**overrides: Any) -> Truck:
        values: dict[str, Any] = {
            "make": "Volvo",
            "model": "FE",
            "license_plate": f"AA-{uuid.uuid4().hex[:6]}",
            "person_capacity": 2,
            "location": DEPOT,
        }
        values.update(overrides)
        return await services.trucks.create_truck(EditableTruck(**values))

    return make


@pytest.fixture
def make_warehouse(services: Services) -> Callable[..., Awaitable[Warehouse]]:
    async def make(truck_capacity: int = 2) -> Warehouse:
        return await services.warehouses.create_warehouse(
            EditableWarehouse(truck_capacity=truck_capacity, location=DEPOT)
        )

    return make


@pytest.fixture
def make_employee(services: Services) -> Callable[..., Awaitable[Employee]]:
    async def make(
        username: str | None = None, role: EmployeeRole = EmployeeRole.waste_operator
    ) -> Employee:
        return await services.employees.create_employee(
            EditableEmployeeWithPassword(
                username=username or f"op-{uuid.uuid4().hex[:8]}",
                first_name="Rui",
                last_name="Costa",
                role=role,
                date_of_birth=date(1990, 5, 17),
                phone_number="+351912345678",
                location=DEPOT,
                schedule_start=time(6, 0),
                schedule_end=time(14, 0),
                password=PASSWORD,
            )
        )

    return make


@pytest.fixture
def make_route(
    services: Services,
    make_truck: Callable[..., Awaitable[Truck]],
    make_warehouse: Callable[..., Awaitable[Warehouse]],
) -> Callable[..., Awaitable[Route]]:
    async def make(truck: Truck | None = None, name: str = "Ribeira morning") -> Route:
        truck = truck or await make_truck()
        departure = await make_warehouse()
        arrival = await make_warehouse()
        return await services.routes.create_route(
            EditableRoute(
                name=name,
                truck_id=truck.id,
                departure_warehouse_id=departure.id,
                arrival_warehouse_id=arrival.id,
            )
        )

    return make


# --- Module Notes -----------------------------------------------------------
# Each test gets its own database file; nothing is shared between tests.
