"""
ecomap_server.services.registry

One instance of every service, built from shared collaborators.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from ecomap_server.auth.credentials import CredentialService
from ecomap_server.observability.logging import get_logger
from ecomap_server.services.base import Store
from ecomap_server.services.containers import ContainerService
from ecomap_server.services.employees import EmployeeService
from ecomap_server.services.landfills import LandfillService
from ecomap_server.services.routes import RouteService
from ecomap_server.services.trucks import TruckService
from ecomap_server.services.users import UserService
from ecomap_server.services.warehouses import WarehouseService
from ecomap_server.settings import Settings


@dataclass(frozen=True, slots=True)
class Services:
    users: UserService
    employees: EmployeeService
    containers: ContainerService
    landfills: LandfillService
    trucks: TruckService
    warehouses: WarehouseService
    routes: RouteService


def build_services(
    *,
    store: Store,
    credentials: CredentialService,
    settings: Settings,
    log: Any | None = None,
    **overrides: Any,
) -> Services:
    """
    `log` defaults to a structlog logger per service; `overrides` are forwarded to every
    service constructor (tests pass `retry_wait` here).
    """

    def common(name: str) -> dict[str, Any]:
        return {
            "store": store,
            "log": log if log is not None else get_logger(f"ecomap_server.services.{name}"),
            "tx_max_attempts": settings.tx_max_attempts,
            "operation_timeout": settings.operation_timeout_seconds,
            **overrides,
        }

    return Services(
        users=UserService(credentials=credentials, **common("users")),
        employees=EmployeeService(credentials=credentials, **common("employees")),
        containers=ContainerService(**common("containers")),
        landfills=LandfillService(**common("landfills")),
        trucks=TruckService(**common("trucks")),
        warehouses=WarehouseService(**common("warehouses")),
        routes=RouteService(**common("routes")),
    )
