"""
ecomap_server.services.base

Shared service-layer plumbing.

Responsibilities:
- Declare the `Store` protocol the services depend on.
- Run units of work inside transactions: read-only (READ COMMITTED) or read-write
  (SERIALIZABLE, retried on serialization failures with a fresh transaction per attempt).
- Apply the per-operation deadline and the error logging/wrapping convention:
  expected domain failures are logged at info and re-raised with the operation description
  attached as a note; anything else is logged at error and raised as `UnexpectedError`.
- Record successful changes attributed to a signed-in actor.
- Resolve road/municipality identifiers for located entities.
"""

from __future__ import annotations

import asyncio
import uuid
from collections.abc import AsyncIterator, Awaitable, Callable
from contextlib import asynccontextmanager
from typing import Any, Protocol, TypeVar

from tenacity import (
    AsyncRetrying,
    RetryCallState,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential_jitter,
)
from tenacity.wait import wait_base

from ecomap_server.db.errors import SerializationFailureError, StoreError
from ecomap_server.db.tx import AccessMode, IsolationLevel, Transaction
from ecomap_server.domain.errors import (
    DomainError,
    FieldValueInvalidError,
    MunicipalityNotFoundError,
    RoadNotFoundError,
    UnexpectedError,
    ValidationFailedError,
)
from ecomap_server.domain.geojson import Point
from ecomap_server.domain.models import (
    Container,
    ContainerPatch,
    ContainersFilter,
    EditableContainer,
    EditableEmployee,
    EditableLandfill,
    EditableRoute,
    EditableTruck,
    EditableUser,
    EditableWarehouse,
    Employee,
    EmployeePatch,
    EmployeesFilter,
    Landfill,
    LandfillPatch,
    LandfillsFilter,
    Location,
    Municipality,
    Road,
    Route,
    RouteContainersFilter,
    RouteEmployee,
    RouteEmployeesFilter,
    RoutePatch,
    RouteRole,
    RoutesFilter,
    SignIn,
    Truck,
    TruckPatch,
    TrucksFilter,
    User,
    UserContainerBookmarksFilter,
    UserPatch,
    UsersFilter,
    Warehouse,
    WarehousePatch,
    WarehousesFilter,
)
from ecomap_server.domain.pagination import Page, PageRequest

T = TypeVar("T")


class Store(Protocol):
    """
    Persistence operations used by the services. Every operation runs inside the given
    transaction; lookups by id raise the entity's NotFoundError, constraint violations raise
    the matching conflict/not-found domain error.
    """

    async def begin(self, *, isolation: IsolationLevel, access_mode: AccessMode) -> Transaction: ...

    # Users
    async def create_user(self, tx: Transaction, user: EditableUser, password_hash: str) -> uuid.UUID: ...
    async def list_users(self, tx: Transaction, filter: UsersFilter) -> Page[User]: ...
    async def get_user_by_id(self, tx: Transaction, user_id: uuid.UUID) -> User: ...
    async def get_user_by_username(self, tx: Transaction, username: str) -> User: ...
    async def get_user_sign_in(self, tx: Transaction, username: str) -> SignIn: ...
    async def patch_user(self, tx: Transaction, user_id: uuid.UUID, patch: UserPatch) -> None: ...
    async def update_user_password(self, tx: Transaction, username: str, password_hash: str) -> None: ...
    async def delete_user_by_id(self, tx: Transaction, user_id: uuid.UUID) -> None: ...

    # User container bookmarks
    async def create_user_container_bookmark(
        self, tx: Transaction, user_id: uuid.UUID, container_id: uuid.UUID
    ) -> None: ...
    async def list_user_container_bookmarks(
        self, tx: Transaction, user_id: uuid.UUID, filter: UserContainerBookmarksFilter
    ) -> Page[Container]: ...
    async def delete_user_container_bookmark(
        self, tx: Transaction, user_id: uuid.UUID, container_id: uuid.UUID
    ) -> None: ...

    # Employees
    async def create_employee(
        self, tx: Transaction, employee: EditableEmployee, password_hash: str, location: Location
    ) -> uuid.UUID: ...
    async def list_employees(self, tx: Transaction, filter: EmployeesFilter) -> Page[Employee]: ...
    async def get_employee_by_id(self, tx: Transaction, employee_id: uuid.UUID) -> Employee: ...
    async def get_employee_by_username(self, tx: Transaction, username: str) -> Employee: ...
    async def get_employee_sign_in(self, tx: Transaction, username: str) -> SignIn: ...
    async def patch_employee(
        self, tx: Transaction, employee_id: uuid.UUID, patch: EmployeePatch, location: Location | None
    ) -> None: ...
    async def update_employee_password(self, tx: Transaction, username: str, password_hash: str) -> None: ...
    async def delete_employee_by_id(self, tx: Transaction, employee_id: uuid.UUID) -> None: ...

    # Containers
    async def create_container(
        self, tx: Transaction, container: EditableContainer, location: Location
    ) -> uuid.UUID: ...
    async def list_containers(self, tx: Transaction, filter: ContainersFilter) -> Page[Container]: ...
    async def get_container_by_id(self, tx: Transaction, container_id: uuid.UUID) -> Container: ...
    async def patch_container(
        self, tx: Transaction, container_id: uuid.UUID, patch: ContainerPatch, location: Location | None
    ) -> None: ...
    async def delete_container_by_id(self, tx: Transaction, container_id: uuid.UUID) -> None: ...

    # Landfills
    async def create_landfill(
        self, tx: Transaction, landfill: EditableLandfill, location: Location
    ) -> uuid.UUID: ...
    async def list_landfills(self, tx: Transaction, filter: LandfillsFilter) -> Page[Landfill]: ...
    async def get_landfill_by_id(self, tx: Transaction, landfill_id: uuid.UUID) -> Landfill: ...
    async def patch_landfill(
        self, tx: Transaction, landfill_id: uuid.UUID, patch: LandfillPatch, location: Location | None
    ) -> None: ...
    async def delete_landfill_by_id(self, tx: Transaction, landfill_id: uuid.UUID) -> None: ...

    # Trucks
    async def create_truck(self, tx: Transaction, truck: EditableTruck, location: Location) -> uuid.UUID: ...
    async def list_trucks(self, tx: Transaction, filter: TrucksFilter) -> Page[Truck]: ...
    async def get_truck_by_id(self, tx: Transaction, truck_id: uuid.UUID) -> Truck: ...
    async def patch_truck(
        self, tx: Transaction, truck_id: uuid.UUID, patch: TruckPatch, location: Location | None
    ) -> None: ...
    async def delete_truck_by_id(self, tx: Transaction, truck_id: uuid.UUID) -> None: ...

    # Warehouses
    async def create_warehouse(
        self, tx: Transaction, warehouse: EditableWarehouse, location: Location
    ) -> uuid.UUID: ...
    async def list_warehouses(self, tx: Transaction, filter: WarehousesFilter) -> Page[Warehouse]: ...
    async def get_warehouse_by_id(self, tx: Transaction, warehouse_id: uuid.UUID) -> Warehouse: ...
    async def patch_warehouse(
        self, tx: Transaction, warehouse_id: uuid.UUID, patch: WarehousePatch, location: Location | None
    ) -> None: ...
    async def delete_warehouse_by_id(self, tx: Transaction, warehouse_id: uuid.UUID) -> None: ...

    # Warehouse trucks
    async def create_warehouse_truck(
        self, tx: Transaction, warehouse_id: uuid.UUID, truck_id: uuid.UUID
    ) -> None: ...
    async def list_warehouse_trucks(
        self, tx: Transaction, warehouse_id: uuid.UUID, page: PageRequest
    ) -> Page[Truck]: ...
    async def delete_warehouse_truck(
        self, tx: Transaction, warehouse_id: uuid.UUID, truck_id: uuid.UUID
    ) -> None: ...

    # Routes
    async def create_route(self, tx: Transaction, route: EditableRoute) -> uuid.UUID: ...
    async def list_routes(self, tx: Transaction, filter: RoutesFilter) -> Page[Route]: ...
    async def get_route_by_id(self, tx: Transaction, route_id: uuid.UUID) -> Route: ...
    async def patch_route(self, tx: Transaction, route_id: uuid.UUID, patch: RoutePatch) -> None: ...
    async def delete_route_by_id(self, tx: Transaction, route_id: uuid.UUID) -> None: ...

    # Route employees
    async def create_route_employee(
        self, tx: Transaction, route_id: uuid.UUID, employee_id: uuid.UUID, route_role: RouteRole
    ) -> None: ...
    async def list_route_employees(
        self, tx: Transaction, route_id: uuid.UUID, filter: RouteEmployeesFilter
    ) -> Page[RouteEmployee]: ...
    async def delete_route_employee(
        self, tx: Transaction, route_id: uuid.UUID, employee_id: uuid.UUID
    ) -> None: ...

    # Route containers
    async def create_route_container(
        self, tx: Transaction, route_id: uuid.UUID, container_id: uuid.UUID
    ) -> None: ...
    async def list_route_containers(
        self, tx: Transaction, route_id: uuid.UUID, filter: RouteContainersFilter
    ) -> Page[Container]: ...
    async def delete_route_container(
        self, tx: Transaction, route_id: uuid.UUID, container_id: uuid.UUID
    ) -> None: ...

    # Geospatial lookups
    async def get_road_by_geometry(self, tx: Transaction, point: Point) -> Road: ...
    async def get_municipality_by_geometry(self, tx: Transaction, point: Point) -> Municipality: ...


def require(valid: bool, field_name: str) -> None:
    if not valid:
        raise FieldValueInvalidError(field_name)


class BaseService:
    def __init__(
        self,
        *,
        store: Store,
        log: Any,
        tx_max_attempts: int = 3,
        operation_timeout: float | None = 30.0,
        retry_wait: wait_base | None = None,
    ) -> None:
        self._store = store
        self._log = log
        self._tx_max_attempts = tx_max_attempts
        self._operation_timeout = operation_timeout
        self._retry_wait = retry_wait or wait_exponential_jitter(
            multiplier=0.05, max=1.0, jitter=0.05
        )

    @asynccontextmanager
    async def _operation(
        self,
        method: str,
        description: str,
        *,
        expected: tuple[type[DomainError], ...] = (),
        actor: str | None = None,
        **log_attrs: Any,
    ) -> AsyncIterator[None]:
        """
        Wrap one service operation: deadline, then error classification and logging.

        Validation failures are always expected. Operations attributed to an `actor` (the
        signed-in subject) are recorded once they succeed.
        """

        if actor is not None:
            log_attrs["actor"] = actor
        log = self._log.bind(service_method=method, **log_attrs)
        try:
            async with asyncio.timeout(self._operation_timeout):
                yield
        except (ValidationFailedError, *expected) as e:
            log.info(description, error=str(e), error_code=e.code)
            e.add_note(description)
            raise
        except Exception as e:
            log.error(description, error=str(e), error_type=type(e).__name__)
            raise UnexpectedError(description) from e
        else:
            if actor is not None:
                log.info("service: change applied")

    async def _read_only(self, work: Callable[[Transaction], Awaitable[T]]) -> T:
        return await self._run(
            work, isolation=IsolationLevel.read_committed, access_mode=AccessMode.read_only
        )

    async def _read_write(self, work: Callable[[Transaction], Awaitable[T]]) -> T:
        async for attempt in AsyncRetrying(
            retry=retry_if_exception_type(SerializationFailureError),
            stop=stop_after_attempt(self._tx_max_attempts),
            wait=self._retry_wait,
            before_sleep=self._log_retry,
            reraise=True,
        ):
            with attempt:
                return await self._run(
                    work, isolation=IsolationLevel.serializable, access_mode=AccessMode.read_write
                )
        raise AssertionError("retry loop exited without an outcome")

    async def _run(
        self,
        work: Callable[[Transaction], Awaitable[T]],
        *,
        isolation: IsolationLevel,
        access_mode: AccessMode,
    ) -> T:
        tx = await self._store.begin(isolation=isolation, access_mode=access_mode)
        try:
            result = await work(tx)
            await tx.commit()
            return result
        finally:
            # No-op after a successful commit.
            await self._rollback(tx)

    async def _rollback(self, tx: Transaction) -> None:
        try:
            await tx.rollback()
        except StoreError as e:
            self._log.error("service: failed to rollback transaction", error=str(e))

    def _log_retry(self, retry_state: RetryCallState) -> None:
        self._log.info(
            "service: retrying transaction after serialization failure",
            attempt=retry_state.attempt_number,
        )

    async def _locate(self, tx: Transaction, point: Point) -> Location:
        """Resolve the nearest road and the containing municipality; unknown ones stay unset."""

        try:
            road_id: int | None = (await self._store.get_road_by_geometry(tx, point)).id
        except RoadNotFoundError:
            road_id = None
        try:
            municipality_id: int | None = (
                await self._store.get_municipality_by_geometry(tx, point)
            ).id
        except MunicipalityNotFoundError:
            municipality_id = None
        return Location(road_id=road_id, municipality_id=municipality_id)


# --- Module Notes -----------------------------------------------------------
# Read-modify-write checks (capacity limits, association checks) must run inside the same
# `_read_write` unit of work as the write they guard.
