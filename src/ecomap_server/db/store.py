"""
ecomap_server.db.store

SQLAlchemy implementation of the service layer's `Store` protocol.

Responsibilities:
- Open transactions at the requested isolation level and access mode.
- Route each store operation to its repository, bound to the transaction's session.
- Translate driver failures that escape the repositories into `db.errors` exceptions
  (serialization failures stay distinguishable so services can retry them).
"""

from __future__ import annotations

import functools
import uuid
from collections.abc import Awaitable, Callable
from typing import Concatenate, ParamSpec, TypeVar

from sqlalchemy.exc import DBAPIError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from ecomap_server.db.errors import SerializationFailureError, StoreError, is_serialization_failure
from ecomap_server.db.repositories.containers import ContainerRepo, LandfillRepo
from ecomap_server.db.repositories.employees import EmployeeRepo
from ecomap_server.db.repositories.fleet import TruckRepo, WarehouseRepo, WarehouseTruckRepo
from ecomap_server.db.repositories.geo import GeoRepo
from ecomap_server.db.repositories.routes import RouteContainerRepo, RouteEmployeeRepo, RouteRepo
from ecomap_server.db.repositories.users import UserContainerBookmarkRepo, UserRepo
from ecomap_server.db.tx import (
    AccessMode,
    IsolationLevel,
    SessionTransaction,
    Transaction,
    TransactionFactory,
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

P = ParamSpec("P")
R = TypeVar("R")


def _translated(
    fn: Callable[Concatenate[SqlStore, Transaction, P], Awaitable[R]],
) -> Callable[Concatenate[SqlStore, Transaction, P], Awaitable[R]]:
    @functools.wraps(fn)
    async def wrapper(self: SqlStore, tx: Transaction, *args: P.args, **kwargs: P.kwargs) -> R:
        try:
            return await fn(self, tx, *args, **kwargs)
        except DBAPIError as e:
            if is_serialization_failure(e):
                raise SerializationFailureError(str(e)) from e
            raise StoreError(str(e)) from e

    return wrapper


def _session(tx: Transaction) -> AsyncSession:
    if not isinstance(tx, SessionTransaction):
        raise StoreError(f"unsupported transaction type: {type(tx).__name__}")
    return tx.session


class SqlStore:
    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._transactions = TransactionFactory(session_factory)

    async def begin(self, *, isolation: IsolationLevel, access_mode: AccessMode) -> Transaction:
        return await self._transactions.begin(isolation=isolation, access_mode=access_mode)

    # --- Users -------------------------------------------------------------------------

    @_translated
    async def create_user(self, tx: Transaction, user: EditableUser, password_hash: str) -> uuid.UUID:
        return await UserRepo(_session(tx)).create(user, password_hash)

    @_translated
    async def list_users(self, tx: Transaction, filter: UsersFilter) -> Page[User]:
        return await UserRepo(_session(tx)).list(filter)

    @_translated
    async def get_user_by_id(self, tx: Transaction, user_id: uuid.UUID) -> User:
        return await UserRepo(_session(tx)).get(user_id)

    @_translated
    async def get_user_by_username(self, tx: Transaction, username: str) -> User:
        return await UserRepo(_session(tx)).get_by_username(username)

    @_translated
    async def get_user_sign_in(self, tx: Transaction, username: str) -> SignIn:
        return await UserRepo(_session(tx)).get_sign_in(username)

    @_translated
    async def patch_user(self, tx: Transaction, user_id: uuid.UUID, patch: UserPatch) -> None:
        await UserRepo(_session(tx)).patch(user_id, patch)

    @_translated
    async def update_user_password(self, tx: Transaction, username: str, password_hash: str) -> None:
        await UserRepo(_session(tx)).update_password(username, password_hash)

    @_translated
    async def delete_user_by_id(self, tx: Transaction, user_id: uuid.UUID) -> None:
        await UserRepo(_session(tx)).delete(user_id)

    @_translated
    async def create_user_container_bookmark(
        self, tx: Transaction, user_id: uuid.UUID, container_id: uuid.UUID
    ) -> None:
        await UserContainerBookmarkRepo(_session(tx)).create(user_id, container_id)

    @_translated
    async def list_user_container_bookmarks(
        self, tx: Transaction, user_id: uuid.UUID, filter: UserContainerBookmarksFilter
    ) -> Page[Container]:
        return await UserContainerBookmarkRepo(_session(tx)).list(
            user_id,
            filter.page,
            category=filter.container_category,
            location_name=filter.location_name,
        )

    @_translated
    async def delete_user_container_bookmark(
        self, tx: Transaction, user_id: uuid.UUID, container_id: uuid.UUID
    ) -> None:
        await UserContainerBookmarkRepo(_session(tx)).delete(user_id, container_id)

    # --- Employees ---------------------------------------------------------------------

    @_translated
    async def create_employee(
        self, tx: Transaction, employee: EditableEmployee, password_hash: str, location: Location
    ) -> uuid.UUID:
        return await EmployeeRepo(_session(tx)).create(employee, password_hash, location)

    @_translated
    async def list_employees(self, tx: Transaction, filter: EmployeesFilter) -> Page[Employee]:
        return await EmployeeRepo(_session(tx)).list(filter)

    @_translated
    async def get_employee_by_id(self, tx: Transaction, employee_id: uuid.UUID) -> Employee:
        return await EmployeeRepo(_session(tx)).get(employee_id)

    @_translated
    async def get_employee_by_username(self, tx: Transaction, username: str) -> Employee:
        return await EmployeeRepo(_session(tx)).get_by_username(username)

    @_translated
    async def get_employee_sign_in(self, tx: Transaction, username: str) -> SignIn:
        return await EmployeeRepo(_session(tx)).get_sign_in(username)

    @_translated
    async def patch_employee(
        self, tx: Transaction, employee_id: uuid.UUID, patch: EmployeePatch, location: Location | None
    ) -> None:
        await EmployeeRepo(_session(tx)).patch(employee_id, patch, location)

    @_translated
    async def update_employee_password(
        self, tx: Transaction, username: str, password_hash: str
    ) -> None:
        await EmployeeRepo(_session(tx)).update_password(username, password_hash)

    @_translated
    async def delete_employee_by_id(self, tx: Transaction, employee_id: uuid.UUID) -> None:
        await EmployeeRepo(_session(tx)).delete(employee_id)

    # --- Containers --------------------------------------------------------------------

    @_translated
    async def create_container(
        self, tx: Transaction, container: EditableContainer, location: Location
    ) -> uuid.UUID:
        return await ContainerRepo(_session(tx)).create(container, location)

    @_translated
    async def list_containers(self, tx: Transaction, filter: ContainersFilter) -> Page[Container]:
        return await ContainerRepo(_session(tx)).list(filter)

    @_translated
    async def get_container_by_id(self, tx: Transaction, container_id: uuid.UUID) -> Container:
        return await ContainerRepo(_session(tx)).get(container_id)

    @_translated
    async def patch_container(
        self, tx: Transaction, container_id: uuid.UUID, patch: ContainerPatch, location: Location | None
    ) -> None:
        await ContainerRepo(_session(tx)).patch(container_id, patch, location)

    @_translated
    async def delete_container_by_id(self, tx: Transaction, container_id: uuid.UUID) -> None:
        await ContainerRepo(_session(tx)).delete(container_id)

    # --- Landfills ---------------------------------------------------------------------

    @_translated
    async def create_landfill(
        self, tx: Transaction, landfill: EditableLandfill, location: Location
    ) -> uuid.UUID:
        return await LandfillRepo(_session(tx)).create(landfill, location)

    @_translated
    async def list_landfills(self, tx: Transaction, filter: LandfillsFilter) -> Page[Landfill]:
        return await LandfillRepo(_session(tx)).list(filter)

    @_translated
    async def get_landfill_by_id(self, tx: Transaction, landfill_id: uuid.UUID) -> Landfill:
        return await LandfillRepo(_session(tx)).get(landfill_id)

    @_translated
    async def patch_landfill(
        self, tx: Transaction, landfill_id: uuid.UUID, patch: LandfillPatch, location: Location | None
    ) -> None:
        await LandfillRepo(_session(tx)).patch(landfill_id, patch, location)

    @_translated
    async def delete_landfill_by_id(self, tx: Transaction, landfill_id: uuid.UUID) -> None:
        await LandfillRepo(_session(tx)).delete(landfill_id)

    # --- Trucks ------------------------------------------------------------------------

    @_translated
    async def create_truck(self, tx: Transaction, truck: EditableTruck, location: Location) -> uuid.UUID:
        return await TruckRepo(_session(tx)).create(truck, location)

    @_translated
    async def list_trucks(self, tx: Transaction, filter: TrucksFilter) -> Page[Truck]:
        return await TruckRepo(_session(tx)).list(filter)

    @_translated
    async def get_truck_by_id(self, tx: Transaction, truck_id: uuid.UUID) -> Truck:
        return await TruckRepo(_session(tx)).get(truck_id)

    @_translated
    async def patch_truck(
        self, tx: Transaction, truck_id: uuid.UUID, patch: TruckPatch, location: Location | None
    ) -> None:
        await TruckRepo(_session(tx)).patch(truck_id, patch, location)

    @_translated
    async def delete_truck_by_id(self, tx: Transaction, truck_id: uuid.UUID) -> None:
        await TruckRepo(_session(tx)).delete(truck_id)

    # --- Warehouses --------------------------------------------------------------------

    @_translated
    async def create_warehouse(
        self, tx: Transaction, warehouse: EditableWarehouse, location: Location
    ) -> uuid.UUID:
        return await WarehouseRepo(_session(tx)).create(warehouse, location)

    @_translated
    async def list_warehouses(self, tx: Transaction, filter: WarehousesFilter) -> Page[Warehouse]:
        return await WarehouseRepo(_session(tx)).list(filter)

    @_translated
    async def get_warehouse_by_id(self, tx: Transaction, warehouse_id: uuid.UUID) -> Warehouse:
        return await WarehouseRepo(_session(tx)).get(warehouse_id)

    @_translated
    async def patch_warehouse(
        self, tx: Transaction, warehouse_id: uuid.UUID, patch: WarehousePatch, location: Location | None
    ) -> None:
        await WarehouseRepo(_session(tx)).patch(warehouse_id, patch, location)

    @_translated
    async def delete_warehouse_by_id(self, tx: Transaction, warehouse_id: uuid.UUID) -> None:
        await WarehouseRepo(_session(tx)).delete(warehouse_id)

    @_translated
    async def create_warehouse_truck(
        self, tx: Transaction, warehouse_id: uuid.UUID, truck_id: uuid.UUID
    ) -> None:
        await WarehouseTruckRepo(_session(tx)).create(warehouse_id, truck_id)

    @_translated
    async def list_warehouse_trucks(
        self, tx: Transaction, warehouse_id: uuid.UUID, page: PageRequest
    ) -> Page[Truck]:
        return await WarehouseTruckRepo(_session(tx)).list_trucks(warehouse_id, page)

    @_translated
    async def delete_warehouse_truck(
        self, tx: Transaction, warehouse_id: uuid.UUID, truck_id: uuid.UUID
    ) -> None:
        await WarehouseTruckRepo(_session(tx)).delete(warehouse_id, truck_id)

    # --- Routes ------------------------------------------------------------------------

    @_translated
    async def create_route(self, tx: Transaction, route: EditableRoute) -> uuid.UUID:
        return await RouteRepo(_session(tx)).create(route)

    @_translated
    async def list_routes(self, tx: Transaction, filter: RoutesFilter) -> Page[Route]:
        return await RouteRepo(_session(tx)).list(filter)

    @_translated
    async def get_route_by_id(self, tx: Transaction, route_id: uuid.UUID) -> Route:
        return await RouteRepo(_session(tx)).get(route_id)

    @_translated
    async def patch_route(self, tx: Transaction, route_id: uuid.UUID, patch: RoutePatch) -> None:
        await RouteRepo(_session(tx)).patch(route_id, patch)

    @_translated
    async def delete_route_by_id(self, tx: Transaction, route_id: uuid.UUID) -> None:
        await RouteRepo(_session(tx)).delete(route_id)

    @_translated
    async def create_route_employee(
        self, tx: Transaction, route_id: uuid.UUID, employee_id: uuid.UUID, route_role: RouteRole
    ) -> None:
        await RouteEmployeeRepo(_session(tx)).create(route_id, employee_id, route_role)

    @_translated
    async def list_route_employees(
        self, tx: Transaction, route_id: uuid.UUID, filter: RouteEmployeesFilter
    ) -> Page[RouteEmployee]:
        return await RouteEmployeeRepo(_session(tx)).list(route_id, filter)

    @_translated
    async def delete_route_employee(
        self, tx: Transaction, route_id: uuid.UUID, employee_id: uuid.UUID
    ) -> None:
        await RouteEmployeeRepo(_session(tx)).delete(route_id, employee_id)

    @_translated
    async def create_route_container(
        self, tx: Transaction, route_id: uuid.UUID, container_id: uuid.UUID
    ) -> None:
        await RouteContainerRepo(_session(tx)).create(route_id, container_id)

    @_translated
    async def list_route_containers(
        self, tx: Transaction, route_id: uuid.UUID, filter: RouteContainersFilter
    ) -> Page[Container]:
        return await RouteContainerRepo(_session(tx)).list(
            route_id,
            filter.page,
            category=filter.container_category,
            location_name=filter.location_name,
        )

    @_translated
    async def delete_route_container(
        self, tx: Transaction, route_id: uuid.UUID, container_id: uuid.UUID
    ) -> None:
        await RouteContainerRepo(_session(tx)).delete(route_id, container_id)

    # --- Geospatial lookups ------------------------------------------------------------

    @_translated
    async def get_road_by_geometry(self, tx: Transaction, point: Point) -> Road:
        return await GeoRepo(_session(tx)).road_by_geometry(point)

    @_translated
    async def get_municipality_by_geometry(self, tx: Transaction, point: Point) -> Municipality:
        return await GeoRepo(_session(tx)).municipality_by_geometry(point)


# --- Module Notes -----------------------------------------------------------
# Every method mirrors the matching `services.base.Store` signature. Repositories are cheap
# and built per call, bound to the transaction's session.
