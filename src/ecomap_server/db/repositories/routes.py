"""
ecomap_server.db.repositories.routes

Repositories for routes, their employee assignments and the containers they collect.
"""

from __future__ import annotations

import uuid
from typing import Any

from sqlalchemy import Select, delete, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from ecomap_server.db.models import (
    ROUTES_ARRIVAL_WAREHOUSE_ID_FKEY,
    ROUTES_CONTAINERS_CONTAINER_ID_FKEY,
    ROUTES_CONTAINERS_PKEY,
    ROUTES_CONTAINERS_ROUTE_ID_FKEY,
    ROUTES_DEPARTURE_WAREHOUSE_ID_FKEY,
    ROUTES_EMPLOYEES_EMPLOYEE_ID_FKEY,
    ROUTES_EMPLOYEES_PKEY,
    ROUTES_EMPLOYEES_ROUTE_ID_FKEY,
    ROUTES_TRUCK_ID_FKEY,
    ContainerRow,
    EmployeeRow,
    MunicipalityRow,
    RoadNetwork,
    RouteContainerRow,
    RouteEmployeeRow,
    RouteRow,
)
from ecomap_server.db.repositories.base import (
    EntityRepo,
    contains,
    located_select,
    paginate,
    raise_integrity_error,
)
from ecomap_server.db.repositories.containers import ContainerLinkRepo
from ecomap_server.db.repositories.employees import employee_from_row
from ecomap_server.domain.errors import (
    ContainerNotFoundError,
    EmployeeNotFoundError,
    RouteArrivalWarehouseNotFoundError,
    RouteAssociatedWithContainerError,
    RouteAssociatedWithEmployeeError,
    RouteContainerAlreadyExistsError,
    RouteContainerNotFoundError,
    RouteDepartureWarehouseNotFoundError,
    RouteEmployeeAlreadyExistsError,
    RouteEmployeeNotFoundError,
    RouteNotFoundError,
    TruckNotFoundError,
)
from ecomap_server.domain.models import (
    EditableRoute,
    Route,
    RouteEmployee,
    RouteEmployeesFilter,
    RoutePatch,
    RouteRole,
    RoutesFilter,
)
from ecomap_server.domain.pagination import Page

_ROUTE_PATCHABLE = ("name", "truck_id", "departure_warehouse_id", "arrival_warehouse_id")


class RouteRepo(EntityRepo[Route]):
    model = RouteRow
    not_found = RouteNotFoundError
    constraints = {
        ROUTES_TRUCK_ID_FKEY: TruckNotFoundError,
        ROUTES_DEPARTURE_WAREHOUSE_ID_FKEY: RouteDepartureWarehouseNotFoundError,
        ROUTES_ARRIVAL_WAREHOUSE_ID_FKEY: RouteArrivalWarehouseNotFoundError,
    }
    delete_constraints = {
        ROUTES_EMPLOYEES_ROUTE_ID_FKEY: RouteAssociatedWithEmployeeError,
        ROUTES_CONTAINERS_ROUTE_ID_FKEY: RouteAssociatedWithContainerError,
    }
    sort_columns = {
        "name": RouteRow.name,
        "truckId": RouteRow.truck_id,
        "departureWarehouseId": RouteRow.departure_warehouse_id,
        "arrivalWarehouseId": RouteRow.arrival_warehouse_id,
        "createdAt": RouteRow.created_at,
        "modifiedAt": RouteRow.modified_at,
    }

    def select_stmt(self) -> Select[Any]:
        return select(RouteRow)

    def to_domain(self, row: Any) -> Route:
        r: RouteRow = row[0]
        return Route(
            id=r.id,
            name=r.name,
            truck_id=r.truck_id,
            departure_warehouse_id=r.departure_warehouse_id,
            arrival_warehouse_id=r.arrival_warehouse_id,
            created_at=r.created_at,
            modified_at=r.modified_at,
        )

    async def create(self, route: EditableRoute) -> uuid.UUID:
        return await self._insert(
            RouteRow(
                name=route.name,
                truck_id=route.truck_id,
                departure_warehouse_id=route.departure_warehouse_id,
                arrival_warehouse_id=route.arrival_warehouse_id,
            )
        )

    async def list(self, filter: RoutesFilter) -> Page[Route]:
        stmt = self.select_stmt()
        if filter.name is not None:
            stmt = stmt.where(contains(RouteRow.name, filter.name))
        if filter.truck_id is not None:
            stmt = stmt.where(RouteRow.truck_id == filter.truck_id)
        if filter.departure_warehouse_id is not None:
            stmt = stmt.where(RouteRow.departure_warehouse_id == filter.departure_warehouse_id)
        if filter.arrival_warehouse_id is not None:
            stmt = stmt.where(RouteRow.arrival_warehouse_id == filter.arrival_warehouse_id)
        return await self._list(stmt, filter.page)

    async def patch(self, route_id: uuid.UUID, patch: RoutePatch) -> None:
        values = {
            name: getattr(patch, name)
            for name in _ROUTE_PATCHABLE
            if getattr(patch, name) is not None
        }
        await self._update(route_id, values)


class RouteEmployeeRepo:
    _CONSTRAINTS = {
        ROUTES_EMPLOYEES_PKEY: RouteEmployeeAlreadyExistsError,
        ROUTES_EMPLOYEES_ROUTE_ID_FKEY: RouteNotFoundError,
        ROUTES_EMPLOYEES_EMPLOYEE_ID_FKEY: EmployeeNotFoundError,
    }
    _SORT_COLUMNS = {
        "routeRole": RouteEmployeeRow.route_role,
        "createdAt": RouteEmployeeRow.created_at,
    }

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def create(
        self, route_id: uuid.UUID, employee_id: uuid.UUID, route_role: RouteRole
    ) -> None:
        self._session.add(
            RouteEmployeeRow(route_id=route_id, employee_id=employee_id, route_role=route_role)
        )
        try:
            await self._session.flush()
        except IntegrityError as e:
            raise_integrity_error(e, self._CONSTRAINTS)

    async def list(self, route_id: uuid.UUID, filter: RouteEmployeesFilter) -> Page[RouteEmployee]:
        stmt = (
            located_select(EmployeeRow)
            .add_columns(
                RouteEmployeeRow.route_role.label("route_role"),
                RouteEmployeeRow.created_at.label("assigned_at"),
            )
            .join(RouteEmployeeRow, RouteEmployeeRow.employee_id == EmployeeRow.id)
            .where(RouteEmployeeRow.route_id == route_id)
        )
        if filter.route_role is not None:
            stmt = stmt.where(RouteEmployeeRow.route_role == filter.route_role)

        def to_domain(row: Any) -> RouteEmployee:
            return RouteEmployee(
                route_id=route_id,
                route_role=row.route_role,
                employee=employee_from_row(row),
                created_at=row.assigned_at,
            )

        return await paginate(
            self._session,
            stmt,
            page=filter.page,
            sort_columns=self._SORT_COLUMNS,
            default_sort=RouteEmployeeRow.created_at,
            to_domain=to_domain,
        )

    async def delete(self, route_id: uuid.UUID, employee_id: uuid.UUID) -> None:
        stmt = delete(RouteEmployeeRow).where(
            RouteEmployeeRow.route_id == route_id,
            RouteEmployeeRow.employee_id == employee_id,
        )
        result = await self._session.execute(stmt)
        if result.rowcount == 0:
            raise RouteEmployeeNotFoundError()


class RouteContainerRepo(ContainerLinkRepo):
    model = RouteContainerRow
    owner_column = "route_id"
    constraints = {
        ROUTES_CONTAINERS_PKEY: RouteContainerAlreadyExistsError,
        ROUTES_CONTAINERS_ROUTE_ID_FKEY: RouteNotFoundError,
        ROUTES_CONTAINERS_CONTAINER_ID_FKEY: ContainerNotFoundError,
    }
    not_found = RouteContainerNotFoundError
    sort_columns = {
        "containerCategory": ContainerRow.category,
        "containerWayName": RoadNetwork.osm_name,
        "containerMunicipalityName": MunicipalityRow.name,
        "createdAt": RouteContainerRow.created_at,
    }
