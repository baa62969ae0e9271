"""
ecomap_server.services.routes

Collection routes, the employees assigned to them and the containers they collect.

Responsibilities:
- CRUD for routes (truck + departure/arrival warehouses).
- Keep the route truck's `person_capacity` an upper bound on assigned employees: when
  assigning an employee and when (re)assigning the truck.
- Attribute deletes and association changes to the signed-in actor.
"""

from __future__ import annotations

import uuid
from dataclasses import replace

from ecomap_server.db.tx import Transaction
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
    RouteTruckPersonCapacityMaxLimitError,
    RouteTruckPersonCapacityMinLimitError,
    TruckNotFoundError,
    WarehouseNotFoundError,
)
from ecomap_server.domain.models import (
    FIELD_NAME,
    ROUTE_CONTAINER_SORT_FIELDS,
    ROUTE_EMPLOYEE_SORT_FIELDS,
    ROUTE_SORT_FIELDS,
    Container,
    EditableRoute,
    Route,
    RouteContainersFilter,
    RouteEmployee,
    RouteEmployeesFilter,
    RoutePatch,
    RouteRole,
    RoutesFilter,
    collapse_spaces,
    valid_route_name,
)
from ecomap_server.domain.pagination import Page
from ecomap_server.services.base import BaseService, require

DESCRIPTION_FAILED_CREATE_ROUTE = "service: failed to create route"
DESCRIPTION_FAILED_LIST_ROUTES = "service: failed to list routes"
DESCRIPTION_FAILED_GET_ROUTE = "service: failed to get route by id"
DESCRIPTION_FAILED_PATCH_ROUTE = "service: failed to patch route"
DESCRIPTION_FAILED_DELETE_ROUTE = "service: failed to delete route by id"
DESCRIPTION_FAILED_CREATE_ROUTE_EMPLOYEE = "service: failed to create route employee association"
DESCRIPTION_FAILED_LIST_ROUTE_EMPLOYEES = "service: failed to list route employee associations"
DESCRIPTION_FAILED_DELETE_ROUTE_EMPLOYEE = "service: failed to delete route employee association"
DESCRIPTION_FAILED_CREATE_ROUTE_CONTAINER = "service: failed to create route container association"
DESCRIPTION_FAILED_LIST_ROUTE_CONTAINERS = "service: failed to list route container associations"
DESCRIPTION_FAILED_DELETE_ROUTE_CONTAINER = "service: failed to delete route container association"

_ROUTE_REFERENCE_ERRORS = (
    TruckNotFoundError,
    RouteDepartureWarehouseNotFoundError,
    RouteArrivalWarehouseNotFoundError,
)


class RouteService(BaseService):
    async def create_route(self, route: EditableRoute) -> Route:
        async with self._operation(
            "create_route",
            DESCRIPTION_FAILED_CREATE_ROUTE,
            expected=_ROUTE_REFERENCE_ERRORS,
            truck_id=str(route.truck_id),
        ):
            route = replace(route, name=collapse_spaces(route.name))
            require(valid_route_name(route.name), FIELD_NAME)

            async def work(tx: Transaction) -> Route:
                await self._check_references(
                    tx,
                    truck_id=route.truck_id,
                    departure_warehouse_id=route.departure_warehouse_id,
                    arrival_warehouse_id=route.arrival_warehouse_id,
                )
                route_id = await self._store.create_route(tx, route)
                return await self._store.get_route_by_id(tx, route_id)

            return await self._read_write(work)

    async def list_routes(self, filter: RoutesFilter) -> Page[Route]:
        async with self._operation("list_routes", DESCRIPTION_FAILED_LIST_ROUTES):
            filter.page.validate(ROUTE_SORT_FIELDS)
            return await self._read_only(lambda tx: self._store.list_routes(tx, filter))

    async def get_route(self, route_id: uuid.UUID) -> Route:
        async with self._operation(
            "get_route",
            DESCRIPTION_FAILED_GET_ROUTE,
            expected=(RouteNotFoundError,),
            route_id=str(route_id),
        ):
            return await self._read_only(lambda tx: self._store.get_route_by_id(tx, route_id))

    async def patch_route(self, route_id: uuid.UUID, patch: RoutePatch) -> Route:
        async with self._operation(
            "patch_route",
            DESCRIPTION_FAILED_PATCH_ROUTE,
            expected=(
                RouteNotFoundError,
                RouteTruckPersonCapacityMinLimitError,
                *_ROUTE_REFERENCE_ERRORS,
            ),
            route_id=str(route_id),
        ):
            if patch.name is not None:
                patch = replace(patch, name=collapse_spaces(patch.name))
                require(valid_route_name(patch.name), FIELD_NAME)

            async def work(tx: Transaction) -> Route:
                if patch.truck_id is not None:
                    truck = await self._store.get_truck_by_id(tx, patch.truck_id)
                    employees = await self._store.list_route_employees(
                        tx, route_id, RouteEmployeesFilter()
                    )
                    if truck.person_capacity < employees.total:
                        raise RouteTruckPersonCapacityMinLimitError()
                await self._check_references(
                    tx,
                    departure_warehouse_id=patch.departure_warehouse_id,
                    arrival_warehouse_id=patch.arrival_warehouse_id,
                )

                await self._store.patch_route(tx, route_id, patch)
                return await self._store.get_route_by_id(tx, route_id)

            return await self._read_write(work)

    async def delete_route(self, route_id: uuid.UUID, *, actor: str | None = None) -> Route:
        async with self._operation(
            "delete_route",
            DESCRIPTION_FAILED_DELETE_ROUTE,
            expected=(
                RouteNotFoundError,
                RouteAssociatedWithEmployeeError,
                RouteAssociatedWithContainerError,
            ),
            actor=actor,
            route_id=str(route_id),
        ):

            async def work(tx: Transaction) -> Route:
                route = await self._store.get_route_by_id(tx, route_id)
                await self._store.delete_route_by_id(tx, route_id)
                return route

            return await self._read_write(work)

    async def _check_references(
        self,
        tx: Transaction,
        *,
        truck_id: uuid.UUID | None = None,
        departure_warehouse_id: uuid.UUID | None = None,
        arrival_warehouse_id: uuid.UUID | None = None,
    ) -> None:
        if truck_id is not None:
            await self._store.get_truck_by_id(tx, truck_id)
        checks = (
            (departure_warehouse_id, RouteDepartureWarehouseNotFoundError),
            (arrival_warehouse_id, RouteArrivalWarehouseNotFoundError),
        )
        for warehouse_id, error in checks:
            if warehouse_id is None:
                continue
            try:
                await self._store.get_warehouse_by_id(tx, warehouse_id)
            except WarehouseNotFoundError as e:
                raise error() from e

    # --- Route employees --------------------------------------------------------

    async def create_route_employee(
        self,
        route_id: uuid.UUID,
        employee_id: uuid.UUID,
        route_role: RouteRole,
        *,
        actor: str | None = None,
    ) -> None:
        async with self._operation(
            "create_route_employee",
            DESCRIPTION_FAILED_CREATE_ROUTE_EMPLOYEE,
            expected=(
                RouteTruckPersonCapacityMaxLimitError,
                RouteEmployeeAlreadyExistsError,
                RouteNotFoundError,
                EmployeeNotFoundError,
            ),
            actor=actor,
            route_id=str(route_id),
            employee_id=str(employee_id),
        ):

            async def work(tx: Transaction) -> None:
                route = await self._store.get_route_by_id(tx, route_id)
                truck = await self._store.get_truck_by_id(tx, route.truck_id)
                await self._store.get_employee_by_id(tx, employee_id)
                employees = await self._store.list_route_employees(
                    tx, route.id, RouteEmployeesFilter()
                )
                if truck.person_capacity <= employees.total:
                    raise RouteTruckPersonCapacityMaxLimitError()
                await self._store.create_route_employee(tx, route_id, employee_id, route_role)

            await self._read_write(work)

    async def list_route_employees(
        self, route_id: uuid.UUID, filter: RouteEmployeesFilter
    ) -> Page[RouteEmployee]:
        async with self._operation(
            "list_route_employees",
            DESCRIPTION_FAILED_LIST_ROUTE_EMPLOYEES,
            route_id=str(route_id),
        ):
            filter.page.validate(ROUTE_EMPLOYEE_SORT_FIELDS)
            return await self._read_only(
                lambda tx: self._store.list_route_employees(tx, route_id, filter)
            )

    async def delete_route_employee(
        self, route_id: uuid.UUID, employee_id: uuid.UUID, *, actor: str | None = None
    ) -> None:
        async with self._operation(
            "delete_route_employee",
            DESCRIPTION_FAILED_DELETE_ROUTE_EMPLOYEE,
            expected=(RouteEmployeeNotFoundError,),
            actor=actor,
            route_id=str(route_id),
            employee_id=str(employee_id),
        ):
            await self._read_write(
                lambda tx: self._store.delete_route_employee(tx, route_id, employee_id)
            )

    # --- Route containers -------------------------------------------------------

    async def create_route_container(
        self, route_id: uuid.UUID, container_id: uuid.UUID, *, actor: str | None = None
    ) -> None:
        async with self._operation(
            "create_route_container",
            DESCRIPTION_FAILED_CREATE_ROUTE_CONTAINER,
            expected=(
                RouteContainerAlreadyExistsError,
                RouteNotFoundError,
                ContainerNotFoundError,
            ),
            actor=actor,
            route_id=str(route_id),
            container_id=str(container_id),
        ):

            async def work(tx: Transaction) -> None:
                await self._store.get_route_by_id(tx, route_id)
                await self._store.get_container_by_id(tx, container_id)
                await self._store.create_route_container(tx, route_id, container_id)

            await self._read_write(work)

    async def list_route_containers(
        self, route_id: uuid.UUID, filter: RouteContainersFilter
    ) -> Page[Container]:
        async with self._operation(
            "list_route_containers",
            DESCRIPTION_FAILED_LIST_ROUTE_CONTAINERS,
            route_id=str(route_id),
        ):
            filter.page.validate(ROUTE_CONTAINER_SORT_FIELDS)
            return await self._read_only(
                lambda tx: self._store.list_route_containers(tx, route_id, filter)
            )

    async def delete_route_container(
        self, route_id: uuid.UUID, container_id: uuid.UUID, *, actor: str | None = None
    ) -> None:
        async with self._operation(
            "delete_route_container",
            DESCRIPTION_FAILED_DELETE_ROUTE_CONTAINER,
            expected=(RouteContainerNotFoundError,),
            actor=actor,
            route_id=str(route_id),
            container_id=str(container_id),
        ):
            await self._read_write(
                lambda tx: self._store.delete_route_container(tx, route_id, container_id)
            )
