"""
ecomap_server.services.trucks

Collection trucks.

A truck cannot be deleted while a warehouse holds it or a route uses it; the store reports
both as conflicts.
"""

from __future__ import annotations

import uuid
from dataclasses import replace

from ecomap_server.db.tx import Transaction
from ecomap_server.domain.errors import (
    RouteTruckPersonCapacityMinLimitError,
    TruckAssociatedWithRouteError,
    TruckAssociatedWithWarehouseError,
    TruckNotFoundError,
)
from ecomap_server.domain.geojson import FIELD_GEOJSON
from ecomap_server.domain.models import (
    FIELD_LICENSE_PLATE,
    FIELD_MAKE,
    FIELD_MODEL,
    FIELD_PERSON_CAPACITY,
    TRUCK_SORT_FIELDS,
    EditableTruck,
    RouteEmployeesFilter,
    RoutesFilter,
    Truck,
    TruckPatch,
    TrucksFilter,
    collapse_spaces,
    valid_license_plate,
    valid_person_capacity,
    valid_truck_make,
    valid_truck_model,
)
from ecomap_server.domain.pagination import LIMIT_MAX, Page, PageRequest
from ecomap_server.services.base import BaseService, require

DESCRIPTION_FAILED_CREATE_TRUCK = "service: failed to create truck"
DESCRIPTION_FAILED_LIST_TRUCKS = "service: failed to list trucks"
DESCRIPTION_FAILED_GET_TRUCK = "service: failed to get truck by id"
DESCRIPTION_FAILED_PATCH_TRUCK = "service: failed to patch truck"
DESCRIPTION_FAILED_DELETE_TRUCK = "service: failed to delete truck by id"


class TruckService(BaseService):
    async def create_truck(self, truck: EditableTruck) -> Truck:
        async with self._operation("create_truck", DESCRIPTION_FAILED_CREATE_TRUCK):
            truck = replace(
                truck,
                make=collapse_spaces(truck.make),
                model=collapse_spaces(truck.model),
                license_plate=collapse_spaces(truck.license_plate),
            )
            require(valid_truck_make(truck.make), FIELD_MAKE)
            require(valid_truck_model(truck.model), FIELD_MODEL)
            require(valid_license_plate(truck.license_plate), FIELD_LICENSE_PLATE)
            require(valid_person_capacity(truck.person_capacity), FIELD_PERSON_CAPACITY)
            require(truck.location.valid(), FIELD_GEOJSON)

            async def work(tx: Transaction) -> Truck:
                location = await self._locate(tx, truck.location)
                truck_id = await self._store.create_truck(tx, truck, location)
                return await self._store.get_truck_by_id(tx, truck_id)

            return await self._read_write(work)

    async def list_trucks(self, filter: TrucksFilter) -> Page[Truck]:
        async with self._operation("list_trucks", DESCRIPTION_FAILED_LIST_TRUCKS):
            filter.page.validate(TRUCK_SORT_FIELDS)
            return await self._read_only(lambda tx: self._store.list_trucks(tx, filter))

    async def get_truck(self, truck_id: uuid.UUID) -> Truck:
        async with self._operation(
            "get_truck",
            DESCRIPTION_FAILED_GET_TRUCK,
            expected=(TruckNotFoundError,),
            truck_id=str(truck_id),
        ):
            return await self._read_only(lambda tx: self._store.get_truck_by_id(tx, truck_id))

    async def patch_truck(self, truck_id: uuid.UUID, patch: TruckPatch) -> Truck:
        async with self._operation(
            "patch_truck",
            DESCRIPTION_FAILED_PATCH_TRUCK,
            expected=(TruckNotFoundError, RouteTruckPersonCapacityMinLimitError),
            truck_id=str(truck_id),
        ):
            patch = replace(
                patch,
                make=collapse_spaces(patch.make) if patch.make is not None else None,
                model=collapse_spaces(patch.model) if patch.model is not None else None,
                license_plate=(
                    collapse_spaces(patch.license_plate) if patch.license_plate is not None else None
                ),
            )
            if patch.make is not None:
                require(valid_truck_make(patch.make), FIELD_MAKE)
            if patch.model is not None:
                require(valid_truck_model(patch.model), FIELD_MODEL)
            if patch.license_plate is not None:
                require(valid_license_plate(patch.license_plate), FIELD_LICENSE_PLATE)
            if patch.person_capacity is not None:
                require(valid_person_capacity(patch.person_capacity), FIELD_PERSON_CAPACITY)
            if patch.location is not None:
                require(patch.location.valid(), FIELD_GEOJSON)

            async def work(tx: Transaction) -> Truck:
                if patch.person_capacity is not None:
                    await self._check_route_employees_fit(tx, truck_id, patch.person_capacity)

                location = (
                    await self._locate(tx, patch.location) if patch.location is not None else None
                )
                await self._store.patch_truck(tx, truck_id, patch, location)
                return await self._store.get_truck_by_id(tx, truck_id)

            return await self._read_write(work)

    async def delete_truck(
        self, truck_id: uuid.UUID, *, actor: str | None = None
    ) -> Truck:
        async with self._operation(
            "delete_truck",
            DESCRIPTION_FAILED_DELETE_TRUCK,
            expected=(
                TruckNotFoundError,
                TruckAssociatedWithWarehouseError,
                TruckAssociatedWithRouteError,
            ),
            actor=actor,
            truck_id=str(truck_id),
        ):

            async def work(tx: Transaction) -> Truck:
                truck = await self._store.get_truck_by_id(tx, truck_id)
                await self._store.delete_truck_by_id(tx, truck_id)
                return truck

            return await self._read_write(work)

    async def _check_route_employees_fit(
        self, tx: Transaction, truck_id: uuid.UUID, person_capacity: int
    ) -> None:
        """Every route using the truck must keep at most `person_capacity` employees."""

        offset = 0
        while True:
            routes = await self._store.list_routes(
                tx,
                RoutesFilter(page=PageRequest(limit=LIMIT_MAX, offset=offset), truck_id=truck_id),
            )
            for route in routes.results:
                employees = await self._store.list_route_employees(
                    tx, route.id, RouteEmployeesFilter()
                )
                if person_capacity < employees.total:
                    raise RouteTruckPersonCapacityMinLimitError()
            offset += len(routes.results)
            if len(routes.results) < LIMIT_MAX:
                return
