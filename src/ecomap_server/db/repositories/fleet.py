"""
ecomap_server.db.repositories.fleet

Repositories for trucks, warehouses and the warehouse-truck association.
"""

from __future__ import annotations

import uuid
from typing import Any

from sqlalchemy import delete
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from ecomap_server.db.models import (
    ROUTES_ARRIVAL_WAREHOUSE_ID_FKEY,
    ROUTES_DEPARTURE_WAREHOUSE_ID_FKEY,
    ROUTES_TRUCK_ID_FKEY,
    WAREHOUSES_TRUCKS_PKEY,
    WAREHOUSES_TRUCKS_TRUCK_ID_FKEY,
    WAREHOUSES_TRUCKS_WAREHOUSE_ID_FKEY,
    TruckRow,
    WarehouseRow,
    WarehouseTruckRow,
)
from ecomap_server.db.repositories.base import (
    EntityRepo,
    contains,
    located_sort_columns,
    location_name_matches,
    location_values,
    point_of,
    raise_integrity_error,
)
from ecomap_server.domain.errors import (
    TruckAssociatedWithRouteError,
    TruckAssociatedWithWarehouseError,
    TruckNotFoundError,
    WarehouseAssociatedWithRouteArrivalError,
    WarehouseAssociatedWithRouteDepartureError,
    WarehouseAssociatedWithTruckError,
    WarehouseNotFoundError,
    WarehouseTruckAlreadyExistsError,
    WarehouseTruckNotFoundError,
)
from ecomap_server.domain.models import (
    EditableTruck,
    EditableWarehouse,
    Location,
    Truck,
    TruckPatch,
    TrucksFilter,
    Warehouse,
    WarehousePatch,
    WarehousesFilter,
)
from ecomap_server.domain.pagination import Page, PageRequest

_TRUCK_PATCHABLE = ("make", "model", "license_plate", "person_capacity")


class TruckRepo(EntityRepo[Truck]):
    model = TruckRow
    not_found = TruckNotFoundError
    delete_constraints = {
        WAREHOUSES_TRUCKS_TRUCK_ID_FKEY: TruckAssociatedWithWarehouseError,
        ROUTES_TRUCK_ID_FKEY: TruckAssociatedWithRouteError,
    }
    sort_columns = {
        "make": TruckRow.make,
        "model": TruckRow.model,
        "licensePlate": TruckRow.license_plate,
        "personCapacity": TruckRow.person_capacity,
        "createdAt": TruckRow.created_at,
        "modifiedAt": TruckRow.modified_at,
        **located_sort_columns(),
    }

    def to_domain(self, row: Any) -> Truck:
        t: TruckRow = row[0]
        return Truck(
            id=t.id,
            make=t.make,
            model=t.model,
            license_plate=t.license_plate,
            person_capacity=t.person_capacity,
            location=point_of(t),
            way_name=row.way_name,
            municipality_name=row.municipality_name,
            created_at=t.created_at,
            modified_at=t.modified_at,
        )

    async def create(self, truck: EditableTruck, location: Location) -> uuid.UUID:
        return await self._insert(
            TruckRow(
                make=truck.make,
                model=truck.model,
                license_plate=truck.license_plate,
                person_capacity=truck.person_capacity,
                **location_values(truck.location, location),
            )
        )

    async def list(self, filter: TrucksFilter) -> Page[Truck]:
        stmt = self.select_stmt()
        if filter.make is not None:
            stmt = stmt.where(contains(TruckRow.make, filter.make))
        if filter.model is not None:
            stmt = stmt.where(contains(TruckRow.model, filter.model))
        if filter.license_plate is not None:
            stmt = stmt.where(contains(TruckRow.license_plate, filter.license_plate))
        if filter.location_name is not None:
            stmt = stmt.where(location_name_matches(filter.location_name))
        return await self._list(stmt, filter.page)

    async def list_in_warehouse(self, warehouse_id: uuid.UUID, page: PageRequest) -> Page[Truck]:
        stmt = self.select_stmt().join(
            WarehouseTruckRow,
            (WarehouseTruckRow.truck_id == TruckRow.id)
            & (WarehouseTruckRow.warehouse_id == warehouse_id),
        )
        return await self._list(stmt, page)

    async def patch(self, truck_id: uuid.UUID, patch: TruckPatch, location: Location | None) -> None:
        values = {
            name: getattr(patch, name)
            for name in _TRUCK_PATCHABLE
            if getattr(patch, name) is not None
        }
        values.update(location_values(patch.location, location))
        await self._update(truck_id, values)


class WarehouseRepo(EntityRepo[Warehouse]):
    model = WarehouseRow
    not_found = WarehouseNotFoundError
    delete_constraints = {
        WAREHOUSES_TRUCKS_WAREHOUSE_ID_FKEY: WarehouseAssociatedWithTruckError,
        ROUTES_DEPARTURE_WAREHOUSE_ID_FKEY: WarehouseAssociatedWithRouteDepartureError,
        ROUTES_ARRIVAL_WAREHOUSE_ID_FKEY: WarehouseAssociatedWithRouteArrivalError,
    }
    sort_columns = {
        "truckCapacity": WarehouseRow.truck_capacity,
        "createdAt": WarehouseRow.created_at,
        "modifiedAt": WarehouseRow.modified_at,
        **located_sort_columns(),
    }

    def to_domain(self, row: Any) -> Warehouse:
        w: WarehouseRow = row[0]
        return Warehouse(
            id=w.id,
            truck_capacity=w.truck_capacity,
            location=point_of(w),
            way_name=row.way_name,
            municipality_name=row.municipality_name,
            created_at=w.created_at,
            modified_at=w.modified_at,
        )

    async def create(self, warehouse: EditableWarehouse, location: Location) -> uuid.UUID:
        return await self._insert(
            WarehouseRow(
                truck_capacity=warehouse.truck_capacity,
                **location_values(warehouse.location, location),
            )
        )

    async def list(self, filter: WarehousesFilter) -> Page[Warehouse]:
        stmt = self.select_stmt()
        if filter.location_name is not None:
            stmt = stmt.where(location_name_matches(filter.location_name))
        return await self._list(stmt, filter.page)

    async def patch(
        self, warehouse_id: uuid.UUID, patch: WarehousePatch, location: Location | None
    ) -> None:
        values = location_values(patch.location, location)
        if patch.truck_capacity is not None:
            values["truck_capacity"] = patch.truck_capacity
        await self._update(warehouse_id, values)


class WarehouseTruckRepo:
    _CONSTRAINTS = {
        WAREHOUSES_TRUCKS_PKEY: WarehouseTruckAlreadyExistsError,
        WAREHOUSES_TRUCKS_WAREHOUSE_ID_FKEY: WarehouseNotFoundError,
        WAREHOUSES_TRUCKS_TRUCK_ID_FKEY: TruckNotFoundError,
    }

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def create(self, warehouse_id: uuid.UUID, truck_id: uuid.UUID) -> None:
        self._session.add(WarehouseTruckRow(warehouse_id=warehouse_id, truck_id=truck_id))
        try:
            await self._session.flush()
        except IntegrityError as e:
            raise_integrity_error(e, self._CONSTRAINTS)

    async def list_trucks(self, warehouse_id: uuid.UUID, page: PageRequest) -> Page[Truck]:
        return await TruckRepo(self._session).list_in_warehouse(warehouse_id, page)

    async def delete(self, warehouse_id: uuid.UUID, truck_id: uuid.UUID) -> None:
        stmt = delete(WarehouseTruckRow).where(
            WarehouseTruckRow.warehouse_id == warehouse_id,
            WarehouseTruckRow.truck_id == truck_id,
        )
        result = await self._session.execute(stmt)
        if result.rowcount == 0:
            raise WarehouseTruckNotFoundError()
