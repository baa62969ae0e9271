"""
ecomap_server.services.warehouses

Warehouses and the trucks they hold.

Responsibilities:
- CRUD for warehouses.
- Keep `Warehouse.truck_capacity` an upper bound on the number of associated trucks, both when
  associating a truck and when lowering the capacity.
- Refuse to detach a truck from a warehouse while a route departs from or arrives at that
  warehouse with that truck.
"""

from __future__ import annotations

import uuid

from ecomap_server.db.tx import Transaction
from ecomap_server.domain.errors import (
    TruckNotFoundError,
    WarehouseAssociatedWithRouteArrivalError,
    WarehouseAssociatedWithRouteDepartureError,
    WarehouseAssociatedWithTruckError,
    WarehouseNotFoundError,
    WarehouseTruckAlreadyExistsError,
    WarehouseTruckAssociatedWithRouteArrivalError,
    WarehouseTruckAssociatedWithRouteDepartureError,
    WarehouseTruckCapacityMaxLimitError,
    WarehouseTruckCapacityMinLimitError,
    WarehouseTruckNotFoundError,
)
from ecomap_server.domain.geojson import FIELD_GEOJSON
from ecomap_server.domain.models import (
    FIELD_TRUCK_CAPACITY,
    WAREHOUSE_SORT_FIELDS,
    WAREHOUSE_TRUCK_SORT_FIELDS,
    EditableWarehouse,
    RoutesFilter,
    Truck,
    Warehouse,
    WarehousePatch,
    WarehousesFilter,
    valid_truck_capacity,
)
from ecomap_server.domain.pagination import Page, PageRequest
from ecomap_server.services.base import BaseService, require

DESCRIPTION_FAILED_CREATE_WAREHOUSE = "service: failed to create warehouse"
DESCRIPTION_FAILED_LIST_WAREHOUSES = "service: failed to list warehouses"
DESCRIPTION_FAILED_GET_WAREHOUSE = "service: failed to get warehouse by id"
DESCRIPTION_FAILED_PATCH_WAREHOUSE = "service: failed to patch warehouse"
DESCRIPTION_FAILED_DELETE_WAREHOUSE = "service: failed to delete warehouse by id"
DESCRIPTION_FAILED_CREATE_WAREHOUSE_TRUCK = "service: failed to create warehouse truck association"
DESCRIPTION_FAILED_LIST_WAREHOUSE_TRUCKS = "service: failed to list warehouse truck associations"
DESCRIPTION_FAILED_DELETE_WAREHOUSE_TRUCK = "service: failed to delete warehouse truck association"


class WarehouseService(BaseService):
    async def create_warehouse(self, warehouse: EditableWarehouse) -> Warehouse:
        async with self._operation("create_warehouse", DESCRIPTION_FAILED_CREATE_WAREHOUSE):
            require(valid_truck_capacity(warehouse.truck_capacity), FIELD_TRUCK_CAPACITY)
            require(warehouse.location.valid(), FIELD_GEOJSON)

            async def work(tx: Transaction) -> Warehouse:
                location = await self._locate(tx, warehouse.location)
                warehouse_id = await self._store.create_warehouse(tx, warehouse, location)
                return await self._store.get_warehouse_by_id(tx, warehouse_id)

            return await self._read_write(work)

    async def list_warehouses(self, filter: WarehousesFilter) -> Page[Warehouse]:
        async with self._operation("list_warehouses", DESCRIPTION_FAILED_LIST_WAREHOUSES):
            filter.page.validate(WAREHOUSE_SORT_FIELDS)
            return await self._read_only(lambda tx: self._store.list_warehouses(tx, filter))

    async def get_warehouse(self, warehouse_id: uuid.UUID) -> Warehouse:
        async with self._operation(
            "get_warehouse",
            DESCRIPTION_FAILED_GET_WAREHOUSE,
            expected=(WarehouseNotFoundError,),
            warehouse_id=str(warehouse_id),
        ):
            return await self._read_only(
                lambda tx: self._store.get_warehouse_by_id(tx, warehouse_id)
            )

    async def patch_warehouse(self, warehouse_id: uuid.UUID, patch: WarehousePatch) -> Warehouse:
        async with self._operation(
            "patch_warehouse",
            DESCRIPTION_FAILED_PATCH_WAREHOUSE,
            expected=(WarehouseNotFoundError, WarehouseTruckCapacityMinLimitError),
            warehouse_id=str(warehouse_id),
        ):
            if patch.truck_capacity is not None:
                require(valid_truck_capacity(patch.truck_capacity), FIELD_TRUCK_CAPACITY)
            if patch.location is not None:
                require(patch.location.valid(), FIELD_GEOJSON)

            async def work(tx: Transaction) -> Warehouse:
                if patch.truck_capacity is not None:
                    trucks = await self._store.list_warehouse_trucks(
                        tx, warehouse_id, PageRequest()
                    )
                    if patch.truck_capacity < trucks.total:
                        raise WarehouseTruckCapacityMinLimitError()

                location = (
                    await self._locate(tx, patch.location) if patch.location is not None else None
                )
                await self._store.patch_warehouse(tx, warehouse_id, patch, location)
                return await self._store.get_warehouse_by_id(tx, warehouse_id)

            return await self._read_write(work)

    async def delete_warehouse(
        self, warehouse_id: uuid.UUID, *, actor: str | None = None
    ) -> Warehouse:
        async with self._operation(
            "delete_warehouse",
            DESCRIPTION_FAILED_DELETE_WAREHOUSE,
            expected=(
                WarehouseNotFoundError,
                WarehouseAssociatedWithTruckError,
                WarehouseAssociatedWithRouteDepartureError,
                WarehouseAssociatedWithRouteArrivalError,
            ),
            actor=actor,
            warehouse_id=str(warehouse_id),
        ):

            async def work(tx: Transaction) -> Warehouse:
                warehouse = await self._store.get_warehouse_by_id(tx, warehouse_id)
                await self._store.delete_warehouse_by_id(tx, warehouse_id)
                return warehouse

            return await self._read_write(work)

    # --- Warehouse trucks -------------------------------------------------------

    async def create_warehouse_truck(
        self, warehouse_id: uuid.UUID, truck_id: uuid.UUID, *, actor: str | None = None
    ) -> None:
        async with self._operation(
            "create_warehouse_truck",
            DESCRIPTION_FAILED_CREATE_WAREHOUSE_TRUCK,
            expected=(
                WarehouseTruckCapacityMaxLimitError,
                WarehouseTruckAlreadyExistsError,
                WarehouseNotFoundError,
                TruckNotFoundError,
            ),
            actor=actor,
            warehouse_id=str(warehouse_id),
            truck_id=str(truck_id),
        ):

            async def work(tx: Transaction) -> None:
                warehouse = await self._store.get_warehouse_by_id(tx, warehouse_id)
                await self._store.get_truck_by_id(tx, truck_id)
                trucks = await self._store.list_warehouse_trucks(tx, warehouse_id, PageRequest())
                if warehouse.truck_capacity <= trucks.total:
                    raise WarehouseTruckCapacityMaxLimitError()
                await self._store.create_warehouse_truck(tx, warehouse_id, truck_id)

            await self._read_write(work)

    async def list_warehouse_trucks(
        self, warehouse_id: uuid.UUID, page: PageRequest
    ) -> Page[Truck]:
        async with self._operation(
            "list_warehouse_trucks",
            DESCRIPTION_FAILED_LIST_WAREHOUSE_TRUCKS,
            warehouse_id=str(warehouse_id),
        ):
            page.validate(WAREHOUSE_TRUCK_SORT_FIELDS)
            return await self._read_only(
                lambda tx: self._store.list_warehouse_trucks(tx, warehouse_id, page)
            )

    async def delete_warehouse_truck(
        self, warehouse_id: uuid.UUID, truck_id: uuid.UUID, *, actor: str | None = None
    ) -> None:
        async with self._operation(
            "delete_warehouse_truck",
            DESCRIPTION_FAILED_DELETE_WAREHOUSE_TRUCK,
            expected=(
                WarehouseTruckAssociatedWithRouteDepartureError,
                WarehouseTruckAssociatedWithRouteArrivalError,
                WarehouseTruckNotFoundError,
            ),
            actor=actor,
            warehouse_id=str(warehouse_id),
            truck_id=str(truck_id),
        ):

            async def work(tx: Transaction) -> None:
                departures = await self._store.list_routes(
                    tx, RoutesFilter(truck_id=truck_id, departure_warehouse_id=warehouse_id)
                )
                if departures.total > 0:
                    raise WarehouseTruckAssociatedWithRouteDepartureError()

                arrivals = await self._store.list_routes(
                    tx, RoutesFilter(truck_id=truck_id, arrival_warehouse_id=warehouse_id)
                )
                if arrivals.total > 0:
                    raise WarehouseTruckAssociatedWithRouteArrivalError()

                await self._store.delete_warehouse_truck(tx, warehouse_id, truck_id)

            await self._read_write(work)
