"""
ecomap_server.api.routers.fleet

Truck and warehouse endpoints, including the trucks held by a warehouse.
"""

from __future__ import annotations

import uuid

from fastapi import APIRouter, Depends, Query, Response
from starlette.status import HTTP_201_CREATED, HTTP_204_NO_CONTENT

from ecomap_server.api.deps import page_request, services_dep
from ecomap_server.api.schemas import (
    PageOut,
    TruckIn,
    TruckOut,
    TruckPatchIn,
    WarehouseIn,
    WarehouseOut,
    WarehousePatchIn,
)
from ecomap_server.auth.deps import get_principal
from ecomap_server.auth.models import Principal
from ecomap_server.domain.models import TrucksFilter, WarehousesFilter
from ecomap_server.domain.pagination import PageRequest
from ecomap_server.services.registry import Services

trucks_router = APIRouter(prefix="/api/trucks", tags=["trucks"])
warehouses_router = APIRouter(prefix="/api/warehouses", tags=["warehouses"])


@trucks_router.post("", status_code=HTTP_201_CREATED, response_model=TruckOut)
async def create_truck(body: TruckIn, services: Services = Depends(services_dep)) -> TruckOut:
    return TruckOut.from_domain(await services.trucks.create_truck(body.to_domain()))


@trucks_router.get("", response_model=PageOut[TruckOut])
async def list_trucks(
    page: PageRequest = Depends(page_request),
    make: str | None = Query(default=None),
    model: str | None = Query(default=None),
    license_plate: str | None = Query(default=None, alias="licensePlate"),
    location_name: str | None = Query(default=None, alias="locationName"),
    services: Services = Depends(services_dep),
) -> PageOut[TruckOut]:
    result = await services.trucks.list_trucks(
        TrucksFilter(
            page=page,
            make=make,
            model=model,
            license_plate=license_plate,
            location_name=location_name,
        )
    )
    return PageOut[TruckOut](
        total=result.total, results=[TruckOut.from_domain(t) for t in result.results]
    )


@trucks_router.get("/{truck_id}", response_model=TruckOut)
async def get_truck(truck_id: uuid.UUID, services: Services = Depends(services_dep)) -> TruckOut:
    return TruckOut.from_domain(await services.trucks.get_truck(truck_id))


@trucks_router.patch("/{truck_id}", response_model=TruckOut)
async def patch_truck(
    truck_id: uuid.UUID, body: TruckPatchIn, services: Services = Depends(services_dep)
) -> TruckOut:
    return TruckOut.from_domain(await services.trucks.patch_truck(truck_id, body.to_domain()))


@trucks_router.delete("/{truck_id}", response_model=TruckOut)
async def delete_truck(
    truck_id: uuid.UUID,
    principal: Principal = Depends(get_principal),
    services: Services = Depends(services_dep),
) -> TruckOut:
    return TruckOut.from_domain(
        await services.trucks.delete_truck(truck_id, actor=principal.subject)
    )


@warehouses_router.post("", status_code=HTTP_201_CREATED, response_model=WarehouseOut)
async def create_warehouse(
    body: WarehouseIn, services: Services = Depends(services_dep)
) -> WarehouseOut:
    return WarehouseOut.from_domain(await services.warehouses.create_warehouse(body.to_domain()))


@warehouses_router.get("", response_model=PageOut[WarehouseOut])
async def list_warehouses(
    page: PageRequest = Depends(page_request),
    location_name: str | None = Query(default=None, alias="locationName"),
    services: Services = Depends(services_dep),
) -> PageOut[WarehouseOut]:
    result = await services.warehouses.list_warehouses(
        WarehousesFilter(page=page, location_name=location_name)
    )
    return PageOut[WarehouseOut](
        total=result.total, results=[WarehouseOut.from_domain(w) for w in result.results]
    )


@warehouses_router.get("/{warehouse_id}", response_model=WarehouseOut)
async def get_warehouse(
    warehouse_id: uuid.UUID, services: Services = Depends(services_dep)
) -> WarehouseOut:
    return WarehouseOut.from_domain(await services.warehouses.get_warehouse(warehouse_id))


@warehouses_router.patch("/{warehouse_id}", response_model=WarehouseOut)
async def patch_warehouse(
    warehouse_id: uuid.UUID, body: WarehousePatchIn, services: Services = Depends(services_dep)
) -> WarehouseOut:
    warehouse = await services.warehouses.patch_warehouse(warehouse_id, body.to_domain())
    return WarehouseOut.from_domain(warehouse)


@warehouses_router.delete("/{warehouse_id}", response_model=WarehouseOut)
async def delete_warehouse(
    warehouse_id: uuid.UUID,
    principal: Principal = Depends(get_principal),
    services: Services = Depends(services_dep),
) -> WarehouseOut:
    return WarehouseOut.from_domain(
        await services.warehouses.delete_warehouse(warehouse_id, actor=principal.subject)
    )


@warehouses_router.get("/{warehouse_id}/trucks", response_model=PageOut[TruckOut])
async def list_warehouse_trucks(
    warehouse_id: uuid.UUID,
    page: PageRequest = Depends(page_request),
    services: Services = Depends(services_dep),
) -> PageOut[TruckOut]:
    result = await services.warehouses.list_warehouse_trucks(warehouse_id, page)
    return PageOut[TruckOut](
        total=result.total, results=[TruckOut.from_domain(t) for t in result.results]
    )


@warehouses_router.post("/{warehouse_id}/trucks/{truck_id}", status_code=HTTP_201_CREATED)
async def create_warehouse_truck(
    warehouse_id: uuid.UUID,
    truck_id: uuid.UUID,
    principal: Principal = Depends(get_principal),
    services: Services = Depends(services_dep),
) -> Response:
    await services.warehouses.create_warehouse_truck(
        warehouse_id, truck_id, actor=principal.subject
    )
    return Response(status_code=HTTP_201_CREATED)


@warehouses_router.delete("/{warehouse_id}/trucks/{truck_id}", status_code=HTTP_204_NO_CONTENT)
async def delete_warehouse_truck(
    warehouse_id: uuid.UUID,
    truck_id: uuid.UUID,
    principal: Principal = Depends(get_principal),
    services: Services = Depends(services_dep),
) -> Response:
    await services.warehouses.delete_warehouse_truck(
        warehouse_id, truck_id, actor=principal.subject
    )
    return Response(status_code=HTTP_204_NO_CONTENT)
