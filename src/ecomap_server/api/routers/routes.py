"""
ecomap_server.api.routers.routes

Collection route endpoints, including the employees assigned to a route and the containers
it collects.
"""

from __future__ import annotations

import uuid

from fastapi import APIRouter, Depends, Query, Response
from starlette.status import HTTP_201_CREATED, HTTP_204_NO_CONTENT

from ecomap_server.api.deps import page_request, services_dep
from ecomap_server.api.schemas import (
    ContainerOut,
    PageOut,
    RouteEmployeeIn,
    RouteEmployeeOut,
    RouteIn,
    RouteOut,
    RoutePatchIn,
)
from ecomap_server.auth.deps import get_principal
from ecomap_server.auth.models import Principal
from ecomap_server.domain.models import (
    ContainerCategory,
    RouteContainersFilter,
    RouteEmployeesFilter,
    RouteRole,
    RoutesFilter,
)
from ecomap_server.domain.pagination import PageRequest
from ecomap_server.services.registry import Services

router = APIRouter(prefix="/api/routes", tags=["routes"])


@router.post("", status_code=HTTP_201_CREATED, response_model=RouteOut)
async def create_route(body: RouteIn, services: Services = Depends(services_dep)) -> RouteOut:
    return RouteOut.from_domain(await services.routes.create_route(body.to_domain()))


@router.get("", response_model=PageOut[RouteOut])
async def list_routes(
    page: PageRequest = Depends(page_request),
    name: str | None = Query(default=None),
    truck_id: uuid.UUID | None = Query(default=None, alias="truckId"),
    departure_warehouse_id: uuid.UUID | None = Query(default=None, alias="departureWarehouseId"),
    arrival_warehouse_id: uuid.UUID | None = Query(default=None, alias="arrivalWarehouseId"),
    services: Services = Depends(services_dep),
) -> PageOut[RouteOut]:
    result = await services.routes.list_routes(
        RoutesFilter(
            page=page,
            name=name,
            truck_id=truck_id,
            departure_warehouse_id=departure_warehouse_id,
            arrival_warehouse_id=arrival_warehouse_id,
        )
    )
    return PageOut[RouteOut](
        total=result.total, results=[RouteOut.from_domain(r) for r in result.results]
    )


@router.get("/{route_id}", response_model=RouteOut)
async def get_route(route_id: uuid.UUID, services: Services = Depends(services_dep)) -> RouteOut:
    return RouteOut.from_domain(await services.routes.get_route(route_id))


@router.patch("/{route_id}", response_model=RouteOut)
async def patch_route(
    route_id: uuid.UUID, body: RoutePatchIn, services: Services = Depends(services_dep)
) -> RouteOut:
    return RouteOut.from_domain(await services.routes.patch_route(route_id, body.to_domain()))


@router.delete("/{route_id}", response_model=RouteOut)
async def delete_route(
    route_id: uuid.UUID,
    principal: Principal = Depends(get_principal),
    services: Services = Depends(services_dep),
) -> RouteOut:
    return RouteOut.from_domain(
        await services.routes.delete_route(route_id, actor=principal.subject)
    )


@router.get("/{route_id}/employees", response_model=PageOut[RouteEmployeeOut])
async def list_route_employees(
    route_id: uuid.UUID,
    page: PageRequest = Depends(page_request),
    route_role: RouteRole | None = Query(default=None, alias="routeRole"),
    services: Services = Depends(services_dep),
) -> PageOut[RouteEmployeeOut]:
    result = await services.routes.list_route_employees(
        route_id, RouteEmployeesFilter(page=page, route_role=route_role)
    )
    return PageOut[RouteEmployeeOut](
        total=result.total, results=[RouteEmployeeOut.from_domain(e) for e in result.results]
    )


@router.post("/{route_id}/employees/{employee_id}", status_code=HTTP_201_CREATED)
async def create_route_employee(
    route_id: uuid.UUID,
    employee_id: uuid.UUID,
    body: RouteEmployeeIn,
    principal: Principal = Depends(get_principal),
    services: Services = Depends(services_dep),
) -> Response:
    await services.routes.create_route_employee(
        route_id, employee_id, body.route_role, actor=principal.subject
    )
    return Response(status_code=HTTP_201_CREATED)


@router.delete("/{route_id}/employees/{employee_id}", status_code=HTTP_204_NO_CONTENT)
async def delete_route_employee(
    route_id: uuid.UUID,
    employee_id: uuid.UUID,
    principal: Principal = Depends(get_principal),
    services: Services = Depends(services_dep),
) -> Response:
    await services.routes.delete_route_employee(route_id, employee_id, actor=principal.subject)
    return Response(status_code=HTTP_204_NO_CONTENT)


@router.get("/{route_id}/containers", response_model=PageOut[ContainerOut])
async def list_route_containers(
    route_id: uuid.UUID,
    page: PageRequest = Depends(page_request),
    container_category: ContainerCategory | None = Query(default=None, alias="containerCategory"),
    location_name: str | None = Query(default=None, alias="locationName"),
    services: Services = Depends(services_dep),
) -> PageOut[ContainerOut]:
    result = await services.routes.list_route_containers(
        route_id,
        RouteContainersFilter(
            page=page, container_category=container_category, location_name=location_name
        ),
    )
    return PageOut[ContainerOut](
        total=result.total, results=[ContainerOut.from_domain(c) for c in result.results]
    )


@router.post("/{route_id}/containers/{container_id}", status_code=HTTP_201_CREATED)
async def create_route_container(
    route_id: uuid.UUID,
    container_id: uuid.UUID,
    principal: Principal = Depends(get_principal),
    services: Services = Depends(services_dep),
) -> Response:
    await services.routes.create_route_container(route_id, container_id, actor=principal.subject)
    return Response(status_code=HTTP_201_CREATED)


@router.delete("/{route_id}/containers/{container_id}", status_code=HTTP_204_NO_CONTENT)
async def delete_route_container(
    route_id: uuid.UUID,
    container_id: uuid.UUID,
    principal: Principal = Depends(get_principal),
    services: Services = Depends(services_dep),
) -> Response:
    await services.routes.delete_route_container(route_id, container_id, actor=principal.subject)
    return Response(status_code=HTTP_204_NO_CONTENT)
