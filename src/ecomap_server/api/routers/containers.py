"""
ecomap_server.api.routers.containers

Container and landfill endpoints.
"""

from __future__ import annotations

import uuid

from fastapi import APIRouter, Depends, Query
from starlette.status import HTTP_201_CREATED

from ecomap_server.api.deps import page_request, services_dep
from ecomap_server.api.schemas import (
    ContainerIn,
    ContainerOut,
    ContainerPatchIn,
    LandfillIn,
    LandfillOut,
    LandfillPatchIn,
    PageOut,
)
from ecomap_server.auth.deps import get_principal
from ecomap_server.auth.models import Principal
from ecomap_server.domain.models import ContainerCategory, ContainersFilter, LandfillsFilter
from ecomap_server.domain.pagination import PageRequest
from ecomap_server.services.registry import Services

containers_router = APIRouter(prefix="/api/containers", tags=["containers"])
landfills_router = APIRouter(prefix="/api/landfills", tags=["landfills"])


@containers_router.post("", status_code=HTTP_201_CREATED, response_model=ContainerOut)
async def create_container(
    body: ContainerIn, services: Services = Depends(services_dep)
) -> ContainerOut:
    return ContainerOut.from_domain(await services.containers.create_container(body.to_domain()))


@containers_router.get("", response_model=PageOut[ContainerOut])
async def list_containers(
    page: PageRequest = Depends(page_request),
    category: ContainerCategory | None = Query(default=None),
    location_name: str | None = Query(default=None, alias="locationName"),
    services: Services = Depends(services_dep),
) -> PageOut[ContainerOut]:
    result = await services.containers.list_containers(
        ContainersFilter(page=page, category=category, location_name=location_name)
    )
    return PageOut[ContainerOut](
        total=result.total, results=[ContainerOut.from_domain(c) for c in result.results]
    )


@containers_router.get("/{container_id}", response_model=ContainerOut)
async def get_container(
    container_id: uuid.UUID, services: Services = Depends(services_dep)
) -> ContainerOut:
    return ContainerOut.from_domain(await services.containers.get_container(container_id))


@containers_router.patch("/{container_id}", response_model=ContainerOut)
async def patch_container(
    container_id: uuid.UUID, body: ContainerPatchIn, services: Services = Depends(services_dep)
) -> ContainerOut:
    container = await services.containers.patch_container(container_id, body.to_domain())
    return ContainerOut.from_domain(container)


@containers_router.delete("/{container_id}", response_model=ContainerOut)
async def delete_container(
    container_id: uuid.UUID,
    principal: Principal = Depends(get_principal),
    services: Services = Depends(services_dep),
) -> ContainerOut:
    return ContainerOut.from_domain(
        await services.containers.delete_container(container_id, actor=principal.subject)
    )


@landfills_router.post("", status_code=HTTP_201_CREATED, response_model=LandfillOut)
async def create_landfill(
    body: LandfillIn, services: Services = Depends(services_dep)
) -> LandfillOut:
    return LandfillOut.from_domain(await services.landfills.create_landfill(body.to_domain()))


@landfills_router.get("", response_model=PageOut[LandfillOut])
async def list_landfills(
    page: PageRequest = Depends(page_request),
    location_name: str | None = Query(default=None, alias="locationName"),
    services: Services = Depends(services_dep),
) -> PageOut[LandfillOut]:
    result = await services.landfills.list_landfills(
        LandfillsFilter(page=page, location_name=location_name)
    )
    return PageOut[LandfillOut](
        total=result.total, results=[LandfillOut.from_domain(f) for f in result.results]
    )


@landfills_router.get("/{landfill_id}", response_model=LandfillOut)
async def get_landfill(
    landfill_id: uuid.UUID, services: Services = Depends(services_dep)
) -> LandfillOut:
    return LandfillOut.from_domain(await services.landfills.get_landfill(landfill_id))


@landfills_router.patch("/{landfill_id}", response_model=LandfillOut)
async def patch_landfill(
    landfill_id: uuid.UUID, body: LandfillPatchIn, services: Services = Depends(services_dep)
) -> LandfillOut:
    landfill = await services.landfills.patch_landfill(landfill_id, body.to_domain())
    return LandfillOut.from_domain(landfill)


@landfills_router.delete("/{landfill_id}", response_model=LandfillOut)
async def delete_landfill(
    landfill_id: uuid.UUID,
    principal: Principal = Depends(get_principal),
    services: Services = Depends(services_dep),
) -> LandfillOut:
    return LandfillOut.from_domain(
        await services.landfills.delete_landfill(landfill_id, actor=principal.subject)
    )
