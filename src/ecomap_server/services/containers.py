"""
ecomap_server.services.containers

Waste containers placed on the map.
"""

from __future__ import annotations

import uuid

from ecomap_server.db.tx import Transaction
from ecomap_server.domain.errors import (
    ContainerAssociatedWithRouteError,
    ContainerAssociatedWithUserBookmarkError,
    ContainerNotFoundError,
)
from ecomap_server.domain.geojson import FIELD_GEOJSON
from ecomap_server.domain.models import (
    CONTAINER_SORT_FIELDS,
    Container,
    ContainerPatch,
    ContainersFilter,
    EditableContainer,
)
from ecomap_server.domain.pagination import Page
from ecomap_server.services.base import BaseService, require

DESCRIPTION_FAILED_CREATE_CONTAINER = "service: failed to create container"
DESCRIPTION_FAILED_LIST_CONTAINERS = "service: failed to list containers"
DESCRIPTION_FAILED_GET_CONTAINER = "service: failed to get container by id"
DESCRIPTION_FAILED_PATCH_CONTAINER = "service: failed to patch container"
DESCRIPTION_FAILED_DELETE_CONTAINER = "service: failed to delete container by id"


class ContainerService(BaseService):
    async def create_container(self, container: EditableContainer) -> Container:
        async with self._operation("create_container", DESCRIPTION_FAILED_CREATE_CONTAINER):
            require(container.location.valid(), FIELD_GEOJSON)

            async def work(tx: Transaction) -> Container:
                location = await self._locate(tx, container.location)
                container_id = await self._store.create_container(tx, container, location)
                return await self._store.get_container_by_id(tx, container_id)

            return await self._read_write(work)

    async def list_containers(self, filter: ContainersFilter) -> Page[Container]:
        async with self._operation("list_containers", DESCRIPTION_FAILED_LIST_CONTAINERS):
            filter.page.validate(CONTAINER_SORT_FIELDS)
            return await self._read_only(lambda tx: self._store.list_containers(tx, filter))

    async def get_container(self, container_id: uuid.UUID) -> Container:
        async with self._operation(
            "get_container",
            DESCRIPTION_FAILED_GET_CONTAINER,
            expected=(ContainerNotFoundError,),
            container_id=str(container_id),
        ):
            return await self._read_only(
                lambda tx: self._store.get_container_by_id(tx, container_id)
            )

    async def patch_container(self, container_id: uuid.UUID, patch: ContainerPatch) -> Container:
        async with self._operation(
            "patch_container",
            DESCRIPTION_FAILED_PATCH_CONTAINER,
            expected=(ContainerNotFoundError,),
            container_id=str(container_id),
        ):
            if patch.location is not None:
                require(patch.location.valid(), FIELD_GEOJSON)

            async def work(tx: Transaction) -> Container:
                location = (
                    await self._locate(tx, patch.location) if patch.location is not None else None
                )
                await self._store.patch_container(tx, container_id, patch, location)
                return await self._store.get_container_by_id(tx, container_id)

            return await self._read_write(work)

    async def delete_container(
        self, container_id: uuid.UUID, *, actor: str | None = None
    ) -> Container:
        async with self._operation(
            "delete_container",
            DESCRIPTION_FAILED_DELETE_CONTAINER,
            expected=(
                ContainerNotFoundError,
                ContainerAssociatedWithRouteError,
                ContainerAssociatedWithUserBookmarkError,
            ),
            actor=actor,
            container_id=str(container_id),
        ):

            async def work(tx: Transaction) -> Container:
                container = await self._store.get_container_by_id(tx, container_id)
                await self._store.delete_container_by_id(tx, container_id)
                return container

            return await self._read_write(work)
