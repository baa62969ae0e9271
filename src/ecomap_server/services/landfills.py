"""
ecomap_server.services.landfills

Landfills (route end points for unloading).
"""

from __future__ import annotations

import uuid

from ecomap_server.db.tx import Transaction
from ecomap_server.domain.errors import LandfillNotFoundError
from ecomap_server.domain.geojson import FIELD_GEOJSON
from ecomap_server.domain.models import (
    LANDFILL_SORT_FIELDS,
    EditableLandfill,
    Landfill,
    LandfillPatch,
    LandfillsFilter,
)
from ecomap_server.domain.pagination import Page
from ecomap_server.services.base import BaseService, require

DESCRIPTION_FAILED_CREATE_LANDFILL = "service: failed to create landfill"
DESCRIPTION_FAILED_LIST_LANDFILLS = "service: failed to list landfills"
DESCRIPTION_FAILED_GET_LANDFILL = "service: failed to get landfill by id"
DESCRIPTION_FAILED_PATCH_LANDFILL = "service: failed to patch landfill"
DESCRIPTION_FAILED_DELETE_LANDFILL = "service: failed to delete landfill by id"


class LandfillService(BaseService):
    async def create_landfill(self, landfill: EditableLandfill) -> Landfill:
        async with self._operation("create_landfill", DESCRIPTION_FAILED_CREATE_LANDFILL):
            require(landfill.location.valid(), FIELD_GEOJSON)

            async def work(tx: Transaction) -> Landfill:
                location = await self._locate(tx, landfill.location)
                landfill_id = await self._store.create_landfill(tx, landfill, location)
                return await self._store.get_landfill_by_id(tx, landfill_id)

            return await self._read_write(work)

    async def list_landfills(self, filter: LandfillsFilter) -> Page[Landfill]:
        async with self._operation("list_landfills", DESCRIPTION_FAILED_LIST_LANDFILLS):
            filter.page.validate(LANDFILL_SORT_FIELDS)
            return await self._read_only(lambda tx: self._store.list_landfills(tx, filter))

    async def get_landfill(self, landfill_id: uuid.UUID) -> Landfill:
        async with self._operation(
            "get_landfill",
            DESCRIPTION_FAILED_GET_LANDFILL,
            expected=(LandfillNotFoundError,),
            landfill_id=str(landfill_id),
        ):
            return await self._read_only(lambda tx: self._store.get_landfill_by_id(tx, landfill_id))

    async def patch_landfill(self, landfill_id: uuid.UUID, patch: LandfillPatch) -> Landfill:
        async with self._operation(
            "patch_landfill",
            DESCRIPTION_FAILED_PATCH_LANDFILL,
            expected=(LandfillNotFoundError,),
            landfill_id=str(landfill_id),
        ):
            if patch.location is not None:
                require(patch.location.valid(), FIELD_GEOJSON)

            async def work(tx: Transaction) -> Landfill:
                location = (
                    await self._locate(tx, patch.location) if patch.location is not None else None
                )
                await self._store.patch_landfill(tx, landfill_id, patch, location)
                return await self._store.get_landfill_by_id(tx, landfill_id)

            return await self._read_write(work)

    async def delete_landfill(
        self, landfill_id: uuid.UUID, *, actor: str | None = None
    ) -> Landfill:
        async with self._operation(
            "delete_landfill",
            DESCRIPTION_FAILED_DELETE_LANDFILL,
            expected=(LandfillNotFoundError,),
            actor=actor,
            landfill_id=str(landfill_id),
        ):

            async def work(tx: Transaction) -> Landfill:
                landfill = await self._store.get_landfill_by_id(tx, landfill_id)
                await self._store.delete_landfill_by_id(tx, landfill_id)
                return landfill

            return await self._read_write(work)
