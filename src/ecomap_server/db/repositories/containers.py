"""
ecomap_server.db.repositories.containers

Repositories for containers, landfills and the tables linking containers to an owner
(the routes collecting them, the users bookmarking them).
"""

from __future__ import annotations

import uuid
from collections.abc import Callable, Mapping
from typing import Any, ClassVar

from sqlalchemy import ColumnElement, delete
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from ecomap_server.db.models import (
    ROUTES_CONTAINERS_CONTAINER_ID_FKEY,
    USERS_CONTAINER_BOOKMARKS_CONTAINER_ID_FKEY,
    ContainerRow,
    LandfillRow,
)
from ecomap_server.db.repositories.base import (
    EntityRepo,
    located_select,
    located_sort_columns,
    location_name_matches,
    location_values,
    paginate,
    point_of,
    raise_integrity_error,
)
from ecomap_server.domain.errors import (
    ContainerAssociatedWithRouteError,
    ContainerAssociatedWithUserBookmarkError,
    ContainerNotFoundError,
    DomainError,
    LandfillNotFoundError,
)
from ecomap_server.domain.models import (
    Container,
    ContainerCategory,
    ContainerPatch,
    ContainersFilter,
    EditableContainer,
    EditableLandfill,
    Landfill,
    LandfillPatch,
    LandfillsFilter,
    Location,
)
from ecomap_server.domain.pagination import Page, PageRequest


def container_from_row(row: Any) -> Container:
    """Map one row of `located_select(ContainerRow)`."""

    c: ContainerRow = row[0]
    return Container(
        id=c.id,
        category=c.category,
        location=point_of(c),
        way_name=row.way_name,
        municipality_name=row.municipality_name,
        created_at=c.created_at,
        modified_at=c.modified_at,
    )


class ContainerRepo(EntityRepo[Container]):
    model = ContainerRow
    not_found = ContainerNotFoundError
    delete_constraints = {
        ROUTES_CONTAINERS_CONTAINER_ID_FKEY: ContainerAssociatedWithRouteError,
        USERS_CONTAINER_BOOKMARKS_CONTAINER_ID_FKEY: ContainerAssociatedWithUserBookmarkError,
    }
    sort_columns = {
        "category": ContainerRow.category,
        "createdAt": ContainerRow.created_at,
        "modifiedAt": ContainerRow.modified_at,
        **located_sort_columns(),
    }

    def to_domain(self, row: Any) -> Container:
        return container_from_row(row)

    async def create(self, container: EditableContainer, location: Location) -> uuid.UUID:
        return await self._insert(
            ContainerRow(
                category=container.category,
                **location_values(container.location, location),
            )
        )

    async def list(self, filter: ContainersFilter) -> Page[Container]:
        stmt = self.select_stmt()
        if filter.category is not None:
            stmt = stmt.where(ContainerRow.category == filter.category)
        if filter.location_name is not None:
            stmt = stmt.where(location_name_matches(filter.location_name))
        return await self._list(stmt, filter.page)

    async def patch(
        self, container_id: uuid.UUID, patch: ContainerPatch, location: Location | None
    ) -> None:
        values = location_values(patch.location, location)
        if patch.category is not None:
            values["category"] = patch.category
        await self._update(container_id, values)


class ContainerLinkRepo:
    """
    Plumbing of an (owner, container) association table.

    Subclasses set `model` (with an `owner_column` and a `container_id` column),
    `constraints` (constraint name -> domain error on insert), `not_found` (raised when the
    pair to delete is unknown) and `sort_columns`.
    """

    model: ClassVar[type[Any]]
    owner_column: ClassVar[str]
    constraints: ClassVar[Mapping[str, Callable[[], DomainError]]]
    not_found: ClassVar[Callable[[], DomainError]]
    sort_columns: ClassVar[Mapping[str, ColumnElement[Any]]]

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    def _owner(self) -> ColumnElement[Any]:
        return getattr(self.model, self.owner_column)

    async def create(self, owner_id: uuid.UUID, container_id: uuid.UUID) -> None:
        self._session.add(self.model(**{self.owner_column: owner_id, "container_id": container_id}))
        try:
            await self._session.flush()
        except IntegrityError as e:
            raise_integrity_error(e, self.constraints)

    async def list(
        self,
        owner_id: uuid.UUID,
        page: PageRequest,
        *,
        category: ContainerCategory | None = None,
        location_name: str | None = None,
    ) -> Page[Container]:
        stmt = (
            located_select(ContainerRow)
            .join(self.model, self.model.container_id == ContainerRow.id)
            .where(self._owner() == owner_id)
        )
        if category is not None:
            stmt = stmt.where(ContainerRow.category == category)
        if location_name is not None:
            stmt = stmt.where(location_name_matches(location_name))
        return await paginate(
            self._session,
            stmt,
            page=page,
            sort_columns=self.sort_columns,
            default_sort=self.model.created_at,
            to_domain=container_from_row,
        )

    async def delete(self, owner_id: uuid.UUID, container_id: uuid.UUID) -> None:
        stmt = delete(self.model).where(
            self._owner() == owner_id, self.model.container_id == container_id
        )
        result = await self._session.execute(stmt)
        if result.rowcount == 0:
            raise self.not_found()


class LandfillRepo(EntityRepo[Landfill]):
    model = LandfillRow
    not_found = LandfillNotFoundError
    sort_columns = {
        "createdAt": LandfillRow.created_at,
        "modifiedAt": LandfillRow.modified_at,
        **located_sort_columns(),
    }

    def to_domain(self, row: Any) -> Landfill:
        f: LandfillRow = row[0]
        return Landfill(
            id=f.id,
            location=point_of(f),
            way_name=row.way_name,
            municipality_name=row.municipality_name,
            created_at=f.created_at,
            modified_at=f.modified_at,
        )

    async def create(self, landfill: EditableLandfill, location: Location) -> uuid.UUID:
        return await self._insert(LandfillRow(**location_values(landfill.location, location)))

    async def list(self, filter: LandfillsFilter) -> Page[Landfill]:
        stmt = self.select_stmt()
        if filter.location_name is not None:
            stmt = stmt.where(location_name_matches(filter.location_name))
        return await self._list(stmt, filter.page)

    async def patch(
        self, landfill_id: uuid.UUID, patch: LandfillPatch, location: Location | None
    ) -> None:
        await self._update(landfill_id, location_values(patch.location, location))
