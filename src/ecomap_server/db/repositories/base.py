"""
ecomap_server.db.repositories.base

Helpers shared by the repositories.

Responsibilities:
- Paginate, sort and count list queries.
- Provide `EntityRepo`, the get/update/delete plumbing of id-keyed tables.
- Translate integrity errors into domain errors by constraint name.
"""

from __future__ import annotations

import uuid
from collections.abc import Callable, Mapping
from datetime import datetime, timezone
from typing import Any, ClassVar, Generic, NoReturn, TypeVar

from sqlalchemy import (
    ColumnElement,
    ForeignKeyConstraint,
    PrimaryKeyConstraint,
    Select,
    UniqueConstraint,
    delete,
    func,
    or_,
    select,
    update,
)
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from ecomap_server.db.base import Base
from ecomap_server.db.errors import StoreError, constraint_name
from ecomap_server.db.models import MunicipalityRow, RoadNetwork
from ecomap_server.domain.errors import DomainError
from ecomap_server.domain.geojson import Point
from ecomap_server.domain.models import Location
from ecomap_server.domain.pagination import Order, Page, PageRequest

T = TypeVar("T")

_SQLITE_UNIQUE_PREFIX = "UNIQUE constraint failed: "


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


async def paginate(
    session: AsyncSession,
    stmt: Select[Any],
    *,
    page: PageRequest,
    sort_columns: Mapping[str, ColumnElement[Any]],
    default_sort: ColumnElement[Any],
    to_domain: Callable[[Any], T],
) -> Page[T]:
    """
    Run `stmt` twice: once for the total row count, once for the requested window.
    Unknown sort names fall back to `default_sort` (callers validate them beforehand).
    """

    count_stmt = select(func.count()).select_from(stmt.order_by(None).subquery())
    total = (await session.execute(count_stmt)).scalar_one()

    column = sort_columns.get(page.sort, default_sort) if page.sort else default_sort
    ordered = stmt.order_by(column.desc() if page.order == Order.desc else column.asc())
    rows = (await session.execute(ordered.limit(page.limit).offset(page.offset))).all()
    return Page(total=total, results=[to_domain(row) for row in rows])


def contains(column: ColumnElement[Any], value: str) -> ColumnElement[bool]:
    """Case-insensitive substring match."""

    return column.icontains(value, autoescape=True)


def location_name_matches(value: str) -> ColumnElement[bool]:
    # Requires the statement to outer join road_network and municipalities.
    return or_(contains(RoadNetwork.osm_name, value), contains(MunicipalityRow.name, value))


def located_select(model: type[Any]) -> Select[Any]:
    """Select `model` with the resolved road name and municipality name (either may be NULL)."""

    return (
        select(
            model,
            RoadNetwork.osm_name.label("way_name"),
            MunicipalityRow.name.label("municipality_name"),
        )
        .outerjoin(RoadNetwork, model.road_id == RoadNetwork.id)
        .outerjoin(MunicipalityRow, model.municipality_id == MunicipalityRow.id)
    )


def located_sort_columns() -> dict[str, ColumnElement[Any]]:
    return {"wayName": RoadNetwork.osm_name, "municipalityName": MunicipalityRow.name}


def point_of(row: Any) -> Point:
    return Point(longitude=row.longitude, latitude=row.latitude)


def location_values(point: Point | None, location: Location | None) -> dict[str, Any]:
    """Column values for a (re)located entity; empty when the location is left unchanged."""

    if point is None or location is None:
        return {}
    return {
        "longitude": point.longitude,
        "latitude": point.latitude,
        "road_id": location.road_id,
        "municipality_id": location.municipality_id,
    }


class EntityRepo(Generic[T]):
    """
    CRUD plumbing for a table keyed by `id`.

    Subclasses set `model`, `not_found` (the error raised when no row matches), `constraints`
    (constraint name -> domain error on insert/update), `delete_constraints` (the same on
    delete), `sort_columns` and implement `to_domain`, which receives one row of
    `select_stmt()`.
    """

    model: ClassVar[type[Any]]
    not_found: ClassVar[Callable[[], DomainError]]
    constraints: ClassVar[Mapping[str, Callable[[], DomainError]]] = {}
    delete_constraints: ClassVar[Mapping[str, Callable[[], DomainError]]] = {}
    sort_columns: ClassVar[Mapping[str, ColumnElement[Any]]] = {}

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    def select_stmt(self) -> Select[Any]:
        return located_select(self.model)

    def to_domain(self, row: Any) -> T:
        raise NotImplementedError

    async def get(self, entity_id: uuid.UUID) -> T:
        stmt = (
            self.select_stmt()
            .where(self.model.id == entity_id)
            .execution_options(populate_existing=True)
        )
        row = (await self._session.execute(stmt)).one_or_none()
        if row is None:
            raise self.not_found()
        return self.to_domain(row)

    async def delete(self, entity_id: uuid.UUID) -> None:
        await self._check_references(entity_id)
        await self._execute_one(
            delete(self.model).where(self.model.id == entity_id), self.delete_constraints
        )

    async def _check_references(self, entity_id: uuid.UUID) -> None:
        """Raise the mapped conflict of the first foreign key still referencing the row."""

        for name, error in self.delete_constraints.items():
            column = next(iter(foreign_key(name).columns))
            stmt = select(column).where(column == entity_id).limit(1)
            if (await self._session.execute(stmt)).first() is not None:
                raise error()

    async def _insert(self, row: Any) -> uuid.UUID:
        self._session.add(row)
        try:
            await self._session.flush()
        except IntegrityError as e:
            raise_integrity_error(e, self.constraints)
        return row.id

    async def _update(self, entity_id: uuid.UUID, values: dict[str, Any]) -> None:
        values["modified_at"] = utcnow()
        await self._execute_one(
            update(self.model).where(self.model.id == entity_id).values(**values)
        )

    async def _list(self, stmt: Select[Any], page: PageRequest) -> Page[T]:
        return await paginate(
            self._session,
            stmt,
            page=page,
            sort_columns=self.sort_columns,
            default_sort=self.model.created_at,
            to_domain=self.to_domain,
        )

    async def _execute_one(
        self, stmt: Any, constraints: Mapping[str, Callable[[], DomainError]] | None = None
    ) -> None:
        # Statements addressing a single row by key; no match means the entity is unknown.
        try:
            result = await self._session.execute(stmt)
        except IntegrityError as e:
            raise_integrity_error(e, self.constraints if constraints is None else constraints)
        if result.rowcount == 0:
            raise self.not_found()


def foreign_key(name: str) -> ForeignKeyConstraint:
    for table in Base.metadata.tables.values():
        for constraint in table.foreign_key_constraints:
            if constraint.name == name:
                return constraint
    raise KeyError(name)


def raise_integrity_error(
    exc: IntegrityError, mapping: Mapping[str, Callable[[], DomainError]]
) -> NoReturn:
    name = constraint_name(exc) or _sqlite_unique_constraint(exc)
    factory = mapping.get(name) if name else None
    if factory is not None:
        raise factory() from exc
    raise StoreError(str(exc)) from exc


def _sqlite_unique_constraint(exc: IntegrityError) -> str | None:
    # SQLite names the columns ("UNIQUE constraint failed: users.username"), not the constraint.
    message = str(exc.orig)
    if not message.startswith(_SQLITE_UNIQUE_PREFIX):
        return None

    qualified = [part.strip() for part in message[len(_SQLITE_UNIQUE_PREFIX) :].split(",")]
    tables = {part.split(".", 1)[0] for part in qualified}
    if len(tables) != 1:
        return None

    table = Base.metadata.tables.get(tables.pop())
    if table is None:
        return None

    columns = {part.split(".", 1)[1] for part in qualified}
    for constraint in table.constraints:
        if isinstance(constraint, UniqueConstraint | PrimaryKeyConstraint):
            if {c.name for c in constraint.columns} == columns:
                return constraint.name if isinstance(constraint.name, str) else None
    return None


# --- Module Notes -----------------------------------------------------------
# PostgreSQL reports the violated constraint by name; SQLite only does so for unique keys,
# so deletes look up the referencing tables first and unnamed violations surface as StoreError.
