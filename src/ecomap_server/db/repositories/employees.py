"""
ecomap_server.db.repositories.employees

Repository for `Employee` accounts.
"""

from __future__ import annotations

import uuid
from typing import Any

from sqlalchemy import select, update

from ecomap_server.db.models import (
    EMPLOYEES_USERNAME_KEY,
    ROUTES_EMPLOYEES_EMPLOYEE_ID_FKEY,
    EmployeeRow,
)
from ecomap_server.db.repositories.base import (
    EntityRepo,
    contains,
    located_sort_columns,
    location_values,
    point_of,
    utcnow,
)
from ecomap_server.domain.errors import (
    EmployeeAlreadyExistsError,
    EmployeeAssociatedWithRouteError,
    EmployeeNotFoundError,
)
from ecomap_server.domain.models import (
    EditableEmployee,
    Employee,
    EmployeePatch,
    EmployeesFilter,
    Location,
    SignIn,
)
from ecomap_server.domain.pagination import Page

_PATCHABLE = (
    "username",
    "first_name",
    "last_name",
    "date_of_birth",
    "phone_number",
    "schedule_start",
    "schedule_end",
)


def employee_from_row(row: Any) -> Employee:
    """Build an `Employee` from a `located_select(EmployeeRow)` result row."""

    e: EmployeeRow = row[0]
    return Employee(
        id=e.id,
        username=e.username,
        first_name=e.first_name,
        last_name=e.last_name,
        role=e.role,
        date_of_birth=e.date_of_birth,
        phone_number=e.phone_number,
        location=point_of(e),
        way_name=row.way_name,
        municipality_name=row.municipality_name,
        schedule_start=e.schedule_start,
        schedule_end=e.schedule_end,
        created_at=e.created_at,
        modified_at=e.modified_at,
    )


class EmployeeRepo(EntityRepo[Employee]):
    model = EmployeeRow
    not_found = EmployeeNotFoundError
    constraints = {EMPLOYEES_USERNAME_KEY: EmployeeAlreadyExistsError}
    delete_constraints = {ROUTES_EMPLOYEES_EMPLOYEE_ID_FKEY: EmployeeAssociatedWithRouteError}
    sort_columns = {
        "username": EmployeeRow.username,
        "firstName": EmployeeRow.first_name,
        "lastName": EmployeeRow.last_name,
        "role": EmployeeRow.role,
        "dateOfBirth": EmployeeRow.date_of_birth,
        "createdAt": EmployeeRow.created_at,
        "modifiedAt": EmployeeRow.modified_at,
        **located_sort_columns(),
    }

    def to_domain(self, row: Any) -> Employee:
        return employee_from_row(row)

    async def create(
        self, employee: EditableEmployee, password_hash: str, location: Location
    ) -> uuid.UUID:
        return await self._insert(
            EmployeeRow(
                username=employee.username,
                password=password_hash,
                first_name=employee.first_name,
                last_name=employee.last_name,
                role=employee.role,
                date_of_birth=employee.date_of_birth,
                phone_number=employee.phone_number,
                schedule_start=employee.schedule_start,
                schedule_end=employee.schedule_end,
                **location_values(employee.location, location),
            )
        )

    async def list(self, filter: EmployeesFilter) -> Page[Employee]:
        stmt = self.select_stmt()
        if filter.username is not None:
            stmt = stmt.where(contains(EmployeeRow.username, filter.username))
        if filter.role is not None:
            stmt = stmt.where(EmployeeRow.role == filter.role)
        return await self._list(stmt, filter.page)

    async def get_by_username(self, username: str) -> Employee:
        stmt = self.select_stmt().where(EmployeeRow.username == username)
        row = (await self._session.execute(stmt)).one_or_none()
        if row is None:
            raise EmployeeNotFoundError()
        return employee_from_row(row)

    async def get_sign_in(self, username: str) -> SignIn:
        stmt = select(EmployeeRow.username, EmployeeRow.password).where(
            EmployeeRow.username == username
        )
        row = (await self._session.execute(stmt)).one_or_none()
        if row is None:
            raise EmployeeNotFoundError()
        return SignIn(username=row.username, password_hash=row.password)

    async def patch(
        self, employee_id: uuid.UUID, patch: EmployeePatch, location: Location | None
    ) -> None:
        values = {
            name: getattr(patch, name) for name in _PATCHABLE if getattr(patch, name) is not None
        }
        values.update(location_values(patch.location, location))
        await self._update(employee_id, values)

    async def update_password(self, username: str, password_hash: str) -> None:
        await self._execute_one(
            update(EmployeeRow)
            .where(EmployeeRow.username == username)
            .values(password=password_hash, modified_at=utcnow())
        )
