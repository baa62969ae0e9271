"""
ecomap_server.services.employees

Employee accounts: management by managers, password changes and sign-in.

Employee usernames are case-insensitive (stored lowercased); the token role is derived from
the employee role.
"""

from __future__ import annotations

import uuid
from dataclasses import replace

from ecomap_server.auth.credentials import CredentialService
from ecomap_server.auth.models import SubjectRole
from ecomap_server.db.tx import Transaction
from ecomap_server.domain.errors import (
    CredentialsIncorrectError,
    EmployeeAlreadyExistsError,
    EmployeeAssociatedWithRouteError,
    EmployeeNotFoundError,
    FieldValueInvalidError,
)
from ecomap_server.domain.geojson import FIELD_GEOJSON
from ecomap_server.domain.models import (
    EMPLOYEE_SORT_FIELDS,
    FIELD_FIRST_NAME,
    FIELD_LAST_NAME,
    FIELD_NEW_PASSWORD,
    FIELD_PASSWORD,
    FIELD_PHONE_NUMBER,
    FIELD_SCHEDULE,
    FIELD_USERNAME,
    EditableEmployee,
    EditableEmployeeWithPassword,
    Employee,
    EmployeePatch,
    EmployeeRole,
    EmployeesFilter,
    collapse_spaces,
    hyphenate,
    valid_name,
    valid_phone_number,
    valid_username,
)
from ecomap_server.domain.pagination import Page
from ecomap_server.services.base import BaseService, require

DESCRIPTION_FAILED_CREATE_EMPLOYEE = "service: failed to create employee"
DESCRIPTION_FAILED_LIST_EMPLOYEES = "service: failed to list employees"
DESCRIPTION_FAILED_GET_EMPLOYEE = "service: failed to get employee by id"
DESCRIPTION_FAILED_PATCH_EMPLOYEE = "service: failed to patch employee"
DESCRIPTION_FAILED_UPDATE_EMPLOYEE_PASSWORD = "service: failed to update employee password"
DESCRIPTION_FAILED_RESET_EMPLOYEE_PASSWORD = "service: failed to reset employee password"
DESCRIPTION_FAILED_DELETE_EMPLOYEE = "service: failed to delete employee by id"
DESCRIPTION_FAILED_SIGN_IN_EMPLOYEE = "service: failed to sign in employee"


def normalize_username(username: str) -> str:
    return hyphenate(username).lower()


def subject_role(role: EmployeeRole) -> SubjectRole:
    match role:
        case EmployeeRole.waste_operator:
            return SubjectRole.waste_operator
        case EmployeeRole.manager:
            return SubjectRole.manager


class EmployeeService(BaseService):
    def __init__(self, *, credentials: CredentialService, **kwargs) -> None:
        super().__init__(**kwargs)
        self._credentials = credentials

    async def create_employee(self, employee: EditableEmployeeWithPassword) -> Employee:
        async with self._operation(
            "create_employee",
            DESCRIPTION_FAILED_CREATE_EMPLOYEE,
            expected=(EmployeeAlreadyExistsError,),
            username=employee.username,
        ):
            editable = EditableEmployee(
                username=normalize_username(employee.username),
                first_name=collapse_spaces(employee.first_name),
                last_name=collapse_spaces(employee.last_name),
                role=employee.role,
                date_of_birth=employee.date_of_birth,
                phone_number=employee.phone_number,
                location=employee.location,
                schedule_start=employee.schedule_start,
                schedule_end=employee.schedule_end,
            )
            require(valid_username(editable.username), FIELD_USERNAME)
            require(self._credentials.valid_password(employee.password), FIELD_PASSWORD)
            require(valid_name(editable.first_name), FIELD_FIRST_NAME)
            require(valid_name(editable.last_name), FIELD_LAST_NAME)
            require(valid_phone_number(editable.phone_number), FIELD_PHONE_NUMBER)
            require(editable.location.valid(), FIELD_GEOJSON)
            require(editable.schedule_start <= editable.schedule_end, FIELD_SCHEDULE)

            password_hash = await self._credentials.hash_password(employee.password)

            async def work(tx: Transaction) -> Employee:
                location = await self._locate(tx, editable.location)
                employee_id = await self._store.create_employee(
                    tx, editable, password_hash, location
                )
                return await self._store.get_employee_by_id(tx, employee_id)

            return await self._read_write(work)

    async def list_employees(self, filter: EmployeesFilter) -> Page[Employee]:
        async with self._operation("list_employees", DESCRIPTION_FAILED_LIST_EMPLOYEES):
            filter.page.validate(EMPLOYEE_SORT_FIELDS)
            return await self._read_only(lambda tx: self._store.list_employees(tx, filter))

    async def get_employee(self, employee_id: uuid.UUID) -> Employee:
        async with self._operation(
            "get_employee",
            DESCRIPTION_FAILED_GET_EMPLOYEE,
            expected=(EmployeeNotFoundError,),
            employee_id=str(employee_id),
        ):
            return await self._read_only(
                lambda tx: self._store.get_employee_by_id(tx, employee_id)
            )

    async def patch_employee(self, employee_id: uuid.UUID, patch: EmployeePatch) -> Employee:
        async with self._operation(
            "patch_employee",
            DESCRIPTION_FAILED_PATCH_EMPLOYEE,
            expected=(EmployeeNotFoundError, EmployeeAlreadyExistsError),
            employee_id=str(employee_id),
        ):
            patch = replace(
                patch,
                username=normalize_username(patch.username) if patch.username is not None else None,
                first_name=collapse_spaces(patch.first_name) if patch.first_name is not None else None,
                last_name=collapse_spaces(patch.last_name) if patch.last_name is not None else None,
            )
            if patch.username is not None:
                require(valid_username(patch.username), FIELD_USERNAME)
            if patch.first_name is not None:
                require(valid_name(patch.first_name), FIELD_FIRST_NAME)
            if patch.last_name is not None:
                require(valid_name(patch.last_name), FIELD_LAST_NAME)
            if patch.phone_number is not None:
                require(valid_phone_number(patch.phone_number), FIELD_PHONE_NUMBER)
            if patch.location is not None:
                require(patch.location.valid(), FIELD_GEOJSON)

            async def work(tx: Transaction) -> Employee:
                if patch.schedule_start is not None or patch.schedule_end is not None:
                    current = await self._store.get_employee_by_id(tx, employee_id)
                    start = patch.schedule_start if patch.schedule_start is not None else current.schedule_start
                    end = patch.schedule_end if patch.schedule_end is not None else current.schedule_end
                    if start > end:
                        raise FieldValueInvalidError(FIELD_SCHEDULE)

                location = (
                    await self._locate(tx, patch.location) if patch.location is not None else None
                )
                await self._store.patch_employee(tx, employee_id, patch, location)
                return await self._store.get_employee_by_id(tx, employee_id)

            return await self._read_write(work)

    async def update_employee_password(
        self, username: str, old_password: str, new_password: str
    ) -> None:
        username = normalize_username(username)
        async with self._operation(
            "update_employee_password",
            DESCRIPTION_FAILED_UPDATE_EMPLOYEE_PASSWORD,
            expected=(CredentialsIncorrectError,),
            username=username,
        ):
            require(self._credentials.valid_password(new_password), FIELD_NEW_PASSWORD)

            try:
                sign_in = await self._read_only(
                    lambda tx: self._store.get_employee_sign_in(tx, username)
                )
            except EmployeeNotFoundError as e:
                await self._credentials.verify_unknown(old_password)
                raise CredentialsIncorrectError() from e

            if not await self._credentials.verify_password(old_password, sign_in.password_hash):
                raise CredentialsIncorrectError()

            password_hash = await self._credentials.hash_password(new_password)
            try:
                await self._read_write(
                    lambda tx: self._store.update_employee_password(tx, username, password_hash)
                )
            except EmployeeNotFoundError as e:
                raise CredentialsIncorrectError() from e

    async def reset_employee_password(self, username: str, new_password: str) -> None:
        username = normalize_username(username)
        async with self._operation(
            "reset_employee_password",
            DESCRIPTION_FAILED_RESET_EMPLOYEE_PASSWORD,
            expected=(EmployeeNotFoundError,),
            username=username,
        ):
            require(self._credentials.valid_password(new_password), FIELD_NEW_PASSWORD)
            password_hash = await self._credentials.hash_password(new_password)
            await self._read_write(
                lambda tx: self._store.update_employee_password(tx, username, password_hash)
            )

    async def delete_employee(
        self, employee_id: uuid.UUID, *, actor: str | None = None
    ) -> Employee:
        async with self._operation(
            "delete_employee",
            DESCRIPTION_FAILED_DELETE_EMPLOYEE,
            expected=(EmployeeNotFoundError, EmployeeAssociatedWithRouteError),
            actor=actor,
            employee_id=str(employee_id),
        ):

            async def work(tx: Transaction) -> Employee:
                employee = await self._store.get_employee_by_id(tx, employee_id)
                await self._store.delete_employee_by_id(tx, employee_id)
                return employee

            return await self._read_write(work)

    async def sign_in_employee(self, username: str, password: str) -> str:
        username = username.lower()
        async with self._operation(
            "sign_in_employee",
            DESCRIPTION_FAILED_SIGN_IN_EMPLOYEE,
            expected=(CredentialsIncorrectError,),
            username=username,
        ):
            try:
                sign_in = await self._read_only(
                    lambda tx: self._store.get_employee_sign_in(tx, username)
                )
            except EmployeeNotFoundError as e:
                await self._credentials.verify_unknown(password)
                raise CredentialsIncorrectError() from e

            if not await self._credentials.verify_password(password, sign_in.password_hash):
                raise CredentialsIncorrectError()

            employee = await self._read_only(
                lambda tx: self._store.get_employee_by_username(tx, username)
            )
            return self._credentials.issue_token(str(employee.id), [subject_role(employee.role)])
