"""
ecomap_server.db.repositories.users

Repositories for `User` accounts and their container bookmarks.
"""

from __future__ import annotations

import uuid
from typing import Any

from sqlalchemy import Select, select, update

from ecomap_server.db.models import (
    USERS_CONTAINER_BOOKMARKS_CONTAINER_ID_FKEY,
    USERS_CONTAINER_BOOKMARKS_PKEY,
    USERS_CONTAINER_BOOKMARKS_USER_ID_FKEY,
    USERS_USERNAME_KEY,
    ContainerRow,
    MunicipalityRow,
    RoadNetwork,
    UserContainerBookmarkRow,
    UserRow,
)
from ecomap_server.db.repositories.base import EntityRepo, contains, utcnow
from ecomap_server.db.repositories.containers import ContainerLinkRepo
from ecomap_server.domain.errors import (
    ContainerNotFoundError,
    UserAlreadyExistsError,
    UserAssociatedWithContainerBookmarkError,
    UserContainerBookmarkAlreadyExistsError,
    UserContainerBookmarkNotFoundError,
    UserNotFoundError,
)
from ecomap_server.domain.models import EditableUser, SignIn, User, UserPatch, UsersFilter
from ecomap_server.domain.pagination import Page


class UserRepo(EntityRepo[User]):
    model = UserRow
    not_found = UserNotFoundError
    constraints = {USERS_USERNAME_KEY: UserAlreadyExistsError}
    delete_constraints = {
        USERS_CONTAINER_BOOKMARKS_USER_ID_FKEY: UserAssociatedWithContainerBookmarkError,
    }
    sort_columns = {
        "username": UserRow.username,
        "firstName": UserRow.first_name,
        "lastName": UserRow.last_name,
        "createdAt": UserRow.created_at,
        "modifiedAt": UserRow.modified_at,
    }

    def select_stmt(self) -> Select[Any]:
        return select(UserRow)

    def to_domain(self, row: Any) -> User:
        u: UserRow = row[0]
        return User(
            id=u.id,
            username=u.username,
            first_name=u.first_name,
            last_name=u.last_name,
            created_at=u.created_at,
            modified_at=u.modified_at,
        )

    async def create(self, user: EditableUser, password_hash: str) -> uuid.UUID:
        return await self._insert(
            UserRow(
                username=user.username,
                password=password_hash,
                first_name=user.first_name,
                last_name=user.last_name,
            )
        )

    async def list(self, filter: UsersFilter) -> Page[User]:
        stmt = self.select_stmt()
        if filter.username is not None:
            stmt = stmt.where(contains(UserRow.username, filter.username))
        if filter.first_name is not None:
            stmt = stmt.where(contains(UserRow.first_name, filter.first_name))
        if filter.last_name is not None:
            stmt = stmt.where(contains(UserRow.last_name, filter.last_name))
        return await self._list(stmt, filter.page)

    async def get_by_username(self, username: str) -> User:
        stmt = self.select_stmt().where(UserRow.username == username)
        row = (await self._session.execute(stmt)).one_or_none()
        if row is None:
            raise UserNotFoundError()
        return self.to_domain(row)

    async def get_sign_in(self, username: str) -> SignIn:
        stmt = select(UserRow.username, UserRow.password).where(UserRow.username == username)
        row = (await self._session.execute(stmt)).one_or_none()
        if row is None:
            raise UserNotFoundError()
        return SignIn(username=row.username, password_hash=row.password)

    async def patch(self, user_id: uuid.UUID, patch: UserPatch) -> None:
        values: dict[str, Any] = {}
        if patch.username is not None:
            values["username"] = patch.username
        if patch.first_name is not None:
            values["first_name"] = patch.first_name
        if patch.last_name is not None:
            values["last_name"] = patch.last_name
        await self._update(user_id, values)

    async def update_password(self, username: str, password_hash: str) -> None:
        await self._execute_one(
            update(UserRow)
            .where(UserRow.username == username)
            .values(password=password_hash, modified_at=utcnow())
        )


class UserContainerBookmarkRepo(ContainerLinkRepo):
    model = UserContainerBookmarkRow
    owner_column = "user_id"
    constraints = {
        USERS_CONTAINER_BOOKMARKS_PKEY: UserContainerBookmarkAlreadyExistsError,
        USERS_CONTAINER_BOOKMARKS_USER_ID_FKEY: UserNotFoundError,
        USERS_CONTAINER_BOOKMARKS_CONTAINER_ID_FKEY: ContainerNotFoundError,
    }
    not_found = UserContainerBookmarkNotFoundError
    sort_columns = {
        "containerCategory": ContainerRow.category,
        "wayName": RoadNetwork.osm_name,
        "municipalityName": MunicipalityRow.name,
        "createdAt": UserContainerBookmarkRow.created_at,
    }
