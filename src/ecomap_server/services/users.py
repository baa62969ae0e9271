"""
ecomap_server.services.users

User accounts: registration, profile management, password changes, sign-in and the
containers each user bookmarks.
"""

from __future__ import annotations

import uuid
from dataclasses import replace

from ecomap_server.auth.credentials import CredentialService
from ecomap_server.auth.models import SubjectRole
from ecomap_server.db.tx import Transaction
from ecomap_server.domain.errors import (
    ContainerNotFoundError,
    CredentialsIncorrectError,
    UserAlreadyExistsError,
    UserAssociatedWithContainerBookmarkError,
    UserContainerBookmarkAlreadyExistsError,
    UserContainerBookmarkNotFoundError,
    UserNotFoundError,
)
from ecomap_server.domain.models import (
    FIELD_FIRST_NAME,
    FIELD_LAST_NAME,
    FIELD_NEW_PASSWORD,
    FIELD_PASSWORD,
    FIELD_USERNAME,
    USER_CONTAINER_BOOKMARK_SORT_FIELDS,
    USER_SORT_FIELDS,
    Container,
    EditableUser,
    EditableUserWithPassword,
    User,
    UserContainerBookmarksFilter,
    UserPatch,
    UsersFilter,
    hyphenate,
    valid_name,
    valid_username,
)
from ecomap_server.domain.pagination import Page
from ecomap_server.services.base import BaseService, require

DESCRIPTION_FAILED_CREATE_USER = "service: failed to create user"
DESCRIPTION_FAILED_LIST_USERS = "service: failed to list users"
DESCRIPTION_FAILED_GET_USER = "service: failed to get user by id"
DESCRIPTION_FAILED_PATCH_USER = "service: failed to patch user"
DESCRIPTION_FAILED_UPDATE_USER_PASSWORD = "service: failed to update user password"
DESCRIPTION_FAILED_RESET_USER_PASSWORD = "service: failed to reset user password"
DESCRIPTION_FAILED_DELETE_USER = "service: failed to delete user by id"
DESCRIPTION_FAILED_SIGN_IN_USER = "service: failed to sign in user"
DESCRIPTION_FAILED_CREATE_USER_CONTAINER_BOOKMARK = (
    "service: failed to create user container bookmark"
)
DESCRIPTION_FAILED_LIST_USER_CONTAINER_BOOKMARKS = (
    "service: failed to list user container bookmarks"
)
DESCRIPTION_FAILED_DELETE_USER_CONTAINER_BOOKMARK = (
    "service: failed to delete user container bookmark"
)


class UserService(BaseService):
    def __init__(self, *, credentials: CredentialService, **kwargs) -> None:
        super().__init__(**kwargs)
        self._credentials = credentials

    async def create_user(self, user: EditableUserWithPassword) -> User:
        async with self._operation(
            "create_user",
            DESCRIPTION_FAILED_CREATE_USER,
            expected=(UserAlreadyExistsError,),
            username=user.username,
        ):
            editable = EditableUser(
                username=hyphenate(user.username),
                first_name=hyphenate(user.first_name),
                last_name=hyphenate(user.last_name),
            )
            require(valid_username(editable.username), FIELD_USERNAME)
            require(self._credentials.valid_password(user.password), FIELD_PASSWORD)
            require(valid_name(editable.first_name), FIELD_FIRST_NAME)
            require(valid_name(editable.last_name), FIELD_LAST_NAME)

            password_hash = await self._credentials.hash_password(user.password)

            async def work(tx: Transaction) -> User:
                user_id = await self._store.create_user(tx, editable, password_hash)
                return await self._store.get_user_by_id(tx, user_id)

            return await self._read_write(work)

    async def list_users(self, filter: UsersFilter) -> Page[User]:
        async with self._operation("list_users", DESCRIPTION_FAILED_LIST_USERS):
            filter.page.validate(USER_SORT_FIELDS)
            return await self._read_only(lambda tx: self._store.list_users(tx, filter))

    async def get_user(self, user_id: uuid.UUID) -> User:
        async with self._operation(
            "get_user",
            DESCRIPTION_FAILED_GET_USER,
            expected=(UserNotFoundError,),
            user_id=str(user_id),
        ):
            return await self._read_only(lambda tx: self._store.get_user_by_id(tx, user_id))

    async def patch_user(self, user_id: uuid.UUID, patch: UserPatch) -> User:
        async with self._operation(
            "patch_user",
            DESCRIPTION_FAILED_PATCH_USER,
            expected=(UserNotFoundError, UserAlreadyExistsError),
            user_id=str(user_id),
        ):
            patch = replace(
                patch,
                username=hyphenate(patch.username) if patch.username is not None else None,
                first_name=hyphenate(patch.first_name) if patch.first_name is not None else None,
                last_name=hyphenate(patch.last_name) if patch.last_name is not None else None,
            )
            if patch.username is not None:
                require(valid_username(patch.username), FIELD_USERNAME)
            if patch.first_name is not None:
                require(valid_name(patch.first_name), FIELD_FIRST_NAME)
            if patch.last_name is not None:
                require(valid_name(patch.last_name), FIELD_LAST_NAME)

            async def work(tx: Transaction) -> User:
                await self._store.patch_user(tx, user_id, patch)
                return await self._store.get_user_by_id(tx, user_id)

            return await self._read_write(work)

    async def update_user_password(
        self, username: str, old_password: str, new_password: str
    ) -> None:
        """
        Change a password after checking the current one. Unknown usernames and wrong
        passwords both fail with CredentialsIncorrectError.
        """

        async with self._operation(
            "update_user_password",
            DESCRIPTION_FAILED_UPDATE_USER_PASSWORD,
            expected=(CredentialsIncorrectError,),
            username=username,
        ):
            require(self._credentials.valid_password(new_password), FIELD_NEW_PASSWORD)

            try:
                sign_in = await self._read_only(
                    lambda tx: self._store.get_user_sign_in(tx, username)
                )
            except UserNotFoundError as e:
                await self._credentials.verify_unknown(old_password)
                raise CredentialsIncorrectError() from e

            if not await self._credentials.verify_password(old_password, sign_in.password_hash):
                raise CredentialsIncorrectError()

            password_hash = await self._credentials.hash_password(new_password)
            try:
                await self._read_write(
                    lambda tx: self._store.update_user_password(tx, username, password_hash)
                )
            except UserNotFoundError as e:
                raise CredentialsIncorrectError() from e

    async def reset_user_password(self, username: str, new_password: str) -> None:
        async with self._operation(
            "reset_user_password",
            DESCRIPTION_FAILED_RESET_USER_PASSWORD,
            expected=(UserNotFoundError,),
            username=username,
        ):
            require(self._credentials.valid_password(new_password), FIELD_NEW_PASSWORD)
            password_hash = await self._credentials.hash_password(new_password)
            await self._read_write(
                lambda tx: self._store.update_user_password(tx, username, password_hash)
            )

    async def delete_user(self, user_id: uuid.UUID, *, actor: str | None = None) -> User:
        async with self._operation(
            "delete_user",
            DESCRIPTION_FAILED_DELETE_USER,
            expected=(UserNotFoundError, UserAssociatedWithContainerBookmarkError),
            actor=actor,
            user_id=str(user_id),
        ):

            async def work(tx: Transaction) -> User:
                user = await self._store.get_user_by_id(tx, user_id)
                await self._store.delete_user_by_id(tx, user_id)
                return user

            return await self._read_write(work)

    async def sign_in_user(self, username: str, password: str) -> str:
        async with self._operation(
            "sign_in_user",
            DESCRIPTION_FAILED_SIGN_IN_USER,
            expected=(CredentialsIncorrectError,),
            username=username,
        ):
            try:
                sign_in = await self._read_only(
                    lambda tx: self._store.get_user_sign_in(tx, username)
                )
            except UserNotFoundError as e:
                await self._credentials.verify_unknown(password)
                raise CredentialsIncorrectError() from e

            if not await self._credentials.verify_password(password, sign_in.password_hash):
                raise CredentialsIncorrectError()

            user = await self._read_only(lambda tx: self._store.get_user_by_username(tx, username))
            return self._credentials.issue_token(str(user.id), [SubjectRole.user])

    # --- Container bookmarks ----------------------------------------------------

    async def create_user_container_bookmark(
        self, user_id: uuid.UUID, container_id: uuid.UUID, *, actor: str | None = None
    ) -> None:
        async with self._operation(
            "create_user_container_bookmark",
            DESCRIPTION_FAILED_CREATE_USER_CONTAINER_BOOKMARK,
            expected=(
                UserContainerBookmarkAlreadyExistsError,
                UserNotFoundError,
                ContainerNotFoundError,
            ),
            actor=actor,
            user_id=str(user_id),
            container_id=str(container_id),
        ):

            async def work(tx: Transaction) -> None:
                await self._store.get_user_by_id(tx, user_id)
                await self._store.get_container_by_id(tx, container_id)
                await self._store.create_user_container_bookmark(tx, user_id, container_id)

            await self._read_write(work)

    async def list_user_container_bookmarks(
        self, user_id: uuid.UUID, filter: UserContainerBookmarksFilter
    ) -> Page[Container]:
        async with self._operation(
            "list_user_container_bookmarks",
            DESCRIPTION_FAILED_LIST_USER_CONTAINER_BOOKMARKS,
            user_id=str(user_id),
        ):
            filter.page.validate(USER_CONTAINER_BOOKMARK_SORT_FIELDS)
            return await self._read_only(
                lambda tx: self._store.list_user_container_bookmarks(tx, user_id, filter)
            )

    async def delete_user_container_bookmark(
        self, user_id: uuid.UUID, container_id: uuid.UUID, *, actor: str | None = None
    ) -> None:
        async with self._operation(
            "delete_user_container_bookmark",
            DESCRIPTION_FAILED_DELETE_USER_CONTAINER_BOOKMARK,
            expected=(UserContainerBookmarkNotFoundError,),
            actor=actor,
            user_id=str(user_id),
            container_id=str(container_id),
        ):
            await self._read_write(
                lambda tx: self._store.delete_user_container_bookmark(tx, user_id, container_id)
            )
