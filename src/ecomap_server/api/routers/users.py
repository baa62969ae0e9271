"""
ecomap_server.api.routers.users

User account endpoints: registration, profile, passwords, sign-in and container bookmarks.
"""

from __future__ import annotations

import uuid

from fastapi import APIRouter, Depends, Query, Response
from starlette.status import HTTP_201_CREATED, HTTP_204_NO_CONTENT

from ecomap_server.api.deps import page_request, services_dep
from ecomap_server.api.schemas import (
    ContainerOut,
    JwtOut,
    PageOut,
    PasswordChangeIn,
    PasswordResetIn,
    SignInIn,
    UserIn,
    UserOut,
    UserPatchIn,
)
from ecomap_server.auth.deps import get_principal
from ecomap_server.auth.models import Principal
from ecomap_server.domain.models import ContainerCategory, UserContainerBookmarksFilter, UsersFilter
from ecomap_server.domain.pagination import PageRequest
from ecomap_server.services.registry import Services

router = APIRouter(prefix="/api/users", tags=["users"])


@router.post("", status_code=HTTP_201_CREATED, response_model=UserOut)
async def create_user(body: UserIn, services: Services = Depends(services_dep)) -> UserOut:
    return UserOut.from_domain(await services.users.create_user(body.to_domain()))


@router.get("", response_model=PageOut[UserOut])
async def list_users(
    page: PageRequest = Depends(page_request),
    username: str | None = Query(default=None),
    first_name: str | None = Query(default=None, alias="firstName"),
    last_name: str | None = Query(default=None, alias="lastName"),
    services: Services = Depends(services_dep),
) -> PageOut[UserOut]:
    result = await services.users.list_users(
        UsersFilter(page=page, username=username, first_name=first_name, last_name=last_name)
    )
    return PageOut[UserOut](
        total=result.total, results=[UserOut.from_domain(u) for u in result.results]
    )


@router.post("/signin", response_model=JwtOut)
async def sign_in_user(body: SignInIn, services: Services = Depends(services_dep)) -> JwtOut:
    return JwtOut(token=await services.users.sign_in_user(body.username, body.password))


@router.put("/password", status_code=HTTP_204_NO_CONTENT)
async def update_user_password(
    body: PasswordChangeIn, services: Services = Depends(services_dep)
) -> Response:
    await services.users.update_user_password(body.username, body.old_password, body.new_password)
    return Response(status_code=HTTP_204_NO_CONTENT)


@router.put("/reset-password", status_code=HTTP_204_NO_CONTENT)
async def reset_user_password(
    body: PasswordResetIn, services: Services = Depends(services_dep)
) -> Response:
    await services.users.reset_user_password(body.username, body.new_password)
    return Response(status_code=HTTP_204_NO_CONTENT)


@router.get("/{user_id}", response_model=UserOut)
async def get_user(user_id: uuid.UUID, services: Services = Depends(services_dep)) -> UserOut:
    return UserOut.from_domain(await services.users.get_user(user_id))


@router.patch("/{user_id}", response_model=UserOut)
async def patch_user(
    user_id: uuid.UUID, body: UserPatchIn, services: Services = Depends(services_dep)
) -> UserOut:
    return UserOut.from_domain(await services.users.patch_user(user_id, body.to_domain()))


@router.delete("/{user_id}", response_model=UserOut)
async def delete_user(
    user_id: uuid.UUID,
    principal: Principal = Depends(get_principal),
    services: Services = Depends(services_dep),
) -> UserOut:
    return UserOut.from_domain(await services.users.delete_user(user_id, actor=principal.subject))


@router.get("/{user_id}/bookmarks", response_model=PageOut[ContainerOut])
async def list_user_container_bookmarks(
    user_id: uuid.UUID,
    page: PageRequest = Depends(page_request),
    container_category: ContainerCategory | None = Query(default=None, alias="containerCategory"),
    location_name: str | None = Query(default=None, alias="locationName"),
    services: Services = Depends(services_dep),
) -> PageOut[ContainerOut]:
    result = await services.users.list_user_container_bookmarks(
        user_id,
        UserContainerBookmarksFilter(
            page=page, container_category=container_category, location_name=location_name
        ),
    )
    return PageOut[ContainerOut](
        total=result.total, results=[ContainerOut.from_domain(c) for c in result.results]
    )


@router.post("/{user_id}/bookmarks/{container_id}", status_code=HTTP_201_CREATED)
async def create_user_container_bookmark(
    user_id: uuid.UUID,
    container_id: uuid.UUID,
    principal: Principal = Depends(get_principal),
    services: Services = Depends(services_dep),
) -> Response:
    await services.users.create_user_container_bookmark(
        user_id, container_id, actor=principal.subject
    )
    return Response(status_code=HTTP_201_CREATED)


@router.delete("/{user_id}/bookmarks/{container_id}", status_code=HTTP_204_NO_CONTENT)
async def delete_user_container_bookmark(
    user_id: uuid.UUID,
    container_id: uuid.UUID,
    principal: Principal = Depends(get_principal),
    services: Services = Depends(services_dep),
) -> Response:
    await services.users.delete_user_container_bookmark(
        user_id, container_id, actor=principal.subject
    )
    return Response(status_code=HTTP_204_NO_CONTENT)
