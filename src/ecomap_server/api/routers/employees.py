"""
ecomap_server.api.routers.employees

Employee account endpoints.
"""

from __future__ import annotations

import uuid

from fastapi import APIRouter, Depends, Query, Response
from starlette.status import HTTP_201_CREATED, HTTP_204_NO_CONTENT

from ecomap_server.api.deps import page_request, services_dep
from ecomap_server.api.schemas import (
    EmployeeIn,
    EmployeeOut,
    EmployeePatchIn,
    JwtOut,
    PageOut,
    PasswordChangeIn,
    PasswordResetIn,
    SignInIn,
)
from ecomap_server.auth.deps import get_principal
from ecomap_server.auth.models import Principal
from ecomap_server.domain.models import EmployeeRole, EmployeesFilter
from ecomap_server.domain.pagination import PageRequest
from ecomap_server.services.registry import Services

router = APIRouter(prefix="/api/employees", tags=["employees"])


@router.post("", status_code=HTTP_201_CREATED, response_model=EmployeeOut)
async def create_employee(
    body: EmployeeIn, services: Services = Depends(services_dep)
) -> EmployeeOut:
    return EmployeeOut.from_domain(await services.employees.create_employee(body.to_domain()))


@router.get("", response_model=PageOut[EmployeeOut])
async def list_employees(
    page: PageRequest = Depends(page_request),
    username: str | None = Query(default=None),
    role: EmployeeRole | None = Query(default=None),
    services: Services = Depends(services_dep),
) -> PageOut[EmployeeOut]:
    result = await services.employees.list_employees(
        EmployeesFilter(page=page, username=username, role=role)
    )
    return PageOut[EmployeeOut](
        total=result.total, results=[EmployeeOut.from_domain(e) for e in result.results]
    )


@router.post("/signin", response_model=JwtOut)
async def sign_in_employee(body: SignInIn, services: Services = Depends(services_dep)) -> JwtOut:
    return JwtOut(token=await services.employees.sign_in_employee(body.username, body.password))


@router.put("/password", status_code=HTTP_204_NO_CONTENT)
async def update_employee_password(
    body: PasswordChangeIn, services: Services = Depends(services_dep)
) -> Response:
    await services.employees.update_employee_password(
        body.username, body.old_password, body.new_password
    )
    return Response(status_code=HTTP_204_NO_CONTENT)


@router.put("/reset-password", status_code=HTTP_204_NO_CONTENT)
async def reset_employee_password(
    body: PasswordResetIn, services: Services = Depends(services_dep)
) -> Response:
    await services.employees.reset_employee_password(body.username, body.new_password)
    return Response(status_code=HTTP_204_NO_CONTENT)


@router.get("/{employee_id}", response_model=EmployeeOut)
async def get_employee(
    employee_id: uuid.UUID, services: Services = Depends(services_dep)
) -> EmployeeOut:
    return EmployeeOut.from_domain(await services.employees.get_employee(employee_id))


@router.patch("/{employee_id}", response_model=EmployeeOut)
async def patch_employee(
    employee_id: uuid.UUID, body: EmployeePatchIn, services: Services = Depends(services_dep)
) -> EmployeeOut:
    employee = await services.employees.patch_employee(employee_id, body.to_domain())
    return EmployeeOut.from_domain(employee)


@router.delete("/{employee_id}", response_model=EmployeeOut)
async def delete_employee(
    employee_id: uuid.UUID,
    principal: Principal = Depends(get_principal),
    services: Services = Depends(services_dep),
) -> EmployeeOut:
    return EmployeeOut.from_domain(
        await services.employees.delete_employee(employee_id, actor=principal.subject)
    )
