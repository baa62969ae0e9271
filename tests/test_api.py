"""
tests.test_api

HTTP surface: authorization middleware, status mapping of domain errors, camelCase bodies,
GeoJSON features and attribution of changes to the signed-in subject.
"""

from __future__ import annotations

import uuid
from collections.abc import AsyncIterator
from datetime import date, time

import httpx
import pytest
from fastapi import FastAPI

from conftest import DEPOT, PASSWORD, RecordingLog
from ecomap_server.api.app import create_app
from ecomap_server.api.errors import domain_error_response
from ecomap_server.auth.credentials import CredentialService
from ecomap_server.domain.errors import TruckNotFoundError, UnexpectedError
from ecomap_server.domain.models import EditableEmployeeWithPassword, EmployeeRole
from ecomap_server.services.registry import Services
from ecomap_server.settings import Settings

POINT = {"type": "Point", "coordinates": [DEPOT.longitude, DEPOT.latitude]}


@pytest.fixture
async def app(settings: Settings) -> AsyncIterator[FastAPI]:
    app = create_app(settings=settings)
    await app.router.startup()
    try:
        yield app
    finally:
        await app.router.shutdown()


@pytest.fixture
async def client(app: FastAPI) -> AsyncIterator[httpx.AsyncClient]:
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as client:
        yield client


async def employee_token(app: FastAPI, username: str, role: EmployeeRole) -> tuple[str, str]:
    services = app.state.services
    employee = await services.employees.create_employee(
        EditableEmployeeWithPassword(
            username=username,
            first_name="Marta",
            last_name="Reis",
            role=role,
            date_of_birth=date(1985, 2, 3),
            phone_number="+351934567890",
            location=DEPOT,
            schedule_start=time(7, 0),
            schedule_end=time(15, 0),
            password=PASSWORD,
        )
    )
    token = await services.employees.sign_in_employee(username, PASSWORD)
    return str(employee.id), token


@pytest.fixture
async def manager(app: FastAPI) -> dict[str, str]:
    _, token = await employee_token(app, "boss", EmployeeRole.manager)
    return {"Authorization": f"Bearer {token}"}


async def sign_up(client: httpx.AsyncClient, username: str = "ana") -> tuple[str, dict[str, str]]:
    r = await client.post(
        "/api/users",
        json={
            "username": username,
            "password": PASSWORD,
            "firstName": "Ana",
            "lastName": "Silva",
        },
    )
    assert r.status_code == 201, r.text
    user_id = r.json()["id"]

    r = await client.post("/api/users/signin", json={"username": username, "password": PASSWORD})
    assert r.status_code == 200, r.text
    return user_id, {"Authorization": f"Bearer {r.json()['token']}"}


# --- Users / authorization -------------------------------------------------------------------


async def test_sign_up_returns_camel_case_user(client: httpx.AsyncClient) -> None:
    r = await client.post(
        "/api/users",
        json={"username": "ana", "password": PASSWORD, "firstName": "Ana", "lastName": "Silva"},
    )

    assert r.status_code == 201
    body = r.json()
    assert body["firstName"] == "Ana"
    assert "password" not in body
    assert {"id", "createdAt", "modifiedAt"} <= body.keys()


async def test_user_reads_own_record_only(client: httpx.AsyncClient) -> None:
    user_id, headers = await sign_up(client, "ana")
    other_id, _ = await sign_up(client, "bruno")

    r = await client.get(f"/api/users/{user_id}", headers=headers)
    assert r.status_code == 200
    assert r.json()["username"] == "ana"

    r = await client.get(f"/api/users/{other_id}", headers=headers)
    assert r.status_code == 403
    assert r.json()["code"] == "authorization_invalid"


async def test_missing_token_is_unauthorized(client: httpx.AsyncClient) -> None:
    r = await client.get("/api/trucks")

    assert r.status_code == 401
    assert r.json()["code"] == "unauthorized"


async def test_user_role_cannot_list_trucks(client: httpx.AsyncClient) -> None:
    _, headers = await sign_up(client)

    r = await client.get("/api/trucks", headers=headers)

    assert r.status_code == 403
    assert r.json()["code"] == "roles_invalid"


async def test_wrong_password_is_unauthorized(client: httpx.AsyncClient) -> None:
    await sign_up(client)

    r = await client.post("/api/users/signin", json={"username": "ana", "password": "x" * 20})

    assert r.status_code == 401
    assert r.json() == {"code": "credentials_incorrect", "message": "incorrect credentials"}


async def test_password_change_endpoint(client: httpx.AsyncClient) -> None:
    await sign_up(client)
    new_password = "a-brand-new-passw0rd"

    r = await client.put(
        "/api/users/password",
        json={"username": "ana", "oldPassword": PASSWORD, "newPassword": new_password},
    )
    assert r.status_code == 204

    r = await client.post("/api/users/signin", json={"username": "ana", "password": new_password})
    assert r.status_code == 200


async def test_manager_lists_users(client: httpx.AsyncClient, manager: dict[str, str]) -> None:
    await sign_up(client, "ana")
    await sign_up(client, "anabela")

    r = await client.get("/api/users", params={"username": "ana", "limit": 10}, headers=manager)

    assert r.status_code == 200
    assert r.json()["total"] == 2


async def test_waste_operator_reads_own_employee_record(
    app: FastAPI, client: httpx.AsyncClient
) -> None:
    employee_id, token = await employee_token(app, "op", EmployeeRole.waste_operator)
    other_id, _ = await employee_token(app, "op2", EmployeeRole.waste_operator)
    headers = {"Authorization": f"Bearer {token}"}

    r = await client.get(f"/api/employees/{employee_id}", headers=headers)
    assert r.status_code == 200
    assert r.json()["role"] == "waste_operator"

    r = await client.get(f"/api/employees/{other_id}", headers=headers)
    assert r.status_code == 403


# --- Errors ------------------------------------------------------------------------------------


async def test_invalid_body_is_bad_request(client: httpx.AsyncClient) -> None:
    r = await client.post("/api/users", json={"password": PASSWORD})

    assert r.status_code == 400
    body = r.json()
    assert body["code"] == "bad_request"
    assert "username" in body["message"]


async def test_invalid_field_value_is_bad_request(
    client: httpx.AsyncClient, manager: dict[str, str]
) -> None:
    r = await client.post(
        "/api/trucks",
        json={
            "make": "Volvo",
            "model": "FE",
            "licensePlate": "AA-00-AA",
            "personCapacity": 0,
            "geoJson": POINT,
        },
        headers=manager,
    )

    assert r.status_code == 400
    assert r.json()["code"] == "field_value_invalid"


async def test_invalid_page_is_bad_request(
    client: httpx.AsyncClient, manager: dict[str, str]
) -> None:
    r = await client.get("/api/trucks", params={"limit": 0}, headers=manager)

    assert r.status_code == 400
    assert r.json() == {"code": "filter_value_invalid", "message": "invalid filter value: limit"}


async def test_unknown_entity_is_not_found(
    client: httpx.AsyncClient, manager: dict[str, str]
) -> None:
    r = await client.get(f"/api/trucks/{uuid.uuid4()}", headers=manager)

    assert r.status_code == 404
    assert r.json()["code"] == "truck_not_found"


def test_unexpected_errors_hide_their_detail() -> None:
    r = domain_error_response(UnexpectedError("service: failed to list trucks"))

    assert r.status_code == 500
    assert b"service: failed" not in r.body


def test_domain_error_keeps_code_and_message() -> None:
    r = domain_error_response(TruckNotFoundError())

    assert r.status_code == 404
    assert r.body == b'{"code":"truck_not_found","message":"truck not found"}'


# --- Fleet ---------------------------------------------------------------------------------------


async def create_truck(client: httpx.AsyncClient, headers: dict[str, str]) -> str:
    r = await client.post(
        "/api/trucks",
        json={
            "make": "Volvo",
            "model": "FE",
            "licensePlate": f"AA-{uuid.uuid4().hex[:4]}",
            "personCapacity": 1,
            "geoJson": POINT,
        },
        headers=headers,
    )
    assert r.status_code == 201, r.text
    return r.json()["id"]


async def create_warehouse(client: httpx.AsyncClient, headers: dict[str, str], capacity: int) -> str:
    r = await client.post(
        "/api/warehouses", json={"truckCapacity": capacity, "geoJson": POINT}, headers=headers
    )
    assert r.status_code == 201, r.text
    return r.json()["id"]


async def test_located_entities_are_geojson_features(
    client: httpx.AsyncClient, manager: dict[str, str]
) -> None:
    r = await client.post(
        "/api/containers",
        json={"category": "glass", "geoJson": {"type": "Feature", "geometry": POINT}},
        headers=manager,
    )

    assert r.status_code == 201, r.text
    feature = r.json()["geoJson"]
    assert feature["type"] == "Feature"
    assert feature["geometry"] == POINT
    assert feature["properties"] == {"wayName": None, "municipalityName": None}


async def test_warehouse_trucks_flow(client: httpx.AsyncClient, manager: dict[str, str]) -> None:
    warehouse_id = await create_warehouse(client, manager, capacity=1)
    first, second = await create_truck(client, manager), await create_truck(client, manager)

    r = await client.post(f"/api/warehouses/{warehouse_id}/trucks/{first}", headers=manager)
    assert r.status_code == 201

    r = await client.post(f"/api/warehouses/{warehouse_id}/trucks/{second}", headers=manager)
    assert r.status_code == 409
    assert r.json()["code"] == "warehouse_truck_capacity_max_limit"

    r = await client.get(f"/api/warehouses/{warehouse_id}/trucks", headers=manager)
    assert r.status_code == 200
    assert [t["id"] for t in r.json()["results"]] == [first]

    r = await client.delete(f"/api/trucks/{first}", headers=manager)
    assert r.status_code == 409
    assert r.json()["code"] == "truck_associated_with_warehouse"

    r = await client.delete(f"/api/warehouses/{warehouse_id}/trucks/{first}", headers=manager)
    assert r.status_code == 204


async def test_route_employees_flow(
    app: FastAPI, client: httpx.AsyncClient, manager: dict[str, str]
) -> None:
    truck_id = await create_truck(client, manager)
    warehouse_id = await create_warehouse(client, manager, capacity=2)
    r = await client.post(
        "/api/routes",
        json={
            "name": "Baixa  early",
            "truckId": truck_id,
            "departureWarehouseId": warehouse_id,
            "arrivalWarehouseId": warehouse_id,
        },
        headers=manager,
    )
    assert r.status_code == 201, r.text
    route = r.json()
    assert route["name"] == "Baixa early"

    driver_id, _ = await employee_token(app, "driver", EmployeeRole.waste_operator)
    collector_id, _ = await employee_token(app, "collector", EmployeeRole.waste_operator)

    r = await client.post(
        f"/api/routes/{route['id']}/employees/{driver_id}",
        json={"routeRole": "driver"},
        headers=manager,
    )
    assert r.status_code == 201

    r = await client.post(
        f"/api/routes/{route['id']}/employees/{collector_id}",
        json={"routeRole": "collector"},
        headers=manager,
    )
    assert r.status_code == 409
    assert r.json()["code"] == "route_truck_person_capacity_max_limit"

    r = await client.get(
        f"/api/routes/{route['id']}/employees", params={"routeRole": "driver"}, headers=manager
    )
    assert r.status_code == 200
    (assignment,) = r.json()["results"]
    assert assignment["routeRole"] == "driver"
    assert assignment["employee"]["id"] == driver_id


async def create_container(
    client: httpx.AsyncClient, headers: dict[str, str], category: str = "paper"
) -> str:
    r = await client.post(
        "/api/containers", json={"category": category, "geoJson": POINT}, headers=headers
    )
    assert r.status_code == 201, r.text
    return r.json()["id"]


async def test_route_containers_flow(client: httpx.AsyncClient, manager: dict[str, str]) -> None:
    truck_id = await create_truck(client, manager)
    warehouse_id = await create_warehouse(client, manager, capacity=1)
    r = await client.post(
        "/api/routes",
        json={
            "name": "Foz late",
            "truckId": truck_id,
            "departureWarehouseId": warehouse_id,
            "arrivalWarehouseId": warehouse_id,
        },
        headers=manager,
    )
    assert r.status_code == 201, r.text
    route_id = r.json()["id"]
    paper = await create_container(client, manager)
    glass = await create_container(client, manager, "glass")
    containers = f"/api/routes/{route_id}/containers"

    for container_id in (paper, glass):
        r = await client.post(f"{containers}/{container_id}", headers=manager)
        assert r.status_code == 201

    r = await client.post(f"{containers}/{paper}", headers=manager)
    assert r.status_code == 409
    assert r.json()["code"] == "route_container_already_exists"

    r = await client.get(containers, params={"containerCategory": "glass"}, headers=manager)
    assert r.status_code == 200
    (listed,) = r.json()["results"]
    assert listed["id"] == glass
    assert listed["geoJson"]["type"] == "Feature"

    r = await client.delete(f"/api/containers/{glass}", headers=manager)
    assert r.status_code == 409
    assert r.json()["code"] == "container_associated_with_route"

    r = await client.delete(f"/api/routes/{route_id}", headers=manager)
    assert r.status_code == 409
    assert r.json()["code"] == "route_associated_with_container"

    r = await client.delete(f"{containers}/{glass}", headers=manager)
    assert r.status_code == 204
    r = await client.delete(f"{containers}/{glass}", headers=manager)
    assert r.status_code == 404
    assert r.json()["code"] == "route_container_not_found"


# --- Bookmarks -----------------------------------------------------------------------------------


async def test_user_bookmarks_flow(client: httpx.AsyncClient, manager: dict[str, str]) -> None:
    ana_id, ana = await sign_up(client, "ana")
    container_id = await create_container(client, manager)
    bookmarks = f"/api/users/{ana_id}/bookmarks"

    r = await client.post(f"{bookmarks}/{container_id}", headers=ana)
    assert r.status_code == 201

    r = await client.post(f"{bookmarks}/{container_id}", headers=ana)
    assert r.status_code == 409
    assert r.json()["code"] == "user_container_bookmark_already_exists"

    r = await client.get(bookmarks, headers=ana)
    assert r.status_code == 200
    assert [c["id"] for c in r.json()["results"]] == [container_id]

    r = await client.delete(f"/api/users/{ana_id}", headers=ana)
    assert r.status_code == 409
    assert r.json()["code"] == "user_associated_with_container_bookmark"

    r = await client.delete(f"/api/containers/{container_id}", headers=manager)
    assert r.status_code == 409
    assert r.json()["code"] == "container_associated_with_user_bookmark"

    r = await client.delete(f"{bookmarks}/{container_id}", headers=ana)
    assert r.status_code == 204


async def test_user_cannot_touch_another_users_bookmarks(
    client: httpx.AsyncClient, manager: dict[str, str]
) -> None:
    ana_id, _ = await sign_up(client, "ana")
    _, bruno = await sign_up(client, "bruno")
    container_id = await create_container(client, manager)
    bookmarks = f"/api/users/{ana_id}/bookmarks"

    r = await client.get(bookmarks, headers=bruno)
    assert r.status_code == 403
    assert r.json()["code"] == "authorization_invalid"

    r = await client.post(f"{bookmarks}/{container_id}", headers=bruno)
    assert r.status_code == 403

    r = await client.post(f"{bookmarks}/{container_id}", headers=manager)
    assert r.status_code == 201
    r = await client.delete(f"{bookmarks}/{container_id}", headers=bruno)
    assert r.status_code == 403


# --- Attribution ---------------------------------------------------------------------------------


async def test_deletes_are_attributed_to_the_signed_in_subject(
    settings: Settings, services: Services, credentials: CredentialService, log: RecordingLog
) -> None:
    app = create_app(settings=settings, services=services, credentials=credentials)
    await app.router.startup()
    try:
        manager_id, token = await employee_token(app, "chief", EmployeeRole.manager)
        headers = {"Authorization": f"Bearer {token}"}
        transport = httpx.ASGITransport(app=app)
        async with httpx.AsyncClient(transport=transport, base_url="http://test") as client:
            truck_id = await create_truck(client, headers)
            r = await client.delete(f"/api/trucks/{truck_id}", headers=headers)
    finally:
        await app.router.shutdown()

    assert r.status_code == 200, r.text
    applied = [fields for _, event, fields in log.events if event == "service: change applied"]
    assert applied == [
        {"service_method": "delete_truck", "actor": manager_id, "truck_id": truck_id}
    ]


async def test_request_id_is_echoed(client: httpx.AsyncClient) -> None:
    r = await client.get("/healthz", headers={"x-request-id": "req-123"})

    assert r.headers["x-request-id"] == "req-123"
