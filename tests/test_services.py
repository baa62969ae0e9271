"""
tests.test_services

Service behavior against the SQL store on SQLite: normalization, sign-in, capacity
invariants, association conflicts and not-found reporting.
"""

from __future__ import annotations

import uuid
from collections.abc import Awaitable, Callable
from datetime import time
from typing import Any

import pytest
from tenacity import wait_none

from conftest import DEPOT, OTHER_PASSWORD, PASSWORD, RecordingLog
from ecomap_server.auth.credentials import CredentialService
from ecomap_server.db.errors import StoreError
from ecomap_server.db.store import SqlStore
from ecomap_server.db.tx import Transaction
from ecomap_server.domain.errors import (
    ContainerAssociatedWithRouteError,
    ContainerAssociatedWithUserBookmarkError,
    ContainerNotFoundError,
    CredentialsIncorrectError,
    EmployeeAlreadyExistsError,
    EmployeeAssociatedWithRouteError,
    EmployeeNotFoundError,
    FieldValueInvalidError,
    FilterValueInvalidError,
    RouteArrivalWarehouseNotFoundError,
    RouteAssociatedWithContainerError,
    RouteAssociatedWithEmployeeError,
    RouteContainerAlreadyExistsError,
    RouteContainerNotFoundError,
    RouteDepartureWarehouseNotFoundError,
    RouteEmployeeAlreadyExistsError,
    RouteEmployeeNotFoundError,
    RouteNotFoundError,
    RouteTruckPersonCapacityMaxLimitError,
    RouteTruckPersonCapacityMinLimitError,
    TruckAssociatedWithRouteError,
    TruckAssociatedWithWarehouseError,
    TruckNotFoundError,
    UserAlreadyExistsError,
    UserAssociatedWithContainerBookmarkError,
    UserContainerBookmarkAlreadyExistsError,
    UserContainerBookmarkNotFoundError,
    UserNotFoundError,
    WarehouseAssociatedWithRouteDepartureError,
    WarehouseAssociatedWithTruckError,
    WarehouseNotFoundError,
    WarehouseTruckAlreadyExistsError,
    WarehouseTruckAssociatedWithRouteDepartureError,
    WarehouseTruckCapacityMaxLimitError,
    WarehouseTruckCapacityMinLimitError,
    WarehouseTruckNotFoundError,
)
from ecomap_server.domain.geojson import Point
from ecomap_server.domain.models import (
    Container,
    ContainerCategory,
    ContainersFilter,
    EditableContainer,
    EditableRoute,
    EditableTruck,
    EditableUserWithPassword,
    EmployeePatch,
    EmployeeRole,
    EmployeesFilter,
    Location,
    RouteContainersFilter,
    RouteEmployeesFilter,
    RoutePatch,
    RouteRole,
    TruckPatch,
    TrucksFilter,
    UserContainerBookmarksFilter,
    UserPatch,
    UsersFilter,
    WarehousePatch,
)
from ecomap_server.domain.pagination import PageRequest
from ecomap_server.services.base import BaseService
from ecomap_server.services.registry import Services


def new_user(username: str = "ana maria", password: str = PASSWORD) -> EditableUserWithPassword:
    return EditableUserWithPassword(
        username=username, first_name="Ana  Sofia", last_name="Silva", password=password
    )


# --- Users -----------------------------------------------------------------------------


async def test_create_user_hyphenates_names(services: Services) -> None:
    user = await services.users.create_user(new_user())

    assert user.username == "ana-maria"
    assert user.first_name == "Ana-Sofia"
    assert await services.users.get_user(user.id) == user


async def test_create_user_rejects_weak_password(services: Services) -> None:
    with pytest.raises(FieldValueInvalidError) as excinfo:
        await services.users.create_user(new_user(password="short"))

    assert excinfo.value.field_name == "password"


async def test_duplicate_username_conflicts(services: Services) -> None:
    await services.users.create_user(new_user())

    with pytest.raises(UserAlreadyExistsError):
        await services.users.create_user(new_user())


async def test_sign_in_issues_user_token(
    services: Services, credentials: CredentialService
) -> None:
    user = await services.users.create_user(new_user())

    token = await services.users.sign_in_user("ana-maria", PASSWORD)

    claims = credentials.parse_token(token)
    assert claims.subject == str(user.id)
    assert claims.roles == frozenset({"user"})


async def test_sign_in_failure_does_not_reveal_which_part_was_wrong(services: Services) -> None:
    await services.users.create_user(new_user())

    with pytest.raises(CredentialsIncorrectError) as wrong_password:
        await services.users.sign_in_user("ana-maria", OTHER_PASSWORD)
    with pytest.raises(CredentialsIncorrectError) as unknown_user:
        await services.users.sign_in_user("nobody", PASSWORD)

    assert str(wrong_password.value) == str(unknown_user.value)
    assert wrong_password.value.code == unknown_user.value.code


async def test_unknown_username_still_spends_a_password_verification(
    services: Services, credentials: CredentialService, monkeypatch: pytest.MonkeyPatch
) -> None:
    verified: list[str] = []
    verify = credentials._verify

    def counting_verify(password: str, password_hash: str) -> bool:
        verified.append(password_hash)
        return verify(password, password_hash)

    monkeypatch.setattr(credentials, "_verify", counting_verify)

    with pytest.raises(CredentialsIncorrectError):
        await services.users.sign_in_user("nobody", PASSWORD)
    assert len(verified) == 1

    with pytest.raises(CredentialsIncorrectError):
        await services.employees.sign_in_employee("nobody", PASSWORD)
    assert len(verified) == 2

    with pytest.raises(CredentialsIncorrectError):
        await services.users.update_user_password("nobody", PASSWORD, OTHER_PASSWORD)
    assert len(verified) == 3


async def test_update_password_requires_current_password(services: Services) -> None:
    await services.users.create_user(new_user())

    with pytest.raises(CredentialsIncorrectError):
        await services.users.update_user_password("ana-maria", OTHER_PASSWORD, OTHER_PASSWORD)

    await services.users.update_user_password("ana-maria", PASSWORD, OTHER_PASSWORD)
    await services.users.sign_in_user("ana-maria", OTHER_PASSWORD)
    with pytest.raises(CredentialsIncorrectError):
        await services.users.sign_in_user("ana-maria", PASSWORD)


async def test_reset_password_of_unknown_user(services: Services) -> None:
    with pytest.raises(UserNotFoundError):
        await services.users.reset_user_password("nobody", OTHER_PASSWORD)


async def test_patch_and_delete_user(services: Services) -> None:
    user = await services.users.create_user(new_user())

    patched = await services.users.patch_user(user.id, UserPatch(last_name="Sousa  Lima"))
    assert patched.last_name == "Sousa-Lima"
    assert patched.username == user.username

    deleted = await services.users.delete_user(user.id)
    assert deleted.id == user.id
    with pytest.raises(UserNotFoundError):
        await services.users.get_user(user.id)


async def test_patch_unknown_user(services: Services) -> None:
    with pytest.raises(UserNotFoundError):
        await services.users.patch_user(uuid.uuid4(), UserPatch(first_name="Rita"))


async def test_list_users_filters_and_pages(services: Services) -> None:
    for name in ("ana", "anabela", "bruno"):
        await services.users.create_user(new_user(username=name))

    page = await services.users.list_users(
        UsersFilter(page=PageRequest(limit=1, sort="username", order="desc"), username="ANA")
    )

    assert page.total == 2
    assert [u.username for u in page.results] == ["anabela"]


@pytest.mark.parametrize(
    ("page", "filter_name"),
    [
        (PageRequest(limit=0), "limit"),
        (PageRequest(limit=101), "limit"),
        (PageRequest(offset=-1), "offset"),
        (PageRequest(order="sideways"), "order"),
        (PageRequest(sort="password"), "sort"),
    ],
)
async def test_list_rejects_invalid_page(
    services: Services, page: PageRequest, filter_name: str
) -> None:
    with pytest.raises(FilterValueInvalidError) as excinfo:
        await services.users.list_users(UsersFilter(page=page))

    assert excinfo.value.filter_name == filter_name


# --- Employees ---------------------------------------------------------------------------


async def test_employee_usernames_are_case_insensitive(
    services: Services, credentials: CredentialService, make_employee
) -> None:
    employee = await make_employee(username="Rui  Costa", role=EmployeeRole.manager)

    assert employee.username == "rui-costa"
    with pytest.raises(EmployeeAlreadyExistsError):
        await make_employee(username="RUI-COSTA")

    token = await services.employees.sign_in_employee("RUI-costa", PASSWORD)
    claims = credentials.parse_token(token)
    assert claims.subject == str(employee.id)
    assert claims.roles == frozenset({"manager"})


async def test_employee_without_map_data_has_no_location_names(make_employee) -> None:
    employee = await make_employee()

    assert employee.location == DEPOT
    assert employee.way_name is None
    assert employee.municipality_name is None


async def test_employee_schedule_must_not_end_before_it_starts(
    services: Services, make_employee
) -> None:
    employee = await make_employee()

    with pytest.raises(FieldValueInvalidError) as excinfo:
        await services.employees.patch_employee(employee.id, EmployeePatch(schedule_end=time(5, 0)))

    assert excinfo.value.field_name == "schedule"


async def test_list_employees_by_role(services: Services, make_employee) -> None:
    await make_employee(role=EmployeeRole.manager)
    await make_employee()
    await make_employee()

    page = await services.employees.list_employees(
        EmployeesFilter(role=EmployeeRole.waste_operator)
    )

    assert page.total == 2
    assert {e.role for e in page.results} == {EmployeeRole.waste_operator}


# --- Containers --------------------------------------------------------------------------


async def test_containers_by_category(services: Services) -> None:
    for category in (ContainerCategory.paper, ContainerCategory.glass, ContainerCategory.paper):
        await services.containers.create_container(
            EditableContainer(category=category, location=DEPOT)
        )

    page = await services.containers.list_containers(
        ContainersFilter(category=ContainerCategory.paper)
    )

    assert page.total == 2


async def test_container_rejects_point_out_of_range(services: Services) -> None:
    with pytest.raises(FieldValueInvalidError):
        await services.containers.create_container(
            EditableContainer(
                category=ContainerCategory.metal, location=Point(longitude=200.0, latitude=0.0)
            )
        )


# --- Warehouses ----------------------------------------------------------------------------


async def test_warehouse_truck_capacity_is_an_upper_bound(
    services: Services, make_warehouse, make_truck
) -> None:
    warehouse = await make_warehouse(truck_capacity=1)
    first, second = await make_truck(), await make_truck()

    await services.warehouses.create_warehouse_truck(warehouse.id, first.id)
    with pytest.raises(WarehouseTruckCapacityMaxLimitError):
        await services.warehouses.create_warehouse_truck(warehouse.id, second.id)

    page = await services.warehouses.list_warehouse_trucks(warehouse.id, PageRequest())
    assert [t.id for t in page.results] == [first.id]


async def test_warehouse_capacity_cannot_drop_below_held_trucks(
    services: Services, make_warehouse, make_truck
) -> None:
    warehouse = await make_warehouse(truck_capacity=3)
    for _ in range(3):
        await services.warehouses.create_warehouse_truck(warehouse.id, (await make_truck()).id)

    with pytest.raises(WarehouseTruckCapacityMinLimitError):
        await services.warehouses.patch_warehouse(warehouse.id, WarehousePatch(truck_capacity=2))

    assert (await services.warehouses.get_warehouse(warehouse.id)).truck_capacity == 3

    patched = await services.warehouses.patch_warehouse(
        warehouse.id, WarehousePatch(truck_capacity=3)
    )
    assert patched.truck_capacity == 3


async def test_warehouse_truck_association_errors(
    services: Services, make_warehouse, make_truck
) -> None:
    warehouse = await make_warehouse()
    truck = await make_truck()

    with pytest.raises(WarehouseNotFoundError):
        await services.warehouses.create_warehouse_truck(uuid.uuid4(), truck.id)
    with pytest.raises(TruckNotFoundError):
        await services.warehouses.create_warehouse_truck(warehouse.id, uuid.uuid4())

    await services.warehouses.create_warehouse_truck(warehouse.id, truck.id)
    with pytest.raises(WarehouseTruckAlreadyExistsError):
        await services.warehouses.create_warehouse_truck(warehouse.id, truck.id)

    await services.warehouses.delete_warehouse_truck(warehouse.id, truck.id)
    with pytest.raises(WarehouseTruckNotFoundError):
        await services.warehouses.delete_warehouse_truck(warehouse.id, truck.id)


async def test_held_truck_and_its_warehouse_cannot_be_deleted(
    services: Services, make_warehouse, make_truck
) -> None:
    warehouse = await make_warehouse()
    truck = await make_truck()
    await services.warehouses.create_warehouse_truck(warehouse.id, truck.id)

    with pytest.raises(TruckAssociatedWithWarehouseError):
        await services.trucks.delete_truck(truck.id)
    with pytest.raises(WarehouseAssociatedWithTruckError):
        await services.warehouses.delete_warehouse(warehouse.id)


async def test_truck_cannot_leave_warehouse_a_route_departs_from(
    services: Services, make_warehouse, make_truck
) -> None:
    truck = await make_truck()
    departure, arrival = await make_warehouse(), await make_warehouse()
    await services.warehouses.create_warehouse_truck(departure.id, truck.id)
    await services.routes.create_route(
        EditableRoute(
            name="Night shift",
            truck_id=truck.id,
            departure_warehouse_id=departure.id,
            arrival_warehouse_id=arrival.id,
        )
    )

    with pytest.raises(WarehouseTruckAssociatedWithRouteDepartureError):
        await services.warehouses.delete_warehouse_truck(departure.id, truck.id)


async def test_route_endpoints_cannot_be_deleted(services: Services, make_route) -> None:
    route = await make_route()

    with pytest.raises(WarehouseAssociatedWithRouteDepartureError):
        await services.warehouses.delete_warehouse(route.departure_warehouse_id)
    with pytest.raises(TruckAssociatedWithRouteError):
        await services.trucks.delete_truck(route.truck_id)

    assert (await services.trucks.get_truck(route.truck_id)).id == route.truck_id
    warehouse = await services.warehouses.get_warehouse(route.departure_warehouse_id)
    assert warehouse.id == route.departure_warehouse_id


# --- Routes --------------------------------------------------------------------------------


async def test_create_route_reports_missing_references(
    services: Services, make_warehouse, make_truck
) -> None:
    truck = await make_truck()
    warehouse = await make_warehouse()

    def route(truck_id=truck.id, departure=warehouse.id, arrival=warehouse.id) -> EditableRoute:
        return EditableRoute(
            name="Foz loop",
            truck_id=truck_id,
            departure_warehouse_id=departure,
            arrival_warehouse_id=arrival,
        )

    with pytest.raises(TruckNotFoundError):
        await services.routes.create_route(route(truck_id=uuid.uuid4()))
    with pytest.raises(RouteDepartureWarehouseNotFoundError):
        await services.routes.create_route(route(departure=uuid.uuid4()))
    with pytest.raises(RouteArrivalWarehouseNotFoundError):
        await services.routes.create_route(route(arrival=uuid.uuid4()))

    created = await services.routes.create_route(route())
    assert created.name == "Foz loop"


async def test_route_employees_bounded_by_truck_person_capacity(
    services: Services, make_route, make_truck, make_employee
) -> None:
    route = await make_route(truck=await make_truck(person_capacity=2))
    driver, collector, extra = await make_employee(), await make_employee(), await make_employee()

    await services.routes.create_route_employee(route.id, driver.id, RouteRole.driver)
    await services.routes.create_route_employee(route.id, collector.id, RouteRole.collector)
    with pytest.raises(RouteTruckPersonCapacityMaxLimitError):
        await services.routes.create_route_employee(route.id, extra.id, RouteRole.collector)

    crew = await services.routes.list_route_employees(route.id, RouteEmployeesFilter())
    assert crew.total == 2

    drivers = await services.routes.list_route_employees(
        route.id, RouteEmployeesFilter(route_role=RouteRole.driver)
    )
    assert drivers.total == 1
    assert drivers.results[0].employee.id == driver.id
    assert drivers.results[0].route_id == route.id


async def test_route_employee_association_errors(
    services: Services, make_route, make_employee
) -> None:
    route = await make_route()
    employee = await make_employee()

    with pytest.raises(RouteNotFoundError):
        await services.routes.create_route_employee(uuid.uuid4(), employee.id, RouteRole.driver)
    with pytest.raises(EmployeeNotFoundError):
        await services.routes.create_route_employee(route.id, uuid.uuid4(), RouteRole.driver)

    await services.routes.create_route_employee(route.id, employee.id, RouteRole.driver)
    with pytest.raises(RouteEmployeeAlreadyExistsError):
        await services.routes.create_route_employee(route.id, employee.id, RouteRole.collector)

    await services.routes.delete_route_employee(route.id, employee.id)
    with pytest.raises(RouteEmployeeNotFoundError):
        await services.routes.delete_route_employee(route.id, employee.id)


async def test_truck_capacity_cannot_drop_below_route_crew(
    services: Services, make_route, make_truck, make_employee
) -> None:
    truck = await make_truck(person_capacity=2)
    route = await make_route(truck=truck)
    for role in (RouteRole.driver, RouteRole.collector):
        await services.routes.create_route_employee(route.id, (await make_employee()).id, role)

    with pytest.raises(RouteTruckPersonCapacityMinLimitError):
        await services.trucks.patch_truck(truck.id, TruckPatch(person_capacity=1))

    smaller = await make_truck(person_capacity=1)
    with pytest.raises(RouteTruckPersonCapacityMinLimitError):
        await services.routes.patch_route(route.id, RoutePatch(truck_id=smaller.id))

    bigger = await make_truck(person_capacity=3)
    patched = await services.routes.patch_route(route.id, RoutePatch(truck_id=bigger.id))
    assert patched.truck_id == bigger.id


async def test_crewed_route_and_assigned_employee_cannot_be_deleted(
    services: Services, make_route, make_employee
) -> None:
    route = await make_route()
    employee = await make_employee()
    await services.routes.create_route_employee(route.id, employee.id, RouteRole.driver)

    with pytest.raises(RouteAssociatedWithEmployeeError):
        await services.routes.delete_route(route.id)
    with pytest.raises(EmployeeAssociatedWithRouteError):
        await services.employees.delete_employee(employee.id)

    await services.routes.delete_route_employee(route.id, employee.id)
    assert (await services.routes.delete_route(route.id)).id == route.id


# --- Units of work -------------------------------------------------------------------------


class TruckWriter(BaseService):
    async def write(self, work: Callable[[Transaction], Awaitable[Any]]) -> Any:
        return await self._read_write(work)


async def test_failed_unit_of_work_leaves_nothing_behind(
    services: Services, store: SqlStore, log: RecordingLog
) -> None:
    writer = TruckWriter(store=store, log=log, retry_wait=wait_none())

    async def work(tx: Transaction) -> None:
        await store.create_truck(
            tx,
            EditableTruck(
                make="MAN",
                model="TGM",
                license_plate="BB-12-CC",
                person_capacity=3,
                location=DEPOT,
            ),
            Location(),
        )
        raise StoreError("connection dropped after the insert")

    with pytest.raises(StoreError):
        await writer.write(work)

    assert (await services.trucks.list_trucks(TrucksFilter())).total == 0


# --- Route containers ----------------------------------------------------------------------


async def new_container(
    services: Services, category: ContainerCategory = ContainerCategory.paper
) -> Container:
    return await services.containers.create_container(
        EditableContainer(category=category, location=DEPOT)
    )


async def test_route_containers_are_listed_by_category(services: Services, make_route) -> None:
    route = await make_route()
    paper = await new_container(services)
    glass = await new_container(services, ContainerCategory.glass)
    await new_container(services)

    for container in (paper, glass):
        await services.routes.create_route_container(route.id, container.id)

    everything = await services.routes.list_route_containers(route.id, RouteContainersFilter())
    assert {c.id for c in everything.results} == {paper.id, glass.id}

    glass_only = await services.routes.list_route_containers(
        route.id, RouteContainersFilter(container_category=ContainerCategory.glass)
    )
    assert [c.id for c in glass_only.results] == [glass.id]

    with pytest.raises(FilterValueInvalidError):
        await services.routes.list_route_containers(
            route.id, RouteContainersFilter(page=PageRequest(sort="name"))
        )


async def test_route_container_association_errors(services: Services, make_route) -> None:
    route = await make_route()
    container = await new_container(services)

    with pytest.raises(RouteNotFoundError):
        await services.routes.create_route_container(uuid.uuid4(), container.id)
    with pytest.raises(ContainerNotFoundError):
        await services.routes.create_route_container(route.id, uuid.uuid4())

    await services.routes.create_route_container(route.id, container.id)
    with pytest.raises(RouteContainerAlreadyExistsError):
        await services.routes.create_route_container(route.id, container.id)

    await services.routes.delete_route_container(route.id, container.id)
    with pytest.raises(RouteContainerNotFoundError):
        await services.routes.delete_route_container(route.id, container.id)


async def test_collected_container_and_its_route_cannot_be_deleted(
    services: Services, make_route
) -> None:
    route = await make_route()
    container = await new_container(services)
    await services.routes.create_route_container(route.id, container.id)

    with pytest.raises(RouteAssociatedWithContainerError):
        await services.routes.delete_route(route.id)
    with pytest.raises(ContainerAssociatedWithRouteError):
        await services.containers.delete_container(container.id)
    assert (await services.containers.get_container(container.id)).id == container.id

    await services.routes.delete_route_container(route.id, container.id)
    assert (await services.routes.delete_route(route.id)).id == route.id
    assert (await services.containers.delete_container(container.id)).id == container.id


# --- User container bookmarks -------------------------------------------------------------


async def test_user_bookmarks_are_listed_per_user(services: Services) -> None:
    ana = await services.users.create_user(new_user("ana"))
    rui = await services.users.create_user(new_user("rui"))
    paper = await new_container(services)
    glass = await new_container(services, ContainerCategory.glass)

    await services.users.create_user_container_bookmark(ana.id, paper.id)
    await services.users.create_user_container_bookmark(ana.id, glass.id)
    await services.users.create_user_container_bookmark(rui.id, glass.id)

    anas = await services.users.list_user_container_bookmarks(
        ana.id, UserContainerBookmarksFilter()
    )
    assert {c.id for c in anas.results} == {paper.id, glass.id}

    ruis = await services.users.list_user_container_bookmarks(
        rui.id, UserContainerBookmarksFilter(container_category=ContainerCategory.paper)
    )
    assert ruis.total == 0


async def test_user_bookmark_association_errors(services: Services) -> None:
    user = await services.users.create_user(new_user())
    container = await new_container(services)

    with pytest.raises(UserNotFoundError):
        await services.users.create_user_container_bookmark(uuid.uuid4(), container.id)
    with pytest.raises(ContainerNotFoundError):
        await services.users.create_user_container_bookmark(user.id, uuid.uuid4())

    await services.users.create_user_container_bookmark(user.id, container.id)
    with pytest.raises(UserContainerBookmarkAlreadyExistsError):
        await services.users.create_user_container_bookmark(user.id, container.id)

    await services.users.delete_user_container_bookmark(user.id, container.id)
    with pytest.raises(UserContainerBookmarkNotFoundError):
        await services.users.delete_user_container_bookmark(user.id, container.id)


async def test_bookmarked_container_and_its_user_cannot_be_deleted(services: Services) -> None:
    user = await services.users.create_user(new_user())
    container = await new_container(services)
    await services.users.create_user_container_bookmark(user.id, container.id)

    with pytest.raises(UserAssociatedWithContainerBookmarkError):
        await services.users.delete_user(user.id)
    with pytest.raises(ContainerAssociatedWithUserBookmarkError):
        await services.containers.delete_container(container.id)

    await services.users.delete_user_container_bookmark(user.id, container.id)
    assert (await services.users.delete_user(user.id)).id == user.id


# --- Attribution ---------------------------------------------------------------------------


async def test_changes_are_attributed_to_the_actor(
    services: Services, log: RecordingLog, make_truck
) -> None:
    truck = await make_truck()

    await services.trucks.delete_truck(truck.id, actor="manager-7")

    applied = [fields for _, event, fields in log.events if event == "service: change applied"]
    assert applied == [
        {"service_method": "delete_truck", "actor": "manager-7", "truck_id": str(truck.id)}
    ]
