"""
ecomap_server.domain.models

Domain types for the fleet administration service.

Responsibilities:
- Define the read models returned by the service layer.
- Define the editable (create) and patch (partial update) inputs, with their static
  field constraints.
- Define list filters and the sort fields each list accepts.

Patch types use `None` for "leave unchanged".
"""

from __future__ import annotations

import enum
import re
import uuid
from dataclasses import dataclass, field
from datetime import date, datetime, time

from ecomap_server.domain.geojson import Point
from ecomap_server.domain.pagination import PageRequest

# Field names reported by FieldValueInvalidError.
FIELD_USERNAME = "username"
FIELD_PASSWORD = "password"
FIELD_NEW_PASSWORD = "newPassword"
FIELD_FIRST_NAME = "firstName"
FIELD_LAST_NAME = "lastName"
FIELD_ROLE = "role"
FIELD_PHONE_NUMBER = "phoneNumber"
FIELD_SCHEDULE = "schedule"
FIELD_CATEGORY = "category"
FIELD_MAKE = "make"
FIELD_MODEL = "model"
FIELD_LICENSE_PLATE = "licensePlate"
FIELD_PERSON_CAPACITY = "personCapacity"
FIELD_TRUCK_CAPACITY = "truckCapacity"
FIELD_NAME = "name"
FIELD_ROUTE_ROLE = "routeRole"

USERNAME_MAX_LENGTH = 50
NAME_MAX_LENGTH = 50
TRUCK_MAKE_MAX_LENGTH = 50
TRUCK_MODEL_MAX_LENGTH = 50
TRUCK_LICENSE_PLATE_MAX_LENGTH = 30
TRUCK_PERSON_CAPACITY_MIN = 1
WAREHOUSE_TRUCK_CAPACITY_MIN = 0
ROUTE_NAME_MAX_LENGTH = 50

_PHONE_NUMBER_RE = re.compile(r"^\+?[0-9]{3,20}$")


def valid_username(username: str) -> bool:
    return 1 <= len(username) <= USERNAME_MAX_LENGTH


def valid_name(name: str) -> bool:
    return 1 <= len(name) <= NAME_MAX_LENGTH


def valid_phone_number(phone_number: str) -> bool:
    return _PHONE_NUMBER_RE.fullmatch(phone_number) is not None


def hyphenate(value: str) -> str:
    """Collapse runs of whitespace into single hyphens ("Ana  Maria" -> "Ana-Maria")."""

    return "-".join(value.split())


def collapse_spaces(value: str) -> str:
    return " ".join(value.split())


class EmployeeRole(enum.StrEnum):
    waste_operator = "waste_operator"
    manager = "manager"


class ContainerCategory(enum.StrEnum):
    general = "general"
    paper = "paper"
    plastic = "plastic"
    metal = "metal"
    glass = "glass"
    organic = "organic"
    hazardous = "hazardous"


class RouteRole(enum.StrEnum):
    driver = "driver"
    collector = "collector"


@dataclass(frozen=True, slots=True)
class Road:
    id: int
    name: str | None


@dataclass(frozen=True, slots=True)
class Municipality:
    id: int
    name: str


@dataclass(frozen=True, slots=True)
class Location:
    """Road network edge and municipality resolved for a point; either may be unknown."""

    road_id: int | None = None
    municipality_id: int | None = None


@dataclass(frozen=True, slots=True)
class SignIn:
    username: str
    password_hash: str


# --- Users --------------------------------------------------------------------


@dataclass(slots=True)
class EditableUser:
    username: str
    first_name: str
    last_name: str


@dataclass(slots=True)
class EditableUserWithPassword(EditableUser):
    password: str


@dataclass(slots=True)
class UserPatch:
    username: str | None = None
    first_name: str | None = None
    last_name: str | None = None


@dataclass(frozen=True, slots=True)
class User:
    id: uuid.UUID
    username: str
    first_name: str
    last_name: str
    created_at: datetime
    modified_at: datetime


USER_SORT_FIELDS = frozenset({"username", "firstName", "lastName", "createdAt", "modifiedAt"})


@dataclass(frozen=True, slots=True)
class UsersFilter:
    page: PageRequest = field(default_factory=PageRequest)
    username: str | None = None
    first_name: str | None = None
    last_name: str | None = None


# --- Employees ------------------------------------------------------------------


@dataclass(slots=True)
class EditableEmployee:
    username: str
    first_name: str
    last_name: str
    role: EmployeeRole
    date_of_birth: date
    phone_number: str
    location: Point
    schedule_start: time
    schedule_end: time


@dataclass(slots=True)
class EditableEmployeeWithPassword(EditableEmployee):
    password: str


@dataclass(slots=True)
class EmployeePatch:
    username: str | None = None
    first_name: str | None = None
    last_name: str | None = None
    date_of_birth: date | None = None
    phone_number: str | None = None
    location: Point | None = None
    schedule_start: time | None = None
    schedule_end: time | None = None


@dataclass(frozen=True, slots=True)
class Employee:
    id: uuid.UUID
    username: str
    first_name: str
    last_name: str
    role: EmployeeRole
    date_of_birth: date
    phone_number: str
    location: Point
    way_name: str | None
    municipality_name: str | None
    schedule_start: time
    schedule_end: time
    created_at: datetime
    modified_at: datetime


EMPLOYEE_SORT_FIELDS = frozenset(
    {"username", "firstName", "lastName", "role", "dateOfBirth", "createdAt", "modifiedAt"}
)


@dataclass(frozen=True, slots=True)
class EmployeesFilter:
    page: PageRequest = field(default_factory=PageRequest)
    username: str | None = None
    role: EmployeeRole | None = None


# --- Containers / landfills -----------------------------------------------------


@dataclass(slots=True)
class EditableContainer:
    category: ContainerCategory
    location: Point


@dataclass(slots=True)
class ContainerPatch:
    category: ContainerCategory | None = None
    location: Point | None = None


@dataclass(frozen=True, slots=True)
class Container:
    id: uuid.UUID
    category: ContainerCategory
    location: Point
    way_name: str | None
    municipality_name: str | None
    created_at: datetime
    modified_at: datetime


CONTAINER_SORT_FIELDS = frozenset(
    {"category", "wayName", "municipalityName", "createdAt", "modifiedAt"}
)


@dataclass(frozen=True, slots=True)
class ContainersFilter:
    page: PageRequest = field(default_factory=PageRequest)
    category: ContainerCategory | None = None
    location_name: str | None = None


@dataclass(slots=True)
class EditableLandfill:
    location: Point


@dataclass(slots=True)
class LandfillPatch:
    location: Point | None = None


@dataclass(frozen=True, slots=True)
class Landfill:
    id: uuid.UUID
    location: Point
    way_name: str | None
    municipality_name: str | None
    created_at: datetime
    modified_at: datetime


LANDFILL_SORT_FIELDS = frozenset({"wayName", "municipalityName", "createdAt", "modifiedAt"})


@dataclass(frozen=True, slots=True)
class LandfillsFilter:
    page: PageRequest = field(default_factory=PageRequest)
    location_name: str | None = None


# --- Trucks -------------------------------------------------------------------------


@dataclass(slots=True)
class EditableTruck:
    make: str
    model: str
    license_plate: str
    person_capacity: int
    location: Point


@dataclass(slots=True)
class TruckPatch:
    make: str | None = None
    model: str | None = None
    license_plate: str | None = None
    person_capacity: int | None = None
    location: Point | None = None


@dataclass(frozen=True, slots=True)
class Truck:
    id: uuid.UUID
    make: str
    model: str
    license_plate: str
    person_capacity: int
    location: Point
    way_name: str | None
    municipality_name: str | None
    created_at: datetime
    modified_at: datetime


TRUCK_SORT_FIELDS = frozenset(
    {
        "make",
        "model",
        "licensePlate",
        "personCapacity",
        "wayName",
        "municipalityName",
        "createdAt",
        "modifiedAt",
    }
)


@dataclass(frozen=True, slots=True)
class TrucksFilter:
    page: PageRequest = field(default_factory=PageRequest)
    make: str | None = None
    model: str | None = None
    license_plate: str | None = None
    location_name: str | None = None


def valid_truck_make(make: str) -> bool:
    return len(make) <= TRUCK_MAKE_MAX_LENGTH


def valid_truck_model(model: str) -> bool:
    return len(model) <= TRUCK_MODEL_MAX_LENGTH


def valid_license_plate(license_plate: str) -> bool:
    return len(license_plate) <= TRUCK_LICENSE_PLATE_MAX_LENGTH


def valid_person_capacity(person_capacity: int) -> bool:
    return person_capacity >= TRUCK_PERSON_CAPACITY_MIN


# --- Warehouses -------------------------------------------------------------------


@dataclass(slots=True)
class EditableWarehouse:
    truck_capacity: int
    location: Point


@dataclass(slots=True)
class WarehousePatch:
    truck_capacity: int | None = None
    location: Point | None = None


@dataclass(frozen=True, slots=True)
class Warehouse:
    id: uuid.UUID
    truck_capacity: int
    location: Point
    way_name: str | None
    municipality_name: str | None
    created_at: datetime
    modified_at: datetime


WAREHOUSE_SORT_FIELDS = frozenset(
    {"truckCapacity", "wayName", "municipalityName", "createdAt", "modifiedAt"}
)

WAREHOUSE_TRUCK_SORT_FIELDS = TRUCK_SORT_FIELDS


@dataclass(frozen=True, slots=True)
class WarehousesFilter:
    page: PageRequest = field(default_factory=PageRequest)
    location_name: str | None = None


def valid_truck_capacity(truck_capacity: int) -> bool:
    return truck_capacity >= WAREHOUSE_TRUCK_CAPACITY_MIN


# --- Routes -----------------------------------------------------------------------


@dataclass(slots=True)
class EditableRoute:
    name: str
    truck_id: uuid.UUID
    departure_warehouse_id: uuid.UUID
    arrival_warehouse_id: uuid.UUID


@dataclass(slots=True)
class RoutePatch:
    name: str | None = None
    truck_id: uuid.UUID | None = None
    departure_warehouse_id: uuid.UUID | None = None
    arrival_warehouse_id: uuid.UUID | None = None


@dataclass(frozen=True, slots=True)
class Route:
    id: uuid.UUID
    name: str
    truck_id: uuid.UUID
    departure_warehouse_id: uuid.UUID
    arrival_warehouse_id: uuid.UUID
    created_at: datetime
    modified_at: datetime


ROUTE_SORT_FIELDS = frozenset(
    {"name", "truckId", "departureWarehouseId", "arrivalWarehouseId", "createdAt", "modifiedAt"}
)


@dataclass(frozen=True, slots=True)
class RoutesFilter:
    page: PageRequest = field(default_factory=PageRequest)
    name: str | None = None
    truck_id: uuid.UUID | None = None
    departure_warehouse_id: uuid.UUID | None = None
    arrival_warehouse_id: uuid.UUID | None = None


def valid_route_name(name: str) -> bool:
    return 1 <= len(name) <= ROUTE_NAME_MAX_LENGTH


@dataclass(frozen=True, slots=True)
class RouteEmployee:
    route_id: uuid.UUID
    route_role: RouteRole
    employee: Employee
    created_at: datetime


ROUTE_EMPLOYEE_SORT_FIELDS = frozenset({"routeRole", "createdAt"})


@dataclass(frozen=True, slots=True)
class RouteEmployeesFilter:
    page: PageRequest = field(default_factory=PageRequest)
    route_role: RouteRole | None = None


# --- Route containers / container bookmarks ----------------------------------------

ROUTE_CONTAINER_SORT_FIELDS = frozenset(
    {"containerCategory", "containerWayName", "containerMunicipalityName", "createdAt"}
)


@dataclass(frozen=True, slots=True)
class RouteContainersFilter:
    page: PageRequest = field(default_factory=PageRequest)
    container_category: ContainerCategory | None = None
    location_name: str | None = None


USER_CONTAINER_BOOKMARK_SORT_FIELDS = frozenset(
    {"containerCategory", "wayName", "municipalityName", "createdAt"}
)


@dataclass(frozen=True, slots=True)
class UserContainerBookmarksFilter:
    page: PageRequest = field(default_factory=PageRequest)
    container_category: ContainerCategory | None = None
    location_name: str | None = None


# --- Module Notes -----------------------------------------------------------
# Sort field names follow the public API spelling (camelCase); the store maps them to columns.
