"""
ecomap_server.api.schemas

HTTP request/response bodies.

Responsibilities:
- Define pydantic models for the JSON surface (camelCase on the wire).
- Convert between bodies and domain types; GeoJSON parsing is delegated to `domain.geojson`.
"""

from __future__ import annotations

import uuid
from datetime import date, datetime, time
from typing import Any, Generic, TypeVar

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

from ecomap_server.domain.geojson import Point, geometry_to_geojson, point_from_geojson
from ecomap_server.domain.models import (
    Container,
    ContainerCategory,
    ContainerPatch,
    EditableContainer,
    EditableEmployeeWithPassword,
    EditableLandfill,
    EditableRoute,
    EditableTruck,
    EditableUserWithPassword,
    EditableWarehouse,
    Employee,
    EmployeePatch,
    EmployeeRole,
    Landfill,
    LandfillPatch,
    Route,
    RouteEmployee,
    RoutePatch,
    RouteRole,
    Truck,
    TruckPatch,
    User,
    UserPatch,
    Warehouse,
    WarehousePatch,
)

T = TypeVar("T")


class ApiModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


def _point(raw: dict[str, Any] | None) -> Point | None:
    return point_from_geojson(raw) if raw is not None else None


def _feature(point: Point, way_name: str | None, municipality_name: str | None) -> dict[str, Any]:
    return {
        "type": "Feature",
        "geometry": geometry_to_geojson(point),
        "properties": {"wayName": way_name, "municipalityName": municipality_name},
    }


class PageOut(ApiModel, Generic[T]):
    total: int
    results: list[T]


# --- Auth ---------------------------------------------------------------------------


class SignInIn(ApiModel):
    username: str
    password: str


class JwtOut(ApiModel):
    token: str


class PasswordChangeIn(ApiModel):
    username: str
    old_password: str
    new_password: str


class PasswordResetIn(ApiModel):
    username: str
    new_password: str


# --- Users ---------------------------------------------------------------------------


class UserIn(ApiModel):
    username: str
    password: str
    first_name: str
    last_name: str

    def to_domain(self) -> EditableUserWithPassword:
        return EditableUserWithPassword(
            username=self.username,
            first_name=self.first_name,
            last_name=self.last_name,
            password=self.password,
        )


class UserPatchIn(ApiModel):
    username: str | None = None
    first_name: str | None = None
    last_name: str | None = None

    def to_domain(self) -> UserPatch:
        return UserPatch(
            username=self.username, first_name=self.first_name, last_name=self.last_name
        )


class UserOut(ApiModel):
    id: uuid.UUID
    username: str
    first_name: str
    last_name: str
    created_at: datetime
    modified_at: datetime

    @classmethod
    def from_domain(cls, user: User) -> UserOut:
        return cls(
            id=user.id,
            username=user.username,
            first_name=user.first_name,
            last_name=user.last_name,
            created_at=user.created_at,
            modified_at=user.modified_at,
        )


# --- Employees ----------------------------------------------------------------------------


class EmployeeIn(ApiModel):
    username: str
    password: str
    first_name: str
    last_name: str
    role: EmployeeRole
    date_of_birth: date
    phone_number: str
    geo_json: dict[str, Any]
    schedule_start: time
    schedule_end: time

    def to_domain(self) -> EditableEmployeeWithPassword:
        return EditableEmployeeWithPassword(
            username=self.username,
            first_name=self.first_name,
            last_name=self.last_name,
            role=self.role,
            date_of_birth=self.date_of_birth,
            phone_number=self.phone_number,
            location=point_from_geojson(self.geo_json),
            schedule_start=self.schedule_start,
            schedule_end=self.schedule_end,
            password=self.password,
        )


class EmployeePatchIn(ApiModel):
    username: str | None = None
    first_name: str | None = None
    last_name: str | None = None
    date_of_birth: date | None = None
    phone_number: str | None = None
    geo_json: dict[str, Any] | None = None
    schedule_start: time | None = None
    schedule_end: time | None = None

    def to_domain(self) -> EmployeePatch:
        return EmployeePatch(
            username=self.username,
            first_name=self.first_name,
            last_name=self.last_name,
            date_of_birth=self.date_of_birth,
            phone_number=self.phone_number,
            location=_point(self.geo_json),
            schedule_start=self.schedule_start,
            schedule_end=self.schedule_end,
        )


class EmployeeOut(ApiModel):
    id: uuid.UUID
    username: str
    first_name: str
    last_name: str
    role: EmployeeRole
    date_of_birth: date
    phone_number: str
    geo_json: dict[str, Any]
    schedule_start: time
    schedule_end: time
    created_at: datetime
    modified_at: datetime

    @classmethod
    def from_domain(cls, e: Employee) -> EmployeeOut:
        return cls(
            id=e.id,
            username=e.username,
            first_name=e.first_name,
            last_name=e.last_name,
            role=e.role,
            date_of_birth=e.date_of_birth,
            phone_number=e.phone_number,
            geo_json=_feature(e.location, e.way_name, e.municipality_name),
            schedule_start=e.schedule_start,
            schedule_end=e.schedule_end,
            created_at=e.created_at,
            modified_at=e.modified_at,
        )


# --- Containers / landfills ----------------------------------------------------------------


class ContainerIn(ApiModel):
    category: ContainerCategory
    geo_json: dict[str, Any]

    def to_domain(self) -> EditableContainer:
        return EditableContainer(category=self.category, location=point_from_geojson(self.geo_json))


class ContainerPatchIn(ApiModel):
    category: ContainerCategory | None = None
    geo_json: dict[str, Any] | None = None

    def to_domain(self) -> ContainerPatch:
        return ContainerPatch(category=self.category, location=_point(self.geo_json))


class ContainerOut(ApiModel):
    id: uuid.UUID
    category: ContainerCategory
    geo_json: dict[str, Any]
    created_at: datetime
    modified_at: datetime

    @classmethod
    def from_domain(cls, c: Container) -> ContainerOut:
        return cls(
            id=c.id,
            category=c.category,
            geo_json=_feature(c.location, c.way_name, c.municipality_name),
            created_at=c.created_at,
            modified_at=c.modified_at,
        )


class LandfillIn(ApiModel):
    geo_json: dict[str, Any]

    def to_domain(self) -> EditableLandfill:
        return EditableLandfill(location=point_from_geojson(self.geo_json))


class LandfillPatchIn(ApiModel):
    geo_json: dict[str, Any] | None = None

    def to_domain(self) -> LandfillPatch:
        return LandfillPatch(location=_point(self.geo_json))


class LandfillOut(ApiModel):
    id: uuid.UUID
    geo_json: dict[str, Any]
    created_at: datetime
    modified_at: datetime

    @classmethod
    def from_domain(cls, f: Landfill) -> LandfillOut:
        return cls(
            id=f.id,
            geo_json=_feature(f.location, f.way_name, f.municipality_name),
            created_at=f.created_at,
            modified_at=f.modified_at,
        )


# --- Trucks / warehouses -------------------------------------------------------------------


class TruckIn(ApiModel):
    make: str
    model: str
    license_plate: str
    person_capacity: int
    geo_json: dict[str, Any]

    def to_domain(self) -> EditableTruck:
        return EditableTruck(
            make=self.make,
            model=self.model,
            license_plate=self.license_plate,
            person_capacity=self.person_capacity,
            location=point_from_geojson(self.geo_json),
        )


class TruckPatchIn(ApiModel):
    make: str | None = None
    model: str | None = None
    license_plate: str | None = None
    person_capacity: int | None = None
    geo_json: dict[str, Any] | None = None

    def to_domain(self) -> TruckPatch:
        return TruckPatch(
            make=self.make,
            model=self.model,
            license_plate=self.license_plate,
            person_capacity=self.person_capacity,
            location=_point(self.geo_json),
        )


class TruckOut(ApiModel):
    id: uuid.UUID
    make: str
    model: str
    license_plate: str
    person_capacity: int
    geo_json: dict[str, Any]
    created_at: datetime
    modified_at: datetime

    @classmethod
    def from_domain(cls, t: Truck) -> TruckOut:
        return cls(
            id=t.id,
            make=t.make,
            model=t.model,
            license_plate=t.license_plate,
            person_capacity=t.person_capacity,
            geo_json=_feature(t.location, t.way_name, t.municipality_name),
            created_at=t.created_at,
            modified_at=t.modified_at,
        )


class WarehouseIn(ApiModel):
    truck_capacity: int
    geo_json: dict[str, Any]

    def to_domain(self) -> EditableWarehouse:
        return EditableWarehouse(
            truck_capacity=self.truck_capacity, location=point_from_geojson(self.geo_json)
        )


class WarehousePatchIn(ApiModel):
    truck_capacity: int | None = None
    geo_json: dict[str, Any] | None = None

    def to_domain(self) -> WarehousePatch:
        return WarehousePatch(truck_capacity=self.truck_capacity, location=_point(self.geo_json))


class WarehouseOut(ApiModel):
    id: uuid.UUID
    truck_capacity: int
    geo_json: dict[str, Any]
    created_at: datetime
    modified_at: datetime

    @classmethod
    def from_domain(cls, w: Warehouse) -> WarehouseOut:
        return cls(
            id=w.id,
            truck_capacity=w.truck_capacity,
            geo_json=_feature(w.location, w.way_name, w.municipality_name),
            created_at=w.created_at,
            modified_at=w.modified_at,
        )


# --- Routes ------------------------------------------------------------------------------


class RouteIn(ApiModel):
    name: str
    truck_id: uuid.UUID
    departure_warehouse_id: uuid.UUID
    arrival_warehouse_id: uuid.UUID

    def to_domain(self) -> EditableRoute:
        return EditableRoute(
            name=self.name,
            truck_id=self.truck_id,
            departure_warehouse_id=self.departure_warehouse_id,
            arrival_warehouse_id=self.arrival_warehouse_id,
        )


class RoutePatchIn(ApiModel):
    name: str | None = None
    truck_id: uuid.UUID | None = None
    departure_warehouse_id: uuid.UUID | None = None
    arrival_warehouse_id: uuid.UUID | None = None

    def to_domain(self) -> RoutePatch:
        return RoutePatch(
            name=self.name,
            truck_id=self.truck_id,
            departure_warehouse_id=self.departure_warehouse_id,
            arrival_warehouse_id=self.arrival_warehouse_id,
        )


class RouteOut(ApiModel):
    id: uuid.UUID
    name: str
    truck_id: uuid.UUID
    departure_warehouse_id: uuid.UUID
    arrival_warehouse_id: uuid.UUID
    created_at: datetime
    modified_at: datetime

    @classmethod
    def from_domain(cls, r: Route) -> RouteOut:
        return cls(
            id=r.id,
            name=r.name,
            truck_id=r.truck_id,
            departure_warehouse_id=r.departure_warehouse_id,
            arrival_warehouse_id=r.arrival_warehouse_id,
            created_at=r.created_at,
            modified_at=r.modified_at,
        )


class RouteEmployeeIn(ApiModel):
    route_role: RouteRole


class RouteEmployeeOut(ApiModel):
    route_id: uuid.UUID
    route_role: RouteRole
    employee: EmployeeOut
    created_at: datetime

    @classmethod
    def from_domain(cls, re: RouteEmployee) -> RouteEmployeeOut:
        return cls(
            route_id=re.route_id,
            route_role=re.route_role,
            employee=EmployeeOut.from_domain(re.employee),
            created_at=re.created_at,
        )


# --- Module Notes -----------------------------------------------------------
# Patch bodies treat a missing field and an explicit null alike: the field is left unchanged.
