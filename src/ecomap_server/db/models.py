"""
ecomap_server.db.models

Persistence schema for the fleet administration service.

Responsibilities:
- Define ORM models for the administered entities:
  - User, Employee: accounts with bcrypt password hashes
  - Container, Landfill, Truck, Warehouse: located entities (point + resolved road/municipality)
  - WarehouseTruck, Route, RouteEmployee: associations guarded by capacity invariants
  - RouteContainer, UserContainerBookmark: containers collected on a route or bookmarked by a user
- Define the read-only reference tables (road network, municipalities).

Constraint names are explicit: the store maps integrity errors to domain errors by name.
"""

from __future__ import annotations

import uuid
from datetime import date, datetime, time, timezone

from sqlalchemy import (
    BigInteger,
    Date,
    DateTime,
    Enum,
    Float,
    ForeignKey,
    Integer,
    PrimaryKeyConstraint,
    String,
    Text,
    Time,
    UniqueConstraint,
    Uuid as SAUuid,
)
from sqlalchemy.orm import Mapped, mapped_column

from ecomap_server.db.base import Base
from ecomap_server.domain.models import ContainerCategory, EmployeeRole, RouteRole

USERS_USERNAME_KEY = "users_username_key"
EMPLOYEES_USERNAME_KEY = "employees_username_key"
WAREHOUSES_TRUCKS_PKEY = "warehouses_trucks_pkey"
WAREHOUSES_TRUCKS_WAREHOUSE_ID_FKEY = "warehouses_trucks_warehouse_id_fkey"
WAREHOUSES_TRUCKS_TRUCK_ID_FKEY = "warehouses_trucks_truck_id_fkey"
ROUTES_TRUCK_ID_FKEY = "routes_truck_id_fkey"
ROUTES_DEPARTURE_WAREHOUSE_ID_FKEY = "routes_departure_warehouse_id_fkey"
ROUTES_ARRIVAL_WAREHOUSE_ID_FKEY = "routes_arrival_warehouse_id_fkey"
ROUTES_EMPLOYEES_PKEY = "routes_employees_pkey"
ROUTES_EMPLOYEES_ROUTE_ID_FKEY = "routes_employees_route_id_fkey"
ROUTES_EMPLOYEES_EMPLOYEE_ID_FKEY = "routes_employees_employee_id_fkey"
ROUTES_CONTAINERS_PKEY = "routes_containers_pkey"
ROUTES_CONTAINERS_ROUTE_ID_FKEY = "routes_containers_route_id_fkey"
ROUTES_CONTAINERS_CONTAINER_ID_FKEY = "routes_containers_container_id_fkey"
USERS_CONTAINER_BOOKMARKS_PKEY = "users_container_bookmarks_pkey"
USERS_CONTAINER_BOOKMARKS_USER_ID_FKEY = "users_container_bookmarks_user_id_fkey"
USERS_CONTAINER_BOOKMARKS_CONTAINER_ID_FKEY = "users_container_bookmarks_container_id_fkey"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _uuid_pk() -> Mapped[uuid.UUID]:
    return mapped_column(SAUuid(as_uuid=True), primary_key=True, default=uuid.uuid4)


def _created_at() -> Mapped[datetime]:
    return mapped_column(DateTime(timezone=True), nullable=False, default=_utcnow)


def _modified_at() -> Mapped[datetime]:
    return mapped_column(DateTime(timezone=True), nullable=False, default=_utcnow, onupdate=_utcnow)


# --- Reference data ------------------------------------------------------------------


class RoadNetwork(Base):
    # Geometry (`geom_way`) and routing columns are owned by the PostGIS import.
    __tablename__ = "road_network"

    id: Mapped[int] = mapped_column(BigInteger().with_variant(Integer, "sqlite"), primary_key=True)
    osm_name: Mapped[str | None] = mapped_column(Text, nullable=True)
    clazz: Mapped[int | None] = mapped_column(Integer, nullable=True)


class MunicipalityRow(Base):
    __tablename__ = "municipalities"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    name: Mapped[str] = mapped_column(Text, nullable=False)


class _Located:
    """Columns shared by entities placed on the map."""

    longitude: Mapped[float] = mapped_column(Float, nullable=False)
    latitude: Mapped[float] = mapped_column(Float, nullable=False)
    road_id: Mapped[int | None] = mapped_column(ForeignKey("road_network.id"), nullable=True)
    municipality_id: Mapped[int | None] = mapped_column(
        ForeignKey("municipalities.id"), nullable=True
    )


# --- Accounts ------------------------------------------------------------------------


class UserRow(Base):
    __tablename__ = "users"

    id: Mapped[uuid.UUID] = _uuid_pk()
    username: Mapped[str] = mapped_column(String(50), nullable=False)
    password: Mapped[str] = mapped_column(Text, nullable=False)
    first_name: Mapped[str] = mapped_column(String(50), nullable=False)
    last_name: Mapped[str] = mapped_column(String(50), nullable=False)
    created_at: Mapped[datetime] = _created_at()
    modified_at: Mapped[datetime] = _modified_at()

    __table_args__ = (UniqueConstraint("username", name=USERS_USERNAME_KEY),)


class EmployeeRow(_Located, Base):
    __tablename__ = "employees"

    id: Mapped[uuid.UUID] = _uuid_pk()
    username: Mapped[str] = mapped_column(String(50), nullable=False)
    password: Mapped[str] = mapped_column(Text, nullable=False)
    first_name: Mapped[str] = mapped_column(String(50), nullable=False)
    last_name: Mapped[str] = mapped_column(String(50), nullable=False)
    role: Mapped[EmployeeRole] = mapped_column(
        Enum(EmployeeRole, name="employee_role"), nullable=False, index=True
    )
    date_of_birth: Mapped[date] = mapped_column(Date, nullable=False)
    phone_number: Mapped[str] = mapped_column(String(20), nullable=False)
    schedule_start: Mapped[time] = mapped_column(Time, nullable=False)
    schedule_end: Mapped[time] = mapped_column(Time, nullable=False)
    created_at: Mapped[datetime] = _created_at()
    modified_at: Mapped[datetime] = _modified_at()

    __table_args__ = (UniqueConstraint("username", name=EMPLOYEES_USERNAME_KEY),)


# --- Located entities ------------------------------------------------------------------


class ContainerRow(_Located, Base):
    __tablename__ = "containers"

    id: Mapped[uuid.UUID] = _uuid_pk()
    category: Mapped[ContainerCategory] = mapped_column(
        Enum(ContainerCategory, name="container_category"), nullable=False, index=True
    )
    created_at: Mapped[datetime] = _created_at()
    modified_at: Mapped[datetime] = _modified_at()


class LandfillRow(_Located, Base):
    __tablename__ = "landfills"

    id: Mapped[uuid.UUID] = _uuid_pk()
    created_at: Mapped[datetime] = _created_at()
    modified_at: Mapped[datetime] = _modified_at()


class TruckRow(_Located, Base):
    __tablename__ = "trucks"

    id: Mapped[uuid.UUID] = _uuid_pk()
    make: Mapped[str] = mapped_column(String(50), nullable=False)
    model: Mapped[str] = mapped_column(String(50), nullable=False)
    license_plate: Mapped[str] = mapped_column(String(30), nullable=False)
    person_capacity: Mapped[int] = mapped_column(Integer, nullable=False)
    created_at: Mapped[datetime] = _created_at()
    modified_at: Mapped[datetime] = _modified_at()


class WarehouseRow(_Located, Base):
    __tablename__ = "warehouses"

    id: Mapped[uuid.UUID] = _uuid_pk()
    truck_capacity: Mapped[int] = mapped_column(Integer, nullable=False)
    created_at: Mapped[datetime] = _created_at()
    modified_at: Mapped[datetime] = _modified_at()


# --- Associations ----------------------------------------------------------------------


class WarehouseTruckRow(Base):
    __tablename__ = "warehouses_trucks"

    warehouse_id: Mapped[uuid.UUID] = mapped_column(
        SAUuid(as_uuid=True),
        ForeignKey("warehouses.id", name=WAREHOUSES_TRUCKS_WAREHOUSE_ID_FKEY),
        nullable=False,
    )
    truck_id: Mapped[uuid.UUID] = mapped_column(
        SAUuid(as_uuid=True),
        ForeignKey("trucks.id", name=WAREHOUSES_TRUCKS_TRUCK_ID_FKEY),
        nullable=False,
        index=True,
    )
    created_at: Mapped[datetime] = _created_at()

    __table_args__ = (
        PrimaryKeyConstraint("warehouse_id", "truck_id", name=WAREHOUSES_TRUCKS_PKEY),
    )


class RouteRow(Base):
    __tablename__ = "routes"

    id: Mapped[uuid.UUID] = _uuid_pk()
    name: Mapped[str] = mapped_column(String(50), nullable=False)
    truck_id: Mapped[uuid.UUID] = mapped_column(
        SAUuid(as_uuid=True),
        ForeignKey("trucks.id", name=ROUTES_TRUCK_ID_FKEY),
        nullable=False,
        index=True,
    )
    departure_warehouse_id: Mapped[uuid.UUID] = mapped_column(
        SAUuid(as_uuid=True),
        ForeignKey("warehouses.id", name=ROUTES_DEPARTURE_WAREHOUSE_ID_FKEY),
        nullable=False,
        index=True,
    )
    arrival_warehouse_id: Mapped[uuid.UUID] = mapped_column(
        SAUuid(as_uuid=True),
        ForeignKey("warehouses.id", name=ROUTES_ARRIVAL_WAREHOUSE_ID_FKEY),
        nullable=False,
        index=True,
    )
    created_at: Mapped[datetime] = _created_at()
    modified_at: Mapped[datetime] = _modified_at()


class RouteEmployeeRow(Base):
    __tablename__ = "routes_employees"

    route_id: Mapped[uuid.UUID] = mapped_column(
        SAUuid(as_uuid=True),
        ForeignKey("routes.id", name=ROUTES_EMPLOYEES_ROUTE_ID_FKEY),
        nullable=False,
    )
    employee_id: Mapped[uuid.UUID] = mapped_column(
        SAUuid(as_uuid=True),
        ForeignKey("employees.id", name=ROUTES_EMPLOYEES_EMPLOYEE_ID_FKEY),
        nullable=False,
        index=True,
    )
    route_role: Mapped[RouteRole] = mapped_column(
        Enum(RouteRole, name="route_role"), nullable=False
    )
    created_at: Mapped[datetime] = _created_at()

    __table_args__ = (
        PrimaryKeyConstraint("route_id", "employee_id", name=ROUTES_EMPLOYEES_PKEY),
    )


class RouteContainerRow(Base):
    __tablename__ = "routes_containers"

    route_id: Mapped[uuid.UUID] = mapped_column(
        SAUuid(as_uuid=True),
        ForeignKey("routes.id", name=ROUTES_CONTAINERS_ROUTE_ID_FKEY),
        nullable=False,
    )
    container_id: Mapped[uuid.UUID] = mapped_column(
        SAUuid(as_uuid=True),
        ForeignKey("containers.id", name=ROUTES_CONTAINERS_CONTAINER_ID_FKEY),
        nullable=False,
        index=True,
    )
    created_at: Mapped[datetime] = _created_at()

    __table_args__ = (
        PrimaryKeyConstraint("route_id", "container_id", name=ROUTES_CONTAINERS_PKEY),
    )


class UserContainerBookmarkRow(Base):
    __tablename__ = "users_container_bookmarks"

    user_id: Mapped[uuid.UUID] = mapped_column(
        SAUuid(as_uuid=True),
        ForeignKey("users.id", name=USERS_CONTAINER_BOOKMARKS_USER_ID_FKEY),
        nullable=False,
    )
    container_id: Mapped[uuid.UUID] = mapped_column(
        SAUuid(as_uuid=True),
        ForeignKey("containers.id", name=USERS_CONTAINER_BOOKMARKS_CONTAINER_ID_FKEY),
        nullable=False,
        index=True,
    )
    created_at: Mapped[datetime] = _created_at()

    __table_args__ = (
        PrimaryKeyConstraint("user_id", "container_id", name=USERS_CONTAINER_BOOKMARKS_PKEY),
    )


# --- Module Notes -----------------------------------------------------------
# Deletes never cascade: a referenced user, container, truck, warehouse, route or employee
# must be detached first, and the resulting foreign key violation is reported as an
# "associated with" error.
