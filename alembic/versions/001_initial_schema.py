"""Initial schema: accounts, located entities, warehouse trucks, routes and crews.

Revision ID: 001_initial
Revises: None
Create Date: 2026-10-17

`road_network` and `municipalities` are created by the PostGIS map import and must
exist before this revision runs.
"""

from __future__ import annotations

from collections.abc import Sequence

import sqlalchemy as sa
from alembic import op

revision: str = "001_initial"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None

EMPLOYEE_ROLE = sa.Enum("waste_operator", "manager", name="employee_role")
CONTAINER_CATEGORY = sa.Enum(
    "general", "paper", "plastic", "metal", "glass", "organic", "hazardous",
    name="container_category",
)
ROUTE_ROLE = sa.Enum("driver", "collector", name="route_role")


def _timestamps(*, modified: bool = True) -> list[sa.Column]:
    columns = [sa.Column("created_at", sa.DateTime(timezone=True), nullable=False)]
    if modified:
        columns.append(sa.Column("modified_at", sa.DateTime(timezone=True), nullable=False))
    return columns


def _location(table: str) -> list[sa.Column]:
    return [
        sa.Column("longitude", sa.Float, nullable=False),
        sa.Column("latitude", sa.Float, nullable=False),
        sa.Column(
            "road_id",
            sa.BigInteger,
            sa.ForeignKey("road_network.id", name=f"{table}_road_id_fkey"),
            nullable=True,
        ),
        sa.Column(
            "municipality_id",
            sa.Integer,
            sa.ForeignKey("municipalities.id", name=f"{table}_municipality_id_fkey"),
            nullable=True,
        ),
    ]


def upgrade() -> None:
    op.create_table(
        "users",
        sa.Column("id", sa.Uuid, primary_key=True),
        sa.Column("username", sa.String(50), nullable=False),
        sa.Column("password", sa.Text, nullable=False),
        sa.Column("first_name", sa.String(50), nullable=False),
        sa.Column("last_name", sa.String(50), nullable=False),
        *_timestamps(),
        sa.UniqueConstraint("username", name="users_username_key"),
    )

    op.create_table(
        "employees",
        sa.Column("id", sa.Uuid, primary_key=True),
        sa.Column("username", sa.String(50), nullable=False),
        sa.Column("password", sa.Text, nullable=False),
        sa.Column("first_name", sa.String(50), nullable=False),
        sa.Column("last_name", sa.String(50), nullable=False),
        sa.Column("role", EMPLOYEE_ROLE, nullable=False),
        sa.Column("date_of_birth", sa.Date, nullable=False),
        sa.Column("phone_number", sa.String(20), nullable=False),
        sa.Column("schedule_start", sa.Time, nullable=False),
        sa.Column("schedule_end", sa.Time, nullable=False),
        *_location("employees"),
        *_timestamps(),
        sa.UniqueConstraint("username", name="employees_username_key"),
    )
    op.create_index("employees_role_idx", "employees", ["role"])

    op.create_table(
        "containers",
        sa.Column("id", sa.Uuid, primary_key=True),
        sa.Column("category", CONTAINER_CATEGORY, nullable=False),
        *_location("containers"),
        *_timestamps(),
    )
    op.create_index("containers_category_idx", "containers", ["category"])

    op.create_table(
        "landfills",
        sa.Column("id", sa.Uuid, primary_key=True),
        *_location("landfills"),
        *_timestamps(),
    )

    op.create_table(
        "trucks",
        sa.Column("id", sa.Uuid, primary_key=True),
        sa.Column("make", sa.String(50), nullable=False),
        sa.Column("model", sa.String(50), nullable=False),
        sa.Column("license_plate", sa.String(30), nullable=False),
        sa.Column("person_capacity", sa.Integer, nullable=False),
        *_location("trucks"),
        *_timestamps(),
    )

    op.create_table(
        "warehouses",
        sa.Column("id", sa.Uuid, primary_key=True),
        sa.Column("truck_capacity", sa.Integer, nullable=False),
        *_location("warehouses"),
        *_timestamps(),
    )

    op.create_table(
        "warehouses_trucks",
        sa.Column(
            "warehouse_id",
            sa.Uuid,
            sa.ForeignKey("warehouses.id", name="warehouses_trucks_warehouse_id_fkey"),
            nullable=False,
        ),
        sa.Column(
            "truck_id",
            sa.Uuid,
            sa.ForeignKey("trucks.id", name="warehouses_trucks_truck_id_fkey"),
            nullable=False,
        ),
        *_timestamps(modified=False),
        sa.PrimaryKeyConstraint("warehouse_id", "truck_id", name="warehouses_trucks_pkey"),
    )
    op.create_index("warehouses_trucks_truck_id_idx", "warehouses_trucks", ["truck_id"])

    op.create_table(
        "routes",
        sa.Column("id", sa.Uuid, primary_key=True),
        sa.Column("name", sa.String(50), nullable=False),
        sa.Column(
            "truck_id",
            sa.Uuid,
            sa.ForeignKey("trucks.id", name="routes_truck_id_fkey"),
            nullable=False,
        ),
        sa.Column(
            "departure_warehouse_id",
            sa.Uuid,
            sa.ForeignKey("warehouses.id", name="routes_departure_warehouse_id_fkey"),
            nullable=False,
        ),
        sa.Column(
            "arrival_warehouse_id",
            sa.Uuid,
            sa.ForeignKey("warehouses.id", name="routes_arrival_warehouse_id_fkey"),
            nullable=False,
        ),
        *_timestamps(),
    )
    for column in ("truck_id", "departure_warehouse_id", "arrival_warehouse_id"):
        op.create_index(f"routes_{column}_idx", "routes", [column])

    op.create_table(
        "routes_employees",
        sa.Column(
            "route_id",
            sa.Uuid,
            sa.ForeignKey("routes.id", name="routes_employees_route_id_fkey"),
            nullable=False,
        ),
        sa.Column(
            "employee_id",
            sa.Uuid,
            sa.ForeignKey("employees.id", name="routes_employees_employee_id_fkey"),
            nullable=False,
        ),
        sa.Column("route_role", ROUTE_ROLE, nullable=False),
        *_timestamps(modified=False),
        sa.PrimaryKeyConstraint("route_id", "employee_id", name="routes_employees_pkey"),
    )
    op.create_index("routes_employees_employee_id_idx", "routes_employees", ["employee_id"])


def downgrade() -> None:
    for table in (
        "routes_employees",
        "routes",
        "warehouses_trucks",
        "warehouses",
        "trucks",
        "landfills",
        "containers",
        "employees",
        "users",
    ):
        op.drop_table(table)

    bind = op.get_bind()
    for enum in (ROUTE_ROLE, CONTAINER_CATEGORY, EMPLOYEE_ROLE):
        enum.drop(bind, checkfirst=True)
