"""Containers collected by a route and containers bookmarked by a user.

Revision ID: 002_container_associations
Revises: 001_initial
Create Date: 2026-10-17
"""

from __future__ import annotations

from collections.abc import Sequence

import sqlalchemy as sa
from alembic import op

revision: str = "002_container_associations"
down_revision: str | None = "001_initial"
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def _container_link(table: str, owner_column: str, owner_table: str) -> None:
    op.create_table(
        table,
        sa.Column(
            owner_column,
            sa.Uuid,
            sa.ForeignKey(f"{owner_table}.id", name=f"{table}_{owner_column}_fkey"),
            nullable=False,
        ),
        sa.Column(
            "container_id",
            sa.Uuid,
            sa.ForeignKey("containers.id", name=f"{table}_container_id_fkey"),
            nullable=False,
        ),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint(owner_column, "container_id", name=f"{table}_pkey"),
    )
    op.create_index(f"{table}_container_id_idx", table, ["container_id"])


def upgrade() -> None:
    _container_link("routes_containers", "route_id", "routes")
    _container_link("users_container_bookmarks", "user_id", "users")


def downgrade() -> None:
    op.drop_table("users_container_bookmarks")
    op.drop_table("routes_containers")
