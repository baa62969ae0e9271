"""
ecomap_server.db.base

SQLAlchemy declarative base.

Constraints that models do not name explicitly get a deterministic name from
`NAMING_CONVENTION`, so Alembic autogenerate and the integrity error mapping agree on
the same identifiers across PostgreSQL and SQLite.
"""

from __future__ import annotations

from sqlalchemy import MetaData
from sqlalchemy.orm import DeclarativeBase

NAMING_CONVENTION = {
    "ix": "%(table_name)s_%(column_0_name)s_idx",
    "uq": "%(table_name)s_%(column_0_name)s_key",
    "fk": "%(table_name)s_%(column_0_name)s_fkey",
    "pk": "%(table_name)s_pkey",
}


class Base(DeclarativeBase):
    metadata = MetaData(naming_convention=NAMING_CONVENTION)
