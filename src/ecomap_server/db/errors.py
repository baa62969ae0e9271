"""
ecomap_server.db.errors

Storage-level exceptions and driver error inspection.

Responsibilities:
- Define the errors raised by transactions and the store for non-domain failures.
- Extract SQLSTATE codes and constraint names from SQLAlchemy/driver exceptions.
"""

from __future__ import annotations

from sqlalchemy.exc import DBAPIError

SQLSTATE_SERIALIZATION_FAILURE = "40001"
SQLSTATE_DEADLOCK_DETECTED = "40P01"


class StoreError(Exception):
    """Unexpected storage failure."""


class TransactionClosedError(StoreError):
    """Raised when committing a transaction that is already committed or rolled back."""


class SerializationFailureError(StoreError):
    """The database aborted the transaction because of a concurrent conflicting write."""


def _driver_errors(exc: BaseException) -> list[BaseException]:
    # SQLAlchemy wraps the DBAPI error in `.orig`; async adapters chain the driver error as cause.
    found: list[BaseException] = []
    current: BaseException | None = exc.orig if isinstance(exc, DBAPIError) else exc
    while current is not None and current not in found:
        found.append(current)
        current = current.__cause__
    return found


def sqlstate(exc: BaseException) -> str | None:
    for err in _driver_errors(exc):
        for attr in ("sqlstate", "pgcode"):
            value = getattr(err, attr, None)
            if isinstance(value, str) and value:
                return value
    return None


def constraint_name(exc: BaseException) -> str | None:
    for err in _driver_errors(exc):
        name = getattr(err, "constraint_name", None)
        if isinstance(name, str) and name:
            return name
        diag = getattr(err, "diag", None)
        name = getattr(diag, "constraint_name", None)
        if isinstance(name, str) and name:
            return name
    return None


def is_serialization_failure(exc: BaseException) -> bool:
    return sqlstate(exc) in {SQLSTATE_SERIALIZATION_FAILURE, SQLSTATE_DEADLOCK_DETECTED}


# --- Module Notes -----------------------------------------------------------
# asyncpg exposes `sqlstate`/`constraint_name`; psycopg exposes `pgcode`/`diag.constraint_name`.
