"""
ecomap_server.db.tx

Transaction handle.

Responsibilities:
- Model a transaction as a small state machine (open -> committed | rolled_back) with a
  failing commit after termination and an idempotent rollback.
- Begin SQLAlchemy session transactions at the requested isolation level and access mode.
- Translate driver failures on commit/rollback into `db.errors` exceptions.
"""

from __future__ import annotations

import enum
from types import TracebackType
from typing import Any

from sqlalchemy.exc import DBAPIError, InvalidRequestError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from ecomap_server.db.errors import (
    SerializationFailureError,
    StoreError,
    TransactionClosedError,
    is_serialization_failure,
)


class IsolationLevel(enum.StrEnum):
    read_committed = "READ COMMITTED"
    serializable = "SERIALIZABLE"


class AccessMode(enum.StrEnum):
    read_only = "READ ONLY"
    read_write = "READ WRITE"


class TxState(enum.StrEnum):
    open = "open"
    committed = "committed"
    rolled_back = "rolled_back"


class Transaction:
    """
    Base transaction handle. Subclasses implement `_commit` and `_rollback`.

    - `commit()` on a terminal handle raises TransactionClosedError.
    - A failed commit leaves the handle terminal (rolled back).
    - `rollback()` on a terminal handle is a no-op.
    """

    def __init__(self) -> None:
        self._state = TxState.open

    @property
    def state(self) -> TxState:
        return self._state

    @property
    def closed(self) -> bool:
        return self._state is not TxState.open

    async def commit(self) -> None:
        if self.closed:
            raise TransactionClosedError(f"transaction already {self._state}")
        try:
            await self._commit()
        except BaseException:
            self._state = TxState.rolled_back
            raise
        self._state = TxState.committed

    async def rollback(self) -> None:
        if self.closed:
            return
        self._state = TxState.rolled_back
        try:
            await self._rollback()
        except TransactionClosedError:
            return

    async def _commit(self) -> None:
        raise NotImplementedError

    async def _rollback(self) -> None:
        raise NotImplementedError

    async def __aenter__(self) -> Transaction:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        await self.rollback()


class SessionTransaction(Transaction):
    """Transaction bound to one `AsyncSession`; the session is closed once the handle terminates."""

    def __init__(self, session: AsyncSession) -> None:
        super().__init__()
        self._session = session

    @property
    def session(self) -> AsyncSession:
        if self.closed:
            raise TransactionClosedError(f"transaction already {self.state}")
        return self._session

    async def _commit(self) -> None:
        try:
            await self._session.commit()
        except DBAPIError as e:
            if is_serialization_failure(e):
                raise SerializationFailureError(str(e)) from e
            raise StoreError(str(e)) from e
        except InvalidRequestError as e:
            raise TransactionClosedError(str(e)) from e
        finally:
            await self._close()

    async def _rollback(self) -> None:
        try:
            await self._session.rollback()
        except InvalidRequestError as e:
            raise TransactionClosedError(str(e)) from e
        except SQLAlchemyError as e:
            raise StoreError(str(e)) from e
        finally:
            await self._close()

    async def _close(self) -> None:
        try:
            await self._session.close()
        except SQLAlchemyError as e:
            raise StoreError(str(e)) from e


class TransactionFactory:
    """Opens `SessionTransaction`s from a session factory."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory

    async def begin(
        self, *, isolation: IsolationLevel, access_mode: AccessMode
    ) -> SessionTransaction:
        session = self._session_factory()
        try:
            dialect = session.bind.dialect.name if session.bind is not None else ""
            await session.connection(
                execution_options=execution_options(dialect, isolation, access_mode)
            )
        except SQLAlchemyError as e:
            await session.close()
            raise StoreError(str(e)) from e
        return SessionTransaction(session)


def execution_options(
    dialect: str, isolation: IsolationLevel, access_mode: AccessMode
) -> dict[str, Any]:
    if dialect != "postgresql":
        # SQLite transactions are serializable and have no read-only mode.
        return {}
    return {
        "isolation_level": isolation.value,
        "postgresql_readonly": access_mode is AccessMode.read_only,
    }


# --- Module Notes -----------------------------------------------------------
# Services never touch `AsyncSession` directly; they pass the handle to the store, which reads
# `tx.session`.
