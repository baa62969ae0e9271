"""
tests.test_tx

Transaction handle state machine and per-dialect execution options.
"""

from __future__ import annotations

import pytest

from ecomap_server.db.errors import SerializationFailureError, TransactionClosedError
from ecomap_server.db.store import SqlStore
from ecomap_server.db.tx import (
    AccessMode,
    IsolationLevel,
    SessionTransaction,
    Transaction,
    TxState,
    execution_options,
)


class ScriptedTransaction(Transaction):
    def __init__(self, commit_error: BaseException | None = None) -> None:
        super().__init__()
        self.commit_error = commit_error
        self.calls: list[str] = []

    async def _commit(self) -> None:
        self.calls.append("commit")
        if self.commit_error is not None:
            raise self.commit_error

    async def _rollback(self) -> None:
        self.calls.append("rollback")


async def test_commit_then_commit_again_fails() -> None:
    tx = ScriptedTransaction()

    await tx.commit()

    assert tx.state is TxState.committed
    with pytest.raises(TransactionClosedError):
        await tx.commit()


async def test_rollback_after_commit_is_a_no_op() -> None:
    tx = ScriptedTransaction()

    await tx.commit()
    await tx.rollback()

    assert tx.state is TxState.committed
    assert tx.calls == ["commit"]


async def test_rollback_is_idempotent() -> None:
    tx = ScriptedTransaction()

    await tx.rollback()
    await tx.rollback()

    assert tx.state is TxState.rolled_back
    assert tx.calls == ["rollback"]
    with pytest.raises(TransactionClosedError):
        await tx.commit()


async def test_failed_commit_leaves_handle_rolled_back() -> None:
    tx = ScriptedTransaction(commit_error=SerializationFailureError("could not serialize"))

    with pytest.raises(SerializationFailureError):
        await tx.commit()

    assert tx.state is TxState.rolled_back
    assert tx.closed


async def test_context_manager_rolls_back_open_handle() -> None:
    async with ScriptedTransaction() as tx:
        pass

    assert tx.state is TxState.rolled_back


async def test_session_transaction_lifecycle(store: SqlStore) -> None:
    tx = await store.begin(isolation=IsolationLevel.serializable, access_mode=AccessMode.read_write)

    assert isinstance(tx, SessionTransaction)
    assert tx.session is not None
    await tx.commit()
    with pytest.raises(TransactionClosedError):
        _ = tx.session


def test_postgres_gets_isolation_and_read_only_flag() -> None:
    opts = execution_options("postgresql", IsolationLevel.read_committed, AccessMode.read_only)

    assert opts == {"isolation_level": "READ COMMITTED", "postgresql_readonly": True}


def test_sqlite_gets_no_execution_options() -> None:
    assert execution_options("sqlite", IsolationLevel.serializable, AccessMode.read_write) == {}
