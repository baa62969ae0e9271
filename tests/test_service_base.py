"""
tests.test_service_base

Unit-of-work plumbing shared by the services: commit/rollback, retries on serialization
failures, error classification and logging, deadlines and location resolution.
"""

from __future__ import annotations

import asyncio
import warnings
from collections.abc import Awaitable, Callable
from typing import Any

import pytest
from tenacity import AsyncRetrying, RetryCallState, wait_none

from conftest import DEPOT, RecordingLog
from ecomap_server.db.errors import SerializationFailureError, StoreError
from ecomap_server.db.tx import AccessMode, IsolationLevel, Transaction, TxState
from ecomap_server.domain.errors import (
    FieldValueInvalidError,
    MunicipalityNotFoundError,
    RoadNotFoundError,
    TruckNotFoundError,
    UnexpectedError,
)
from ecomap_server.domain.geojson import Point
from ecomap_server.domain.models import Location, Municipality, Road
from ecomap_server.services.base import BaseService

DESCRIPTION = "service: failed to do the thing"


class FakeTx(Transaction):
    def __init__(self, isolation: IsolationLevel, access_mode: AccessMode, commit_error=None):
        super().__init__()
        self.isolation = isolation
        self.access_mode = access_mode
        self._commit_error = commit_error

    async def _commit(self) -> None:
        if self._commit_error is not None:
            raise self._commit_error

    async def _rollback(self) -> None:
        return None


class FakeStore:
    def __init__(self, commit_errors: list[BaseException | None] | None = None) -> None:
        self.transactions: list[FakeTx] = []
        self._commit_errors = list(commit_errors or [])
        self.road: Road | None = None
        self.municipality: Municipality | None = None

    async def begin(self, *, isolation: IsolationLevel, access_mode: AccessMode) -> FakeTx:
        error = self._commit_errors.pop(0) if self._commit_errors else None
        tx = FakeTx(isolation, access_mode, commit_error=error)
        self.transactions.append(tx)
        return tx

    async def get_road_by_geometry(self, tx: Transaction, point: Point) -> Road:
        if self.road is None:
            raise RoadNotFoundError()
        return self.road

    async def get_municipality_by_geometry(self, tx: Transaction, point: Point) -> Municipality:
        if self.municipality is None:
            raise MunicipalityNotFoundError()
        return self.municipality


class ThingService(BaseService):
    async def read(self, work: Callable[[Transaction], Awaitable[Any]]) -> Any:
        async with self._operation("read", DESCRIPTION, expected=(TruckNotFoundError,)):
            return await self._read_only(work)

    async def write(self, work: Callable[[Transaction], Awaitable[Any]]) -> Any:
        async with self._operation("write", DESCRIPTION, expected=(TruckNotFoundError,), thing="t"):
            return await self._read_write(work)


def make_service(store: FakeStore, log: RecordingLog, **kwargs: Any) -> ThingService:
    kwargs.setdefault("retry_wait", wait_none())
    return ThingService(store=store, log=log, **kwargs)


async def test_read_only_runs_read_committed_and_commits(log: RecordingLog) -> None:
    store = FakeStore()

    async def work(tx: Transaction) -> str:
        return "ok"

    assert await make_service(store, log).read(work) == "ok"
    (tx,) = store.transactions
    assert tx.isolation is IsolationLevel.read_committed
    assert tx.access_mode is AccessMode.read_only
    assert tx.state is TxState.committed


async def test_read_write_runs_serializable(log: RecordingLog) -> None:
    store = FakeStore()

    async def work(tx: Transaction) -> None:
        return None

    await make_service(store, log).write(work)

    (tx,) = store.transactions
    assert tx.isolation is IsolationLevel.serializable
    assert tx.access_mode is AccessMode.read_write


async def test_expected_error_rolls_back_and_logs_at_info(log: RecordingLog) -> None:
    store = FakeStore()

    async def work(tx: Transaction) -> None:
        raise TruckNotFoundError()

    with pytest.raises(TruckNotFoundError) as excinfo:
        await make_service(store, log).write(work)

    assert store.transactions[0].state is TxState.rolled_back
    assert DESCRIPTION in excinfo.value.__notes__
    level, event, fields = log.events[-1]
    assert (level, event) == ("info", DESCRIPTION)
    assert fields["error_code"] == "truck_not_found"
    assert fields["service_method"] == "write"
    assert fields["thing"] == "t"


async def test_validation_errors_are_always_expected(log: RecordingLog) -> None:
    async def work(tx: Transaction) -> None:
        raise FieldValueInvalidError("make")

    with pytest.raises(FieldValueInvalidError):
        await make_service(FakeStore(), log).read(work)

    assert log.events[-1][0] == "info"


async def test_unexpected_error_is_wrapped_and_logged_at_error(log: RecordingLog) -> None:
    cause = StoreError("disk on fire")

    async def work(tx: Transaction) -> None:
        raise cause

    with pytest.raises(UnexpectedError) as excinfo:
        await make_service(FakeStore(), log).read(work)

    assert str(excinfo.value) == DESCRIPTION
    assert excinfo.value.__cause__ is cause
    level, event, fields = log.events[-1]
    assert (level, event) == ("error", DESCRIPTION)
    assert fields["error_type"] == "StoreError"


async def test_serialization_failure_is_retried_in_a_fresh_transaction(log: RecordingLog) -> None:
    store = FakeStore(commit_errors=[SerializationFailureError("40001"), None])
    calls: list[Transaction] = []

    async def work(tx: Transaction) -> int:
        calls.append(tx)
        return len(calls)

    assert await make_service(store, log).write(work) == 2
    assert calls == store.transactions
    assert [tx.state for tx in store.transactions] == [TxState.rolled_back, TxState.committed]
    assert any(event.startswith("service: retrying") for _, event, _ in log.events)


async def test_retries_stop_after_max_attempts(log: RecordingLog) -> None:
    store = FakeStore(commit_errors=[SerializationFailureError("40001")] * 5)

    async def work(tx: Transaction) -> None:
        return None

    with pytest.raises(UnexpectedError) as excinfo:
        await make_service(store, log, tx_max_attempts=3).write(work)

    assert len(store.transactions) == 3
    assert isinstance(excinfo.value.__cause__, SerializationFailureError)


def test_default_backoff_is_bounded(log: RecordingLog) -> None:
    with warnings.catch_warnings():
        warnings.simplefilter("error", DeprecationWarning)
        service = ThingService(store=FakeStore(), log=log)

    state = RetryCallState(retry_object=AsyncRetrying(), fn=None, args=(), kwargs={})
    for attempt in range(1, 10):
        state.attempt_number = attempt
        assert 0 <= service._retry_wait(state) <= 1.05


async def test_domain_errors_are_not_retried(log: RecordingLog) -> None:
    store = FakeStore()

    async def work(tx: Transaction) -> None:
        raise TruckNotFoundError()

    with pytest.raises(TruckNotFoundError):
        await make_service(store, log).write(work)

    assert len(store.transactions) == 1


async def test_operation_deadline(log: RecordingLog) -> None:
    store = FakeStore()

    async def work(tx: Transaction) -> None:
        await asyncio.sleep(1)

    with pytest.raises(UnexpectedError) as excinfo:
        await make_service(store, log, operation_timeout=0.01).read(work)

    assert isinstance(excinfo.value.__cause__, TimeoutError)
    assert store.transactions[0].state is TxState.rolled_back


async def test_locate_keeps_unknown_parts_unset(log: RecordingLog) -> None:
    store = FakeStore()
    service = make_service(store, log)
    tx = await store.begin(isolation=IsolationLevel.read_committed, access_mode=AccessMode.read_only)

    assert await service._locate(tx, DEPOT) == Location()

    store.road = Road(id=42, name="Rua de Santa Catarina")
    store.municipality = Municipality(id=7, name="Porto")
    assert await service._locate(tx, DEPOT) == Location(road_id=42, municipality_id=7)
