from __future__ import annotations

from contextlib import asynccontextmanager

import pytest
from sqlalchemy import exc as sa_exc
from sqlalchemy import text

from ledger_mirror.application.dto.sync import OutcomeStatus, ReconcileResult
from ledger_mirror.application.use_cases.resilient_executor import ResilientExecutor
from ledger_mirror.domain.exceptions import StoreConnectionLostError, StoreUnavailableError
from ledger_mirror.infrastructure.db.connection_manager import ConnectionManager, is_connection_error


class FakeEngine:
    """Engine whose connections always fail."""

    def __init__(self, error: BaseException | None = None):
        self.disposed = 0
        self.connects = 0
        self.error = error or ConnectionRefusedError("connection refused")

    async def dispose(self):
        self.disposed += 1

    @asynccontextmanager
    async def connect(self):
        self.connects += 1
        raise self.error
        yield

    begin = connect


def test_connection_error_classification():
    assert is_connection_error(ConnectionResetError("reset"))
    assert is_connection_error(sa_exc.OperationalError("SELECT 1", {}, Exception("closed")))
    assert is_connection_error(TimeoutError())
    assert not is_connection_error(ValueError("bad"))


@pytest.mark.asyncio
async def test_recover_is_a_noop_without_loss():
    engine = FakeEngine()
    manager = ConnectionManager(engine)

    await manager.recover()

    assert engine.disposed == 0
    assert not manager.needs_reconnect


@pytest.mark.asyncio
async def test_reconnect_exhaustion_is_fatal():
    sleeps = []

    async def sleep(delay):
        sleeps.append(delay)

    engine = FakeEngine()
    manager = ConnectionManager(engine, reconnect_attempts=3, reconnect_backoff_secs=0.5, sleep=sleep)
    manager.mark_lost(cause=ConnectionResetError("reset"))

    with pytest.raises(StoreUnavailableError, match="3 reconnect attempts"):
        await manager.recover()

    assert engine.connects == 3
    assert sleeps == [0.5, 1.0]
    assert manager.needs_reconnect


@pytest.mark.asyncio
async def test_transaction_translates_connection_failures():
    manager = ConnectionManager(FakeEngine())

    with pytest.raises(StoreConnectionLostError) as exc_info:
        async with manager.transaction(entity="users"):
            pass

    assert exc_info.value.entity == "users"


@pytest.mark.asyncio
async def test_recover_reconnects_to_a_live_store(connections):
    connections.mark_lost(cause=ConnectionResetError("reset"))

    await connections.recover()

    assert not connections.needs_reconnect
    async with connections.transaction() as conn:
        assert (await conn.execute(text("SELECT 1"))).scalar_one() == 1


@pytest.mark.asyncio
async def test_other_errors_pass_through_transaction(connections):
    with pytest.raises(ValueError):
        async with connections.transaction(entity="users"):
            raise ValueError("not a connection problem")


@pytest.mark.asyncio
async def test_unanswered_connect_flags_the_store_for_reconnect():
    manager = ConnectionManager(FakeEngine(TimeoutError()))

    async def op():
        async with manager.transaction(entity="tokens"):
            pass
        return ReconcileResult(cursor=None, applied=0)

    outcome = await ResilientExecutor(store_health=manager).execute("tokens", op, deadline=30)

    assert outcome.status is OutcomeStatus.ERROR
    assert outcome.connection_lost
    assert manager.needs_reconnect


@pytest.mark.asyncio
async def test_unreachable_store_at_startup_is_unavailable():
    manager = ConnectionManager(FakeEngine(TimeoutError()))

    with pytest.raises(StoreUnavailableError, match="unreachable at startup"):
        await manager.ensure_ready()
