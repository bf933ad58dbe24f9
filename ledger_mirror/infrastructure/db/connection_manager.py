from __future__ import annotations

import asyncio
import logging
from collections.abc import AsyncIterator, Awaitable, Callable
from contextlib import asynccontextmanager

from sqlalchemy import exc as sa_exc
from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncConnection, AsyncEngine

from ledger_mirror.application.ports.store_health_port import StoreHealthPort
from ledger_mirror.core.config import DatabaseSettings
from ledger_mirror.core.db import Base, build_engine
from ledger_mirror.domain.exceptions import StoreConnectionLostError, StoreUnavailableError
from ledger_mirror.infrastructure.db.seeds.seed_system_users import seed_system_users


logger = logging.getLogger(__name__)


def is_connection_error(error: BaseException) -> bool:
    if isinstance(error, sa_exc.DBAPIError) and error.connection_invalidated:
        return True
    if isinstance(error, (sa_exc.OperationalError, sa_exc.InterfaceError)):
        return True
    # OSError covers TimeoutError, which asyncpg raises when the host does not answer.
    return isinstance(error, OSError)


class ConnectionManager(StoreHealthPort):
    """Owns the store engine and its reconnect policy.

    Connection-level failures inside ``transaction()`` surface as
    StoreConnectionLostError. Reconnecting is deferred: callers flag the loss with
    ``mark_lost`` and the next ``recover()`` disposes the pool and probes the store.
    """

    def __init__(
        self,
        engine: AsyncEngine,
        *,
        reconnect_attempts: int = 3,
        reconnect_backoff_secs: float = 1.0,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self._engine = engine
        self._reconnect_attempts = reconnect_attempts
        self._reconnect_backoff_secs = reconnect_backoff_secs
        self._sleep = sleep
        self._lost_cause: BaseException | None = None

    @classmethod
    def from_settings(cls, settings: DatabaseSettings) -> ConnectionManager:
        return cls(
            build_engine(settings),
            reconnect_attempts=settings.reconnect_attempts,
            reconnect_backoff_secs=settings.reconnect_backoff_secs,
        )

    @property
    def engine(self) -> AsyncEngine:
        return self._engine

    @property
    def needs_reconnect(self) -> bool:
        return self._lost_cause is not None

    @asynccontextmanager
    async def transaction(self, *, entity: str = "store") -> AsyncIterator[AsyncConnection]:
        try:
            async with self._engine.begin() as conn:
                yield conn
        except Exception as exc:
            if is_connection_error(exc):
                raise StoreConnectionLostError(entity, f"store connection lost: {exc}") from exc
            raise

    @asynccontextmanager
    async def connect(self, *, entity: str = "store") -> AsyncIterator[AsyncConnection]:
        try:
            async with self._engine.connect() as conn:
                yield conn
        except Exception as exc:
            if is_connection_error(exc):
                raise StoreConnectionLostError(entity, f"store connection lost: {exc}") from exc
            raise

    def mark_lost(self, *, cause: BaseException) -> None:
        if self._lost_cause is None:
            logger.warning("connection_manager: connection_lost cause=%s", cause)
        self._lost_cause = cause

    async def recover(self) -> None:
        if self._lost_cause is None:
            return
        await self.reconnect()

    async def reconnect(self) -> None:
        delay = self._reconnect_backoff_secs
        last_error: BaseException | None = None
        for attempt in range(1, self._reconnect_attempts + 1):
            try:
                await self._engine.dispose()
                await self._probe()
            except Exception as exc:  # noqa: BLE001
                last_error = exc
                logger.warning(
                    "connection_manager: reconnect_failed attempt=%s/%s error=%s",
                    attempt,
                    self._reconnect_attempts,
                    exc,
                )
                if attempt < self._reconnect_attempts:
                    await self._sleep(delay)
                    delay *= 2
                continue

            self._lost_cause = None
            logger.info(
                "connection_manager: reconnected attempt=%s/%s",
                attempt,
                self._reconnect_attempts,
            )
            return

        raise StoreUnavailableError(
            f"Store unreachable after {self._reconnect_attempts} reconnect attempts: {last_error}"
        ) from last_error

    async def ensure_ready(self) -> None:
        try:
            await self._probe()
            async with self._engine.begin() as conn:
                await conn.run_sync(Base.metadata.create_all)
                inserted = await seed_system_users(conn)
        except Exception as exc:
            if is_connection_error(exc):
                raise StoreUnavailableError(f"Store unreachable at startup: {exc}") from exc
            raise
        logger.info("connection_manager: schema_ready seeded_users=%s", inserted)

    async def dispose(self) -> None:
        await self._engine.dispose()

    async def _probe(self) -> None:
        async with self._engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
