from __future__ import annotations

import pytest_asyncio
from sqlalchemy.ext.asyncio import create_async_engine

from ledger_mirror.infrastructure.db.connection_manager import ConnectionManager


@pytest_asyncio.fixture
async def connections(tmp_path):
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'mirror.db'}")
    manager = ConnectionManager(engine, reconnect_attempts=2, reconnect_backoff_secs=0)
    await manager.ensure_ready()
    try:
        yield manager
    finally:
        await manager.dispose()
