from __future__ import annotations

from collections.abc import Sequence
from datetime import datetime, timezone
from typing import Any

from sqlalchemy import Table
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.ext.asyncio import AsyncConnection

from ledger_mirror.infrastructure.db.models.ledger import SyncCursorModel


def insert_for(conn: AsyncConnection):
    dialect = conn.dialect.name
    if dialect == "postgresql":
        return pg_insert
    if dialect == "sqlite":
        return sqlite_insert
    raise NotImplementedError(f"Upserts are not supported on {dialect}.")


async def upsert_rows(
    conn: AsyncConnection,
    table: Table,
    rows: Sequence[dict[str, Any]],
    *,
    key: Sequence[str],
) -> int:
    """Insert rows, replacing every supplied column of rows whose key already exists."""
    if not rows:
        return 0
    stmt = insert_for(conn)(table)
    columns = [name for name in rows[0] if name not in key]
    stmt = stmt.on_conflict_do_update(
        index_elements=list(key),
        set_={name: stmt.excluded[name] for name in columns},
    )
    await conn.execute(stmt, list(rows))
    return len(rows)


async def advance_cursor(conn: AsyncConnection, *, entity: str, last_id: int) -> None:
    """Store last_id for entity unless a larger value is already stored."""
    table = SyncCursorModel.__table__
    stmt = insert_for(conn)(table).values(
        entity=entity,
        last_id=last_id,
        last_updated_at=datetime.now(timezone.utc).replace(tzinfo=None),
    )
    stmt = stmt.on_conflict_do_update(
        index_elements=["entity"],
        set_={
            "last_id": stmt.excluded.last_id,
            "last_updated_at": stmt.excluded.last_updated_at,
        },
        where=table.c.last_id < stmt.excluded.last_id,
    )
    await conn.execute(stmt)
