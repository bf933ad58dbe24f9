from __future__ import annotations

import logging
from collections.abc import Callable, Sequence
from typing import Any, ClassVar, TypeVar

from sqlalchemy import Table, select
from sqlalchemy.ext.asyncio import AsyncConnection

from ledger_mirror.application.ports.entity_repository_port import EntityRepositoryPort
from ledger_mirror.domain.entities.kinds import EntityKind
from ledger_mirror.infrastructure.db.connection_manager import ConnectionManager
from ledger_mirror.infrastructure.db.models.ledger import SyncCursorModel
from ledger_mirror.infrastructure.db.upsert import advance_cursor, upsert_rows


logger = logging.getLogger(__name__)

E = TypeVar("E")


class SqlEntityRepository(EntityRepositoryPort[E]):
    """Upserts one entity kind and keeps its cursor row in ``sync_cursors``.

    Subclasses name the table, its key and the entity-to-row mapper; kinds that span
    several tables override ``_write``.
    """

    kind: ClassVar[EntityKind]
    table: ClassVar[Table]
    key: ClassVar[tuple[str, ...]]
    to_row: ClassVar[Callable[[Any], dict[str, Any]]]

    def __init__(self, connections: ConnectionManager):
        self._connections = connections

    async def load_cursor(self) -> int | None:
        stmt = select(SyncCursorModel.last_id).where(SyncCursorModel.entity == self.kind.value)
        async with self._connections.connect(entity=self.kind.value) as conn:
            value = (await conn.execute(stmt)).scalar_one_or_none()
        return int(value) if value is not None else None

    async def apply_page(self, *, entities: Sequence[E], cursor: int | None) -> int:
        if not entities and cursor is None:
            return 0
        async with self._connections.transaction(entity=self.kind.value) as conn:
            written = await self._write(conn, entities)
            if cursor is not None:
                await advance_cursor(conn, entity=self.kind.value, last_id=cursor)
        logger.debug(
            "entity_repository: page_applied entity=%s rows=%s cursor=%s",
            self.kind.value,
            written,
            cursor,
        )
        return len(entities)

    async def _write(self, conn: AsyncConnection, entities: Sequence[E]) -> int:
        rows = [type(self).to_row(entity) for entity in entities]
        return await upsert_rows(conn, self.table, rows, key=self.key)
