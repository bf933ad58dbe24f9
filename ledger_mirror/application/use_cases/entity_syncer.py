from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable, Iterable, Sequence
from itertools import islice
from typing import Any, Generic, TypeVar

from ledger_mirror.application.dto.sync import ReconcileResult, SyncMode
from ledger_mirror.application.ports.entity_repository_port import EntityRepositoryPort
from ledger_mirror.application.ports.entity_syncer_port import EntitySyncerPort
from ledger_mirror.application.ports.ledger_port import LedgerPort
from ledger_mirror.application.ports.snapshot_port import SnapshotPort
from ledger_mirror.domain.entities.kinds import EntityKind


logger = logging.getLogger(__name__)

E = TypeVar("E")


def _batches(items: Iterable[Any], size: int) -> Iterable[list[Any]]:
    iterator = iter(items)
    while True:
        batch = list(islice(iterator, size))
        if not batch:
            return
        yield batch


class EntitySyncer(EntitySyncerPort, Generic[E]):
    """Reconciles one entity kind from the ledger into the store.

    Incremental mode fetches pages after the persisted cursor and writes each page
    together with its cursor advance in one transaction, so a failure leaves the
    cursor at the last fully written page. Full mode refetches the whole collection.
    """

    def __init__(
        self,
        *,
        kind: EntityKind,
        ledger: LedgerPort,
        repository: EntityRepositoryPort[E],
        mapper: Callable[[dict[str, Any]], E],
        page_size: int = 1000,
        snapshots: SnapshotPort | None = None,
    ):
        if page_size <= 0:
            raise ValueError("page_size must be positive.")
        self._kind = kind
        self._ledger = ledger
        self._repository = repository
        self._mapper = mapper
        self._page_size = page_size
        self._snapshots = snapshots
        self._cursor: int | None = None

    @property
    def name(self) -> str:
        return self._kind.value

    @property
    def kind(self) -> EntityKind:
        return self._kind

    @property
    def cursor(self) -> int | None:
        return self._cursor

    async def reconcile(self, *, mode: SyncMode) -> ReconcileResult:
        if mode is SyncMode.FULL:
            result = await self._reconcile_full()
        else:
            result = await self._reconcile_incremental()
        logger.info(
            "entity_syncer: reconciled entity=%s mode=%s applied=%s cursor=%s",
            self.name,
            mode.value,
            result.applied,
            result.cursor,
        )
        return result

    async def apply_records(self, *, records: Iterable[dict[str, Any]]) -> int:
        applied = 0
        for batch in _batches(records, self._page_size):
            entities = [self._mapper(record) for record in batch]
            applied += await self._repository.apply_page(entities=entities, cursor=None)
        logger.info("entity_syncer: records_applied entity=%s applied=%s", self.name, applied)
        return applied

    async def _reconcile_incremental(self) -> ReconcileResult:
        cursor = await self._repository.load_cursor()
        self._cursor = cursor
        applied = 0
        while True:
            records = await self._ledger.list_records(
                kind=self._kind,
                after_id=cursor,
                limit=self._page_size,
            )
            if not records:
                break

            entities = [self._mapper(record) for record in records]
            new_cursor = self._advance(cursor, entities)
            applied += await self._repository.apply_page(entities=entities, cursor=new_cursor)
            progressed = new_cursor != cursor
            cursor = new_cursor
            self._cursor = cursor

            if len(records) < self._page_size or not progressed:
                break
        return ReconcileResult(cursor=cursor, applied=applied)

    async def _reconcile_full(self) -> ReconcileResult:
        cursor = await self._repository.load_cursor()
        self._cursor = cursor
        records = await self._ledger.list_all(kind=self._kind, page_size=self._page_size)
        # Map everything first so a malformed record aborts before any write.
        entities = [self._mapper(record) for record in records]

        if self._snapshots is not None:
            await asyncio.to_thread(self._snapshots.write, kind=self._kind, records=records)

        applied = 0
        for batch in _batches(entities, self._page_size):
            cursor = self._advance(cursor, batch)
            applied += await self._repository.apply_page(entities=batch, cursor=cursor)
            self._cursor = cursor
        return ReconcileResult(cursor=cursor, applied=applied)

    @staticmethod
    def _advance(cursor: int | None, entities: Sequence[Any]) -> int | None:
        if not entities:
            return cursor
        page_max = max(entity.entity_id for entity in entities)
        if cursor is None:
            return page_max
        return max(cursor, page_max)
