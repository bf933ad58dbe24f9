from __future__ import annotations

from dataclasses import dataclass

import pytest

from ledger_mirror.application.dto.sync import SyncMode
from ledger_mirror.application.use_cases.entity_syncer import EntitySyncer
from ledger_mirror.domain.entities.kinds import EntityKind
from ledger_mirror.domain.exceptions import LedgerUnavailableError, RecordShapeError


@dataclass(frozen=True)
class Item:
    item_id: int

    @property
    def entity_id(self) -> int:
        return self.item_id


def map_item(record: dict) -> Item:
    if record.get("bad"):
        raise RecordShapeError("tokens", record["id"], "bad record")
    return Item(item_id=record["id"])


class FakeLedgerPort:
    def __init__(self, ids: list[int], *, fail_after_calls: int | None = None):
        self.ids = ids
        self.calls: list[tuple[int | None, int]] = []
        self.fail_after_calls = fail_after_calls

    async def list_records(self, *, kind, after_id, limit):
        _ = kind
        if self.fail_after_calls is not None and len(self.calls) >= self.fail_after_calls:
            raise LedgerUnavailableError("tokens", "ledger went away")
        self.calls.append((after_id, limit))
        newer = [i for i in self.ids if after_id is None or i > after_id]
        return [{"id": i} for i in newer[:limit]]

    async def list_all(self, *, kind, page_size):
        _ = (kind, page_size)
        return [{"id": i} for i in self.ids]


class FakeRepositoryPort:
    kind = EntityKind.TOKENS

    def __init__(self, cursor: int | None = None):
        self.stored_cursor = cursor
        self.pages: list[tuple[list[int], int | None]] = []

    async def load_cursor(self):
        return self.stored_cursor

    async def apply_page(self, *, entities, cursor):
        self.pages.append(([e.item_id for e in entities], cursor))
        if cursor is not None:
            self.stored_cursor = max(cursor, self.stored_cursor or cursor)
        return len(entities)


def _syncer(ledger, repository, *, page_size: int = 100) -> EntitySyncer:
    return EntitySyncer(
        kind=EntityKind.TOKENS,
        ledger=ledger,
        repository=repository,
        mapper=map_item,
        page_size=page_size,
    )


@pytest.mark.asyncio
async def test_incremental_advances_cursor_to_max_id_seen():
    repository = FakeRepositoryPort(cursor=100)
    syncer = _syncer(FakeLedgerPort([99, 100, 101, 102, 105]), repository)

    result = await syncer.reconcile(mode=SyncMode.INCREMENTAL)

    assert result.cursor == 105
    assert result.applied == 3
    assert syncer.cursor == 105
    assert repository.pages == [([101, 102, 105], 105)]


@pytest.mark.asyncio
async def test_empty_page_leaves_cursor_unchanged():
    repository = FakeRepositoryPort(cursor=100)
    syncer = _syncer(FakeLedgerPort([90, 100]), repository)

    result = await syncer.reconcile(mode=SyncMode.INCREMENTAL)

    assert result.cursor == 100
    assert result.applied == 0
    assert repository.pages == []


@pytest.mark.asyncio
async def test_never_synced_kind_starts_from_the_beginning():
    ledger = FakeLedgerPort([1, 2, 3])
    repository = FakeRepositoryPort(cursor=None)

    result = await _syncer(ledger, repository).reconcile(mode=SyncMode.INCREMENTAL)

    assert ledger.calls[0] == (None, 100)
    assert result.cursor == 3


@pytest.mark.asyncio
async def test_incremental_pages_until_short_page():
    ledger = FakeLedgerPort([1, 2, 3, 4, 5])
    repository = FakeRepositoryPort()

    result = await _syncer(ledger, repository, page_size=2).reconcile(mode=SyncMode.INCREMENTAL)

    assert ledger.calls == [(None, 2), (2, 2), (4, 2)]
    assert repository.pages == [([1, 2], 2), ([3, 4], 4), ([5], 5)]
    assert result.applied == 5


@pytest.mark.asyncio
async def test_failure_keeps_cursor_of_last_written_page():
    ledger = FakeLedgerPort([1, 2, 3, 4, 5], fail_after_calls=1)
    repository = FakeRepositoryPort()
    syncer = _syncer(ledger, repository, page_size=2)

    with pytest.raises(LedgerUnavailableError):
        await syncer.reconcile(mode=SyncMode.INCREMENTAL)

    assert repository.stored_cursor == 2
    assert syncer.cursor == 2


@pytest.mark.asyncio
async def test_bad_record_aborts_page_before_write():
    ledger = FakeLedgerPort([])
    ledger.list_records = _returning([{"id": 1}, {"id": 2, "bad": True}])
    repository = FakeRepositoryPort()

    with pytest.raises(RecordShapeError) as exc_info:
        await _syncer(ledger, repository).reconcile(mode=SyncMode.INCREMENTAL)

    assert exc_info.value.record_id == 2
    assert repository.pages == []


@pytest.mark.asyncio
async def test_full_mode_ignores_cursor_and_never_lowers_it():
    repository = FakeRepositoryPort(cursor=50)
    syncer = _syncer(FakeLedgerPort([1, 2, 3, 4, 5]), repository, page_size=2)

    result = await syncer.reconcile(mode=SyncMode.FULL)

    assert repository.pages == [([1, 2], 50), ([3, 4], 50), ([5], 50)]
    assert result.cursor == 50
    assert result.applied == 5


@pytest.mark.asyncio
async def test_full_mode_writes_snapshot_of_fetched_records():
    written = {}

    class FakeSnapshotPort:
        def write(self, *, kind, records):
            written[kind] = list(records)
            return len(written[kind])

    syncer = EntitySyncer(
        kind=EntityKind.TOKENS,
        ledger=FakeLedgerPort([1, 2]),
        repository=FakeRepositoryPort(),
        mapper=map_item,
        snapshots=FakeSnapshotPort(),
    )

    result = await syncer.reconcile(mode=SyncMode.FULL)

    assert written[EntityKind.TOKENS] == [{"id": 1}, {"id": 2}]
    assert result.cursor == 2


@pytest.mark.asyncio
async def test_apply_records_batches_without_cursor():
    repository = FakeRepositoryPort(cursor=7)
    syncer = _syncer(FakeLedgerPort([]), repository, page_size=2)

    applied = await syncer.apply_records(records=iter([{"id": 1}, {"id": 2}, {"id": 3}]))

    assert applied == 3
    assert repository.pages == [([1, 2], None), ([3], None)]
    assert repository.stored_cursor == 7


def _returning(records):
    async def list_records(*, kind, after_id, limit):
        _ = (kind, after_id, limit)
        return records

    return list_records
