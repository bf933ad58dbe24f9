from __future__ import annotations

from typing import Any, Iterable, Protocol

from ledger_mirror.application.dto.sync import ReconcileResult, SyncMode
from ledger_mirror.domain.entities.kinds import EntityKind


class EntitySyncerPort(Protocol):
    @property
    def name(self) -> str:
        ...

    @property
    def kind(self) -> EntityKind:
        ...

    @property
    def cursor(self) -> int | None:
        ...

    async def reconcile(self, *, mode: SyncMode) -> ReconcileResult:
        ...

    async def apply_records(self, *, records: Iterable[dict[str, Any]]) -> int:
        ...
