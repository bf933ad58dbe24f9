from __future__ import annotations

from typing import Any, Protocol

from ledger_mirror.domain.entities.kinds import EntityKind


class LedgerPort(Protocol):
    async def list_records(
        self,
        *,
        kind: EntityKind,
        after_id: int | None,
        limit: int,
    ) -> list[dict[str, Any]]:
        ...

    async def list_all(self, *, kind: EntityKind, page_size: int) -> list[dict[str, Any]]:
        ...
