from __future__ import annotations

from typing import Any, Iterable, Iterator, Protocol

from ledger_mirror.domain.entities.kinds import EntityKind


class SnapshotPort(Protocol):
    def exists(self, *, kind: EntityKind) -> bool:
        ...

    def read(self, *, kind: EntityKind) -> Iterator[dict[str, Any]]:
        ...

    def write(self, *, kind: EntityKind, records: Iterable[dict[str, Any]]) -> int:
        ...
