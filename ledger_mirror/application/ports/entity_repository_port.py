from __future__ import annotations

from typing import Generic, Protocol, Sequence, TypeVar

from ledger_mirror.domain.entities.kinds import EntityKind


E = TypeVar("E")


class EntityRepositoryPort(Protocol, Generic[E]):
    kind: EntityKind

    async def load_cursor(self) -> int | None:
        ...

    async def apply_page(self, *, entities: Sequence[E], cursor: int | None) -> int:
        """Upsert a page and, when cursor is given, advance the stored cursor in the same transaction."""
        ...
