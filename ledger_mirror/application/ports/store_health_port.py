from __future__ import annotations

from typing import Protocol


class StoreHealthPort(Protocol):
    def mark_lost(self, *, cause: BaseException) -> None:
        ...

    async def recover(self) -> None:
        ...
