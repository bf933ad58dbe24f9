from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Any


@dataclass(frozen=True)
class Transfer:
    transfer_id: int
    request_id: int
    token_id: int
    is_send: bool
    amount: float
    block_index: float | None
    tx_hash: str | None
    ts: datetime
    raw: dict[str, Any]

    @property
    def entity_id(self) -> int:
        return self.transfer_id
