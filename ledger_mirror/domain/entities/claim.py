from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Any

from ledger_mirror.domain.entities.kinds import ClaimStatus


@dataclass(frozen=True)
class Claim:
    claim_id: int
    user_id: int
    token_id: int
    status: ClaimStatus
    amount: float
    request_id: int | None
    to_address: str | None
    attempt_request_id: list[int]
    transfer_ids: list[int]
    desc: str | None
    ts: datetime
    raw: dict[str, Any]

    @property
    def entity_id(self) -> int:
        return self.claim_id
