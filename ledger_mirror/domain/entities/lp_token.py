from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Any


@dataclass(frozen=True)
class LpToken:
    lp_token_id: int
    user_id: int
    token_id: int
    amount: float
    ts: datetime
    raw: dict[str, Any]

    @property
    def entity_id(self) -> int:
        return self.lp_token_id
