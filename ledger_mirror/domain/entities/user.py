from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Any


@dataclass(frozen=True)
class User:
    user_id: int
    principal_id: str
    my_referral_code: str
    referred_by: int | None
    referred_by_expires_at: datetime | None
    fee_level: int | None
    fee_level_expires_at: datetime | None
    raw: dict[str, Any]

    @property
    def entity_id(self) -> int:
        return self.user_id
