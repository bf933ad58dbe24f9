from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Any

from ledger_mirror.domain.entities.kinds import RequestType


@dataclass(frozen=True)
class Request:
    request_id: int
    user_id: int
    request_type: RequestType
    request: dict[str, Any]
    reply: dict[str, Any] | str
    statuses: list[Any] | None
    ts: datetime

    @property
    def entity_id(self) -> int:
        return self.request_id
