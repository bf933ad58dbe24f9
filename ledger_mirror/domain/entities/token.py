from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from ledger_mirror.domain.entities.kinds import TokenType


@dataclass(frozen=True)
class Token:
    token_id: int
    token_type: TokenType
    name: str | None
    symbol: str | None
    canister_id: str | None
    address: str | None
    decimals: int
    fee: float | None
    icrc1: bool | None
    icrc2: bool | None
    icrc3: bool | None
    is_removed: bool
    raw: dict[str, Any]

    @property
    def entity_id(self) -> int:
        return self.token_id
