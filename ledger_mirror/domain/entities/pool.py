from __future__ import annotations

from dataclasses import dataclass
from typing import Any


@dataclass(frozen=True)
class PoolLeg:
    token_id: int
    balance: float
    lp_fee: float
    kong_fee: float


@dataclass(frozen=True)
class Pool:
    pool_id: int
    leg_0: PoolLeg
    leg_1: PoolLeg
    lp_fee_bps: int
    kong_fee_bps: int
    lp_token_id: int
    rolling_24h_volume: float | None
    rolling_24h_lp_fee: float | None
    rolling_24h_num_swaps: int | None
    rolling_24h_apy: float | None
    tvl: float | None
    is_removed: bool
    raw: dict[str, Any]

    @property
    def entity_id(self) -> int:
        return self.pool_id
