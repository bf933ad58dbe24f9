from __future__ import annotations

from typing import Any, Mapping

from ledger_mirror.domain.entities.kinds import EntityKind
from ledger_mirror.domain.entities.pool import Pool, PoolLeg
from ledger_mirror.infrastructure.clients.ledger_schemas import PoolRecord
from ledger_mirror.infrastructure.db.mappers.common import (
    optional_float,
    raw_copy,
    to_float,
    validate_record,
)


def map_record_to_pool(record: Mapping[str, Any]) -> Pool:
    parsed = validate_record(EntityKind.POOLS, PoolRecord, record)
    return Pool(
        pool_id=parsed.pool_id,
        leg_0=PoolLeg(
            token_id=parsed.token_id_0,
            balance=to_float(parsed.balance_0),
            lp_fee=to_float(parsed.lp_fee_0),
            kong_fee=to_float(parsed.kong_fee_0),
        ),
        leg_1=PoolLeg(
            token_id=parsed.token_id_1,
            balance=to_float(parsed.balance_1),
            lp_fee=to_float(parsed.lp_fee_1),
            kong_fee=to_float(parsed.kong_fee_1),
        ),
        lp_fee_bps=parsed.lp_fee_bps,
        kong_fee_bps=parsed.kong_fee_bps,
        lp_token_id=parsed.lp_token_id,
        rolling_24h_volume=optional_float(parsed.rolling_24h_volume),
        rolling_24h_lp_fee=optional_float(parsed.rolling_24h_lp_fee),
        rolling_24h_num_swaps=parsed.rolling_24h_num_swaps,
        rolling_24h_apy=parsed.rolling_24h_apy,
        tvl=optional_float(parsed.tvl),
        is_removed=parsed.is_removed,
        raw=raw_copy(record),
    )


def map_pool_to_row(pool: Pool) -> dict[str, Any]:
    return {
        "pool_id": pool.pool_id,
        "token_id_0": pool.leg_0.token_id,
        "balance_0": pool.leg_0.balance,
        "lp_fee_0": pool.leg_0.lp_fee,
        "kong_fee_0": pool.leg_0.kong_fee,
        "token_id_1": pool.leg_1.token_id,
        "balance_1": pool.leg_1.balance,
        "lp_fee_1": pool.leg_1.lp_fee,
        "kong_fee_1": pool.leg_1.kong_fee,
        "lp_fee_bps": pool.lp_fee_bps,
        "kong_fee_bps": pool.kong_fee_bps,
        "lp_token_id": pool.lp_token_id,
        "rolling_24h_volume": pool.rolling_24h_volume,
        "rolling_24h_lp_fee": pool.rolling_24h_lp_fee,
        "rolling_24h_num_swaps": pool.rolling_24h_num_swaps,
        "rolling_24h_apy": pool.rolling_24h_apy,
        "raw_json": pool.raw,
        "tvl": pool.tvl,
        "is_removed": pool.is_removed,
    }
