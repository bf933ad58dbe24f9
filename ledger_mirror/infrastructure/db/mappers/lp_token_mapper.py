from __future__ import annotations

from typing import Any, Mapping

from ledger_mirror.domain.entities.kinds import EntityKind
from ledger_mirror.domain.entities.lp_token import LpToken
from ledger_mirror.infrastructure.clients.ledger_schemas import LpTokenRecord
from ledger_mirror.infrastructure.db.mappers.common import (
    nanos_to_datetime,
    raw_copy,
    to_float,
    validate_record,
)


def map_record_to_lp_token(record: Mapping[str, Any]) -> LpToken:
    parsed = validate_record(EntityKind.LP_TOKENS, LpTokenRecord, record)
    return LpToken(
        lp_token_id=parsed.lp_token_id,
        user_id=parsed.user_id,
        token_id=parsed.token_id,
        amount=to_float(parsed.amount),
        ts=nanos_to_datetime(parsed.ts),
        raw=raw_copy(record),
    )


def map_lp_token_to_row(lp_token: LpToken) -> dict[str, Any]:
    return {
        "lp_token_id": lp_token.lp_token_id,
        "user_id": lp_token.user_id,
        "token_id": lp_token.token_id,
        "amount": lp_token.amount,
        "ts": lp_token.ts,
        "raw_json": lp_token.raw,
    }
