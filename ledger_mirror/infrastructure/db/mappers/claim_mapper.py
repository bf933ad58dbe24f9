from __future__ import annotations

from typing import Any, Mapping

from ledger_mirror.domain.entities.claim import Claim
from ledger_mirror.domain.entities.kinds import EntityKind
from ledger_mirror.infrastructure.clients.ledger_schemas import ClaimRecord
from ledger_mirror.infrastructure.db.mappers.common import (
    nanos_to_datetime,
    raw_copy,
    to_float,
    validate_record,
)


def map_record_to_claim(record: Mapping[str, Any]) -> Claim:
    parsed = validate_record(EntityKind.CLAIMS, ClaimRecord, record)
    return Claim(
        claim_id=parsed.claim_id,
        user_id=parsed.user_id,
        token_id=parsed.token_id,
        status=parsed.status,
        amount=to_float(parsed.amount),
        request_id=parsed.request_id,
        to_address=parsed.to_address,
        attempt_request_id=list(parsed.attempt_request_id),
        transfer_ids=list(parsed.transfer_ids),
        desc=parsed.desc,
        ts=nanos_to_datetime(parsed.ts),
        raw=raw_copy(record),
    )


def map_claim_to_row(claim: Claim) -> dict[str, Any]:
    return {
        "claim_id": claim.claim_id,
        "user_id": claim.user_id,
        "token_id": claim.token_id,
        "status": claim.status.value,
        "amount": claim.amount,
        "request_id": claim.request_id,
        "to_address": claim.to_address,
        "attempt_request_id": claim.attempt_request_id,
        "transfer_ids": claim.transfer_ids,
        "ts": claim.ts,
        "raw_json": claim.raw,
        "desc": claim.desc,
    }
