from __future__ import annotations

from typing import Any, Mapping

from ledger_mirror.domain.entities.kinds import EntityKind, RequestType
from ledger_mirror.domain.entities.request import Request
from ledger_mirror.domain.exceptions import RecordShapeError
from ledger_mirror.infrastructure.clients.ledger_schemas import RequestRecord, unwrap_tagged
from ledger_mirror.infrastructure.db.mappers.common import nanos_to_datetime, validate_record


REQUEST_TAGS: dict[str, RequestType] = {
    "AddPool": RequestType.ADD_POOL,
    "AddLiquidity": RequestType.ADD_LIQUIDITY,
    "RemoveLiquidity": RequestType.REMOVE_LIQUIDITY,
    "Swap": RequestType.SWAP,
    "Claim": RequestType.CLAIM,
    "Send": RequestType.SEND,
}


def map_record_to_request(record: Mapping[str, Any]) -> Request:
    parsed = validate_record(EntityKind.REQUESTS, RequestRecord, record)
    tagged = unwrap_tagged(parsed.request)
    request_type = REQUEST_TAGS.get(tagged[0]) if tagged is not None else None
    if request_type is None:
        raise RecordShapeError(
            EntityKind.REQUESTS.value,
            parsed.request_id,
            f"unknown request payload tag(s): {sorted(parsed.request)}",
        )
    return Request(
        request_id=parsed.request_id,
        user_id=parsed.user_id,
        request_type=request_type,
        request=parsed.request,
        reply=parsed.reply,
        statuses=parsed.statuses,
        ts=nanos_to_datetime(parsed.ts),
    )


def map_request_to_row(request: Request) -> dict[str, Any]:
    return {
        "request_id": request.request_id,
        "user_id": request.user_id,
        "request_type": request.request_type.value,
        "request": request.request,
        "reply": request.reply,
        "statuses": request.statuses,
        "ts": request.ts,
    }
