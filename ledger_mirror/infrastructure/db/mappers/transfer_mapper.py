from __future__ import annotations

from typing import Any, Mapping

from ledger_mirror.domain.entities.kinds import EntityKind
from ledger_mirror.domain.entities.transfer import Transfer
from ledger_mirror.domain.exceptions import RecordShapeError
from ledger_mirror.infrastructure.clients.ledger_schemas import TransferRecord, unwrap_tagged
from ledger_mirror.infrastructure.db.mappers.common import (
    nanos_to_datetime,
    raw_copy,
    to_float,
    validate_record,
)


def map_record_to_transfer(record: Mapping[str, Any]) -> Transfer:
    parsed = validate_record(EntityKind.TRANSFERS, TransferRecord, record)
    tag, reference = unwrap_tagged(parsed.tx_id)

    block_index: float | None = None
    tx_hash: str | None = None
    try:
        if tag == "BlockIndex":
            block_index = float(reference)
        else:
            tx_hash = str(reference)
    except (TypeError, ValueError) as exc:
        raise RecordShapeError(
            EntityKind.TRANSFERS.value,
            parsed.transfer_id,
            f"invalid BlockIndex {reference!r}",
        ) from exc

    return Transfer(
        transfer_id=parsed.transfer_id,
        request_id=parsed.request_id,
        token_id=parsed.token_id,
        is_send=parsed.is_send,
        amount=to_float(parsed.amount),
        block_index=block_index,
        tx_hash=tx_hash,
        ts=nanos_to_datetime(parsed.ts),
        raw=raw_copy(record),
    )


def map_transfer_to_row(transfer: Transfer) -> dict[str, Any]:
    return {
        "transfer_id": transfer.transfer_id,
        "request_id": transfer.request_id,
        "token_id": transfer.token_id,
        "is_send": transfer.is_send,
        "amount": transfer.amount,
        "block_index": transfer.block_index,
        "tx_hash": transfer.tx_hash,
        "ts": transfer.ts,
        "raw_json": transfer.raw,
    }
