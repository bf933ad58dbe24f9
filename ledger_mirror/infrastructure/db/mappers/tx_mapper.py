from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Mapping

from ledger_mirror.domain.entities.kinds import EntityKind, TxType
from ledger_mirror.domain.entities.tx import (
    AddLiquidityTx,
    AddPoolTx,
    RemoveLiquidityTx,
    SendTx,
    SwapHop,
    SwapTx,
    Tx,
    TxVariant,
)
from ledger_mirror.domain.exceptions import RecordShapeError
from ledger_mirror.domain.services.swap_hops import MAX_SWAP_HOPS, ordered_hops, swap_hop_row_id
from ledger_mirror.infrastructure.clients.ledger_schemas import (
    TX_RECORD_TYPES,
    AddLiquidityTxRecord,
    AddPoolTxRecord,
    RemoveLiquidityTxRecord,
    SendTxRecord,
    SwapTxRecord,
    TxCommon,
    record_id,
    unwrap_tagged,
)
from ledger_mirror.infrastructure.db.mappers.common import (
    nanos_to_datetime,
    raw_copy,
    to_float,
    validate_record,
)


@dataclass(frozen=True)
class TxRows:
    tx_type: TxType
    tx: dict[str, Any]
    variant: dict[str, Any]
    hops: list[dict[str, Any]] = field(default_factory=list)


def map_record_to_tx(record: Mapping[str, Any]) -> Tx:
    tagged = unwrap_tagged(record) if isinstance(record, Mapping) else None
    if tagged is None or tagged[0] not in TX_RECORD_TYPES:
        raise RecordShapeError(
            EntityKind.TXS.value,
            record_id(EntityKind.TXS, record),
            "tx must be a single-key object tagged with one of "
            + ", ".join(TX_RECORD_TYPES),
        )
    tag, body = tagged
    parsed = validate_record(EntityKind.TXS, TX_RECORD_TYPES[tag], body)
    return Tx(
        tx_id=parsed.tx_id,
        request_id=parsed.request_id,
        user_id=parsed.user_id,
        status=parsed.status,
        ts=nanos_to_datetime(parsed.ts),
        variant=_map_variant(parsed),
        raw=raw_copy(record),
    )


def _map_variant(parsed: TxCommon) -> TxVariant:
    if isinstance(parsed, AddPoolTxRecord):
        return AddPoolTx(
            pool_id=parsed.pool_id,
            amount_0=to_float(parsed.amount_0),
            amount_1=to_float(parsed.amount_1),
            add_lp_token_amount=to_float(parsed.add_lp_token_amount),
            transfer_ids=list(parsed.transfer_ids),
            claim_ids=list(parsed.claim_ids),
            is_removed=parsed.is_removed,
        )
    if isinstance(parsed, AddLiquidityTxRecord):
        return AddLiquidityTx(
            pool_id=parsed.pool_id,
            amount_0=to_float(parsed.amount_0),
            amount_1=to_float(parsed.amount_1),
            add_lp_token_amount=to_float(parsed.add_lp_token_amount),
            transfer_ids=list(parsed.transfer_ids),
            claim_ids=list(parsed.claim_ids),
        )
    if isinstance(parsed, RemoveLiquidityTxRecord):
        return RemoveLiquidityTx(
            pool_id=parsed.pool_id,
            amount_0=to_float(parsed.amount_0),
            lp_fee_0=to_float(parsed.lp_fee_0),
            amount_1=to_float(parsed.amount_1),
            lp_fee_1=to_float(parsed.lp_fee_1),
            remove_lp_token_amount=to_float(parsed.remove_lp_token_amount),
            transfer_ids=list(parsed.transfer_ids),
            claim_ids=list(parsed.claim_ids),
        )
    if isinstance(parsed, SwapTxRecord):
        if len(parsed.txs) > MAX_SWAP_HOPS:
            raise RecordShapeError(
                EntityKind.TXS.value,
                parsed.tx_id,
                f"swap has {len(parsed.txs)} hops, at most {MAX_SWAP_HOPS} are supported",
            )
        hops = tuple(
            SwapHop(
                hop_index=index,
                pool_id=hop.pool_id,
                pay_token_id=hop.pay_token_id,
                pay_amount=to_float(hop.pay_amount),
                receive_token_id=hop.receive_token_id,
                receive_amount=to_float(hop.receive_amount),
                lp_fee=to_float(hop.lp_fee),
                gas_fee=to_float(hop.gas_fee),
            )
            for index, hop in enumerate(parsed.txs)
        )
        return SwapTx(
            pay_token_id=parsed.pay_token_id,
            pay_amount=to_float(parsed.pay_amount),
            receive_token_id=parsed.receive_token_id,
            receive_amount=to_float(parsed.receive_amount),
            price=to_float(parsed.price),
            mid_price=to_float(parsed.mid_price),
            slippage=float(parsed.slippage),
            hops=hops,
            transfer_ids=list(parsed.transfer_ids),
            claim_ids=list(parsed.claim_ids),
        )
    if isinstance(parsed, SendTxRecord):
        return SendTx(
            token_id=parsed.token_id,
            amount=to_float(parsed.amount),
            to_user_id=parsed.to_user_id,
        )
    raise TypeError(f"Unsupported tx record: {type(parsed).__name__}")


def map_tx_to_rows(tx: Tx) -> TxRows:
    parent = {
        "tx_id": tx.tx_id,
        "request_id": tx.request_id,
        "user_id": tx.user_id,
        "tx_type": tx.tx_type.value,
        "status": tx.status.value,
        "ts": tx.ts,
        "raw_json": tx.raw,
    }
    common = {
        "tx_id": tx.tx_id,
        "request_id": tx.request_id,
        "user_id": tx.user_id,
        "status": tx.status.value,
        "ts": tx.ts,
    }
    variant = tx.variant
    hops: list[dict[str, Any]] = []

    if isinstance(variant, AddPoolTx):
        row = {
            **common,
            "pool_id": variant.pool_id,
            "amount_0": variant.amount_0,
            "amount_1": variant.amount_1,
            "add_lp_token_amount": variant.add_lp_token_amount,
            "transfer_ids": variant.transfer_ids,
            "claim_ids": variant.claim_ids,
            "is_removed": variant.is_removed,
        }
    elif isinstance(variant, AddLiquidityTx):
        row = {
            **common,
            "pool_id": variant.pool_id,
            "amount_0": variant.amount_0,
            "amount_1": variant.amount_1,
            "add_lp_token_amount": variant.add_lp_token_amount,
            "transfer_ids": variant.transfer_ids,
            "claim_ids": variant.claim_ids,
        }
    elif isinstance(variant, RemoveLiquidityTx):
        row = {
            **common,
            "pool_id": variant.pool_id,
            "amount_0": variant.amount_0,
            "lp_fee_0": variant.lp_fee_0,
            "amount_1": variant.amount_1,
            "lp_fee_1": variant.lp_fee_1,
            "remove_lp_token_amount": variant.remove_lp_token_amount,
            "transfer_ids": variant.transfer_ids,
            "claim_ids": variant.claim_ids,
        }
    elif isinstance(variant, SwapTx):
        row = {
            **common,
            "pay_token_id": variant.pay_token_id,
            "pay_amount": variant.pay_amount,
            "receive_token_id": variant.receive_token_id,
            "receive_amount": variant.receive_amount,
            "price": variant.price,
            "mid_price": variant.mid_price,
            "slippage": variant.slippage,
            "transfer_ids": variant.transfer_ids,
            "claim_ids": variant.claim_ids,
        }
        hops = [map_swap_hop_to_row(tx, hop) for hop in ordered_hops(variant.hops)]
    elif isinstance(variant, SendTx):
        row = {
            **common,
            "token_id": variant.token_id,
            "amount": variant.amount,
            "to_user_id": variant.to_user_id,
        }
    else:
        raise TypeError(f"Unsupported tx variant: {type(variant).__name__}")

    return TxRows(tx_type=tx.tx_type, tx=parent, variant=row, hops=hops)


def map_swap_hop_to_row(tx: Tx, hop: SwapHop) -> dict[str, Any]:
    return {
        "id": swap_hop_row_id(tx.tx_id, hop.hop_index),
        "tx_id": tx.tx_id,
        "pool_id": hop.pool_id,
        "pay_token_id": hop.pay_token_id,
        "pay_amount": hop.pay_amount,
        "receive_token_id": hop.receive_token_id,
        "receive_amount": hop.receive_amount,
        "lp_fee": hop.lp_fee,
        "gas_fee": hop.gas_fee,
        "ts": tx.ts,
    }
