from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Union

from ledger_mirror.domain.entities.kinds import TxStatus, TxType


@dataclass(frozen=True)
class AddPoolTx:
    pool_id: int
    amount_0: float
    amount_1: float
    add_lp_token_amount: float
    transfer_ids: list[int] = field(default_factory=list)
    claim_ids: list[int] = field(default_factory=list)
    is_removed: bool = False


@dataclass(frozen=True)
class AddLiquidityTx:
    pool_id: int
    amount_0: float
    amount_1: float
    add_lp_token_amount: float
    transfer_ids: list[int] = field(default_factory=list)
    claim_ids: list[int] = field(default_factory=list)


@dataclass(frozen=True)
class RemoveLiquidityTx:
    pool_id: int
    amount_0: float
    lp_fee_0: float
    amount_1: float
    lp_fee_1: float
    remove_lp_token_amount: float
    transfer_ids: list[int] = field(default_factory=list)
    claim_ids: list[int] = field(default_factory=list)


@dataclass(frozen=True)
class SwapHop:
    hop_index: int
    pool_id: int
    pay_token_id: int
    pay_amount: float
    receive_token_id: int
    receive_amount: float
    lp_fee: float
    gas_fee: float


@dataclass(frozen=True)
class SwapTx:
    pay_token_id: int
    pay_amount: float
    receive_token_id: int
    receive_amount: float
    price: float
    mid_price: float
    slippage: float
    hops: tuple[SwapHop, ...] = ()
    transfer_ids: list[int] = field(default_factory=list)
    claim_ids: list[int] = field(default_factory=list)


@dataclass(frozen=True)
class SendTx:
    token_id: int
    amount: float
    to_user_id: int


TxVariant = Union[AddPoolTx, AddLiquidityTx, RemoveLiquidityTx, SwapTx, SendTx]

VARIANT_TX_TYPES: dict[type, TxType] = {
    AddPoolTx: TxType.ADD_POOL,
    AddLiquidityTx: TxType.ADD_LIQUIDITY,
    RemoveLiquidityTx: TxType.REMOVE_LIQUIDITY,
    SwapTx: TxType.SWAP,
    SendTx: TxType.SEND,
}


@dataclass(frozen=True)
class Tx:
    tx_id: int
    request_id: int
    user_id: int
    status: TxStatus
    ts: datetime
    variant: TxVariant
    raw: dict[str, Any]

    @property
    def tx_type(self) -> TxType:
        return VARIANT_TX_TYPES[type(self.variant)]

    @property
    def entity_id(self) -> int:
        return self.tx_id
