from __future__ import annotations

from collections.abc import Mapping
from decimal import Decimal
from typing import Annotated, Any, Literal

from pydantic import BaseModel, ConfigDict, Field, model_validator

from ledger_mirror.domain.entities.kinds import ClaimStatus, EntityKind, TxStatus


NonNegativeInt = Annotated[int, Field(ge=0)]
NonNegativeDecimal = Annotated[Decimal, Field(ge=0)]

ID_FIELDS: dict[EntityKind, str] = {
    EntityKind.USERS: "user_id",
    EntityKind.TOKENS: "token_id",
    EntityKind.POOLS: "pool_id",
    EntityKind.LP_TOKENS: "lp_token_id",
    EntityKind.REQUESTS: "request_id",
    EntityKind.CLAIMS: "claim_id",
    EntityKind.TRANSFERS: "transfer_id",
    EntityKind.TXS: "tx_id",
}


def unwrap_tagged(record: Mapping[str, Any]) -> tuple[str, Any] | None:
    """Return (tag, body) for a single-key tagged union such as {"Swap": {...}}."""
    if len(record) != 1:
        return None
    tag, body = next(iter(record.items()))
    return str(tag), body


def record_id(kind: EntityKind, record: Any) -> int | None:
    if not isinstance(record, Mapping):
        return None
    body: Any = record
    if kind is EntityKind.TXS:
        tagged = unwrap_tagged(record)
        if tagged is not None and isinstance(tagged[1], Mapping):
            body = tagged[1]
    value = body.get(ID_FIELDS[kind])
    if isinstance(value, bool):
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


class LedgerRecord(BaseModel):
    model_config = ConfigDict(extra="ignore", frozen=True)


class UserRecord(LedgerRecord):
    user_id: NonNegativeInt
    principal_id: str
    my_referral_code: str
    referred_by: int | None = None
    referred_by_expires_at: int | None = None
    fee_level: int | None = 0
    fee_level_expires_at: int | None = None


class TokenRecord(LedgerRecord):
    token_id: NonNegativeInt
    token_type: Literal["IC", "LP"]
    name: str | None = None
    symbol: str | None = None
    canister_id: str | None = None
    address: str | None = None
    decimals: NonNegativeInt
    fee: Decimal | None = Field(None, ge=0)
    icrc1: bool | None = None
    icrc2: bool | None = None
    icrc3: bool | None = None
    is_removed: bool = False


class PoolRecord(LedgerRecord):
    pool_id: NonNegativeInt
    token_id_0: NonNegativeInt
    balance_0: NonNegativeDecimal
    lp_fee_0: NonNegativeDecimal
    kong_fee_0: NonNegativeDecimal
    token_id_1: NonNegativeInt
    balance_1: NonNegativeDecimal
    lp_fee_1: NonNegativeDecimal
    kong_fee_1: NonNegativeDecimal
    lp_fee_bps: NonNegativeInt
    kong_fee_bps: NonNegativeInt
    lp_token_id: NonNegativeInt
    rolling_24h_volume: Decimal | None = Field(None, ge=0)
    rolling_24h_lp_fee: Decimal | None = Field(None, ge=0)
    rolling_24h_num_swaps: int | None = Field(None, ge=0)
    rolling_24h_apy: float | None = None
    tvl: Decimal | None = Field(None, ge=0)
    is_removed: bool = False

    @model_validator(mode="after")
    def _legs_are_distinct(self) -> PoolRecord:
        if self.token_id_0 == self.token_id_1:
            raise ValueError(f"pool legs must reference distinct tokens, got {self.token_id_0} twice")
        return self


class LpTokenRecord(LedgerRecord):
    lp_token_id: NonNegativeInt
    user_id: NonNegativeInt
    token_id: NonNegativeInt
    amount: NonNegativeDecimal
    ts: NonNegativeInt


class RequestRecord(LedgerRecord):
    request_id: NonNegativeInt
    user_id: NonNegativeInt
    request: dict[str, Any]
    reply: Any
    statuses: list[Any] | None = None
    ts: NonNegativeInt


class ClaimRecord(LedgerRecord):
    claim_id: NonNegativeInt
    user_id: NonNegativeInt
    token_id: NonNegativeInt
    status: ClaimStatus
    amount: NonNegativeDecimal
    request_id: int | None = None
    to_address: str | None = None
    attempt_request_id: list[int] = Field(default_factory=list)
    transfer_ids: list[int] = Field(default_factory=list)
    desc: str | None = None
    ts: NonNegativeInt


class TransferRecord(LedgerRecord):
    transfer_id: NonNegativeInt
    request_id: NonNegativeInt
    token_id: NonNegativeInt
    is_send: bool
    amount: NonNegativeDecimal
    tx_id: dict[str, Any]
    ts: NonNegativeInt

    @model_validator(mode="after")
    def _chain_reference_is_known(self) -> TransferRecord:
        tagged = unwrap_tagged(self.tx_id)
        if tagged is None or tagged[0] not in ("BlockIndex", "TransactionHash"):
            raise ValueError("tx_id must be {'BlockIndex': n} or {'TransactionHash': h}")
        return self


class TxCommon(LedgerRecord):
    tx_id: NonNegativeInt
    request_id: NonNegativeInt
    user_id: NonNegativeInt
    status: TxStatus
    ts: NonNegativeInt
    transfer_ids: list[int] = Field(default_factory=list)
    claim_ids: list[int] = Field(default_factory=list)


class AddPoolTxRecord(TxCommon):
    pool_id: NonNegativeInt
    amount_0: NonNegativeDecimal
    amount_1: NonNegativeDecimal
    add_lp_token_amount: NonNegativeDecimal
    is_removed: bool = False


class AddLiquidityTxRecord(TxCommon):
    pool_id: NonNegativeInt
    amount_0: NonNegativeDecimal
    amount_1: NonNegativeDecimal
    add_lp_token_amount: NonNegativeDecimal


class RemoveLiquidityTxRecord(TxCommon):
    pool_id: NonNegativeInt
    amount_0: NonNegativeDecimal
    lp_fee_0: NonNegativeDecimal
    amount_1: NonNegativeDecimal
    lp_fee_1: NonNegativeDecimal
    remove_lp_token_amount: NonNegativeDecimal


class SwapHopRecord(LedgerRecord):
    pool_id: NonNegativeInt
    pay_token_id: NonNegativeInt
    pay_amount: NonNegativeDecimal
    receive_token_id: NonNegativeInt
    receive_amount: NonNegativeDecimal
    lp_fee: NonNegativeDecimal
    gas_fee: NonNegativeDecimal


class SwapTxRecord(TxCommon):
    pay_token_id: NonNegativeInt
    pay_amount: NonNegativeDecimal
    receive_token_id: NonNegativeInt
    receive_amount: NonNegativeDecimal
    price: NonNegativeDecimal
    mid_price: NonNegativeDecimal
    slippage: Decimal
    txs: list[SwapHopRecord] = Field(default_factory=list)


class SendTxRecord(TxCommon):
    token_id: NonNegativeInt
    amount: NonNegativeDecimal
    to_user_id: NonNegativeInt


TX_RECORD_TYPES: dict[str, type[TxCommon]] = {
    "AddPool": AddPoolTxRecord,
    "AddLiquidity": AddLiquidityTxRecord,
    "RemoveLiquidity": RemoveLiquidityTxRecord,
    "Swap": SwapTxRecord,
    "Send": SendTxRecord,
}
