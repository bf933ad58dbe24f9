from __future__ import annotations

from datetime import datetime
from typing import Any

from sqlalchemy import (
    JSON,
    BigInteger,
    Boolean,
    DateTime,
    Double,
    Enum,
    Index,
    Integer,
    SmallInteger,
    Text,
    UniqueConstraint,
    text,
)
from sqlalchemy.dialects.postgresql import ARRAY, JSONB
from sqlalchemy.orm import Mapped, mapped_column

from ledger_mirror.core.db import Base
from ledger_mirror.domain.entities.kinds import (
    ClaimStatus,
    RequestType,
    TokenType,
    TxStatus,
    TxType,
    enum_values,
)


JsonDocument = JSON().with_variant(JSONB(), "postgresql")
IdArray = JSON().with_variant(ARRAY(BigInteger), "postgresql")

TokenTypeEnum = Enum(*enum_values(TokenType), name="token_type")
RequestTypeEnum = Enum(*enum_values(RequestType), name="request_type")
TxTypeEnum = Enum(*enum_values(TxType), name="tx_type")
TxStatusEnum = Enum(*enum_values(TxStatus), name="tx_status")
ClaimStatusEnum = Enum(*enum_values(ClaimStatus), name="claim_status")


class UserModel(Base):
    __tablename__ = "users"
    __table_args__ = (UniqueConstraint("principal_id"),)

    user_id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=False)
    principal_id: Mapped[str] = mapped_column(Text, nullable=False)
    my_referral_code: Mapped[str] = mapped_column(Text, nullable=False)
    referred_by: Mapped[int | None] = mapped_column(Integer, nullable=True)
    referred_by_expires_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)
    fee_level: Mapped[int | None] = mapped_column(SmallInteger, nullable=True)
    fee_level_expires_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)
    raw_json: Mapped[dict[str, Any]] = mapped_column(JsonDocument, nullable=False)


class TokenModel(Base):
    __tablename__ = "tokens"
    __table_args__ = (UniqueConstraint("canister_id", "address"),)

    token_id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=False)
    token_type: Mapped[str] = mapped_column(TokenTypeEnum, nullable=False)
    name: Mapped[str | None] = mapped_column(Text, nullable=True)
    symbol: Mapped[str | None] = mapped_column(Text, nullable=True)
    canister_id: Mapped[str | None] = mapped_column(Text, nullable=True)
    address: Mapped[str | None] = mapped_column(Text, nullable=True)
    decimals: Mapped[int] = mapped_column(SmallInteger, nullable=False)
    fee: Mapped[float | None] = mapped_column(Double, nullable=True)
    icrc1: Mapped[bool | None] = mapped_column(Boolean, nullable=True)
    icrc2: Mapped[bool | None] = mapped_column(Boolean, nullable=True)
    icrc3: Mapped[bool | None] = mapped_column(Boolean, nullable=True)
    is_removed: Mapped[bool] = mapped_column(Boolean, nullable=False)
    raw_json: Mapped[dict[str, Any]] = mapped_column(JsonDocument, nullable=False)


class PoolModel(Base):
    __tablename__ = "pools"
    __table_args__ = (
        Index("pools_is_removed_idx", "is_removed"),
        Index("pools_token_id_0_and_1_idx", "token_id_0", "token_id_1"),
    )

    pool_id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=False)
    token_id_0: Mapped[int] = mapped_column(Integer, nullable=False)
    balance_0: Mapped[float] = mapped_column(Double, nullable=False)
    lp_fee_0: Mapped[float] = mapped_column(Double, nullable=False)
    kong_fee_0: Mapped[float] = mapped_column(Double, nullable=False)
    token_id_1: Mapped[int] = mapped_column(Integer, nullable=False)
    balance_1: Mapped[float] = mapped_column(Double, nullable=False)
    lp_fee_1: Mapped[float] = mapped_column(Double, nullable=False)
    kong_fee_1: Mapped[float] = mapped_column(Double, nullable=False)
    lp_fee_bps: Mapped[int] = mapped_column(SmallInteger, nullable=False)
    kong_fee_bps: Mapped[int] = mapped_column(SmallInteger, nullable=False)
    lp_token_id: Mapped[int] = mapped_column(Integer, nullable=False)
    rolling_24h_volume: Mapped[float | None] = mapped_column(Double, nullable=True)
    rolling_24h_lp_fee: Mapped[float | None] = mapped_column(Double, nullable=True)
    rolling_24h_num_swaps: Mapped[int | None] = mapped_column(Integer, nullable=True)
    rolling_24h_apy: Mapped[float | None] = mapped_column(Double, nullable=True)
    raw_json: Mapped[dict[str, Any]] = mapped_column(JsonDocument, nullable=False)
    tvl: Mapped[float | None] = mapped_column(Double, nullable=True)
    is_removed: Mapped[bool | None] = mapped_column(Boolean, nullable=True, server_default=text("false"))


class LpTokenModel(Base):
    __tablename__ = "lp_tokens"
    __table_args__ = (UniqueConstraint("user_id", "token_id"),)

    lp_token_id: Mapped[int] = mapped_column(BigInteger, primary_key=True, autoincrement=False)
    user_id: Mapped[int] = mapped_column(Integer, nullable=False)
    token_id: Mapped[int] = mapped_column(Integer, nullable=False)
    amount: Mapped[float] = mapped_column(Double, nullable=False)
    ts: Mapped[datetime] = mapped_column(DateTime, nullable=False)
    raw_json: Mapped[dict[str, Any]] = mapped_column(JsonDocument, nullable=False)


class RequestModel(Base):
    __tablename__ = "requests"
    __table_args__ = (
        Index("requests_request_type_idx", "request_type"),
        Index("requests_ts_idx", "ts"),
        Index("requests_user_id_idx", "user_id"),
    )

    request_id: Mapped[int] = mapped_column(BigInteger, primary_key=True, autoincrement=False)
    user_id: Mapped[int] = mapped_column(Integer, nullable=False)
    request_type: Mapped[str] = mapped_column(RequestTypeEnum, nullable=False)
    request: Mapped[dict[str, Any]] = mapped_column(JsonDocument, nullable=False)
    reply: Mapped[Any] = mapped_column(JsonDocument, nullable=False)
    statuses: Mapped[Any] = mapped_column(JsonDocument, nullable=True)
    ts: Mapped[datetime] = mapped_column(DateTime, nullable=False)


class ClaimModel(Base):
    __tablename__ = "claims"

    claim_id: Mapped[int] = mapped_column(BigInteger, primary_key=True, autoincrement=False)
    user_id: Mapped[int] = mapped_column(Integer, nullable=False)
    token_id: Mapped[int] = mapped_column(Integer, nullable=False)
    status: Mapped[str] = mapped_column(ClaimStatusEnum, nullable=False)
    amount: Mapped[float] = mapped_column(Double, nullable=False)
    request_id: Mapped[int | None] = mapped_column(BigInteger, nullable=True)
    to_address: Mapped[str | None] = mapped_column(Text, nullable=True)
    attempt_request_id: Mapped[list[int] | None] = mapped_column(IdArray, nullable=True)
    transfer_ids: Mapped[list[int] | None] = mapped_column(IdArray, nullable=True)
    ts: Mapped[datetime] = mapped_column(DateTime, nullable=False)
    raw_json: Mapped[dict[str, Any]] = mapped_column(JsonDocument, nullable=False)
    desc: Mapped[str | None] = mapped_column(Text, nullable=True)


class TransferModel(Base):
    __tablename__ = "transfers"
    __table_args__ = (Index("transfers_token_id_idx", "token_id", "request_id"),)

    transfer_id: Mapped[int] = mapped_column(BigInteger, primary_key=True, autoincrement=False)
    request_id: Mapped[int] = mapped_column(BigInteger, nullable=False)
    token_id: Mapped[int] = mapped_column(Integer, nullable=False)
    is_send: Mapped[bool] = mapped_column(Boolean, nullable=False)
    amount: Mapped[float] = mapped_column(Double, nullable=False)
    block_index: Mapped[float | None] = mapped_column(Double, nullable=True)
    tx_hash: Mapped[str | None] = mapped_column(Text, nullable=True)
    ts: Mapped[datetime] = mapped_column(DateTime, nullable=False)
    raw_json: Mapped[dict[str, Any]] = mapped_column(JsonDocument, nullable=False)


class TxModel(Base):
    __tablename__ = "txs"
    __table_args__ = (
        Index("idx_txs_ts_casted", "ts"),
        Index("idx_txs_user_id", "user_id"),
        Index("txs_status_idx", "status"),
        Index("txs_tx_type_idx", "tx_type"),
    )

    tx_id: Mapped[int] = mapped_column(BigInteger, primary_key=True, autoincrement=False)
    request_id: Mapped[int] = mapped_column(BigInteger, nullable=False)
    user_id: Mapped[int] = mapped_column(Integer, nullable=False)
    tx_type: Mapped[str] = mapped_column(TxTypeEnum, nullable=False)
    status: Mapped[str] = mapped_column(TxStatusEnum, nullable=False)
    ts: Mapped[datetime] = mapped_column(DateTime, nullable=False)
    raw_json: Mapped[dict[str, Any]] = mapped_column(JsonDocument, nullable=False)


class AddPoolTxModel(Base):
    __tablename__ = "add_pool_tx"

    tx_id: Mapped[int] = mapped_column(BigInteger, primary_key=True, autoincrement=False)
    pool_id: Mapped[int] = mapped_column(Integer, nullable=False)
    request_id: Mapped[int] = mapped_column(BigInteger, nullable=False)
    user_id: Mapped[int] = mapped_column(Integer, nullable=False)
    status: Mapped[str] = mapped_column(TxStatusEnum, nullable=False)
    amount_0: Mapped[float] = mapped_column(Double, nullable=False)
    amount_1: Mapped[float] = mapped_column(Double, nullable=False)
    add_lp_token_amount: Mapped[float] = mapped_column(Double, nullable=False)
    transfer_ids: Mapped[list[int] | None] = mapped_column(IdArray, nullable=True)
    claim_ids: Mapped[list[int] | None] = mapped_column(IdArray, nullable=True)
    ts: Mapped[datetime] = mapped_column(DateTime, nullable=False)
    is_removed: Mapped[bool | None] = mapped_column(Boolean, nullable=True, server_default=text("false"))


class AddLiquidityTxModel(Base):
    # Databases created from the legacy DDL also carry a BIGSERIAL "id" column; it is
    # filled by its sequence and never written here.
    __tablename__ = "add_liquidity_tx"
    __table_args__ = (
        Index("add_liquidity_tx_pool_id_idx", "pool_id"),
        Index("add_liquidity_tx_user_id_idx", "user_id", "pool_id"),
    )

    tx_id: Mapped[int] = mapped_column(BigInteger, primary_key=True, autoincrement=False)
    pool_id: Mapped[int] = mapped_column(Integer, nullable=False)
    request_id: Mapped[int] = mapped_column(BigInteger, nullable=False)
    user_id: Mapped[int] = mapped_column(Integer, nullable=False)
    status: Mapped[str] = mapped_column(TxStatusEnum, nullable=False)
    amount_0: Mapped[float] = mapped_column(Double, nullable=False)
    amount_1: Mapped[float] = mapped_column(Double, nullable=False)
    add_lp_token_amount: Mapped[float] = mapped_column(Double, nullable=False)
    transfer_ids: Mapped[list[int] | None] = mapped_column(IdArray, nullable=True)
    claim_ids: Mapped[list[int] | None] = mapped_column(IdArray, nullable=True)
    ts: Mapped[datetime] = mapped_column(DateTime, nullable=False)


class RemoveLiquidityTxModel(Base):
    __tablename__ = "remove_liquidity_tx"

    tx_id: Mapped[int] = mapped_column(BigInteger, primary_key=True, autoincrement=False)
    pool_id: Mapped[int] = mapped_column(Integer, nullable=False)
    request_id: Mapped[int] = mapped_column(BigInteger, nullable=False)
    user_id: Mapped[int] = mapped_column(Integer, nullable=False)
    status: Mapped[str] = mapped_column(TxStatusEnum, nullable=False)
    amount_0: Mapped[float] = mapped_column(Double, nullable=False)
    lp_fee_0: Mapped[float] = mapped_column(Double, nullable=False)
    amount_1: Mapped[float] = mapped_column(Double, nullable=False)
    lp_fee_1: Mapped[float] = mapped_column(Double, nullable=False)
    remove_lp_token_amount: Mapped[float] = mapped_column(Double, nullable=False)
    transfer_ids: Mapped[list[int] | None] = mapped_column(IdArray, nullable=True)
    claim_ids: Mapped[list[int] | None] = mapped_column(IdArray, nullable=True)
    ts: Mapped[datetime] = mapped_column(DateTime, nullable=False)


class SwapTxModel(Base):
    __tablename__ = "swap_tx"
    __table_args__ = (Index("idx_swap_tx_tokens", "pay_token_id", "receive_token_id"),)

    tx_id: Mapped[int] = mapped_column(BigInteger, primary_key=True, autoincrement=False)
    request_id: Mapped[int] = mapped_column(BigInteger, nullable=False)
    user_id: Mapped[int] = mapped_column(Integer, nullable=False)
    status: Mapped[str] = mapped_column(TxStatusEnum, nullable=False)
    pay_token_id: Mapped[int] = mapped_column(Integer, nullable=False)
    pay_amount: Mapped[float] = mapped_column(Double, nullable=False)
    receive_token_id: Mapped[int] = mapped_column(Integer, nullable=False)
    receive_amount: Mapped[float] = mapped_column(Double, nullable=False)
    price: Mapped[float] = mapped_column(Double, nullable=False)
    mid_price: Mapped[float] = mapped_column(Double, nullable=False)
    slippage: Mapped[float] = mapped_column(Double, nullable=False)
    transfer_ids: Mapped[list[int] | None] = mapped_column(IdArray, nullable=True)
    claim_ids: Mapped[list[int] | None] = mapped_column(IdArray, nullable=True)
    ts: Mapped[datetime] = mapped_column(DateTime, nullable=False)


class SwapPoolTxModel(Base):
    __tablename__ = "swap_pool_tx"
    __table_args__ = (
        Index("idx_swap_pool_tx_tx_id", "tx_id"),
        Index("swap_pool_tx_pool_id_idx", "pool_id"),
        Index("idx_swap_pool_tx_token_pair", "pay_token_id", "receive_token_id", "ts"),
    )

    # tx_id * MAX_SWAP_HOPS + hop_index
    id: Mapped[int] = mapped_column(BigInteger, primary_key=True, autoincrement=False)
    tx_id: Mapped[int] = mapped_column(BigInteger, nullable=False)
    pool_id: Mapped[int] = mapped_column(Integer, nullable=False)
    pay_token_id: Mapped[int] = mapped_column(Integer, nullable=False)
    pay_amount: Mapped[float] = mapped_column(Double, nullable=False)
    receive_token_id: Mapped[int] = mapped_column(Integer, nullable=False)
    receive_amount: Mapped[float] = mapped_column(Double, nullable=False)
    lp_fee: Mapped[float] = mapped_column(Double, nullable=False)
    gas_fee: Mapped[float] = mapped_column(Double, nullable=False)
    ts: Mapped[datetime] = mapped_column(DateTime, nullable=False)


class SendTxModel(Base):
    __tablename__ = "send_tx"
    __table_args__ = (
        Index("send_tx_to_user_id_idx", "to_user_id"),
        Index("send_tx_token_id_idx", "token_id"),
        Index("send_tx_user_id_idx", "user_id"),
    )

    tx_id: Mapped[int] = mapped_column(BigInteger, primary_key=True, autoincrement=False)
    token_id: Mapped[int] = mapped_column(Integer, nullable=False)
    request_id: Mapped[int] = mapped_column(BigInteger, nullable=False)
    user_id: Mapped[int] = mapped_column(Integer, nullable=False)
    status: Mapped[str] = mapped_column(TxStatusEnum, nullable=False)
    amount: Mapped[float] = mapped_column(Double, nullable=False)
    to_user_id: Mapped[int] = mapped_column(Integer, nullable=False)
    ts: Mapped[datetime] = mapped_column(DateTime, nullable=False)


class SyncCursorModel(Base):
    __tablename__ = "sync_cursors"

    entity: Mapped[str] = mapped_column(Text, primary_key=True)
    last_id: Mapped[int] = mapped_column(BigInteger, nullable=False)
    last_updated_at: Mapped[datetime] = mapped_column(DateTime, nullable=False)
