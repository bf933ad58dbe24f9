from __future__ import annotations

from enum import Enum


class EntityKind(str, Enum):
    USERS = "users"
    TOKENS = "tokens"
    POOLS = "pools"
    LP_TOKENS = "lp_tokens"
    REQUESTS = "requests"
    CLAIMS = "claims"
    TRANSFERS = "transfers"
    TXS = "txs"


class TokenType(str, Enum):
    IC = "IC"
    LP = "LP"


class RequestType(str, Enum):
    ADD_POOL = "add_pool"
    ADD_LIQUIDITY = "add_liquidity"
    REMOVE_LIQUIDITY = "remove_liquidity"
    SWAP = "swap"
    CLAIM = "claim"
    SEND = "send"


class TxType(str, Enum):
    ADD_POOL = "add_pool"
    ADD_LIQUIDITY = "add_liquidity"
    REMOVE_LIQUIDITY = "remove_liquidity"
    SWAP = "swap"
    SEND = "send"


class TxStatus(str, Enum):
    SUCCESS = "Success"
    FAILED = "Failed"


class ClaimStatus(str, Enum):
    UNCLAIMED = "Unclaimed"
    CLAIMING = "Claiming"
    CLAIMED = "Claimed"
    TOO_MANY_ATTEMPTS = "TooManyAttempts"
    UNCLAIMED_OVERRIDE = "UnclaimedOverride"
    CLAIMABLE = "Claimable"
    EXPIRED = "Expired"


def enum_values(enum_cls: type[Enum]) -> list[str]:
    return [member.value for member in enum_cls]
