from __future__ import annotations

from typing import Any, Mapping

from ledger_mirror.domain.entities.kinds import EntityKind, TokenType
from ledger_mirror.domain.entities.token import Token
from ledger_mirror.infrastructure.clients.ledger_schemas import TokenRecord
from ledger_mirror.infrastructure.db.mappers.common import optional_float, raw_copy, validate_record


def map_record_to_token(record: Mapping[str, Any]) -> Token:
    parsed = validate_record(EntityKind.TOKENS, TokenRecord, record)
    return Token(
        token_id=parsed.token_id,
        token_type=TokenType(parsed.token_type),
        name=parsed.name,
        symbol=parsed.symbol,
        canister_id=parsed.canister_id,
        address=parsed.address,
        decimals=parsed.decimals,
        fee=optional_float(parsed.fee),
        icrc1=parsed.icrc1,
        icrc2=parsed.icrc2,
        icrc3=parsed.icrc3,
        is_removed=parsed.is_removed,
        raw=raw_copy(record),
    )


def map_token_to_row(token: Token) -> dict[str, Any]:
    return {
        "token_id": token.token_id,
        "token_type": token.token_type.value,
        "name": token.name,
        "symbol": token.symbol,
        "canister_id": token.canister_id,
        "address": token.address,
        "decimals": token.decimals,
        "fee": token.fee,
        "icrc1": token.icrc1,
        "icrc2": token.icrc2,
        "icrc3": token.icrc3,
        "is_removed": token.is_removed,
        "raw_json": token.raw,
    }
