from __future__ import annotations

from typing import Any, Mapping

from ledger_mirror.domain.entities.kinds import EntityKind
from ledger_mirror.domain.entities.user import User
from ledger_mirror.infrastructure.clients.ledger_schemas import UserRecord
from ledger_mirror.infrastructure.db.mappers.common import (
    optional_nanos_to_datetime,
    raw_copy,
    validate_record,
)


def map_record_to_user(record: Mapping[str, Any]) -> User:
    parsed = validate_record(EntityKind.USERS, UserRecord, record)
    return User(
        user_id=parsed.user_id,
        principal_id=parsed.principal_id,
        my_referral_code=parsed.my_referral_code,
        referred_by=parsed.referred_by,
        referred_by_expires_at=optional_nanos_to_datetime(parsed.referred_by_expires_at),
        fee_level=parsed.fee_level,
        fee_level_expires_at=optional_nanos_to_datetime(parsed.fee_level_expires_at),
        raw=raw_copy(record),
    )


def map_user_to_row(user: User) -> dict[str, Any]:
    return {
        "user_id": user.user_id,
        "principal_id": user.principal_id,
        "my_referral_code": user.my_referral_code,
        "referred_by": user.referred_by,
        "referred_by_expires_at": user.referred_by_expires_at,
        "fee_level": user.fee_level,
        "fee_level_expires_at": user.fee_level_expires_at,
        "raw_json": user.raw,
    }
