from __future__ import annotations

from typing import Any

from sqlalchemy.ext.asyncio import AsyncConnection

from ledger_mirror.infrastructure.db.models.ledger import UserModel
from ledger_mirror.infrastructure.db.upsert import insert_for


SYSTEM_USERS: tuple[tuple[int, str], ...] = (
    (0, "Anonymous"),
    (1, "All Users"),
    (2, "System"),
    (3, "Claims Timer"),
)


def system_user_rows() -> list[dict[str, Any]]:
    return [
        {
            "user_id": user_id,
            "principal_id": principal_id,
            "my_referral_code": "None",
            "referred_by": None,
            "referred_by_expires_at": None,
            "fee_level": 0,
            "fee_level_expires_at": None,
            "raw_json": {},
        }
        for user_id, principal_id in SYSTEM_USERS
    ]


async def seed_system_users(conn: AsyncConnection) -> int:
    """Insert the reserved users; rows that already exist are left as they are."""
    table = UserModel.__table__
    stmt = insert_for(conn)(table).on_conflict_do_nothing()
    result = await conn.execute(stmt, system_user_rows())
    return max(result.rowcount or 0, 0)
