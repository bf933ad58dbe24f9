from __future__ import annotations

import asyncio
from contextlib import asynccontextmanager

import pytest
from sqlalchemy import func, select

from ledger_mirror.application.dto.sync import OutcomeStatus, SyncMode
from ledger_mirror.application.use_cases.dependency_orchestrator import (
    INCREMENTAL_GROUPS,
    DependencyOrchestrator,
)
from ledger_mirror.application.use_cases.entity_syncer import EntitySyncer
from ledger_mirror.application.use_cases.resilient_executor import ResilientExecutor
from ledger_mirror.core.config import get_settings
from ledger_mirror.domain.entities.kinds import EntityKind
from ledger_mirror.domain.exceptions import RecordShapeError
from ledger_mirror.infrastructure.clients.ledger_schemas import record_id
from ledger_mirror.infrastructure.db.connection_manager import ConnectionManager
from ledger_mirror.infrastructure.db.mappers.token_mapper import map_record_to_token
from ledger_mirror.infrastructure.db.models.ledger import (
    ClaimModel,
    LpTokenModel,
    PoolModel,
    RequestModel,
    SendTxModel,
    SyncCursorModel,
    TokenModel,
    TransferModel,
    TxModel,
    UserModel,
)
from ledger_mirror.infrastructure.db.repositories.ledger_repositories import (
    SqlClaimsRepository,
    SqlTokensRepository,
)
from ledger_mirror.main import build_syncers


TS = 1_700_000_000_000_000_000

LEDGER_RECORDS: dict[EntityKind, list[dict]] = {
    EntityKind.USERS: [{"user_id": 10, "principal_id": "p-10", "my_referral_code": "R10"}],
    EntityKind.TOKENS: [
        {"token_id": 1, "token_type": "IC", "symbol": "ICP", "canister_id": "c-1", "decimals": 8},
        {"token_id": 2, "token_type": "IC", "symbol": "ckUSDT", "canister_id": "c-2", "decimals": 6},
    ],
    EntityKind.POOLS: [
        {
            "pool_id": 1,
            "token_id_0": 1,
            "balance_0": 100,
            "lp_fee_0": 0,
            "kong_fee_0": 0,
            "token_id_1": 2,
            "balance_1": 900,
            "lp_fee_1": 0,
            "kong_fee_1": 0,
            "lp_fee_bps": 30,
            "kong_fee_bps": 0,
            "lp_token_id": 3,
        }
    ],
    EntityKind.LP_TOKENS: [{"lp_token_id": 4, "user_id": 10, "token_id": 3, "amount": 5, "ts": TS}],
    EntityKind.REQUESTS: [
        {
            "request_id": 5,
            "user_id": 10,
            "request": {"Send": {"token": "ICP", "amount": 5}},
            "reply": {"Send": {"status": "Success"}},
            "statuses": ["Started", "Success"],
            "ts": TS,
        }
    ],
    EntityKind.CLAIMS: [
        {
            "claim_id": 6,
            "user_id": 10,
            "token_id": 1,
            "status": "Unclaimed",
            "amount": 1,
            "ts": TS,
        }
    ],
    EntityKind.TRANSFERS: [
        {
            "transfer_id": 7,
            "request_id": 5,
            "token_id": 1,
            "is_send": True,
            "amount": 5,
            "tx_id": {"BlockIndex": 1200},
            "ts": TS,
        }
    ],
    EntityKind.TXS: [
        {
            "Send": {
                "tx_id": 8,
                "request_id": 5,
                "user_id": 10,
                "status": "Success",
                "ts": TS,
                "token_id": 1,
                "amount": 5,
                "to_user_id": 2,
            }
        }
    ],
}


class FakeLedgerPort:
    def __init__(self, records: dict[EntityKind, list[dict]]):
        self.records = records

    async def list_records(self, *, kind, after_id, limit):
        newer = [r for r in self.records[kind] if after_id is None or record_id(kind, r) > after_id]
        return newer[:limit]

    async def list_all(self, *, kind, page_size):
        _ = page_size
        return list(self.records[kind])


class StallingCommitConnections(ConnectionManager):
    """Writes the page, then waits before committing."""

    def __init__(self, engine, written: asyncio.Event):
        super().__init__(engine)
        self.written = written

    @asynccontextmanager
    async def transaction(self, *, entity: str = "store"):
        async with super().transaction(entity=entity) as conn:
            yield conn
            self.written.set()
            await asyncio.sleep(10)


def reject_claim(record: dict):
    raise RecordShapeError(EntityKind.CLAIMS.value, record["claim_id"], "claim rejected")


async def _count(connections, model) -> int:
    async with connections.connect() as conn:
        return (await conn.execute(select(func.count()).select_from(model))).scalar_one()


async def _cursors(connections) -> dict[str, int]:
    async with connections.connect() as conn:
        rows = await conn.execute(select(SyncCursorModel.entity, SyncCursorModel.last_id))
        return {row.entity: row.last_id for row in rows}


@pytest.mark.asyncio
async def test_failing_claims_leave_other_kinds_fully_applied(connections):
    ledger = FakeLedgerPort(LEDGER_RECORDS)
    syncers = build_syncers(settings=get_settings(), ledger=ledger, connections=connections)
    syncers[EntityKind.CLAIMS] = EntitySyncer(
        kind=EntityKind.CLAIMS,
        ledger=ledger,
        repository=SqlClaimsRepository(connections),
        mapper=reject_claim,
    )
    orchestrator = DependencyOrchestrator(syncers=syncers, executor=ResilientExecutor(default_deadline=10))

    result = await orchestrator.run(INCREMENTAL_GROUPS, mode=SyncMode.INCREMENTAL)

    assert set(result.failures) == {"claims"}
    assert result.skipped == ()
    assert await _cursors(connections) == {
        "users": 10,
        "tokens": 2,
        "pools": 1,
        "lp_tokens": 4,
        "requests": 5,
        "transfers": 7,
        "txs": 8,
    }
    assert await _count(connections, UserModel) == 5
    assert await _count(connections, TokenModel) == 2
    assert await _count(connections, PoolModel) == 1
    assert await _count(connections, LpTokenModel) == 1
    assert await _count(connections, RequestModel) == 1
    assert await _count(connections, TransferModel) == 1
    assert await _count(connections, TxModel) == 1
    assert await _count(connections, SendTxModel) == 1
    assert await _count(connections, ClaimModel) == 0


@pytest.mark.asyncio
async def test_cancelled_attempt_rolls_back_page_and_cursor(connections):
    written = asyncio.Event()
    stalling = StallingCommitConnections(connections.engine, written)
    syncer = EntitySyncer(
        kind=EntityKind.TOKENS,
        ledger=FakeLedgerPort(LEDGER_RECORDS),
        repository=SqlTokensRepository(stalling),
        mapper=map_record_to_token,
    )

    outcome = await ResilientExecutor().execute(
        "tokens",
        lambda: syncer.reconcile(mode=SyncMode.INCREMENTAL),
        deadline=0.5,
    )

    assert outcome.status is OutcomeStatus.TIMEOUT
    assert written.is_set()
    assert await _count(connections, TokenModel) == 0
    assert await _cursors(connections) == {}
