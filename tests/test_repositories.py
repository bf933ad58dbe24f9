from __future__ import annotations

import logging

import pytest
from sqlalchemy import select

from ledger_mirror.application.dto.sync import SyncMode
from ledger_mirror.application.use_cases.entity_syncer import EntitySyncer
from ledger_mirror.domain.entities.kinds import EntityKind
from ledger_mirror.infrastructure.db.mappers.claim_mapper import map_record_to_claim
from ledger_mirror.infrastructure.db.mappers.pool_mapper import map_record_to_pool
from ledger_mirror.infrastructure.db.mappers.token_mapper import map_record_to_token
from ledger_mirror.infrastructure.db.mappers.tx_mapper import map_record_to_tx
from ledger_mirror.infrastructure.db.mappers.user_mapper import map_record_to_user
from ledger_mirror.infrastructure.db.models.ledger import (
    ClaimModel,
    PoolModel,
    SwapPoolTxModel,
    SwapTxModel,
    SyncCursorModel,
    TokenModel,
    TxModel,
    UserModel,
)
from ledger_mirror.infrastructure.db.repositories.ledger_repositories import (
    SqlClaimsRepository,
    SqlPoolsRepository,
    SqlTokensRepository,
    SqlTxsRepository,
    SqlUsersRepository,
)


TS = 1_700_000_000_000_000_000


def _token(token_id: int, **overrides) -> dict:
    record = {
        "token_id": token_id,
        "token_type": "IC",
        "name": f"Token {token_id}",
        "symbol": f"T{token_id}",
        "canister_id": f"canister-{token_id}",
        "decimals": 8,
        "fee": 0.0001,
        "icrc1": True,
        "icrc2": True,
        "icrc3": False,
        "is_removed": False,
    }
    record.update(overrides)
    return record


def _claim(claim_id: int, status: str) -> dict:
    return {
        "claim_id": claim_id,
        "user_id": 10,
        "token_id": 1,
        "status": status,
        "amount": 2.5,
        "attempt_request_id": [5],
        "transfer_ids": [],
        "ts": TS,
    }


def _swap(tx_id: int) -> dict:
    hop = {
        "pool_id": 1,
        "pay_token_id": 1,
        "pay_amount": 10,
        "receive_token_id": 2,
        "receive_amount": 20,
        "lp_fee": 0.03,
        "gas_fee": 0.01,
    }
    return {
        "Swap": {
            "tx_id": tx_id,
            "request_id": 100 + tx_id,
            "user_id": 10,
            "status": "Success",
            "ts": TS,
            "pay_token_id": 1,
            "pay_amount": 10,
            "receive_token_id": 3,
            "receive_amount": 30,
            "price": 3,
            "mid_price": 3,
            "slippage": 0,
            "transfer_ids": [1],
            "claim_ids": [],
            "txs": [hop, {**hop, "pool_id": 2, "pay_token_id": 2, "receive_token_id": 3}],
        }
    }


class FakeLedgerPort:
    def __init__(self, records: list[dict], id_field: str):
        self.records = records
        self.id_field = id_field

    async def list_records(self, *, kind, after_id, limit):
        _ = kind
        newer = [r for r in self.records if after_id is None or r[self.id_field] > after_id]
        return newer[:limit]

    async def list_all(self, *, kind, page_size):
        _ = (kind, page_size)
        return list(self.records)


async def _table_rows(connections, model) -> list[tuple]:
    async with connections.connect() as conn:
        result = await conn.execute(select(model.__table__).order_by(*model.__table__.primary_key.columns))
        return [tuple(row) for row in result]


async def _cursor(connections, entity: str) -> int | None:
    async with connections.connect() as conn:
        stmt = select(SyncCursorModel.last_id).where(SyncCursorModel.entity == entity)
        return (await conn.execute(stmt)).scalar_one_or_none()


@pytest.mark.asyncio
async def test_system_users_are_seeded_once(connections):
    await connections.ensure_ready()

    rows = await _table_rows(connections, UserModel)

    assert [(row[0], row[1]) for row in rows] == [
        (0, "Anonymous"),
        (1, "All Users"),
        (2, "System"),
        (3, "Claims Timer"),
    ]


@pytest.mark.asyncio
async def test_end_to_end_tokens_full_then_incremental(connections):
    ledger = FakeLedgerPort([_token(10), _token(11), _token(12)], "token_id")
    syncer = EntitySyncer(
        kind=EntityKind.TOKENS,
        ledger=ledger,
        repository=SqlTokensRepository(connections),
        mapper=map_record_to_token,
    )

    first = await syncer.reconcile(mode=SyncMode.FULL)
    second = await syncer.reconcile(mode=SyncMode.INCREMENTAL)

    assert first.applied == 3
    assert first.cursor == 12
    assert second.applied == 0
    assert second.cursor == 12
    assert len(await _table_rows(connections, TokenModel)) == 3
    assert await _cursor(connections, "tokens") == 12


@pytest.mark.asyncio
async def test_reapplying_records_is_idempotent(connections):
    users = SqlUsersRepository(connections)
    tokens = SqlTokensRepository(connections)
    pools = SqlPoolsRepository(connections)
    txs = SqlTxsRepository(connections)

    user_page = [
        map_record_to_user({"user_id": 10, "principal_id": "p-10", "my_referral_code": "R10", "fee_level": 0})
    ]
    token_page = [map_record_to_token(_token(1)), map_record_to_token(_token(2))]
    pool_page = [
        map_record_to_pool(
            {
                "pool_id": 1,
                "token_id_0": 1,
                "balance_0": 100,
                "lp_fee_0": 0,
                "kong_fee_0": 0,
                "token_id_1": 2,
                "balance_1": 200,
                "lp_fee_1": 0,
                "kong_fee_1": 0,
                "lp_fee_bps": 30,
                "kong_fee_bps": 0,
                "lp_token_id": 3,
            }
        )
    ]
    tx_page = [map_record_to_tx(_swap(1)), map_record_to_tx(_swap(2))]

    models = (UserModel, TokenModel, PoolModel, TxModel, SwapTxModel, SwapPoolTxModel)
    snapshots = []
    for _ in range(2):
        await users.apply_page(entities=user_page, cursor=10)
        await tokens.apply_page(entities=token_page, cursor=2)
        await pools.apply_page(entities=pool_page, cursor=1)
        await txs.apply_page(entities=tx_page, cursor=2)
        snapshots.append([await _table_rows(connections, model) for model in models])

    assert snapshots[0] == snapshots[1]
    hop_rows = await _table_rows(connections, SwapPoolTxModel)
    assert [(row[0], row[1], row[2]) for row in hop_rows] == [
        (100, 1, 1),
        (101, 1, 2),
        (200, 2, 1),
        (201, 2, 2),
    ]


@pytest.mark.asyncio
async def test_updated_record_replaces_all_columns(connections):
    tokens = SqlTokensRepository(connections)

    await tokens.apply_page(entities=[map_record_to_token(_token(1))], cursor=1)
    await tokens.apply_page(entities=[map_record_to_token(_token(1, symbol="NEW", is_removed=True))], cursor=1)

    rows = await _table_rows(connections, TokenModel)
    assert len(rows) == 1
    async with connections.connect() as conn:
        token = (await conn.execute(select(TokenModel.symbol, TokenModel.is_removed, TokenModel.raw_json))).one()
    assert token.symbol == "NEW"
    assert token.is_removed is True
    assert token.raw_json["symbol"] == "NEW"


@pytest.mark.asyncio
async def test_cursor_never_decreases(connections):
    tokens = SqlTokensRepository(connections)

    await tokens.apply_page(entities=[map_record_to_token(_token(9))], cursor=9)
    await tokens.apply_page(entities=[map_record_to_token(_token(4))], cursor=4)

    assert await tokens.load_cursor() == 9


@pytest.mark.asyncio
async def test_unexpected_claim_transition_is_written_and_logged(connections, caplog):
    claims = SqlClaimsRepository(connections)
    await claims.apply_page(entities=[map_record_to_claim(_claim(1, "Claimed"))], cursor=1)

    with caplog.at_level(logging.WARNING):
        await claims.apply_page(entities=[map_record_to_claim(_claim(1, "Unclaimed"))], cursor=1)

    async with connections.connect() as conn:
        status = (await conn.execute(select(ClaimModel.status))).scalar_one()
    assert status == "Unclaimed"
    assert "unexpected_transition claim_id=1" in caplog.text
    assert "from=Claimed to=Unclaimed" in caplog.text


@pytest.mark.asyncio
async def test_expected_claim_transition_is_quiet(connections, caplog):
    claims = SqlClaimsRepository(connections)
    await claims.apply_page(entities=[map_record_to_claim(_claim(1, "Unclaimed"))], cursor=1)

    with caplog.at_level(logging.WARNING):
        await claims.apply_page(entities=[map_record_to_claim(_claim(1, "Claiming"))], cursor=1)

    assert "unexpected_transition" not in caplog.text
