from __future__ import annotations

import logging
from collections.abc import Sequence
from collections import defaultdict

from sqlalchemy import Table, select
from sqlalchemy.ext.asyncio import AsyncConnection

from ledger_mirror.domain.entities.claim import Claim
from ledger_mirror.domain.entities.kinds import ClaimStatus, EntityKind, TxType
from ledger_mirror.domain.entities.lp_token import LpToken
from ledger_mirror.domain.entities.pool import Pool
from ledger_mirror.domain.entities.request import Request
from ledger_mirror.domain.entities.token import Token
from ledger_mirror.domain.entities.transfer import Transfer
from ledger_mirror.domain.entities.tx import Tx
from ledger_mirror.domain.entities.user import User
from ledger_mirror.domain.services.claim_status import is_valid_claim_transition
from ledger_mirror.infrastructure.db.mappers.claim_mapper import map_claim_to_row
from ledger_mirror.infrastructure.db.mappers.lp_token_mapper import map_lp_token_to_row
from ledger_mirror.infrastructure.db.mappers.pool_mapper import map_pool_to_row
from ledger_mirror.infrastructure.db.mappers.request_mapper import map_request_to_row
from ledger_mirror.infrastructure.db.mappers.token_mapper import map_token_to_row
from ledger_mirror.infrastructure.db.mappers.transfer_mapper import map_transfer_to_row
from ledger_mirror.infrastructure.db.mappers.tx_mapper import map_tx_to_rows
from ledger_mirror.infrastructure.db.mappers.user_mapper import map_user_to_row
from ledger_mirror.infrastructure.db.models.ledger import (
    AddLiquidityTxModel,
    AddPoolTxModel,
    ClaimModel,
    LpTokenModel,
    PoolModel,
    RemoveLiquidityTxModel,
    RequestModel,
    SendTxModel,
    SwapPoolTxModel,
    SwapTxModel,
    TokenModel,
    TransferModel,
    TxModel,
    UserModel,
)
from ledger_mirror.infrastructure.db.repositories.entity_repository import SqlEntityRepository
from ledger_mirror.infrastructure.db.upsert import upsert_rows


logger = logging.getLogger(__name__)


class SqlUsersRepository(SqlEntityRepository[User]):
    kind = EntityKind.USERS
    table = UserModel.__table__
    key = ("user_id",)
    to_row = staticmethod(map_user_to_row)


class SqlTokensRepository(SqlEntityRepository[Token]):
    kind = EntityKind.TOKENS
    table = TokenModel.__table__
    key = ("token_id",)
    to_row = staticmethod(map_token_to_row)


class SqlPoolsRepository(SqlEntityRepository[Pool]):
    kind = EntityKind.POOLS
    table = PoolModel.__table__
    key = ("pool_id",)
    to_row = staticmethod(map_pool_to_row)


class SqlLpTokensRepository(SqlEntityRepository[LpToken]):
    kind = EntityKind.LP_TOKENS
    table = LpTokenModel.__table__
    key = ("lp_token_id",)
    to_row = staticmethod(map_lp_token_to_row)


class SqlRequestsRepository(SqlEntityRepository[Request]):
    kind = EntityKind.REQUESTS
    table = RequestModel.__table__
    key = ("request_id",)
    to_row = staticmethod(map_request_to_row)


class SqlTransfersRepository(SqlEntityRepository[Transfer]):
    kind = EntityKind.TRANSFERS
    table = TransferModel.__table__
    key = ("transfer_id",)
    to_row = staticmethod(map_transfer_to_row)


class SqlClaimsRepository(SqlEntityRepository[Claim]):
    kind = EntityKind.CLAIMS
    table = ClaimModel.__table__
    key = ("claim_id",)
    to_row = staticmethod(map_claim_to_row)

    async def _write(self, conn: AsyncConnection, entities: Sequence[Claim]) -> int:
        await self._warn_on_unexpected_transitions(conn, entities)
        return await super()._write(conn, entities)

    async def _warn_on_unexpected_transitions(
        self,
        conn: AsyncConnection,
        claims: Sequence[Claim],
    ) -> None:
        if not claims:
            return
        stmt = select(ClaimModel.claim_id, ClaimModel.status).where(
            ClaimModel.claim_id.in_([claim.claim_id for claim in claims])
        )
        stored = {row.claim_id: ClaimStatus(row.status) for row in await conn.execute(stmt)}
        for claim in claims:
            previous = stored.get(claim.claim_id)
            if previous is None or is_valid_claim_transition(previous, claim.status):
                continue
            # The ledger is authoritative; the row is written as received.
            logger.warning(
                "claims_repository: unexpected_transition claim_id=%s user_id=%s token_id=%s from=%s to=%s",
                claim.claim_id,
                claim.user_id,
                claim.token_id,
                previous.value,
                claim.status.value,
            )


VARIANT_TABLES: dict[TxType, Table] = {
    TxType.ADD_POOL: AddPoolTxModel.__table__,
    TxType.ADD_LIQUIDITY: AddLiquidityTxModel.__table__,
    TxType.REMOVE_LIQUIDITY: RemoveLiquidityTxModel.__table__,
    TxType.SWAP: SwapTxModel.__table__,
    TxType.SEND: SendTxModel.__table__,
}


class SqlTxsRepository(SqlEntityRepository[Tx]):
    """Writes ``txs``, the matching variant table and ``swap_pool_tx`` in one transaction."""

    kind = EntityKind.TXS
    table = TxModel.__table__
    key = ("tx_id",)

    async def _write(self, conn: AsyncConnection, entities: Sequence[Tx]) -> int:
        tx_rows = []
        variant_rows: dict[TxType, list[dict]] = defaultdict(list)
        hop_rows = []
        for tx in entities:
            rows = map_tx_to_rows(tx)
            tx_rows.append(rows.tx)
            variant_rows[rows.tx_type].append(rows.variant)
            hop_rows.extend(rows.hops)

        written = await upsert_rows(conn, self.table, tx_rows, key=self.key)
        for tx_type, rows in variant_rows.items():
            written += await upsert_rows(conn, VARIANT_TABLES[tx_type], rows, key=("tx_id",))
        written += await upsert_rows(conn, SwapPoolTxModel.__table__, hop_rows, key=("id",))
        return written


REPOSITORIES: dict[EntityKind, type[SqlEntityRepository]] = {
    EntityKind.USERS: SqlUsersRepository,
    EntityKind.TOKENS: SqlTokensRepository,
    EntityKind.POOLS: SqlPoolsRepository,
    EntityKind.LP_TOKENS: SqlLpTokensRepository,
    EntityKind.REQUESTS: SqlRequestsRepository,
    EntityKind.CLAIMS: SqlClaimsRepository,
    EntityKind.TRANSFERS: SqlTransfersRepository,
    EntityKind.TXS: SqlTxsRepository,
}
