from __future__ import annotations

import asyncio
import logging

from ledger_mirror.application.dto.sync import ReconcileResult, SyncMode, TickResult
from ledger_mirror.application.ports.entity_syncer_port import EntitySyncerPort
from ledger_mirror.application.ports.snapshot_port import SnapshotPort
from ledger_mirror.application.use_cases.dependency_orchestrator import BULK_GROUPS, DependencyOrchestrator
from ledger_mirror.domain.exceptions import EntitySyncError


logger = logging.getLogger(__name__)


class BulkLoader:
    """Populates the store from a snapshot, all kinds at once, without touching cursors."""

    def __init__(
        self,
        *,
        orchestrator: DependencyOrchestrator,
        snapshots: SnapshotPort,
        deadline: float | None = None,
    ):
        self._orchestrator = orchestrator
        self._snapshots = snapshots
        self._deadline = deadline

    async def execute(self) -> TickResult:
        result = await self._orchestrator.run(
            BULK_GROUPS,
            mode=SyncMode.FULL,
            action=self._load,
            deadline=self._deadline,
        )
        logger.info(
            "bulk_loader: finished succeeded=%s failed=%s",
            result.succeeded,
            ",".join(sorted(result.failures)) or "-",
        )
        return result

    async def _load(self, syncer: EntitySyncerPort) -> ReconcileResult:
        kind = syncer.kind
        if not self._snapshots.exists(kind=kind):
            raise EntitySyncError(kind.value, "snapshot not found")
        records = await asyncio.to_thread(lambda: list(self._snapshots.read(kind=kind)))
        applied = await syncer.apply_records(records=records)
        return ReconcileResult(cursor=None, applied=applied)
