from __future__ import annotations

import logging
from collections.abc import Callable

from ledger_mirror.application.dto.sync import SyncMode, TickResult
from ledger_mirror.application.use_cases.dependency_orchestrator import BULK_GROUPS, DependencyOrchestrator


logger = logging.getLogger(__name__)


class BackfillUseCase:
    def __init__(self, *, orchestrator: DependencyOrchestrator, deadline: float | None = None):
        self._orchestrator = orchestrator
        self._deadline = deadline

    async def execute(self, *, should_stop: Callable[[], bool] | None = None) -> TickResult:
        result = await self._orchestrator.run(
            BULK_GROUPS,
            mode=SyncMode.FULL,
            should_stop=should_stop,
            deadline=self._deadline,
        )
        logger.info(
            "backfill: finished succeeded=%s interrupted=%s applied=%s failed=%s",
            result.succeeded,
            result.interrupted,
            sum(o.result.applied for o in result.outcomes if o.result is not None),
            ",".join(sorted(result.failures)) or "-",
        )
        return result
