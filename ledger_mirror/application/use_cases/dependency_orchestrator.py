from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable, Mapping, Sequence

from ledger_mirror.application.dto.sync import ExecutionOutcome, ReconcileResult, SyncMode, TickResult
from ledger_mirror.application.ports.entity_syncer_port import EntitySyncerPort
from ledger_mirror.application.use_cases.resilient_executor import ResilientExecutor
from ledger_mirror.domain.entities.kinds import EntityKind


logger = logging.getLogger(__name__)

Group = tuple[EntityKind, ...]
SyncerAction = Callable[[EntitySyncerPort], Awaitable[ReconcileResult]]

INCREMENTAL_GROUPS: tuple[Group, ...] = (
    (EntityKind.USERS,),
    (EntityKind.TOKENS,),
    (EntityKind.POOLS,),
    (
        EntityKind.LP_TOKENS,
        EntityKind.REQUESTS,
        EntityKind.CLAIMS,
        EntityKind.TRANSFERS,
        EntityKind.TXS,
    ),
)

BULK_GROUPS: tuple[Group, ...] = (tuple(EntityKind),)


class DependencyOrchestrator:
    """Runs syncers group by group; members of one group run concurrently.

    A group must fully succeed before the next starts. When a member fails the
    remaining members of its group still finish and later groups are skipped.
    """

    def __init__(
        self,
        *,
        syncers: Mapping[EntityKind, EntitySyncerPort],
        executor: ResilientExecutor,
    ):
        self._syncers = dict(syncers)
        self._executor = executor

    async def run(
        self,
        groups: Sequence[Group],
        *,
        mode: SyncMode = SyncMode.INCREMENTAL,
        action: SyncerAction | None = None,
        should_stop: Callable[[], bool] | None = None,
        deadline: float | None = None,
    ) -> TickResult:
        missing = [kind.value for group in groups for kind in group if kind not in self._syncers]
        if missing:
            raise ValueError(f"No syncer registered for: {', '.join(missing)}")

        outcomes: list[ExecutionOutcome] = []
        for index, group in enumerate(groups):
            if should_stop is not None and should_stop():
                skipped = _names(groups[index:])
                logger.info("dependency_orchestrator: interrupted skipped=%s", ",".join(skipped))
                return TickResult(outcomes=tuple(outcomes), skipped=skipped, interrupted=True)

            group_outcomes = await asyncio.gather(
                *(
                    self._executor.execute(
                        kind.value,
                        self._operation(kind, mode, action),
                        deadline=deadline,
                    )
                    for kind in group
                )
            )
            outcomes.extend(group_outcomes)

            failed = [outcome.entity for outcome in group_outcomes if not outcome.succeeded]
            if failed:
                skipped = _names(groups[index + 1 :])
                logger.error(
                    "dependency_orchestrator: group_failed group=%s failed=%s skipped=%s",
                    index,
                    ",".join(failed),
                    ",".join(skipped) or "-",
                )
                return TickResult(outcomes=tuple(outcomes), skipped=skipped)

        return TickResult(outcomes=tuple(outcomes))

    def _operation(
        self,
        kind: EntityKind,
        mode: SyncMode,
        action: SyncerAction | None,
    ) -> Callable[[], Awaitable[ReconcileResult]]:
        syncer = self._syncers[kind]
        if action is not None:
            return lambda: action(syncer)
        return lambda: syncer.reconcile(mode=mode)


def _names(groups: Sequence[Group]) -> tuple[str, ...]:
    return tuple(kind.value for group in groups for kind in group)
