from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from time import perf_counter

from ledger_mirror.application.dto.sync import ExecutionOutcome, OutcomeStatus, ReconcileResult
from ledger_mirror.application.ports.store_health_port import StoreHealthPort
from ledger_mirror.domain.exceptions import RecordShapeError, StoreConnectionLostError


logger = logging.getLogger(__name__)

DEFAULT_DEADLINE_SECS = 30.0


class ResilientExecutor:
    """Runs one entity attempt under a deadline and classifies how it ended.

    Nothing is retried here. A timed out attempt is cancelled so its open
    transaction rolls back; a lost store connection is only flagged, the reconnect
    happens before the next tick.
    """

    def __init__(
        self,
        *,
        store_health: StoreHealthPort | None = None,
        default_deadline: float = DEFAULT_DEADLINE_SECS,
    ):
        self._store_health = store_health
        self._default_deadline = default_deadline

    async def execute(
        self,
        entity: str,
        op: Callable[[], Awaitable[ReconcileResult]],
        *,
        deadline: float | None = None,
    ) -> ExecutionOutcome:
        timeout = deadline if deadline is not None else self._default_deadline
        start = perf_counter()
        scope = asyncio.timeout(timeout)
        try:
            async with scope:
                result = await op()
        except TimeoutError as exc:
            if not scope.expired():
                # Raised by the attempt itself; only an expired scope is a missed deadline.
                logger.error("resilient_executor: inner_timeout entity=%s error=%r", entity, exc)
                return self._failed(entity, exc, start)
            elapsed_ms = (perf_counter() - start) * 1000
            logger.error(
                "resilient_executor: timeout entity=%s deadline_secs=%s elapsed_ms=%.2f",
                entity,
                timeout,
                elapsed_ms,
            )
            return ExecutionOutcome(
                entity=entity,
                status=OutcomeStatus.TIMEOUT,
                error=TimeoutError(f"[{entity}] exceeded {timeout}s deadline"),
                elapsed_ms=elapsed_ms,
            )
        except StoreConnectionLostError as exc:
            logger.error("resilient_executor: connection_lost entity=%s error=%s", entity, exc)
            if self._store_health is not None:
                self._store_health.mark_lost(cause=exc)
            return self._failed(entity, exc, start)
        except RecordShapeError as exc:
            logger.error(
                "resilient_executor: bad_record entity=%s record_id=%s detail=%s",
                entity,
                exc.record_id,
                exc.detail,
            )
            return self._failed(entity, exc, start)
        except Exception as exc:  # noqa: BLE001
            logger.error("resilient_executor: failed entity=%s error=%s", entity, exc, exc_info=exc)
            return self._failed(entity, exc, start)

        elapsed_ms = (perf_counter() - start) * 1000
        logger.debug(
            "resilient_executor: success entity=%s applied=%s cursor=%s elapsed_ms=%.2f",
            entity,
            result.applied,
            result.cursor,
            elapsed_ms,
        )
        return ExecutionOutcome(
            entity=entity,
            status=OutcomeStatus.SUCCESS,
            result=result,
            elapsed_ms=elapsed_ms,
        )

    @staticmethod
    def _failed(entity: str, error: BaseException, start: float) -> ExecutionOutcome:
        return ExecutionOutcome(
            entity=entity,
            status=OutcomeStatus.ERROR,
            error=error,
            elapsed_ms=(perf_counter() - start) * 1000,
        )
