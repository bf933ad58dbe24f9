from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from ledger_mirror.domain.exceptions import StoreConnectionLostError, TickFailedError


class SyncMode(str, Enum):
    INCREMENTAL = "incremental"
    FULL = "full"


@dataclass(frozen=True)
class ReconcileResult:
    cursor: int | None
    applied: int


class OutcomeStatus(str, Enum):
    SUCCESS = "success"
    TIMEOUT = "timeout"
    ERROR = "error"


@dataclass(frozen=True)
class ExecutionOutcome:
    entity: str
    status: OutcomeStatus
    result: ReconcileResult | None = None
    error: BaseException | None = None
    elapsed_ms: float = 0.0

    @property
    def succeeded(self) -> bool:
        return self.status is OutcomeStatus.SUCCESS

    @property
    def connection_lost(self) -> bool:
        return isinstance(self.error, StoreConnectionLostError)

    def describe(self) -> str:
        if self.succeeded:
            return "ok"
        if self.status is OutcomeStatus.TIMEOUT:
            return "timed out"
        return str(self.error) if self.error is not None else "failed"


@dataclass(frozen=True)
class TickResult:
    outcomes: tuple[ExecutionOutcome, ...] = ()
    skipped: tuple[str, ...] = ()
    interrupted: bool = False

    @property
    def failures(self) -> dict[str, str]:
        return {o.entity: o.describe() for o in self.outcomes if not o.succeeded}

    @property
    def succeeded(self) -> bool:
        return not self.failures and not self.skipped

    def outcome_for(self, entity: str) -> ExecutionOutcome | None:
        for outcome in self.outcomes:
            if outcome.entity == entity:
                return outcome
        return None

    def raise_for_failure(self) -> None:
        if self.failures:
            raise TickFailedError(self.failures)
