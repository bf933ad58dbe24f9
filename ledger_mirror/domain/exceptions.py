from __future__ import annotations


class MirrorError(Exception):
    """Base for mirror errors."""


class ConfigurationError(MirrorError):
    """Missing or invalid settings; fatal at startup."""


class EntitySyncError(MirrorError):
    """Failure scoped to one entity kind's reconciliation attempt."""

    def __init__(self, entity: str, message: str):
        self.entity = entity
        super().__init__(f"[{entity}] {message}")


class LedgerUnavailableError(EntitySyncError):
    """Ledger unreachable or timed out."""


class LedgerResponseError(EntitySyncError):
    """Ledger answered with an error or a reply that cannot be decoded."""


class RecordShapeError(EntitySyncError):
    """A ledger record does not have the expected shape or violates an invariant."""

    def __init__(self, entity: str, record_id: int | None, detail: str):
        self.record_id = record_id
        self.detail = detail
        super().__init__(entity, f"record_id={record_id} {detail}")


class StoreConnectionLostError(EntitySyncError):
    """The store connection dropped while an entity was being written."""


class StoreUnavailableError(MirrorError):
    """Reconnect attempts exhausted; the store is gone."""


class TickFailedError(MirrorError):
    """At least one entity failed during an orchestrated run."""

    def __init__(self, failures: dict[str, str]):
        self.failures = dict(failures)
        names = ", ".join(sorted(self.failures))
        super().__init__(f"sync failed for: {names}")
