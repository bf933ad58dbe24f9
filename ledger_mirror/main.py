from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable

import typer

from ledger_mirror.application.dto.sync import SyncMode, TickResult
from ledger_mirror.application.ports.ledger_port import LedgerPort
from ledger_mirror.application.ports.snapshot_port import SnapshotPort
from ledger_mirror.application.use_cases.backfill import BackfillUseCase
from ledger_mirror.application.use_cases.bulk_loader import BulkLoader
from ledger_mirror.application.use_cases.dependency_orchestrator import INCREMENTAL_GROUPS, DependencyOrchestrator
from ledger_mirror.application.use_cases.entity_syncer import EntitySyncer
from ledger_mirror.application.use_cases.poll_scheduler import PollScheduler
from ledger_mirror.application.use_cases.resilient_executor import ResilientExecutor
from ledger_mirror.core.config import Settings, get_settings
from ledger_mirror.core.logging_config import configure_logging
from ledger_mirror.domain.entities.kinds import EntityKind
from ledger_mirror.domain.exceptions import ConfigurationError, StoreUnavailableError, TickFailedError
from ledger_mirror.infrastructure.clients.ledger_client import HttpLedgerClient, LedgerClientSettings
from ledger_mirror.infrastructure.db.connection_manager import ConnectionManager
from ledger_mirror.infrastructure.db.mappers.claim_mapper import map_record_to_claim
from ledger_mirror.infrastructure.db.mappers.lp_token_mapper import map_record_to_lp_token
from ledger_mirror.infrastructure.db.mappers.pool_mapper import map_record_to_pool
from ledger_mirror.infrastructure.db.mappers.request_mapper import map_record_to_request
from ledger_mirror.infrastructure.db.mappers.token_mapper import map_record_to_token
from ledger_mirror.infrastructure.db.mappers.transfer_mapper import map_record_to_transfer
from ledger_mirror.infrastructure.db.mappers.tx_mapper import map_record_to_tx
from ledger_mirror.infrastructure.db.mappers.user_mapper import map_record_to_user
from ledger_mirror.infrastructure.db.repositories.ledger_repositories import REPOSITORIES
from ledger_mirror.infrastructure.signals import ShutdownSignals
from ledger_mirror.infrastructure.snapshots.jsonl_snapshot_store import JsonlSnapshotStore


logger = logging.getLogger("ledger_mirror")

EXIT_FAILED = 1
EXIT_CONFIG = 2

MAPPERS: dict[EntityKind, Callable] = {
    EntityKind.USERS: map_record_to_user,
    EntityKind.TOKENS: map_record_to_token,
    EntityKind.POOLS: map_record_to_pool,
    EntityKind.LP_TOKENS: map_record_to_lp_token,
    EntityKind.REQUESTS: map_record_to_request,
    EntityKind.CLAIMS: map_record_to_claim,
    EntityKind.TRANSFERS: map_record_to_transfer,
    EntityKind.TXS: map_record_to_tx,
}

app = typer.Typer(
    name="ledger-mirror",
    help="Mirror ledger state into the relational store.",
    no_args_is_help=True,
)

MainnetOption = typer.Option(False, "--mainnet", help="Query the mainnet ledger instead of the local one.")


def build_syncers(
    *,
    settings: Settings,
    ledger: LedgerPort,
    connections: ConnectionManager,
    snapshots: SnapshotPort | None = None,
) -> dict[EntityKind, EntitySyncer]:
    return {
        kind: EntitySyncer(
            kind=kind,
            ledger=ledger,
            repository=REPOSITORIES[kind](connections),
            mapper=MAPPERS[kind],
            page_size=settings.page_size,
            snapshots=snapshots,
        )
        for kind in EntityKind
    }


def build_ledger_client(settings: Settings) -> HttpLedgerClient:
    return HttpLedgerClient(
        LedgerClientSettings(
            base_url=settings.ledger_url,
            timeout_seconds=settings.ledger_timeout_seconds,
            identity_file=settings.ledger_identity_file,
        )
    )


def _run(factory: Callable[[], Awaitable[None]]) -> None:
    try:
        asyncio.run(factory())
    except ConfigurationError as exc:
        typer.echo(f"Configuration error: {exc}", err=True)
        raise typer.Exit(code=EXIT_CONFIG) from exc
    except StoreUnavailableError as exc:
        logger.error("main: store_unavailable error=%s", exc)
        raise typer.Exit(code=EXIT_FAILED) from exc
    except TickFailedError as exc:
        logger.error("main: run_failed error=%s", exc)
        raise typer.Exit(code=EXIT_FAILED) from exc


def _settings_or_exit(*, mainnet: bool = False, require_identity: bool = False) -> Settings:
    try:
        settings = get_settings()
        if mainnet:
            settings = settings.with_network("mainnet")
        configure_logging(settings.log_level)
        settings.validate(require_identity=require_identity)
        return settings
    except ConfigurationError as exc:
        typer.echo(f"Configuration error: {exc}", err=True)
        raise typer.Exit(code=EXIT_CONFIG) from exc


async def run_backfill(settings: Settings) -> TickResult:
    connections = ConnectionManager.from_settings(settings.database)
    try:
        await connections.ensure_ready()
        async with build_ledger_client(settings) as ledger:
            syncers = build_syncers(
                settings=settings,
                ledger=ledger,
                connections=connections,
                snapshots=JsonlSnapshotStore(settings.snapshot_dir),
            )
            orchestrator = DependencyOrchestrator(
                syncers=syncers,
                executor=ResilientExecutor(store_health=connections),
            )
            return await BackfillUseCase(
                orchestrator=orchestrator,
                deadline=settings.bulk_timeout_secs,
            ).execute()
    finally:
        await connections.dispose()


async def run_restore(settings: Settings) -> TickResult:
    connections = ConnectionManager.from_settings(settings.database)
    try:
        await connections.ensure_ready()
        # Restoring never queries the ledger; the client only satisfies the syncer wiring.
        async with build_ledger_client(settings) as ledger:
            orchestrator = DependencyOrchestrator(
                syncers=build_syncers(settings=settings, ledger=ledger, connections=connections),
                executor=ResilientExecutor(store_health=connections),
            )
            return await BulkLoader(
                orchestrator=orchestrator,
                snapshots=JsonlSnapshotStore(settings.snapshot_dir),
                deadline=settings.bulk_timeout_secs,
            ).execute()
    finally:
        await connections.dispose()


async def run_sync(settings: Settings, *, backfill: bool = False) -> None:
    connections = ConnectionManager.from_settings(settings.database)
    try:
        await connections.ensure_ready()
        async with build_ledger_client(settings) as ledger:
            orchestrator = DependencyOrchestrator(
                syncers=build_syncers(settings=settings, ledger=ledger, connections=connections),
                executor=ResilientExecutor(
                    store_health=connections,
                    default_deadline=settings.operation_timeout_secs,
                ),
            )
            scheduler = PollScheduler(
                run_tick=lambda should_stop: orchestrator.run(
                    INCREMENTAL_GROUPS,
                    mode=SyncMode.INCREMENTAL,
                    should_stop=should_stop,
                ),
                base_delay=settings.poll_delay_secs,
                max_delay=settings.poll_max_delay_secs,
                before_tick=connections.recover,
            )
            backfill_use_case = (
                BackfillUseCase(orchestrator=orchestrator, deadline=settings.bulk_timeout_secs)
                if backfill
                else None
            )
            await sync_until_stopped(scheduler=scheduler, backfill=backfill_use_case)
    finally:
        await connections.dispose()


async def sync_until_stopped(
    *,
    scheduler: PollScheduler,
    backfill: BackfillUseCase | None = None,
) -> None:
    """Optional full pass, then polling; SIGINT/SIGTERM stop either phase."""
    signals = ShutdownSignals(scheduler.request_shutdown)
    signals.register(asyncio.get_running_loop())
    try:
        if backfill is not None:
            result = await backfill.execute(should_stop=scheduler.stop_requested)
            result.raise_for_failure()
        await scheduler.run_forever()
    finally:
        signals.unregister()


async def run_init_db(settings: Settings) -> None:
    connections = ConnectionManager.from_settings(settings.database)
    try:
        await connections.ensure_ready()
    finally:
        await connections.dispose()


@app.command("backfill")
def backfill_command(mainnet: bool = MainnetOption) -> None:
    """Fetch every entity from the ledger, write the snapshot and upsert into the store."""
    settings = _settings_or_exit(mainnet=mainnet, require_identity=True)

    async def _backfill() -> None:
        (await run_backfill(settings)).raise_for_failure()

    _run(_backfill)


@app.command("restore")
def restore_command() -> None:
    """Populate the store from the snapshot directory."""
    settings = _settings_or_exit()

    async def _restore() -> None:
        (await run_restore(settings)).raise_for_failure()

    _run(_restore)


@app.command("sync")
def sync_command(
    mainnet: bool = MainnetOption,
    backfill: bool = typer.Option(False, "--backfill", help="Run one full pass before polling."),
) -> None:
    """Poll the ledger and apply new records until interrupted."""
    settings = _settings_or_exit(mainnet=mainnet)
    _run(lambda: run_sync(settings, backfill=backfill))


@app.command("init-db")
def init_db_command() -> None:
    """Create missing tables and the reserved system users."""
    settings = _settings_or_exit()
    _run(lambda: run_init_db(settings))


def main() -> None:
    app()


if __name__ == "__main__":
    main()
