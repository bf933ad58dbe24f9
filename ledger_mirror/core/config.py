from __future__ import annotations

import os
from dataclasses import dataclass, replace
from pathlib import Path

from dotenv import load_dotenv
from sqlalchemy.engine import URL

from ledger_mirror.domain.exceptions import ConfigurationError


load_dotenv()

LEDGER_NETWORKS = ("local", "mainnet")
# The widest dependency group runs five syncers at once, each holding its own connection.
MIN_POOL_CONNECTIONS = 5


def _env(name: str, default: str | None = None) -> str | None:
    value = os.getenv(name, default)
    if value is not None and not value.strip():
        return default
    return value


def _int(name: str, default: str) -> int:
    value = _env(name, default)
    try:
        return int(value)
    except (TypeError, ValueError) as exc:
        raise ConfigurationError(f"{name} must be an integer, got {value!r}.") from exc


def _float(name: str, default: str) -> float:
    value = _env(name, default)
    try:
        return float(value)
    except (TypeError, ValueError) as exc:
        raise ConfigurationError(f"{name} must be a number, got {value!r}.") from exc


@dataclass(frozen=True)
class DatabaseSettings:
    host: str | None
    port: int
    user: str | None
    password: str | None
    db_name: str | None
    ca_cert: str | None
    url: str | None
    max_connections: int
    connection_timeout_secs: float
    reconnect_attempts: int
    reconnect_backoff_secs: float

    def sqlalchemy_url(self) -> URL | str:
        if self.url:
            return self.url
        return URL.create(
            "postgresql+asyncpg",
            username=self.user,
            password=self.password,
            host=self.host,
            port=self.port,
            database=self.db_name,
        )


@dataclass(frozen=True)
class Settings:
    ledger_network: str
    ledger_local_url: str
    ledger_mainnet_url: str
    ledger_identity_file: str | None
    ledger_timeout_seconds: float
    page_size: int
    poll_delay_secs: float
    poll_max_delay_secs: float
    operation_timeout_secs: float
    bulk_timeout_secs: float
    snapshot_dir: str
    log_level: str
    database: DatabaseSettings

    @property
    def ledger_url(self) -> str:
        if self.ledger_network == "mainnet":
            return self.ledger_mainnet_url
        return self.ledger_local_url

    def with_network(self, network: str) -> Settings:
        return replace(self, ledger_network=network)

    def validate(self, *, require_identity: bool = False) -> None:
        """Raise ConfigurationError describing the first invalid setting."""
        if self.ledger_network not in LEDGER_NETWORKS:
            raise ConfigurationError(
                f"LEDGER_NETWORK must be one of {', '.join(LEDGER_NETWORKS)}, got {self.ledger_network!r}."
            )
        if self.page_size <= 0:
            raise ConfigurationError("SYNC_PAGE_SIZE must be a positive integer.")
        if self.poll_delay_secs <= 0 or self.poll_max_delay_secs < self.poll_delay_secs:
            raise ConfigurationError("POLL_DELAY_SECS must be > 0 and <= POLL_MAX_DELAY_SECS.")
        if self.operation_timeout_secs <= 0 or self.bulk_timeout_secs <= 0:
            raise ConfigurationError("OPERATION_TIMEOUT_SECS and BULK_TIMEOUT_SECS must be > 0.")
        if self.ledger_timeout_seconds <= 0:
            raise ConfigurationError("LEDGER_TIMEOUT_SECONDS must be > 0.")

        db = self.database
        if not db.url:
            missing = [
                name
                for name, value in (
                    ("DATABASE_HOST", db.host),
                    ("DATABASE_USER", db.user),
                    ("DATABASE_PASSWORD", db.password),
                    ("DATABASE_NAME", db.db_name),
                )
                if not value
            ]
            if missing:
                raise ConfigurationError(f"Missing database settings: {', '.join(missing)}.")
        if db.ca_cert and not Path(db.ca_cert).is_file():
            raise ConfigurationError(f"DATABASE_CA_CERT not found: {db.ca_cert}")
        if db.max_connections < MIN_POOL_CONNECTIONS:
            raise ConfigurationError(
                f"DATABASE_MAX_CONNECTIONS must be >= {MIN_POOL_CONNECTIONS}, got {db.max_connections}."
            )
        if db.connection_timeout_secs <= 0:
            raise ConfigurationError("DATABASE_CONNECTION_TIMEOUT_SECS must be > 0.")
        if db.reconnect_attempts <= 0:
            raise ConfigurationError("DATABASE_RECONNECT_ATTEMPTS must be a positive integer.")

        if require_identity:
            if not self.ledger_identity_file:
                raise ConfigurationError("LEDGER_IDENTITY_FILE is required for this mode.")
            if not Path(self.ledger_identity_file).is_file():
                raise ConfigurationError(f"Identity file not found: {self.ledger_identity_file}")
        elif self.ledger_identity_file and not Path(self.ledger_identity_file).is_file():
            raise ConfigurationError(f"Identity file not found: {self.ledger_identity_file}")


def get_settings() -> Settings:
    return Settings(
        ledger_network=(_env("LEDGER_NETWORK", "local") or "local").strip().lower(),
        ledger_local_url=_env("LEDGER_LOCAL_URL", "http://localhost:8000"),
        ledger_mainnet_url=_env("LEDGER_MAINNET_URL", "https://ic0.app"),
        ledger_identity_file=_env("LEDGER_IDENTITY_FILE"),
        ledger_timeout_seconds=_float("LEDGER_TIMEOUT_SECONDS", "10"),
        page_size=_int("SYNC_PAGE_SIZE", "1000"),
        poll_delay_secs=_float("POLL_DELAY_SECS", "60"),
        poll_max_delay_secs=_float("POLL_MAX_DELAY_SECS", "300"),
        operation_timeout_secs=_float("OPERATION_TIMEOUT_SECS", "30"),
        bulk_timeout_secs=_float("BULK_TIMEOUT_SECS", "600"),
        snapshot_dir=_env("SNAPSHOT_DIR", "./backups"),
        log_level=(_env("LOG_LEVEL", "INFO") or "INFO").upper(),
        database=DatabaseSettings(
            host=_env("DATABASE_HOST"),
            port=_int("DATABASE_PORT", "5432"),
            user=_env("DATABASE_USER"),
            password=_env("DATABASE_PASSWORD"),
            db_name=_env("DATABASE_NAME"),
            ca_cert=_env("DATABASE_CA_CERT"),
            url=_env("DATABASE_URL"),
            max_connections=_int("DATABASE_MAX_CONNECTIONS", "16"),
            connection_timeout_secs=_float("DATABASE_CONNECTION_TIMEOUT_SECS", "5"),
            reconnect_attempts=_int("DATABASE_RECONNECT_ATTEMPTS", "3"),
            reconnect_backoff_secs=_float("DATABASE_RECONNECT_BACKOFF_SECS", "1"),
        ),
    )
