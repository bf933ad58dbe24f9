from __future__ import annotations

import pytest

from ledger_mirror.core.config import get_settings
from ledger_mirror.domain.exceptions import ConfigurationError


ENV_VARS = (
    "LEDGER_NETWORK",
    "LEDGER_LOCAL_URL",
    "LEDGER_MAINNET_URL",
    "LEDGER_IDENTITY_FILE",
    "SYNC_PAGE_SIZE",
    "POLL_DELAY_SECS",
    "POLL_MAX_DELAY_SECS",
    "OPERATION_TIMEOUT_SECS",
    "DATABASE_HOST",
    "DATABASE_USER",
    "DATABASE_PASSWORD",
    "DATABASE_NAME",
    "DATABASE_URL",
    "DATABASE_CA_CERT",
    "DATABASE_MAX_CONNECTIONS",
)


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)


def _with_database(monkeypatch):
    monkeypatch.setenv("DATABASE_HOST", "db.internal")
    monkeypatch.setenv("DATABASE_USER", "mirror")
    monkeypatch.setenv("DATABASE_PASSWORD", "secret")
    monkeypatch.setenv("DATABASE_NAME", "kong")


def test_defaults():
    settings = get_settings()

    assert settings.ledger_network == "local"
    assert settings.ledger_url == "http://localhost:8000"
    assert settings.page_size == 1000
    assert settings.poll_delay_secs == 60
    assert settings.poll_max_delay_secs == 300
    assert settings.operation_timeout_secs == 30
    assert settings.snapshot_dir == "./backups"
    assert settings.database.port == 5432
    assert settings.database.max_connections == 16
    assert settings.database.connection_timeout_secs == 5


def test_mainnet_switch_selects_mainnet_url():
    settings = get_settings().with_network("mainnet")
    assert settings.ledger_url == "https://ic0.app"


def test_sqlalchemy_url_is_built_from_parts(monkeypatch):
    _with_database(monkeypatch)
    url = get_settings().database.sqlalchemy_url()

    assert url.drivername == "postgresql+asyncpg"
    assert url.host == "db.internal"
    assert url.database == "kong"


def test_validate_reports_missing_database_settings():
    with pytest.raises(ConfigurationError, match="DATABASE_HOST"):
        get_settings().validate()


def test_validate_accepts_url_override(monkeypatch):
    monkeypatch.setenv("DATABASE_URL", "sqlite+aiosqlite:///mirror.db")
    get_settings().validate()


def test_validate_rejects_unknown_network(monkeypatch):
    _with_database(monkeypatch)
    monkeypatch.setenv("LEDGER_NETWORK", "testnet")
    with pytest.raises(ConfigurationError, match="LEDGER_NETWORK"):
        get_settings().validate()


def test_validate_rejects_small_pool(monkeypatch):
    _with_database(monkeypatch)
    monkeypatch.setenv("DATABASE_MAX_CONNECTIONS", "4")
    with pytest.raises(ConfigurationError, match=">= 5"):
        get_settings().validate()


def test_validate_requires_identity_file_when_asked(monkeypatch, tmp_path):
    _with_database(monkeypatch)
    settings = get_settings()
    with pytest.raises(ConfigurationError, match="LEDGER_IDENTITY_FILE"):
        settings.validate(require_identity=True)

    identity = tmp_path / "identity.pem"
    identity.write_text("credential\n", encoding="utf-8")
    monkeypatch.setenv("LEDGER_IDENTITY_FILE", str(identity))
    get_settings().validate(require_identity=True)


def test_invalid_integer_is_a_configuration_error(monkeypatch):
    monkeypatch.setenv("SYNC_PAGE_SIZE", "lots")
    with pytest.raises(ConfigurationError, match="SYNC_PAGE_SIZE"):
        get_settings()
