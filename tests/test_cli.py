from __future__ import annotations

import pytest
from typer.testing import CliRunner

from ledger_mirror.main import app


runner = CliRunner()


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in ("DATABASE_HOST", "DATABASE_USER", "DATABASE_PASSWORD", "DATABASE_NAME", "DATABASE_URL"):
        monkeypatch.delenv(name, raising=False)
    monkeypatch.delenv("LEDGER_IDENTITY_FILE", raising=False)
    monkeypatch.delenv("LEDGER_NETWORK", raising=False)


def test_missing_database_settings_exit_with_config_code():
    result = runner.invoke(app, ["restore"])

    assert result.exit_code == 2
    assert "DATABASE_HOST" in result.output


def test_backfill_requires_identity_file(monkeypatch, tmp_path):
    monkeypatch.setenv("DATABASE_URL", f"sqlite+aiosqlite:///{tmp_path / 'mirror.db'}")

    result = runner.invoke(app, ["backfill", "--mainnet"])

    assert result.exit_code == 2
    assert "LEDGER_IDENTITY_FILE" in result.output


def test_init_db_creates_schema(monkeypatch, tmp_path):
    database = tmp_path / "mirror.db"
    monkeypatch.setenv("DATABASE_URL", f"sqlite+aiosqlite:///{database}")

    result = runner.invoke(app, ["init-db"])

    assert result.exit_code == 0, result.output
    assert database.exists()


def test_unreachable_store_exits_with_failure_code(monkeypatch, tmp_path):
    monkeypatch.setenv("DATABASE_URL", f"sqlite+aiosqlite:///{tmp_path / 'missing' / 'mirror.db'}")

    result = runner.invoke(app, ["init-db"])

    assert result.exit_code == 1
    assert isinstance(result.exception, SystemExit)
