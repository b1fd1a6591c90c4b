"""Tests for MigrationSettings."""

from __future__ import annotations

import pytest
from pydantic import ValidationError

from migrun.core.settings import MigrationSettings


@pytest.fixture(autouse=True)
def clean_env(monkeypatch: pytest.MonkeyPatch, tmp_path) -> None:
    """Isolate from the developer's environment and any ``.env`` file."""
    monkeypatch.chdir(tmp_path)
    for key in ("DATABASE_URL", "LEDGER_TABLE", "ECHO_SQL", "LOG_LEVEL", "JSON_LOGS"):
        monkeypatch.delenv(f"MIGRUN_{key}", raising=False)


class TestMigrationSettings:
    def test_defaults(self):
        settings = MigrationSettings()
        assert settings.database_url == "sqlite+aiosqlite:///migrun.db"
        assert settings.ledger_table == "migrations"
        assert settings.echo_sql is False
        assert settings.log_level == "INFO"
        assert settings.json_logs is None

    def test_environment_prefix(self, monkeypatch):
        monkeypatch.setenv("MIGRUN_DATABASE_URL", "postgresql+asyncpg://localhost/app")
        monkeypatch.setenv("MIGRUN_ECHO_SQL", "true")
        monkeypatch.setenv("MIGRUN_JSON_LOGS", "false")

        settings = MigrationSettings()

        assert settings.database_url == "postgresql+asyncpg://localhost/app"
        assert settings.echo_sql is True
        assert settings.json_logs is False

    def test_dotenv_file(self, tmp_path):
        (tmp_path / ".env").write_text("MIGRUN_LEDGER_TABLE=schema_history\n", encoding="utf-8")
        assert MigrationSettings().ledger_table == "schema_history"

    def test_unprefixed_variables_ignored(self, monkeypatch):
        monkeypatch.setenv("DATABASE_URL", "postgresql+asyncpg://elsewhere/db")
        assert MigrationSettings().database_url == "sqlite+aiosqlite:///migrun.db"

    def test_log_level_normalized(self):
        assert MigrationSettings(log_level="debug").log_level == "DEBUG"

    def test_unknown_log_level(self):
        with pytest.raises(ValidationError):
            MigrationSettings(log_level="verbose")

    def test_empty_ledger_table(self):
        with pytest.raises(ValidationError):
            MigrationSettings(ledger_table="")
