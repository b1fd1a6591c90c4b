"""Runner settings.

Configuration is explicit, validated, and environment-driven. Every field can
be set through a ``MIGRUN_``-prefixed environment variable or a ``.env`` file.

Examples:
    >>> from migrun.core.settings import MigrationSettings
    >>> settings = MigrationSettings(database_url="postgresql+asyncpg://localhost/app")
    >>> settings.ledger_table
    'migrations'

There is deliberately no field for debug replay: ``Debug`` and
``NuclearDebug`` migrations are gated by :data:`migrun.core.build.DEBUG_BUILD`
only.

Tags:
    settings, configuration, pydantic, environment, migrun
"""

from __future__ import annotations

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class MigrationSettings(BaseSettings):
    """Settings for a migration run.

    Fields
    ──────
    database_url : SQLAlchemy async URL of the target store
    ledger_table : Name of the table recording applied migrations
    echo_sql     : Log every statement SQLAlchemy emits
    log_level    : Structlog log level
    json_logs    : JSON output (True), console (False), auto-detect (None)
    """

    model_config = SettingsConfigDict(
        env_prefix="MIGRUN_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # ── Store ────────────────────────────────────────────────────
    database_url: str = "sqlite+aiosqlite:///migrun.db"
    ledger_table: str = Field(
        default="migrations",
        min_length=1,
        description="Table recording applied migrations",
    )
    echo_sql: bool = False

    # ── Observability ────────────────────────────────────────────
    log_level: str = "INFO"
    json_logs: bool | None = None

    @field_validator("log_level")
    @classmethod
    def _known_level(cls, value: str) -> str:
        level = value.upper()
        if level not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
            raise ValueError(f"unknown log level: {value!r}")
        return level
