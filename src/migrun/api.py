"""One-call entry point wiring settings, logging, engine and runner."""

from __future__ import annotations

from collections.abc import Sequence

from migrun.adapters.sqlalchemy_executor import SQLAlchemyExecutor
from migrun.core.logging import configure_logging
from migrun.core.settings import MigrationSettings
from migrun.migrations.ledger import Ledger
from migrun.migrations.model import Migration
from migrun.migrations.runner import MigrationRunner, RunReport


async def run_migrations(
    migrations: Sequence[Migration],
    settings: MigrationSettings | None = None,
    *,
    setup_logging: bool = False,
) -> RunReport:
    """Apply ``migrations`` to the store named by ``settings``.

    Settings default to ``MigrationSettings()`` (environment and ``.env``).
    The engine is disposed before returning, whether the run succeeds or not.
    """
    settings = settings or MigrationSettings()
    if setup_logging:
        configure_logging(level=settings.log_level, json_format=settings.json_logs)

    executor = SQLAlchemyExecutor.from_url(settings.database_url, echo=settings.echo_sql)
    runner = MigrationRunner(executor, ledger=Ledger(settings.ledger_table))
    try:
        return await runner.run_all(migrations)
    finally:
        await executor.dispose()
