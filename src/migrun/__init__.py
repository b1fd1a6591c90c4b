"""migrun - reversible schema migrations with a transactional ledger.

Declare migrations in order, hand them to ``MigrationRunner.run_all()`` and
each one is applied exactly once, inside its own transaction, and recorded in
the ``migrations`` ledger table.

Modules
-------
core.errors        MigrationError hierarchy
core.protocols     StatementExecutor / Transaction protocols
core.build         DEBUG_BUILD flag gating development replay
migrations.model   Migration, ReplayMode, Direction
migrations.ledger  Ledger table and bootstrap migration
migrations.reconciler  build_plan() / Plan
migrations.runner  MigrationRunner
adapters.sqlalchemy_executor  SQLAlchemyExecutor on an AsyncEngine
"""

from migrun.adapters.sqlalchemy_executor import SQLAlchemyExecutor, create_migration_engine
from migrun.api import run_migrations
from migrun.core.build import DEBUG_BUILD
from migrun.core.errors import (
    ConfigurationError,
    MigrationError,
    StatementError,
    StoreConnectionError,
)
from migrun.core.settings import MigrationSettings
from migrun.migrations import (
    BOOTSTRAP_NAME,
    Direction,
    Ledger,
    LedgerEntry,
    Migration,
    MigrationRunner,
    MigrationStatus,
    Plan,
    PlanStep,
    ReplayMode,
    RunReport,
)

__version__ = "0.1.0"

__all__ = [
    "BOOTSTRAP_NAME",
    "ConfigurationError",
    "DEBUG_BUILD",
    "Direction",
    "Ledger",
    "LedgerEntry",
    "Migration",
    "MigrationError",
    "MigrationRunner",
    "MigrationSettings",
    "MigrationStatus",
    "Plan",
    "PlanStep",
    "ReplayMode",
    "RunReport",
    "SQLAlchemyExecutor",
    "StatementError",
    "StoreConnectionError",
    "create_migration_engine",
    "run_migrations",
]
