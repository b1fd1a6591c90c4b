"""Schema migration engine for migrun.

Manifesto:
    Database schemas must evolve safely across deployments. Each declared
    migration runs exactly once, inside its own transaction, and is recorded
    in the ledger table only when all of its steps committed.

Modules
-------
model       Migration records, ReplayMode, Direction
ledger      Ledger table access and the bootstrap migration
reconciler  build_plan() comparing declared migrations with the ledger
runner      MigrationRunner with run_all() / plan() / status() / rollback()

Tags:
    migrun, migrations, schema, database, ledger
"""

from migrun.migrations.ledger import BOOTSTRAP_NAME, Ledger, LedgerEntry
from migrun.migrations.model import Direction, Migration, MigrationState, ReplayMode
from migrun.migrations.reconciler import Plan, PlanStep, build_plan, validate_declared
from migrun.migrations.runner import MigrationRunner, MigrationStatus, RunReport

__all__ = [
    "BOOTSTRAP_NAME",
    "Direction",
    "Ledger",
    "LedgerEntry",
    "Migration",
    "MigrationRunner",
    "MigrationState",
    "MigrationStatus",
    "Plan",
    "PlanStep",
    "ReplayMode",
    "RunReport",
    "build_plan",
    "validate_declared",
]
