"""Store adapters implementing ``StatementExecutor``."""

from migrun.adapters.sqlalchemy_executor import (
    SATransaction,
    SQLAlchemyExecutor,
    create_migration_engine,
)

__all__ = ["SATransaction", "SQLAlchemyExecutor", "create_migration_engine"]
