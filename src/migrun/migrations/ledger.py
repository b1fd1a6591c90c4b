"""Execution ledger: the durable record of applied migrations.

The ledger is an ordinary table managed through the same executor as every
migration step. Its own creation is migration zero, ``BOOTSTRAP_NAME``, so it
is applied, recorded and committed through the runner's normal transactional
path like any other migration.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime

from sqlalchemy import Column, DateTime, MetaData, Table, Text, delete, insert, select
from sqlalchemy.schema import CreateTable, DropTable

from migrun.core.protocols import StatementExecutor, Transaction
from migrun.migrations.model import Migration

BOOTSTRAP_NAME = "migrations"


@dataclass(frozen=True)
class LedgerEntry:
    """Record of a single applied migration."""

    name: str
    executed_at: datetime


class Ledger:
    """Reads and writes the ledger table.

    Parameters
    ----------
    table_name
        Name of the ledger table. Defaults to ``migrations``.

    Example::

        ledger = Ledger()
        applied = await ledger.applied_names(executor)
    """

    def __init__(self, table_name: str = "migrations") -> None:
        self.metadata = MetaData()
        self.table = Table(
            table_name,
            self.metadata,
            Column("name", Text, primary_key=True),
            Column("executed_at", DateTime(timezone=True), nullable=False),
        )
        self._bootstrap = Migration(
            BOOTSTRAP_NAME,
            up=(CreateTable(self.table, if_not_exists=True),),
            down=(DropTable(self.table, if_exists=True),),
        )

    @property
    def table_name(self) -> str:
        return self.table.name

    def bootstrap_migration(self) -> Migration:
        """Migration zero: creates the ledger table if it is absent.

        Always the same record for a given ledger, so the runner can tell it
        apart from a user migration that merely reuses its name.
        """
        return self._bootstrap

    # ------------------------------------------------------------------
    # Reads (outside migration transactions)
    # ------------------------------------------------------------------

    async def exists(self, executor: StatementExecutor) -> bool:
        return await executor.has_table(self.table.name)

    async def applied_names(self, executor: StatementExecutor) -> set[str]:
        """Names of every recorded migration. Empty on a fresh store."""
        if not await self.exists(executor):
            return set()
        rows = await executor.fetch_all(select(self.table.c.name))
        return {row[0] for row in rows}

    async def has_run(self, executor: StatementExecutor, name: str) -> bool:
        if not await self.exists(executor):
            return False
        rows = await executor.fetch_all(
            select(self.table.c.name).where(self.table.c.name == name)
        )
        return bool(rows)

    async def entries(self, executor: StatementExecutor) -> list[LedgerEntry]:
        """Recorded migrations ordered by ``executed_at``, then name."""
        if not await self.exists(executor):
            return []
        rows = await executor.fetch_all(
            select(self.table.c.name, self.table.c.executed_at).order_by(
                self.table.c.executed_at, self.table.c.name
            )
        )
        return [LedgerEntry(name=row[0], executed_at=row[1]) for row in rows]

    # ------------------------------------------------------------------
    # Writes (inside the owning migration's transaction)
    # ------------------------------------------------------------------

    async def record(
        self,
        executor: StatementExecutor,
        tx: Transaction,
        name: str,
        executed_at: datetime,
    ) -> None:
        await executor.execute(
            tx, insert(self.table).values(name=name, executed_at=executed_at)
        )

    async def erase(self, executor: StatementExecutor, tx: Transaction, name: str) -> None:
        await executor.execute(tx, delete(self.table).where(self.table.c.name == name))
