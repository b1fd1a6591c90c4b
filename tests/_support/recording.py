"""
Recording executor and migration builders.

Usage in test code::

    from tests._support.recording import RecordingExecutor, table_migration

    executor.fail_on.add("t_b")
    with pytest.raises(StatementError):
        await runner.run_all([table_migration("a"), table_migration("b")])
"""

from __future__ import annotations

import asyncio
from datetime import UTC, datetime, timedelta
from typing import Any

from migrun.adapters.sqlalchemy_executor import SATransaction, SQLAlchemyExecutor
from migrun.core.errors import StatementError
from migrun.migrations.model import Migration


class RecordingExecutor:
    """StatementExecutor wrapper that records what reached the store."""

    def __init__(self, inner: SQLAlchemyExecutor) -> None:
        self.inner = inner
        self.statements: list[str] = []
        self.fail_on: set[str] = set()
        self.block_on: str | None = None
        self.blocked = asyncio.Event()
        self.fail_rollback = False
        self.fail_commit = False
        self.begun = 0
        self.committed = 0
        self.rolled_back = 0

    async def begin_transaction(self) -> SATransaction:
        tx = await self.inner.begin_transaction()
        self.begun += 1
        return tx

    async def execute(self, tx: SATransaction, statement: Any, params: Any = None) -> None:
        text = self.inner.render(statement)
        for marker in self.fail_on:
            if marker in text:
                raise StatementError(f"injected failure on {marker!r}", statement=text)
        if self.block_on is not None and self.block_on in text:
            self.blocked.set()
            await asyncio.sleep(3600)
        await self.inner.execute(tx, statement, params)
        self.statements.append(text)

    async def commit(self, tx: SATransaction) -> None:
        if self.fail_commit:
            # Release like a failed driver commit: nothing persisted, tx inactive
            await self.inner.rollback(tx)
            raise StatementError("injected commit failure", statement="COMMIT")
        await self.inner.commit(tx)
        self.committed += 1

    async def rollback(self, tx: SATransaction) -> None:
        await self.inner.rollback(tx)
        self.rolled_back += 1
        if self.fail_rollback:
            raise StatementError("injected rollback failure", statement="ROLLBACK")

    async def fetch_all(self, statement: Any, params: Any = None) -> list[tuple[Any, ...]]:
        return await self.inner.fetch_all(statement, params)

    async def has_table(self, table_name: str) -> bool:
        return await self.inner.has_table(table_name)

    def user_statements(self) -> list[str]:
        """Executed statements excluding ledger bookkeeping."""
        return [s for s in self.statements if "migrations" not in s]


def table_migration(name: str) -> Migration:
    """Migration creating table ``t_<name>``; its down drops it."""
    return Migration(name).with_steps(
        (f"CREATE TABLE t_{name} (id INTEGER PRIMARY KEY)", f"DROP TABLE t_{name}"),
    )


class FixedClock:
    """Deterministic ``executed_at`` source: one second per call."""

    def __init__(self) -> None:
        self.current = datetime(2025, 1, 1, tzinfo=UTC)

    def __call__(self) -> datetime:
        self.current += timedelta(seconds=1)
        return self.current
