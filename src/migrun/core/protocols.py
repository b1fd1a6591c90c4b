"""
Protocol definitions for the store migrun runs against.

Manifesto:
    The runner depends on shape, not implementation. Anything that can open a
    transaction, execute an opaque statement in it, and commit or roll it back
    can host migrations: the SQLAlchemy adapter, a recording wrapper in tests,
    or a driver-specific executor written by the caller.

Architecture:
    ::

        StatementExecutor Protocol:
        ┌────────────────────────────────────────────────────────┐
        │ begin_transaction()     → Transaction                  │
        │ execute(tx, stmt, p)    → run one statement in tx      │
        │ commit(tx)              → commit and release tx        │
        │ rollback(tx)            → roll back and release tx     │
        │ fetch_all(stmt, p)      → read rows outside any tx     │
        │ has_table(name)         → does the table exist         │
        └────────────────────────────────────────────────────────┘

        Implementations:
        ┌────────────────────────────────────────────────────────┐
        │ SQLAlchemyExecutor → AsyncEngine (aiosqlite, asyncpg)  │
        └────────────────────────────────────────────────────────┘

Guardrails:
    ❌ DON'T: Retry inside execute()
    ✅ DO: Raise StatementError and let the run stop

    ❌ DON'T: Let rollback() raise over the caller's error
    ✅ DO: Treat rollback as best effort; the runner logs its failures

Tags:
    protocol, executor, transaction, async, database, migrun
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any, Protocol, TypeAlias, runtime_checkable

# Opaque step payload: raw SQL text or an equivalent SQLAlchemy executable.
Statement: TypeAlias = Any
Params: TypeAlias = Mapping[str, Any] | None


@runtime_checkable
class Transaction(Protocol):
    """Handle for one open transaction. Owned by exactly one migration."""

    @property
    def is_active(self) -> bool:
        """True until the transaction has been committed or rolled back."""
        ...


@runtime_checkable
class StatementExecutor(Protocol):
    """
    Async statement execution against the store.

    All methods are ASYNC. At most one statement is in flight at a time; the
    runner never issues concurrent calls.
    """

    async def begin_transaction(self) -> Transaction:
        """Open a transaction. Raises ``StoreConnectionError`` if the store is unreachable."""
        ...

    async def execute(self, tx: Transaction, statement: Statement, params: Params = None) -> None:
        """Execute one statement inside ``tx``. Raises ``StatementError``."""
        ...

    async def commit(self, tx: Transaction) -> None:
        """Commit ``tx`` and release it. Raises ``StatementError``."""
        ...

    async def rollback(self, tx: Transaction) -> None:
        """Roll back ``tx`` and release it. Best effort."""
        ...

    async def fetch_all(self, statement: Statement, params: Params = None) -> list[tuple[Any, ...]]:
        """Run a read query outside any migration transaction."""
        ...

    async def has_table(self, table_name: str) -> bool:
        """Return whether ``table_name`` exists in the store."""
        ...


__all__ = ["Params", "Statement", "StatementExecutor", "Transaction"]
