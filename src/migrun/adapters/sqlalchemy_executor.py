"""SQLAlchemy engine factory and ``StatementExecutor`` adapter.

This module provides:

* ``create_migration_engine`` -- Create an async SA engine from a URL, with
  transactional DDL enabled for SQLite.
* ``SQLAlchemyExecutor``      -- Wraps an ``AsyncEngine`` to satisfy
  ``migrun.core.protocols.StatementExecutor``.

Raw string statements are handed to the driver verbatim
(``exec_driver_sql``); SQLAlchemy constructs are compiled for the engine's
dialect. Driver failures are translated into ``StoreConnectionError`` (could
not reach the store) and ``StatementError`` (a statement or commit failed).

Tags:
    migrun, sqlalchemy, asyncio, engine, executor, adapter
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from sqlalchemy import event, inspect
from sqlalchemy.engine import Connection as SyncConnection
from sqlalchemy.exc import DBAPIError, SQLAlchemyError
from sqlalchemy.ext.asyncio import (
    AsyncConnection,
    AsyncEngine,
    AsyncTransaction,
    create_async_engine,
)

from migrun.core.errors import StatementError, StoreConnectionError
from migrun.core.logging import get_logger
from migrun.core.protocols import Params, Statement

logger = get_logger(__name__)


def create_migration_engine(
    url: str = "sqlite+aiosqlite:///migrun.db",
    *,
    echo: bool = False,
    **kwargs: Any,
) -> AsyncEngine:
    """Create an async SQLAlchemy engine suitable for running migrations.

    Parameters
    ----------
    url:
        Async database URL (``sqlite+aiosqlite:///…``,
        ``postgresql+asyncpg://…``).
    echo:
        If ``True``, log all SQL.
    **kwargs:
        Extra arguments forwarded to ``create_async_engine``.
    """
    engine = create_async_engine(url, echo=echo, **kwargs)

    if engine.dialect.name == "sqlite":
        # The sqlite3 driver commits DDL outside of any transaction it
        # manages. Take over BEGIN so CREATE/DROP roll back with the rest
        # of the migration.
        @event.listens_for(engine.sync_engine, "connect")
        def _disable_driver_transactions(dbapi_connection: Any, _rec: Any) -> None:
            dbapi_connection.isolation_level = None

        @event.listens_for(engine.sync_engine, "begin")
        def _emit_begin(conn: SyncConnection) -> None:
            conn.exec_driver_sql("BEGIN")

    return engine


@dataclass
class SATransaction:
    """One open transaction on a dedicated connection."""

    connection: AsyncConnection
    transaction: AsyncTransaction

    @property
    def is_active(self) -> bool:
        return not self.connection.closed and self.transaction.is_active


def _describe(exc: SQLAlchemyError) -> str:
    if isinstance(exc, DBAPIError) and exc.orig is not None:
        return str(exc.orig)
    return str(exc)


class SQLAlchemyExecutor:
    """Adapter that makes an ``AsyncEngine`` look like a ``StatementExecutor``.

    Every transaction gets its own pooled connection, released on commit or
    rollback.
    """

    def __init__(self, engine: AsyncEngine) -> None:
        self._engine = engine

    @classmethod
    def from_url(cls, url: str, *, echo: bool = False, **kwargs: Any) -> SQLAlchemyExecutor:
        return cls(create_migration_engine(url, echo=echo, **kwargs))

    @property
    def engine(self) -> AsyncEngine:
        return self._engine

    async def dispose(self) -> None:
        await self._engine.dispose()

    # --- transactions ---

    async def begin_transaction(self) -> SATransaction:
        connection = await self._connect()
        try:
            transaction = await connection.begin()
        except SQLAlchemyError as exc:
            await connection.close()
            raise StoreConnectionError(
                f"Cannot begin transaction: {_describe(exc)}", cause=exc
            ) from exc
        return SATransaction(connection=connection, transaction=transaction)

    async def execute(self, tx: SATransaction, statement: Statement, params: Params = None) -> None:
        try:
            await self._run(tx.connection, statement, params)
        except SQLAlchemyError as exc:
            raise StatementError(
                _describe(exc), statement=self.render(statement), cause=exc
            ) from exc

    async def commit(self, tx: SATransaction) -> None:
        try:
            await tx.transaction.commit()
        except SQLAlchemyError as exc:
            raise StatementError(
                f"Commit failed: {_describe(exc)}", statement="COMMIT", cause=exc
            ) from exc
        finally:
            await tx.connection.close()

    async def rollback(self, tx: SATransaction) -> None:
        try:
            if tx.transaction.is_active:
                await tx.transaction.rollback()
        finally:
            await tx.connection.close()

    # --- reads ---

    async def fetch_all(self, statement: Statement, params: Params = None) -> list[tuple[Any, ...]]:
        connection = await self._connect()
        try:
            result = await self._run(connection, statement, params)
            return [tuple(row) for row in result.fetchall()]
        except SQLAlchemyError as exc:
            raise StatementError(
                _describe(exc), statement=self.render(statement), cause=exc
            ) from exc
        finally:
            await connection.close()

    async def has_table(self, table_name: str) -> bool:
        connection = await self._connect()
        try:
            return await connection.run_sync(
                lambda sync_conn: inspect(sync_conn).has_table(table_name)
            )
        except SQLAlchemyError as exc:
            raise StatementError(
                f"Cannot inspect table {table_name!r}: {_describe(exc)}", cause=exc
            ) from exc
        finally:
            await connection.close()

    # --- helpers ---

    def render(self, statement: Statement) -> str:
        """Statement text for error messages and logs."""
        if isinstance(statement, str):
            return statement.strip()
        return str(statement.compile(dialect=self._engine.dialect)).strip()

    async def _connect(self) -> AsyncConnection:
        try:
            return await self._engine.connect()
        except (SQLAlchemyError, OSError) as exc:
            url = self._engine.url.render_as_string(hide_password=True)
            logger.error("store.unreachable", url=url, error=str(exc))
            raise StoreConnectionError(f"Cannot connect to {url}: {exc}", cause=exc) from exc

    @staticmethod
    async def _run(connection: AsyncConnection, statement: Statement, params: Params) -> Any:
        if isinstance(statement, str):
            if params:
                return await connection.exec_driver_sql(statement, dict(params))
            return await connection.exec_driver_sql(statement)
        return await connection.execute(statement, dict(params) if params else None)


__all__ = ["SATransaction", "SQLAlchemyExecutor", "create_migration_engine"]
