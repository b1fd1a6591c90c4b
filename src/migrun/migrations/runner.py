"""Migration runner.

Reads the ledger, asks the reconciler for a plan, and executes it one
migration at a time, each migration inside its own transaction.

Manifesto:
    A migration either lands completely or not at all. A failure at step N
    rolls back steps 1..N together and leaves the migration unrecorded;
    every migration committed before it stays committed, so the operator can
    fix the broken migration and simply run again.

Architecture:
    ::

        run_all(migrations)
          │
          ├── declare()        prepend ledger bootstrap, validate names
          ├── ledger.applied_names()   (read once)
          ├── build_plan()     pure reconciliation
          └── for step in plan:
                begin ─► steps (up in order / down reversed)
                      ─► ledger.record / ledger.erase
                      ─► commit
                on failure: rollback, raise StatementError, stop

Example::

    from migrun import Migration, MigrationRunner, SQLAlchemyExecutor

    executor = SQLAlchemyExecutor.from_url("sqlite+aiosqlite:///app.db")
    runner = MigrationRunner(executor)
    report = await runner.run_all([
        Migration("add_users").with_steps(
            ("CREATE TABLE users (id INTEGER PRIMARY KEY)", "DROP TABLE users"),
        ),
    ])
    print(report.executed)  # ['migrations.up', 'add_users.up']

Tags:
    migrations, runner, transactions, ledger, migrun
"""

from __future__ import annotations

import asyncio
from collections.abc import AsyncIterator, Awaitable, Callable, Sequence
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from datetime import datetime
from typing import TypeVar

from migrun.core import build
from migrun.core.errors import MigrationError, categorize_error
from migrun.core.logging import LogContext, get_logger
from migrun.core.protocols import StatementExecutor, Transaction
from migrun.core.timestamps import generate_run_id, utc_now
from migrun.migrations.ledger import BOOTSTRAP_NAME, Ledger, LedgerEntry
from migrun.migrations.model import Direction, Migration, MigrationState
from migrun.migrations.reconciler import (
    Plan,
    build_plan,
    build_rollback_plan,
    find_orphans,
    validate_declared,
)

logger = get_logger(__name__)

T = TypeVar("T")


@dataclass
class RunReport:
    """Outcome of a successful run. Failed runs raise instead."""

    run_id: str
    executed: list[str] = field(default_factory=list)
    applied: list[str] = field(default_factory=list)
    reverted: list[str] = field(default_factory=list)
    orphaned: list[str] = field(default_factory=list)

    @property
    def is_noop(self) -> bool:
        return not self.executed


@dataclass
class MigrationStatus:
    """Ledger contents compared with a declared list."""

    applied: list[LedgerEntry] = field(default_factory=list)
    pending: list[str] = field(default_factory=list)
    orphaned: list[str] = field(default_factory=list)

    @property
    def up_to_date(self) -> bool:
        return not self.pending


async def _resolve(awaitable: Awaitable[T]) -> T:
    """Await ``awaitable`` to completion even if the caller is cancelled.

    Cancellation is re-raised once the awaitable has finished.
    """
    task = asyncio.ensure_future(awaitable)
    try:
        return await asyncio.shield(task)
    except asyncio.CancelledError:
        await asyncio.wait({task})
        if not task.cancelled() and task.exception() is not None:
            logger.warning("transaction.resolve_failed", error=str(task.exception()))
        raise


class MigrationRunner:
    """Applies declared migrations against a store.

    Parameters
    ----------
    executor
        Anything satisfying ``migrun.core.protocols.StatementExecutor``.
    ledger
        Ledger table wrapper. Defaults to ``Ledger()`` (table ``migrations``).
    clock
        Source of ``executed_at`` timestamps. Defaults to ``utc_now``.
    """

    def __init__(
        self,
        executor: StatementExecutor,
        *,
        ledger: Ledger | None = None,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self._executor = executor
        self._ledger = ledger or Ledger()
        self._clock = clock

    @property
    def ledger(self) -> Ledger:
        return self._ledger

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def declare(self, migrations: Sequence[Migration]) -> list[Migration]:
        """Return the full declared list, ledger bootstrap first, validated.

        No store interaction happens here. A user migration reusing the
        bootstrap name is reported as a duplicate (``ConfigurationError``).
        """
        declared = list(migrations)
        bootstrap = self._ledger.bootstrap_migration()
        if not declared or declared[0] is not bootstrap:
            declared.insert(0, bootstrap)
        validate_declared(declared)
        return declared

    async def plan(self, migrations: Sequence[Migration]) -> Plan:
        """Build the plan ``run_all`` would execute, without executing it."""
        declared = self.declare(migrations)
        applied = await self._ledger.applied_names(self._executor)
        return build_plan(declared, applied, debug_build=build.DEBUG_BUILD)

    async def run_all(self, migrations: Sequence[Migration]) -> RunReport:
        """Bring the store up to date with ``migrations``.

        Raises:
            ConfigurationError: the declared list is invalid (nothing executed)
            StoreConnectionError: the store is unreachable
            StatementError: a step failed; earlier migrations stay committed
        """
        run_id = generate_run_id()
        async with LogContext(run_id=run_id):
            plan = await self.plan(migrations)
            logger.info(
                "plan.built",
                steps=plan.describe(),
                debug_build=build.DEBUG_BUILD,
            )
            report = await self._execute(plan, run_id)
            logger.info(
                "run.completed",
                applied=report.applied,
                reverted=report.reverted,
                noop=report.is_noop,
            )
            return report

    async def rollback(self, migrations: Sequence[Migration], steps: int = 1) -> RunReport:
        """Revert the ``steps`` most recently declared applied migrations.

        Uses declared order, never ledger timestamps. The ledger bootstrap is
        never reverted.
        """
        run_id = generate_run_id()
        async with LogContext(run_id=run_id):
            declared = self.declare(migrations)
            applied = await self._ledger.applied_names(self._executor)
            plan = build_rollback_plan(declared, applied, steps)
            logger.info("plan.built", steps=plan.describe(), rollback=True)
            return await self._execute(plan, run_id)

    async def status(self, migrations: Sequence[Migration]) -> MigrationStatus:
        declared = self.declare(migrations)
        entries = await self._ledger.entries(self._executor)
        recorded = {entry.name for entry in entries}
        return MigrationStatus(
            applied=entries,
            pending=[m.name for m in declared if m.name not in recorded],
            orphaned=list(find_orphans(declared, recorded)),
        )

    async def ensure_ledger(self) -> bool:
        """Create the ledger if needed. Returns ``True`` when it was created."""
        if BOOTSTRAP_NAME in await self._ledger.applied_names(self._executor):
            return False
        await self._run_migration(self._ledger.bootstrap_migration(), Direction.UP)
        return True

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    async def _execute(self, plan: Plan, run_id: str) -> RunReport:
        report = RunReport(run_id=run_id, orphaned=list(plan.orphaned))
        for step in plan:
            try:
                await self._run_migration(step.migration, step.direction)
            except MigrationError as exc:
                raise exc.with_context(run_id=run_id)

            report.executed.append(str(step))
            if step.direction is Direction.UP:
                report.applied.append(step.migration.name)
            else:
                report.reverted.append(step.migration.name)
        return report

    async def _run_migration(self, migration: Migration, direction: Direction) -> None:
        """Execute one migration's steps and ledger update as one transaction."""
        if direction is Direction.UP:
            previous = MigrationState.PENDING
            active, done = MigrationState.APPLYING, MigrationState.APPLIED
        else:
            previous = MigrationState.APPLIED
            active, done = MigrationState.REVERTING, MigrationState.UNAPPLIED

        log = logger.bind(migration=migration.name, direction=direction.value)
        log.info(f"migration.{active.value}", state=active.value, previous=previous.value)

        async with self._transaction(migration, direction) as tx:
            for index, statement in enumerate(migration.steps(direction)):
                try:
                    await self._executor.execute(tx, statement)
                except MigrationError as exc:
                    raise exc.with_context(
                        migration=migration.name,
                        direction=direction.value,
                        step_index=index,
                    )

            try:
                if direction is Direction.UP:
                    await self._ledger.record(self._executor, tx, migration.name, self._clock())
                else:
                    await self._ledger.erase(self._executor, tx, migration.name)
            except MigrationError as exc:
                raise exc.with_context(
                    migration=migration.name,
                    direction=direction.value,
                    phase="ledger",
                )

        log.info(f"migration.{done.value}", state=done.value)

    @asynccontextmanager
    async def _transaction(
        self, migration: Migration, direction: Direction
    ) -> AsyncIterator[Transaction]:
        """Scope one migration's transaction; released on every exit path."""
        try:
            tx = await self._executor.begin_transaction()
        except MigrationError as exc:
            raise exc.with_context(migration=migration.name, direction=direction.value)

        try:
            yield tx
        except BaseException as exc:
            await self._rollback_quietly(tx, migration)
            logger.error(
                "migration.failed",
                migration=migration.name,
                direction=direction.value,
                state=MigrationState.FAILED.value,
                **(
                    exc.to_dict()
                    if isinstance(exc, MigrationError)
                    else {"error": repr(exc), "category": categorize_error(exc).value}
                ),
            )
            raise

        try:
            await _resolve(self._executor.commit(tx))
        except MigrationError as exc:
            await self._rollback_quietly(tx, migration)
            exc.with_context(migration=migration.name, direction=direction.value, phase="commit")
            logger.error(
                "migration.failed",
                state=MigrationState.FAILED.value,
                **exc.to_dict(),
            )
            raise

    async def _rollback_quietly(self, tx: Transaction, migration: Migration) -> None:
        """Best-effort rollback; never masks the error already in flight."""
        if not tx.is_active:
            return
        try:
            await _resolve(self._executor.rollback(tx))
        except Exception as exc:
            logger.warning(
                "migration.rollback_failed",
                migration=migration.name,
                error=str(exc),
            )


__all__ = ["MigrationRunner", "MigrationStatus", "RunReport"]
