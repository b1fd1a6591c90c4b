"""Reconciler: compares the declared migrations with the ledger and plans a run.

Declared order is the only ordering authority. Ledger timestamps are never
consulted, and every ``DOWN`` block unwinds in the exact reverse of the order
the matching ``UP`` steps would run.

Planning is pure: it takes the declared list and the set of recorded names
and touches no store.
"""

from __future__ import annotations

from collections import Counter
from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field

from migrun.core.errors import ConfigurationError
from migrun.core.logging import get_logger
from migrun.migrations.model import Direction, Migration, ReplayMode

logger = get_logger(__name__)


@dataclass(frozen=True)
class PlanStep:
    migration: Migration
    direction: Direction

    def __str__(self) -> str:
        return f"{self.migration.name}.{self.direction.value}"


@dataclass(frozen=True)
class Plan:
    """Ordered operations for a single run. Never persisted."""

    steps: tuple[PlanStep, ...] = ()
    orphaned: tuple[str, ...] = field(default_factory=tuple)

    @property
    def is_empty(self) -> bool:
        return not self.steps

    def describe(self) -> list[str]:
        """``["name.up", "name.down", ...]`` in execution order."""
        return [str(step) for step in self.steps]

    def __len__(self) -> int:
        return len(self.steps)

    def __iter__(self):
        return iter(self.steps)


def validate_declared(declared: Sequence[Migration]) -> None:
    """Reject an invalid declared list before any store interaction.

    ``declared[0]`` is the ledger bootstrap migration.

    Raises:
        ConfigurationError: duplicate or empty names, or a bootstrap
            migration with a replay mode other than ``NORMAL``.
    """
    empty = [m for m in declared if not m.name]
    if empty:
        raise ConfigurationError("Migration names must not be empty")

    counts = Counter(m.name for m in declared)
    duplicates = sorted(name for name, count in counts.items() if count > 1)
    if duplicates:
        raise ConfigurationError(
            f"Duplicate migration names: {', '.join(duplicates)}",
            names=duplicates,
        )

    if declared and declared[0].mode is not ReplayMode.NORMAL:
        raise ConfigurationError(
            f"Bootstrap migration {declared[0].name!r} must use normal replay mode",
            names=[declared[0].name],
        )


def find_orphans(declared: Iterable[Migration], applied: Iterable[str]) -> tuple[str, ...]:
    """Recorded names that no declared migration carries, sorted."""
    declared_names = {m.name for m in declared}
    return tuple(sorted(set(applied) - declared_names))


def build_plan(
    declared: Sequence[Migration],
    applied: set[str],
    *,
    debug_build: bool,
) -> Plan:
    """Compute the plan for one run.

    Args:
        declared: Declared migrations, bootstrap first.
        applied: Names currently recorded in the ledger.
        debug_build: Whether ``DEBUG`` / ``NUCLEAR_DEBUG`` replay is active.
    """
    if not declared:
        return Plan()

    bootstrap, user = declared[0], list(declared[1:])
    steps: list[PlanStep] = []

    if bootstrap.name not in applied:
        steps.append(PlanStep(bootstrap, Direction.UP))

    nuclear = debug_build and any(m.mode is ReplayMode.NUCLEAR_DEBUG for m in user)

    if nuclear:
        for migration in reversed(user):
            if migration.name in applied:
                steps.append(PlanStep(migration, Direction.DOWN))
        for migration in user:
            steps.append(PlanStep(migration, Direction.UP))
    else:
        for migration in user:
            if migration.name not in applied:
                steps.append(PlanStep(migration, Direction.UP))
            elif debug_build and migration.mode is ReplayMode.DEBUG:
                steps.append(PlanStep(migration, Direction.DOWN))
                steps.append(PlanStep(migration, Direction.UP))

    orphaned = find_orphans(declared, applied)
    if orphaned:
        logger.warning(
            "ledger.orphaned_migrations",
            names=list(orphaned),
            hint="recorded in the ledger but not declared; left untouched",
        )

    return Plan(steps=tuple(steps), orphaned=orphaned)


def build_rollback_plan(
    declared: Sequence[Migration],
    applied: set[str],
    count: int,
) -> Plan:
    """Revert the ``count`` most recently declared applied migrations.

    The bootstrap migration is never reverted.
    """
    if count < 1:
        raise ConfigurationError(f"Rollback count must be at least 1, got {count}")

    steps = [
        PlanStep(migration, Direction.DOWN)
        for migration in reversed(declared[1:])
        if migration.name in applied
    ][:count]
    return Plan(steps=tuple(steps), orphaned=find_orphans(declared, applied))


__all__ = [
    "Plan",
    "PlanStep",
    "build_plan",
    "build_rollback_plan",
    "find_orphans",
    "validate_declared",
]
