"""Migration records: the declared, immutable description of one schema change.

A ``Migration`` holds ordered up-steps and down-steps. Down-steps are stored
in declaration order and executed in reverse, so an up/down pair can be
written side by side and still unwind correctly::

    Migration("add_orders").with_steps(
        ("CREATE TABLE orders (id INTEGER PRIMARY KEY)", "DROP TABLE orders"),
        ("CREATE INDEX ix_orders_id ON orders (id)", "DROP INDEX ix_orders_id"),
    )
    # up:   CREATE TABLE, CREATE INDEX
    # down: DROP INDEX, DROP TABLE
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from enum import Enum
from typing import Any

from migrun.core import build
from migrun.core.errors import ConfigurationError
from migrun.core.logging import get_logger
from migrun.core.protocols import Statement

logger = get_logger(__name__)


class ReplayMode(str, Enum):
    """How a migration behaves once it is recorded in the ledger."""

    NORMAL = "normal"  # Run once, governed by the ledger
    DEBUG = "debug"  # Development builds: down then up on every run
    NUCLEAR_DEBUG = "nuclear_debug"  # Development builds: replay every migration


class Direction(str, Enum):
    UP = "up"
    DOWN = "down"


class MigrationState(str, Enum):
    """Per-run lifecycle of one migration, reported in log events."""

    PENDING = "pending"
    APPLYING = "applying"
    APPLIED = "applied"
    REVERTING = "reverting"
    UNAPPLIED = "unapplied"
    FAILED = "failed"


@dataclass(frozen=True)
class Migration:
    """One named, reversible schema change.

    Building a migration never touches the store. The ``with_*`` helpers and
    ``debug()`` / ``nuclear_debug()`` return new records.
    """

    name: str
    up: tuple[Statement, ...] = ()
    down: tuple[Statement, ...] = ()
    mode: ReplayMode = ReplayMode.NORMAL

    def __post_init__(self) -> None:
        object.__setattr__(self, "up", _as_steps(self.up))
        object.__setattr__(self, "down", _as_steps(self.down))

    def with_up(self, *statements: Statement) -> Migration:
        return replace(self, up=self.up + statements)

    def with_down(self, *statements: Statement) -> Migration:
        return replace(self, down=self.down + statements)

    def with_steps(self, *pairs: tuple[Statement, Statement]) -> Migration:
        """Append (up, down) pairs in one call."""
        result = self
        for up, down in pairs:
            result = result.with_up(up).with_down(down)
        return result

    def debug(self) -> Migration:
        return self._with_mode(ReplayMode.DEBUG)

    def nuclear_debug(self) -> Migration:
        return self._with_mode(ReplayMode.NUCLEAR_DEBUG)

    def _with_mode(self, mode: ReplayMode) -> Migration:
        if self.mode is not ReplayMode.NORMAL:
            raise ConfigurationError(
                f"Replay mode of migration {self.name!r} is already {self.mode.value}",
                names=[self.name],
            )
        if build.DEBUG_BUILD:
            logger.warning(
                "migration.replay_enabled",
                migration=self.name,
                mode=mode.value,
                hint="replayed on every run; start the interpreter with -O to disable",
            )
        return replace(self, mode=mode)

    def steps(self, direction: Direction) -> tuple[Statement, ...]:
        """Statements in execution order for ``direction``."""
        if direction is Direction.UP:
            return self.up
        return tuple(reversed(self.down))

    def __repr__(self) -> str:
        return (
            f"Migration({self.name!r}, up={len(self.up)}, down={len(self.down)}, "
            f"mode={self.mode.value})"
        )


def _as_steps(statements: Any) -> tuple[Statement, ...]:
    # A bare SQL string is one statement, not a sequence of characters
    if isinstance(statements, str):
        return (statements,)
    return tuple(statements)
