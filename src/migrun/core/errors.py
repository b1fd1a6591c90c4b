"""
Structured error types for migrun.

Every failure the runner surfaces is a ``MigrationError`` subclass carrying a
category, an ``ErrorContext`` describing where the failure happened, and the
underlying driver exception as ``cause``.

Manifesto:
    A failed migration run must tell the operator exactly which migration,
    which direction and which step broke, and that everything before it is
    committed. Generic exceptions lose that. Typed errors keep it:

    - **Category:** connection, statement or configuration
    - **Context:** migration name, direction, step index, statement text
    - **Cause:** the original driver exception, chained for tracebacks
    - **No retries:** ``retryable`` is always false in the core

Architecture:
    ::

        ┌─────────────────────────────────────────────────────────────┐
        │                     MigrationError                           │
        │         (category, retryable, context, cause)                │
        ├─────────────────────────────────────────────────────────────┤
        │  StoreConnectionError   StatementError   ConfigurationError  │
        │  (CONNECTION)           (STATEMENT)      (CONFIG)            │
        └─────────────────────────────────────────────────────────────┘

Examples:
    Enriching an executor failure with runner context:

    >>> error = StatementError("relation already exists")
    >>> error.with_context(migration="add_users", direction="up", step_index=1)
    StatementError('relation already exists', category=STATEMENT)
    >>> error.migration
    'add_users'

Guardrails:
    ❌ DON'T: Raise plain Exception from an executor
    ✅ DO: Wrap driver errors in StatementError / StoreConnectionError

    ❌ DON'T: Swallow the driver exception
    ✅ DO: Pass it as cause= for error chaining

Tags:
    error-handling, exception-hierarchy, error-context, migrun, migrations
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class ErrorCategory(str, Enum):
    """Error categories for classification and log routing."""

    CONNECTION = "CONNECTION"  # Store unreachable
    STATEMENT = "STATEMENT"  # A step, ledger write or commit failed
    CONFIG = "CONFIG"  # Declared migration list is invalid
    INTERNAL = "INTERNAL"  # Bugs, unexpected state


@dataclass
class ErrorContext:
    """
    Structured metadata attached to a migration error.

    Attributes:
        migration: Name of the migration being applied or reverted
        direction: ``"up"`` or ``"down"``
        step_index: Zero-based index of the failing step in execution order,
            ``None`` when the failure was in ledger bookkeeping or commit
        statement: Text of the statement that failed
        run_id: Identifier of the runner invocation
        metadata: Additional key-value pairs
    """

    migration: str | None = None
    direction: str | None = None
    step_index: int | None = None
    statement: str | None = None
    run_id: str | None = None

    metadata: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for logging."""
        result = {}
        for key in ["migration", "direction", "step_index", "statement", "run_id"]:
            value = getattr(self, key)
            if value is not None:
                result[key] = value
        if self.metadata:
            result.update(self.metadata)
        return result


class MigrationError(Exception):
    """
    Base exception for all migrun errors.

    Subclasses set ``default_category``. Errors are never retryable inside the
    core; retry policy belongs to the connection layer.
    """

    default_category: ErrorCategory = ErrorCategory.INTERNAL
    default_retryable: bool = False

    def __init__(
        self,
        message: str,
        *,
        category: ErrorCategory | None = None,
        retryable: bool | None = None,
        context: ErrorContext | None = None,
        cause: BaseException | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.category = category or self.default_category
        self.retryable = retryable if retryable is not None else self.default_retryable
        self.context = context or ErrorContext()
        self.cause = cause

        if cause is not None:
            self.__cause__ = cause

    def with_context(self, **kwargs: Any) -> MigrationError:
        """
        Add context to this error (fluent API).

        Usage:
            raise StatementError("Failed", cause=exc).with_context(
                migration="add_users",
                step_index=2,
            )
        """
        for key, value in kwargs.items():
            if hasattr(self.context, key):
                setattr(self.context, key, value)
            else:
                self.context.metadata[key] = value
        return self

    def to_dict(self) -> dict[str, Any]:
        """Convert error to dictionary for logging/serialization."""
        result = {
            "error_type": self.__class__.__name__,
            "message": self.message,
            "category": self.category.value,
            "retryable": self.retryable,
        }
        context_dict = self.context.to_dict()
        if context_dict:
            result["context"] = context_dict
        if self.cause is not None:
            result["cause"] = str(self.cause)
        return result

    def __str__(self) -> str:
        ctx = self.context
        if ctx.migration is None:
            return self.message
        where = f"migration {ctx.migration!r}"
        if ctx.direction:
            where += f" ({ctx.direction})"
        if ctx.step_index is not None:
            where += f" step {ctx.step_index}"
        return f"{where}: {self.message}"

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({self.message!r}, category={self.category.value})"


class StoreConnectionError(MigrationError):
    """The store could not be reached. Aborts the run before any plan step."""

    default_category = ErrorCategory.CONNECTION


class StatementError(MigrationError):
    """
    A single statement failed against the store.

    Raised by executors with the statement text and driver error; the runner
    adds the migration name, direction and step index before propagating it.
    """

    default_category = ErrorCategory.STATEMENT

    def __init__(self, message: str, *, statement: str | None = None, **kwargs: Any):
        super().__init__(message, **kwargs)
        if statement is not None:
            self.context.statement = statement

    @property
    def migration(self) -> str | None:
        return self.context.migration

    @property
    def direction(self) -> str | None:
        return self.context.direction

    @property
    def step_index(self) -> int | None:
        return self.context.step_index

    @property
    def statement(self) -> str | None:
        return self.context.statement


class ConfigurationError(MigrationError):
    """
    The declared migration list is invalid.

    Detected before any store interaction.
    """

    default_category = ErrorCategory.CONFIG

    def __init__(self, message: str, *, names: list[str] | None = None, **kwargs: Any):
        super().__init__(message, **kwargs)
        self.names = names or []

    def to_dict(self) -> dict[str, Any]:
        result = super().to_dict()
        if self.names:
            result["names"] = list(self.names)
        return result


def categorize_error(error: BaseException) -> ErrorCategory:
    """Get the category of an error."""
    if isinstance(error, MigrationError):
        return error.category
    if isinstance(error, (ConnectionError, OSError)):
        return ErrorCategory.CONNECTION
    return ErrorCategory.INTERNAL


__all__ = [
    "ErrorCategory",
    "ErrorContext",
    "MigrationError",
    "StoreConnectionError",
    "StatementError",
    "ConfigurationError",
    "categorize_error",
]
