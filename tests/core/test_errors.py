"""Tests for the migrun error hierarchy."""

from __future__ import annotations

import pytest

from migrun.core.errors import (
    ConfigurationError,
    ErrorCategory,
    ErrorContext,
    MigrationError,
    StatementError,
    StoreConnectionError,
    categorize_error,
)


class TestErrorContext:
    def test_empty_to_dict(self):
        assert ErrorContext().to_dict() == {}

    def test_to_dict_skips_none_and_merges_metadata(self):
        ctx = ErrorContext(migration="a", step_index=0, metadata={"phase": "ledger"})
        assert ctx.to_dict() == {"migration": "a", "step_index": 0, "phase": "ledger"}


class TestMigrationError:
    def test_defaults(self):
        error = MigrationError("boom")
        assert error.category is ErrorCategory.INTERNAL
        assert error.retryable is False
        assert str(error) == "boom"

    def test_cause_chained(self):
        cause = ValueError("driver")
        error = MigrationError("boom", cause=cause)
        assert error.__cause__ is cause
        assert error.to_dict()["cause"] == "driver"

    def test_with_context_is_fluent(self):
        error = MigrationError("boom")
        assert error.with_context(migration="a", phase="commit") is error
        assert error.context.migration == "a"
        assert error.context.metadata == {"phase": "commit"}

    def test_str_includes_location(self):
        error = StatementError("syntax error").with_context(
            migration="add_users", direction="down", step_index=2
        )
        assert str(error) == "migration 'add_users' (down) step 2: syntax error"

    def test_repr(self):
        assert repr(StatementError("x")) == "StatementError('x', category=STATEMENT)"

    def test_to_dict(self):
        error = StatementError("bad", statement="SELECT").with_context(migration="a")
        assert error.to_dict() == {
            "error_type": "StatementError",
            "message": "bad",
            "category": "STATEMENT",
            "retryable": False,
            "context": {"migration": "a", "statement": "SELECT"},
        }


class TestSubclasses:
    @pytest.mark.parametrize(
        ("cls", "category"),
        [
            (StoreConnectionError, ErrorCategory.CONNECTION),
            (StatementError, ErrorCategory.STATEMENT),
            (ConfigurationError, ErrorCategory.CONFIG),
        ],
    )
    def test_categories(self, cls, category):
        error = cls("x")
        assert error.category is category
        assert isinstance(error, MigrationError)

    def test_statement_properties(self):
        error = StatementError("x", statement="DROP TABLE t").with_context(
            migration="m", direction="up", step_index=0
        )
        assert (error.migration, error.direction, error.step_index, error.statement) == (
            "m",
            "up",
            0,
            "DROP TABLE t",
        )

    def test_configuration_names(self):
        error = ConfigurationError("dupes", names=["a", "b"])
        assert error.names == ["a", "b"]
        assert error.to_dict()["names"] == ["a", "b"]
        assert ConfigurationError("x").names == []


class TestCategorizeError:
    def test_migration_error(self):
        assert categorize_error(ConfigurationError("x")) is ErrorCategory.CONFIG

    def test_os_error(self):
        assert categorize_error(ConnectionRefusedError()) is ErrorCategory.CONNECTION

    def test_other(self):
        assert categorize_error(KeyError("k")) is ErrorCategory.INTERNAL
