"""
Shared pytest fixtures for migrun tests.

This module provides:
- A temporary SQLite store (aiosqlite) per test
- A ``RecordingExecutor`` wrapped around the real SQLAlchemy executor
- Build-mode fixtures toggling ``DEBUG_BUILD``
"""

from __future__ import annotations

from collections.abc import AsyncGenerator, Generator
from pathlib import Path

import pytest
import pytest_asyncio
import structlog

from migrun.adapters.sqlalchemy_executor import SQLAlchemyExecutor
from migrun.core import build
from migrun.migrations.runner import MigrationRunner
from tests._support.recording import FixedClock, RecordingExecutor


@pytest.fixture(autouse=True)
def reset_structlog() -> Generator[None, None, None]:
    """Undo any ``configure_logging`` call made by a test."""
    yield
    structlog.reset_defaults()


@pytest.fixture()
def debug_build(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(build, "DEBUG_BUILD", True)


@pytest.fixture()
def release_build(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(build, "DEBUG_BUILD", False)


@pytest.fixture()
def db_url(tmp_path: Path) -> str:
    return f"sqlite+aiosqlite:///{tmp_path / 'migrun.db'}"


@pytest_asyncio.fixture()
async def executor(db_url: str) -> AsyncGenerator[RecordingExecutor, None]:
    inner = SQLAlchemyExecutor.from_url(db_url)
    yield RecordingExecutor(inner)
    await inner.dispose()


@pytest.fixture()
def clock() -> FixedClock:
    return FixedClock()


@pytest.fixture()
def runner(executor: RecordingExecutor, clock: FixedClock) -> MigrationRunner:
    return MigrationRunner(executor, clock=clock)
