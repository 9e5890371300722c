"""Shared test fixtures."""

from __future__ import annotations

from collections.abc import Iterator
from pathlib import Path

import pytest

from devspace.progress.orchestrator import ProgressOrchestrator
from devspace.progress.repository import TaskRepository
from devspace.progress.settings_cache import LocalSettingsCache
from tests.fakes import FakeCompletionOracle, FakeExecutionOracle, SpyDocumentation


@pytest.fixture()
def db_path(tmp_path: Path) -> Path:
    return tmp_path / "progress.db"


@pytest.fixture()
def repository(db_path: Path) -> Iterator[TaskRepository]:
    repo = TaskRepository(db_path)
    repo.init_schema()
    yield repo
    repo.close()


@pytest.fixture()
def make_session(repository: TaskRepository, tmp_path: Path):
    """Factory for orchestrators wired to the shared repository and fakes."""

    def _make(
        *,
        execution=None,
        completion=None,
        documentation=None,
        user_id: str | None = "alice",
        repo: TaskRepository | None = None,
        **kwargs,
    ) -> ProgressOrchestrator:
        target = repo or repository
        return ProgressOrchestrator(
            repository=target,
            execution_oracle=execution or FakeExecutionOracle(),
            completion_oracle=completion or FakeCompletionOracle(),
            documentation=documentation or SpyDocumentation(target),
            user_id=user_id,
            settings_cache=LocalSettingsCache(tmp_path / "settings.json"),
            **kwargs,
        )

    return _make
