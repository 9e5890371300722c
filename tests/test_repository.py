from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path

import allure
import pytest
from sqlmodel import Session, select

from devspace.progress.errors import StorageError, ValidationError
from devspace.progress.models import (
    DEFAULT_LAST_CODE,
    CustomTaskCreate,
    Difficulty,
    EditorSettings,
    FontSize,
    Theme,
)
from devspace.progress.repository import TaskRepository
from devspace.storage.common import build_sqlite_engine
from devspace.storage.sqlmodel_models import TaskHistory

pytestmark = [
    allure.epic("Progress Engine"),
    allure.feature("Task Repository"),
]


def test_init_schema_seeds_builtin_tasks_once(repository: TaskRepository) -> None:
    repository.init_schema()

    tasks = repository.load_tasks("alice")

    assert [task.task_id for task in tasks] == ["1", "2", "3", "4", "5"]
    assert [task.position for task in tasks] == [0, 1, 2, 3, 4]
    assert all(task.builtin and not task.completed for task in tasks)
    assert tasks[4].difficulty is Difficulty.MEDIUM


def test_custom_tasks_follow_builtin_tasks_in_creation_order(repository: TaskRepository) -> None:
    first = repository.create_custom_task(
        "alice",
        CustomTaskCreate(description="Loop to ten.", category="Loops", difficulty="easy"),
    )
    second = repository.create_custom_task(
        "alice",
        CustomTaskCreate(
            description="  Sum a list.  ",
            category=" Lists ",
            difficulty=Difficulty.HARD,
            title="",
        ),
    )
    repository.create_custom_task(
        "bob",
        CustomTaskCreate(description="Other user.", category="Basics", difficulty="easy"),
    )

    tasks = repository.load_tasks("alice")

    assert [task.task_id for task in tasks][5:] == [first.task_id, second.task_id]
    assert (first.position, second.position) == (5, 6)
    assert tasks[6].description == "Sum a list."
    assert tasks[6].category == "Lists"
    assert tasks[6].title == "Custom Task"
    assert tasks[6].builtin is False


@pytest.mark.parametrize(
    ("payload", "field"),
    [
        (CustomTaskCreate(description="x", category="Loops", difficulty="extreme"), "difficulty"),
        (CustomTaskCreate(description="x", category="   ", difficulty="easy"), "category"),
        (CustomTaskCreate(description="", category="Loops", difficulty="easy"), "description"),
    ],
)
def test_invalid_custom_task_is_rejected(
    repository: TaskRepository,
    payload: CustomTaskCreate,
    field: str,
) -> None:
    with pytest.raises(ValidationError) as excinfo:
        repository.create_custom_task("alice", payload)

    assert excinfo.value.field == field
    assert len(repository.load_tasks("alice")) == 5


def test_record_completion_is_idempotent(repository: TaskRepository) -> None:
    task = repository.builtin_tasks()[0]

    assert repository.record_completion("alice", task) == 1
    assert repository.record_completion("alice", task) == 1

    with Session(repository.engine) as session:
        rows = session.exec(select(TaskHistory).where(TaskHistory.user_id == "alice")).all()
    assert len(rows) == 1
    assert rows[0].title == "Hello World"
    assert rows[0].completed is True
    assert repository.load_tasks("alice")[0].completed is True
    assert repository.load_tasks("bob")[0].completed is False


def test_concurrent_completions_of_same_task_store_one_record(repository: TaskRepository) -> None:
    task = repository.builtin_tasks()[1]
    repository.ensure_user("alice")

    with ThreadPoolExecutor(max_workers=4) as pool:
        counts = list(pool.map(lambda _: repository.record_completion("alice", task), range(8)))

    assert set(counts) == {1}
    assert repository.completed_count("alice") == 1


def test_recent_completions_are_newest_first(repository: TaskRepository) -> None:
    for task in repository.builtin_tasks()[:3]:
        repository.record_completion("alice", task)

    recent = repository.recent_completions("alice", limit=2)

    assert [record.task_id for record in recent] == ["3", "2"]
    assert recent[0].completed_at is not None
    assert recent[0].completed_at.tzinfo is not None


def test_user_state_defaults_then_upserts(repository: TaskRepository) -> None:
    default = repository.load_user_state("alice")
    assert default.settings == EditorSettings()
    assert default.last_code == DEFAULT_LAST_CODE
    assert default.updated_at is None

    repository.persist_user_state("alice", EditorSettings(Theme.LIGHT, FontSize.SMALL), "x = 1")
    repository.persist_user_state("alice", EditorSettings(Theme.LIGHT, FontSize.LARGE), "x = 2")

    stored = repository.load_user_state("alice")
    assert stored.settings == EditorSettings(Theme.LIGHT, FontSize.LARGE)
    assert stored.last_code == "x = 2"
    assert stored.updated_at is not None


def test_documentation_entry_is_unique_per_milestone(repository: TaskRepository) -> None:
    first = repository.insert_documentation_entry(
        "alice",
        title="Progress Report - 5 Tasks",
        content="first",
        tasks_completed=5,
    )
    duplicate = repository.insert_documentation_entry(
        "alice",
        title="Progress Report - 5 Tasks",
        content="second",
        tasks_completed=5,
    )
    repository.insert_documentation_entry(
        "alice",
        title="Progress Report - 10 Tasks",
        content="third",
        tasks_completed=10,
    )

    assert first is not None
    assert duplicate is None
    entries = repository.list_documentation_entries("alice")
    assert [entry.tasks_completed for entry in entries] == [10, 5]
    assert entries[1].content == "first"


def test_unreachable_storage_raises_storage_error(
    repository: TaskRepository,
    tmp_path: Path,
    caplog,
) -> None:
    repository.ensure_user("alice")
    repository.engine = build_sqlite_engine(db_path=tmp_path, busy_timeout_ms=100)

    with pytest.raises(StorageError) as excinfo:
        repository.load_tasks("alice")
    assert excinfo.value.retryable is True

    with pytest.raises(StorageError):
        repository.record_completion("alice", repository.builtin_tasks()[0])

    with caplog.at_level(logging.WARNING, logger="devspace.progress.repository"):
        repository.persist_user_state("alice", EditorSettings(), "print(1)")
    assert "Could not save user state for alice" in caplog.text


def test_init_schema_on_unusable_path_raises_storage_error(tmp_path: Path) -> None:
    repository = TaskRepository(tmp_path)

    with pytest.raises(StorageError, match="Could not initialize task storage"):
        repository.init_schema()

    assert [task.task_id for task in repository.builtin_tasks()] == ["1", "2", "3", "4", "5"]
    repository.close()


def test_missing_custom_task_title_falls_back_to_default(repository: TaskRepository) -> None:
    task = repository.create_custom_task(
        "alice",
        CustomTaskCreate(
            description="Count vowels.",
            category="Strings",
            difficulty="easy",
            title=None,
        ),
    )

    assert task.title == "Custom Task"
