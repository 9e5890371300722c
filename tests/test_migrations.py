from pathlib import Path

import allure
from sqlalchemy import text

from devspace.progress.repository import TaskRepository

pytestmark = [
    allure.epic("Progress Engine"),
    allure.feature("Schema Migrations"),
]


def test_alembic_schema_is_initialized_to_head(tmp_path: Path) -> None:
    repository = TaskRepository(tmp_path / "migrations.db")
    repository.init_schema()
    repository.init_schema()

    with repository.engine.connect() as connection:
        version = connection.execute(
            text("SELECT version_num FROM alembic_version LIMIT 1"),
        ).scalar_one()
        tables = connection.execute(
            text(
                """
                SELECT name
                FROM sqlite_master
                WHERE type = 'table'
                  AND name IN ('users', 'tasks', 'custom_tasks', 'task_history',
                               'documentation_entries', 'user_state')
                ORDER BY name
                """,
            ),
        ).scalars().all()
        builtin_count = connection.execute(text("SELECT COUNT(*) FROM tasks")).scalar_one()
        journal_mode = connection.execute(text("PRAGMA journal_mode")).scalar_one()

    assert version == "20261019_0001"
    assert tables == [
        "custom_tasks",
        "documentation_entries",
        "task_history",
        "tasks",
        "user_state",
        "users",
    ]
    assert builtin_count == 5
    assert str(journal_mode).lower() == "wal"
    repository.close()
