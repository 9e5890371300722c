"""Persistent task, completion history and documentation repository."""

from __future__ import annotations

import logging
from pathlib import Path
from uuid import uuid4

from sqlalchemy import func
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlmodel import Session, col, select

from devspace.progress.errors import StorageError, ValidationError
from devspace.progress.models import (
    CUSTOM_TASK_TITLE,
    DEFAULT_LAST_CODE,
    CompletionRecordView,
    CustomTaskCreate,
    Difficulty,
    DocumentationEntryView,
    EditorSettings,
    TaskView,
    UserStateView,
)
from devspace.progress.seed import builtin_tasks
from devspace.storage.alembic_runner import upgrade_head
from devspace.storage.common import as_utc, build_sqlite_engine, utc_now
from devspace.storage.sqlmodel_models import (
    AppUser,
    BuiltinTask,
    CustomTask,
    DocumentationEntry,
    TaskHistory,
    UserState,
)

logger = logging.getLogger(__name__)


class TaskRepository:
    """Task persistence facade backed by SQLModel + SQLite.

    Every user-scoped operation receives the user id explicitly so one
    repository can serve several sessions at once.
    """

    def __init__(self, db_path: Path, *, sqlite_busy_timeout_ms: int = 5_000) -> None:
        self.db_path = db_path
        self.engine = build_sqlite_engine(db_path=db_path, busy_timeout_ms=sqlite_busy_timeout_ms)
        self._known_users: set[str] = set()

    def close(self) -> None:
        """Close underlying DB resources."""

        self.engine.dispose()

    def init_schema(self) -> None:
        """Run schema migrations and seed the built-in task set."""

        try:
            upgrade_head(self.db_path)
            with Session(self.engine) as session:
                existing = set(session.exec(select(BuiltinTask.task_id)).all())
                for task in builtin_tasks():
                    if task.task_id in existing:
                        continue
                    session.add(
                        BuiltinTask(
                            task_id=task.task_id,
                            position=task.position,
                            category=task.category,
                            title=task.title,
                            description=task.description,
                            code=task.code,
                            difficulty=task.difficulty.value,
                        ),
                    )
                session.commit()
        except SQLAlchemyError as error:
            raise StorageError(
                f"Could not initialize task storage at {self.db_path}: {error}",
            ) from error

    def ensure_user(self, user_id: str, display_name: str | None = None) -> None:
        """Create the user row on first use."""

        if user_id in self._known_users:
            return
        try:
            with Session(self.engine) as session:
                session.exec(
                    sqlite_insert(AppUser)
                    .values(
                        user_id=user_id,
                        display_name=display_name or user_id,
                        created_at=utc_now(),
                    )
                    .on_conflict_do_nothing(index_elements=["user_id"]),
                )
                session.commit()
        except SQLAlchemyError as error:
            raise StorageError(f"Could not register user {user_id!r}: {error}") from error
        self._known_users.add(user_id)

    def builtin_tasks(self) -> list[TaskView]:
        """Built-in tasks without touching storage, used in degraded mode."""

        return builtin_tasks()

    def load_tasks(self, user_id: str) -> list[TaskView]:
        """Return built-in then custom tasks in stable order, annotated with completion."""

        try:
            with Session(self.engine) as session:
                builtin_rows = session.exec(
                    select(BuiltinTask).order_by(col(BuiltinTask.position).asc()),
                ).all()
                custom_rows = session.exec(
                    select(CustomTask)
                    .where(CustomTask.user_id == user_id)
                    .order_by(col(CustomTask.id).asc()),
                ).all()
                completed_ids = set(
                    session.exec(
                        select(TaskHistory.task_id).where(
                            TaskHistory.user_id == user_id,
                            col(TaskHistory.completed).is_(True),
                        ),
                    ).all(),
                )
        except SQLAlchemyError as error:
            raise StorageError(f"Could not load tasks: {error}") from error

        tasks = [
            TaskView(
                task_id=row.task_id,
                category=row.category,
                title=row.title,
                description=row.description,
                code=row.code,
                difficulty=Difficulty(row.difficulty),
                position=index,
                builtin=True,
                completed=row.task_id in completed_ids,
            )
            for index, row in enumerate(builtin_rows)
        ]
        offset = len(tasks)
        tasks.extend(
            _to_custom_task_view(row, position=offset + index, completed=row.task_id in completed_ids)
            for index, row in enumerate(custom_rows)
        )
        return tasks

    def create_custom_task(self, user_id: str, payload: CustomTaskCreate) -> TaskView:
        """Validate and persist a user-authored task appended after existing tasks."""

        category = payload.category.strip() if payload.category else ""
        description = payload.description.strip() if payload.description else ""
        title = payload.title.strip() if payload.title else ""
        if not category:
            raise ValidationError("Task category must not be empty.", field="category")
        if not description:
            raise ValidationError("Task description must not be empty.", field="description")
        try:
            difficulty = Difficulty(payload.difficulty)
        except ValueError as error:
            allowed = ", ".join(item.value for item in Difficulty)
            raise ValidationError(
                f"Unsupported difficulty {payload.difficulty!r}; expected one of: {allowed}.",
                field="difficulty",
            ) from error

        self.ensure_user(user_id)
        try:
            with Session(self.engine) as session:
                row = CustomTask(
                    task_id=str(uuid4()),
                    user_id=user_id,
                    category=category,
                    title=title or CUSTOM_TASK_TITLE,
                    description=description,
                    code=payload.code,
                    difficulty=difficulty.value,
                    created_at=utc_now(),
                )
                session.add(row)
                session.commit()
                session.refresh(row)
                position = session.exec(
                    select(func.count())
                    .select_from(CustomTask)
                    .where(CustomTask.user_id == user_id, col(CustomTask.id) < row.id),
                ).one()
                builtin_count = session.exec(select(func.count()).select_from(BuiltinTask)).one()
                return _to_custom_task_view(
                    row,
                    position=int(builtin_count) + int(position),
                    completed=False,
                )
        except SQLAlchemyError as error:
            raise StorageError(f"Could not save custom task: {error}") from error

    def record_completion(self, user_id: str, task: TaskView) -> int:
        """Upsert the completion record and return the user's completed count after the write."""

        self.ensure_user(user_id)
        now = utc_now()
        statement = sqlite_insert(TaskHistory).values(
            user_id=user_id,
            task_id=task.task_id,
            title=task.title,
            description=task.description,
            category=task.category,
            difficulty=task.difficulty.value,
            completed=True,
            completed_at=now,
            updated_at=now,
        )
        statement = statement.on_conflict_do_update(
            index_elements=["user_id", "task_id"],
            set_={
                "completed": True,
                "completed_at": statement.excluded.completed_at,
                "updated_at": statement.excluded.updated_at,
            },
        )
        try:
            with Session(self.engine) as session:
                session.exec(statement)
                count = session.exec(
                    select(func.count())
                    .select_from(TaskHistory)
                    .where(
                        TaskHistory.user_id == user_id,
                        col(TaskHistory.completed).is_(True),
                    ),
                ).one()
                session.commit()
        except SQLAlchemyError as error:
            raise StorageError(f"Could not record completion of task {task.task_id}: {error}") from error
        return int(count)

    def completed_count(self, user_id: str) -> int:
        """Number of tasks the user has completed."""

        try:
            with Session(self.engine) as session:
                count = session.exec(
                    select(func.count())
                    .select_from(TaskHistory)
                    .where(
                        TaskHistory.user_id == user_id,
                        col(TaskHistory.completed).is_(True),
                    ),
                ).one()
        except SQLAlchemyError as error:
            raise StorageError(f"Could not count completions: {error}") from error
        return int(count)

    def recent_completions(self, user_id: str, *, limit: int) -> list[CompletionRecordView]:
        """Most recently completed records, newest first."""

        try:
            with Session(self.engine) as session:
                rows = session.exec(
                    select(TaskHistory)
                    .where(
                        TaskHistory.user_id == user_id,
                        col(TaskHistory.completed).is_(True),
                    )
                    .order_by(col(TaskHistory.completed_at).desc(), col(TaskHistory.id).desc())
                    .limit(limit),
                ).all()
        except SQLAlchemyError as error:
            raise StorageError(f"Could not read completion history: {error}") from error
        return [_to_completion_view(row) for row in rows]

    def load_user_state(self, user_id: str) -> UserStateView:
        """Return saved editor settings and buffer, or defaults when nothing is stored."""

        try:
            with Session(self.engine) as session:
                row = session.exec(
                    select(UserState).where(UserState.user_id == user_id),
                ).one_or_none()
        except SQLAlchemyError as error:
            raise StorageError(f"Could not load user state: {error}") from error
        if row is None:
            return UserStateView(settings=EditorSettings(), last_code=DEFAULT_LAST_CODE)
        try:
            settings = EditorSettings.parse(theme=row.theme, font_size=row.font_size)
        except ValueError:
            logger.warning("Ignoring invalid stored settings for %s", user_id)
            settings = EditorSettings()
        return UserStateView(
            settings=settings,
            last_code=row.last_code,
            updated_at=as_utc(row.updated_at),
        )

    def persist_user_state(self, user_id: str, settings: EditorSettings, code: str) -> None:
        """Best-effort single-row upsert of editor settings and buffer; never raises."""

        try:
            self.ensure_user(user_id)
            statement = sqlite_insert(UserState).values(
                user_id=user_id,
                theme=settings.theme.value,
                font_size=settings.font_size.value,
                last_code=code,
                updated_at=utc_now(),
            )
            statement = statement.on_conflict_do_update(
                index_elements=["user_id"],
                set_={
                    "theme": statement.excluded.theme,
                    "font_size": statement.excluded.font_size,
                    "last_code": statement.excluded.last_code,
                    "updated_at": statement.excluded.updated_at,
                },
            )
            with Session(self.engine) as session:
                session.exec(statement)
                session.commit()
        except (SQLAlchemyError, StorageError) as error:
            logger.warning("Could not save user state for %s: %s", user_id, error)

    def insert_documentation_entry(
        self,
        user_id: str,
        *,
        title: str,
        content: str,
        tasks_completed: int,
    ) -> DocumentationEntryView | None:
        """Persist one snapshot; returns None when the milestone already has an entry."""

        self.ensure_user(user_id)
        try:
            with Session(self.engine) as session:
                row = DocumentationEntry(
                    user_id=user_id,
                    title=title,
                    content=content,
                    tasks_completed=tasks_completed,
                    created_at=utc_now(),
                )
                session.add(row)
                try:
                    session.commit()
                except IntegrityError:
                    session.rollback()
                    return None
                session.refresh(row)
                return _to_documentation_view(row)
        except SQLAlchemyError as error:
            raise StorageError(f"Could not save documentation entry: {error}") from error

    def list_documentation_entries(self, user_id: str) -> list[DocumentationEntryView]:
        """Documentation entries for the user, newest milestone first."""

        try:
            with Session(self.engine) as session:
                rows = session.exec(
                    select(DocumentationEntry)
                    .where(DocumentationEntry.user_id == user_id)
                    .order_by(col(DocumentationEntry.tasks_completed).desc()),
                ).all()
        except SQLAlchemyError as error:
            raise StorageError(f"Could not list documentation entries: {error}") from error
        return [_to_documentation_view(row) for row in rows]


def _to_custom_task_view(row: CustomTask, *, position: int, completed: bool) -> TaskView:
    return TaskView(
        task_id=row.task_id,
        category=row.category,
        title=row.title,
        description=row.description,
        code=row.code,
        difficulty=Difficulty(row.difficulty),
        position=position,
        builtin=False,
        completed=completed,
    )


def _to_completion_view(row: TaskHistory) -> CompletionRecordView:
    return CompletionRecordView(
        user_id=row.user_id,
        task_id=row.task_id,
        title=row.title,
        description=row.description,
        category=row.category,
        difficulty=row.difficulty,
        completed=row.completed,
        completed_at=as_utc(row.completed_at) if row.completed_at else None,
        updated_at=as_utc(row.updated_at),
    )


def _to_documentation_view(row: DocumentationEntry) -> DocumentationEntryView:
    if row.id is None:
        raise RuntimeError("Documentation entry is missing primary key.")
    return DocumentationEntryView(
        entry_id=row.id,
        user_id=row.user_id,
        title=row.title,
        content=row.content,
        tasks_completed=row.tasks_completed,
        created_at=as_utc(row.created_at),
    )
