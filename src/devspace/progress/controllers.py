"""Controllers for progress CLI commands."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable, Iterator
from contextlib import contextmanager
from dataclasses import dataclass
from pathlib import Path
from typing import TypeVar

from devspace.config import Settings
from devspace.oracle.agents import AgentCompletionOracle, AgentExecutionOracle, AgentTaskGenerator
from devspace.oracle.cli_backend import CliAgentBackend
from devspace.progress.documentation import DocumentationGenerator
from devspace.progress.errors import StorageError
from devspace.progress.formatting import wrap_output
from devspace.progress.models import CustomTaskCreate, RunOutcome, RunStatus, TaskView
from devspace.progress.orchestrator import ProgressOrchestrator
from devspace.progress.repository import TaskRepository
from devspace.progress.settings_cache import LocalSettingsCache

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass(slots=True)
class TasksListCommand:
    """CLI input for task listing."""

    db_path: Path | None
    user_id: str | None


@dataclass(slots=True)
class TaskAddCommand:
    """CLI input for custom task creation."""

    db_path: Path | None
    user_id: str | None
    title: str
    description: str
    category: str
    difficulty: str
    code: str


@dataclass(slots=True)
class TaskGenerateCommand:
    """CLI input for agent-generated task creation."""

    db_path: Path | None
    user_id: str | None


@dataclass(slots=True)
class RunCommand:
    """CLI input for one run/evaluate/advance cycle."""

    db_path: Path | None
    user_id: str | None
    code_path: Path
    task_id: str | None


@dataclass(slots=True)
class RunReport:
    """Run result to render in CLI."""

    lines: list[str]
    success: bool


@dataclass(slots=True)
class DocsCommand:
    """CLI input for documentation listing and display."""

    db_path: Path | None
    user_id: str | None
    milestone: int | None = None


@dataclass(slots=True)
class SettingsCommand:
    """CLI input for editor settings display and update."""

    db_path: Path | None
    user_id: str | None
    theme: str | None = None
    font_size: str | None = None


class ProgressCliController:
    """Coordinates session, task and documentation CLI operations."""

    def list_tasks(self, command: TasksListCommand) -> list[str]:
        settings = _settings(command.db_path, command.user_id)
        with _session(settings) as session:
            asyncio.run(_load_then(session, None))
            lines = [_task_line(task, current=session.current_task) for task in session.view.tasks]
            lines.append(
                f"Pending: {len(session.pending)}  Completed: {len(session.completed)}",
            )
            if session.degraded:
                lines.append("Warning: task storage unavailable, showing built-in tasks only.")
        return lines

    def add_task(self, command: TaskAddCommand) -> list[str]:
        settings = _settings(command.db_path, command.user_id)
        with _session(settings) as session:
            task = asyncio.run(
                _load_then(
                    session,
                    lambda: session.add_custom_task(
                        CustomTaskCreate(
                            title=command.title,
                            description=command.description,
                            category=command.category,
                            difficulty=command.difficulty,
                            code=command.code,
                        ),
                    ),
                ),
            )
        return [f"Task added: task_id={task.task_id} title={task.title!r}"]

    def generate_task(self, command: TaskGenerateCommand) -> list[str]:
        settings = _settings(command.db_path, command.user_id)
        with _session(settings) as session:
            task = asyncio.run(_load_then(session, session.generate_custom_task))
        return [
            f"Task generated: task_id={task.task_id} category={task.category} "
            f"difficulty={task.difficulty.value}",
            task.description,
        ]

    def run(self, command: RunCommand) -> RunReport:
        settings = _settings(command.db_path, command.user_id)
        code = command.code_path.read_text("utf-8")
        with _session(settings) as session:

            async def _select_and_run() -> RunOutcome:
                if command.task_id is not None:
                    session.select_task(command.task_id)
                return await session.submit_run(code)

            outcome = asyncio.run(_load_then(session, _select_and_run))
            lines: list[str] = []
            if outcome is None:
                raise RuntimeError("Run did not produce an outcome.")
            if outcome.output:
                lines.append(
                    wrap_output(
                        outcome.output,
                        words_per_line=settings.progress.output_words_per_line,
                    ),
                )
            if outcome.status in {RunStatus.EXECUTION_FAILED, RunStatus.PERSISTENCE_FAILED}:
                lines.append(f"Error: {outcome.error}")
            elif outcome.status is RunStatus.NOT_COMPLETED:
                lines.append("Not completed yet.")
            elif outcome.status is RunStatus.COMPLETED and outcome.completed_task is not None:
                lines.append(
                    f"Task completed: {outcome.completed_task.title} "
                    f"(total completed: {outcome.completed_count})",
                )
                if outcome.milestone is not None:
                    lines.append(f"Milestone reached: progress report for {outcome.milestone} tasks.")
                next_task = outcome.current_task
                lines.append(
                    f"Next task: {next_task.title}" if next_task else "All tasks completed.",
                )
        success = outcome.status in {RunStatus.OUTPUT, RunStatus.NOT_COMPLETED, RunStatus.COMPLETED}
        return RunReport(lines=lines, success=success)

    def list_docs(self, command: DocsCommand) -> list[str]:
        settings = _settings(command.db_path, command.user_id)
        with _repository(settings) as repository:
            entries = repository.list_documentation_entries(settings.user_context.user_id)
        if command.milestone is not None:
            for entry in entries:
                if entry.tasks_completed == command.milestone:
                    return entry.content.splitlines()
            return [f"No progress report for milestone {command.milestone}."]
        if not entries:
            return ["No progress reports yet."]
        return [
            f"{entry.tasks_completed:>4}  {entry.created_at.isoformat()}  {entry.title}"
            for entry in entries
        ]

    def settings(self, command: SettingsCommand) -> list[str]:
        settings = _settings(command.db_path, command.user_id)
        with _session(settings) as session:
            if command.theme is not None or command.font_size is not None:
                asyncio.run(
                    _load_then(
                        session,
                        lambda: session.update_settings(
                            theme=command.theme,
                            font_size=command.font_size,
                        ),
                    ),
                )
            else:
                asyncio.run(_load_then(session, None))
            current = session.settings
        return [f"theme={current.theme.value}", f"font_size={current.font_size.value}"]


async def _load_then(
    session: ProgressOrchestrator,
    action: Callable[[], Awaitable[T]] | None,
) -> T | None:
    await session.load()
    try:
        return await action() if action is not None else None
    finally:
        await session.wait_for_background()


def _task_line(task: TaskView, *, current: TaskView | None) -> str:
    marker = ">" if current is not None and current.task_id == task.task_id else " "
    status = "x" if task.completed else " "
    return (
        f"{marker} [{status}] {task.task_id:<36} {task.title} "
        f"({task.category}, {task.difficulty.value})"
    )


def _settings(db_path: Path | None, user_id: str | None) -> Settings:
    settings = Settings.from_env(db_path=db_path)
    if user_id is not None:
        settings.user_context.user_id = user_id
        settings.user_context.user_name = user_id
    settings.validate()
    return settings


@contextmanager
def _repository(settings: Settings) -> Iterator[TaskRepository]:
    repository = TaskRepository(
        db_path=settings.db_path,
        sqlite_busy_timeout_ms=settings.sqlite_busy_timeout_ms,
    )
    try:
        repository.init_schema()
    except StorageError as error:
        logger.warning("Task storage unavailable, continuing without it: %s", error)
    try:
        yield repository
    finally:
        repository.close()


@contextmanager
def _session(settings: Settings) -> Iterator[ProgressOrchestrator]:
    backend = CliAgentBackend()
    agent_kwargs = {
        "backend": backend,
        "command_template": settings.agent.command_template,
        "model": settings.agent.model,
        "timeout_seconds": settings.agent.timeout_seconds,
    }
    with _repository(settings) as repository:
        yield ProgressOrchestrator(
            repository=repository,
            execution_oracle=AgentExecutionOracle(**agent_kwargs),
            completion_oracle=AgentCompletionOracle(**agent_kwargs),
            task_generator=AgentTaskGenerator(**agent_kwargs),
            documentation=DocumentationGenerator(
                repository,
                interval=settings.progress.milestone_interval,
                recent_limit=settings.progress.recent_limit,
            ),
            user_id=settings.user_context.user_id,
            user_name=settings.user_context.user_name,
            settings_cache=LocalSettingsCache(settings.settings_cache_path),
            milestone_interval=settings.progress.milestone_interval,
            output_words_per_line=settings.progress.output_words_per_line,
            autosave=settings.progress.autosave,
        )
