"""CLI entrypoint for devspace."""

from pathlib import Path

import rich_click as click

from devspace import __version__
from devspace.oracle.base import ExecutionError
from devspace.progress.controllers import (
    DocsCommand,
    ProgressCliController,
    RunCommand,
    SettingsCommand,
    TaskAddCommand,
    TaskGenerateCommand,
    TasksListCommand,
)
from devspace.progress.errors import StorageError, ValidationError
from devspace.progress.models import Difficulty, FontSize, Theme

click.rich_click.USE_MARKDOWN = True
PROGRESS_CONTROLLER = ProgressCliController()

_db_path_option = click.option(
    "--db-path",
    type=click.Path(path_type=Path),
    default=None,
    help="SQLite DB path.",
)
_user_option = click.option(
    "--user",
    "user_id",
    default=None,
    help="User id; defaults to DEVSPACE_USER_ID.",
)


@click.group()
@click.version_option(version=__version__, prog_name="devspace")
def devspace() -> None:
    """Code exercise workspace with verifiable progress."""


@devspace.group()
def tasks() -> None:
    """Task commands."""


@tasks.command("list")
@_db_path_option
@_user_option
def tasks_list(db_path: Path | None, user_id: str | None) -> None:
    """List built-in and custom tasks with completion state."""

    _emit_lines(_guard(lambda: PROGRESS_CONTROLLER.list_tasks(TasksListCommand(db_path, user_id))))


@tasks.command("add")
@_db_path_option
@_user_option
@click.option("--title", default="Custom Task", show_default=True, help="Task title.")
@click.option("--description", required=True, help="Exercise prompt.")
@click.option("--category", required=True, help="Free-form category label.")
@click.option(
    "--difficulty",
    type=click.Choice([item.value for item in Difficulty]),
    default=Difficulty.EASY.value,
    show_default=True,
)
@click.option("--code", default="# Write your solution here", help="Reference solution.")
def tasks_add(  # noqa: PLR0913
    db_path: Path | None,
    user_id: str | None,
    title: str,
    description: str,
    category: str,
    difficulty: str,
    code: str,
) -> None:
    """Add a custom task after all existing tasks."""

    _emit_lines(
        _guard(
            lambda: PROGRESS_CONTROLLER.add_task(
                TaskAddCommand(
                    db_path=db_path,
                    user_id=user_id,
                    title=title,
                    description=description,
                    category=category,
                    difficulty=difficulty,
                    code=code,
                ),
            ),
        ),
    )


@tasks.command("generate")
@_db_path_option
@_user_option
def tasks_generate(db_path: Path | None, user_id: str | None) -> None:
    """Ask the configured agent for a new custom task."""

    _emit_lines(
        _guard(lambda: PROGRESS_CONTROLLER.generate_task(TaskGenerateCommand(db_path, user_id))),
    )


@devspace.command("run")
@_db_path_option
@_user_option
@click.argument("code_path", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option("--task-id", default=None, help="Pending task to submit against.")
def run(db_path: Path | None, user_id: str | None, code_path: Path, task_id: str | None) -> None:
    """Run code, judge it against the current task and advance on success."""

    report = _guard(
        lambda: PROGRESS_CONTROLLER.run(
            RunCommand(db_path=db_path, user_id=user_id, code_path=code_path, task_id=task_id),
        ),
    )
    _emit_lines(report.lines)
    if not report.success:
        raise click.ClickException("Run failed.")


@devspace.group()
def docs() -> None:
    """Progress report commands."""


@docs.command("list")
@_db_path_option
@_user_option
def docs_list(db_path: Path | None, user_id: str | None) -> None:
    """List generated progress reports, newest milestone first."""

    _emit_lines(_guard(lambda: PROGRESS_CONTROLLER.list_docs(DocsCommand(db_path, user_id))))


@docs.command("show")
@_db_path_option
@_user_option
@click.argument("milestone", type=click.IntRange(min=1))
def docs_show(db_path: Path | None, user_id: str | None, milestone: int) -> None:
    """Print the progress report for one milestone."""

    _emit_lines(
        _guard(
            lambda: PROGRESS_CONTROLLER.list_docs(
                DocsCommand(db_path=db_path, user_id=user_id, milestone=milestone),
            ),
        ),
    )


@devspace.group("settings")
def settings_group() -> None:
    """Editor settings commands."""


@settings_group.command("show")
@_db_path_option
@_user_option
def settings_show(db_path: Path | None, user_id: str | None) -> None:
    """Show saved editor settings."""

    _emit_lines(
        _guard(lambda: PROGRESS_CONTROLLER.settings(SettingsCommand(db_path, user_id))),
    )


@settings_group.command("set")
@_db_path_option
@_user_option
@click.option("--theme", type=click.Choice([item.value for item in Theme]), default=None)
@click.option("--font-size", type=click.Choice([item.value for item in FontSize]), default=None)
def settings_set(
    db_path: Path | None,
    user_id: str | None,
    theme: str | None,
    font_size: str | None,
) -> None:
    """Update editor settings."""

    _emit_lines(
        _guard(
            lambda: PROGRESS_CONTROLLER.settings(
                SettingsCommand(
                    db_path=db_path,
                    user_id=user_id,
                    theme=theme,
                    font_size=font_size,
                ),
            ),
        ),
    )


def _guard(action):
    try:
        return action()
    except (ExecutionError, StorageError, ValidationError, ValueError) as error:
        raise click.ClickException(str(error)) from error


def _emit_lines(lines: list[str]) -> None:
    for line in lines:
        click.echo(line)


if __name__ == "__main__":  # pragma: no cover
    devspace()
