"""Per-session run -> evaluate -> advance state machine."""

from __future__ import annotations

import asyncio
import logging
import random

from devspace.oracle.base import CompletionOracle, ExecutionError, ExecutionOracle, TaskGenerator
from devspace.progress.documentation import MILESTONE_INTERVAL, DocumentationGenerator, is_milestone
from devspace.progress.errors import StorageError
from devspace.progress.formatting import (
    OUTPUT_WORDS_PER_LINE,
    solution_template,
    task_template,
    wrap_output,
)
from devspace.progress.models import (
    DEFAULT_LAST_CODE,
    CustomTaskCreate,
    Difficulty,
    DocumentationEntryView,
    EditorSettings,
    FontSize,
    RunOutcome,
    RunState,
    RunStatus,
    TaskView,
    Theme,
)
from devspace.progress.repository import TaskRepository
from devspace.progress.session import SessionView
from devspace.progress.settings_cache import LocalSettingsCache

logger = logging.getLogger(__name__)

GENERATED_TASK_CATEGORIES = ("Basics", "Variables", "Functions", "Loops", "Lists", "Strings", "Math")


class SessionBusyError(RuntimeError):
    """Session cannot be reset while a completion is being committed."""


class ProgressOrchestrator:
    """Drives one learner session through the run/evaluate/advance cycle.

    Oracles, repository and documentation generator are injected so sessions
    and tests can substitute fakes. Every run takes a fresh session token;
    results of a run whose token is no longer current are discarded.
    """

    def __init__(  # noqa: PLR0913
        self,
        *,
        repository: TaskRepository,
        execution_oracle: ExecutionOracle,
        completion_oracle: CompletionOracle,
        documentation: DocumentationGenerator,
        user_id: str | None,
        user_name: str | None = None,
        task_generator: TaskGenerator | None = None,
        settings_cache: LocalSettingsCache | None = None,
        milestone_interval: int = MILESTONE_INTERVAL,
        output_words_per_line: int = OUTPUT_WORDS_PER_LINE,
        autosave: bool = True,
        rng: random.Random | None = None,
    ) -> None:
        self.repository = repository
        self.execution_oracle = execution_oracle
        self.completion_oracle = completion_oracle
        self.documentation = documentation
        self.task_generator = task_generator
        self.settings_cache = settings_cache
        self.user_id = user_id
        self.user_name = user_name
        self.milestone_interval = milestone_interval
        self.output_words_per_line = output_words_per_line
        self.autosave = autosave
        self.rng = rng or random.Random()

        self.state = RunState.IDLE
        self.view = SessionView()
        self.settings = EditorSettings()
        self.code = DEFAULT_LAST_CODE
        self.output = ""
        self.error: str | None = None
        self.degraded = False
        self._token = 0
        self._background: set[asyncio.Task[object]] = set()

    @property
    def current_task(self) -> TaskView | None:
        return self.view.current

    @property
    def pending(self) -> list[TaskView]:
        return self.view.pending

    @property
    def completed(self) -> list[TaskView]:
        return self.view.completed

    @property
    def display_output(self) -> str:
        return wrap_output(self.output, words_per_line=self.output_words_per_line)

    async def load(self) -> None:
        """Reconcile the session with persisted settings, buffer and task history."""

        self._reset_session()
        self.output = ""
        self.error = None
        if self.user_id is None:
            self.settings = self._cached_settings() or EditorSettings()
            self.view = SessionView.from_tasks(self.repository.builtin_tasks())
            self.degraded = False
            self.code = task_template(self.view.current)
            return

        saved_code: str | None = None
        try:
            await asyncio.to_thread(self.repository.ensure_user, self.user_id, self.user_name)
            state = await asyncio.to_thread(self.repository.load_user_state, self.user_id)
        except StorageError as error:
            logger.warning("Could not load saved state for %s: %s", self.user_id, error)
            self.settings = self._cached_settings() or EditorSettings()
        else:
            if state.updated_at is None:
                self.settings = self._cached_settings() or state.settings
            else:
                self.settings = state.settings
                saved_code = state.last_code
            if self.settings_cache is not None:
                self.settings_cache.write(self.settings)

        try:
            tasks = await asyncio.to_thread(self.repository.load_tasks, self.user_id)
            self.degraded = False
        except StorageError as error:
            logger.warning("Task storage unavailable, using built-in tasks only: %s", error)
            tasks = self.repository.builtin_tasks()
            self.degraded = True

        self.view = SessionView.from_tasks(tasks)
        self.code = saved_code if saved_code else task_template(self.view.current)
        if not self.degraded:
            self._spawn(
                asyncio.to_thread(self._backfill_documentation, self.user_id),
                name="documentation-backfill",
            )

    async def submit_run(self, code: str | None = None) -> RunOutcome:
        """Execute the buffer, judge it against the current task and advance on success."""

        if self.state is not RunState.IDLE:
            logger.info("Run rejected while session is %s", self.state.value)
            return RunOutcome(status=RunStatus.REJECTED, token=self._token)
        if code is not None:
            self.code = code

        self._token += 1
        token = self._token
        self.state = RunState.RUNNING
        self.error = None
        try:
            return await self._run_cycle(token, self.code, self.view.current)
        finally:
            if token == self._token:
                self.state = RunState.IDLE

    def cancel_run(self) -> bool:
        """Abandon the outstanding run; its result is discarded when it resolves."""

        if self.state in {RunState.IDLE, RunState.ADVANCING}:
            return False
        self._token += 1
        self.state = RunState.IDLE
        return True

    def select_task(self, task_id: str) -> TaskView:
        """Make a pending task current and load its template into the editor."""

        task = self._pending_task(task_id)
        self._reset_session()
        self.view.current = task
        self.code = task_template(task)
        self.output = ""
        self.error = None
        return task

    def show_solution(self, task_id: str) -> TaskView:
        """Make a pending task current and load its reference solution into the editor."""

        task = self.select_task(task_id)
        self.code = solution_template(task)
        return task

    def clear_editor(self) -> None:
        self.code = task_template(self.view.current)
        self.output = ""
        self.error = None

    async def update_code(self, code: str) -> None:
        """Replace the editor buffer and autosave it."""

        self.code = code
        await self._persist_state()

    async def update_settings(
        self,
        *,
        theme: str | Theme | None = None,
        font_size: str | FontSize | None = None,
    ) -> EditorSettings:
        """Change editor settings; values outside the closed enums raise ValueError."""

        self.settings = EditorSettings.parse(
            theme=theme if theme is not None else self.settings.theme,
            font_size=font_size if font_size is not None else self.settings.font_size,
        )
        if self.settings_cache is not None:
            self.settings_cache.write(self.settings)
        await self._persist_state()
        return self.settings

    async def add_custom_task(self, payload: CustomTaskCreate) -> TaskView:
        """Persist a user-authored task and append it to the pending set."""

        if self.user_id is None:
            raise StorageError("User not authenticated")
        created = await asyncio.to_thread(self.repository.create_custom_task, self.user_id, payload)
        had_current = self.view.current is not None
        added = self.view.append(created)
        if not had_current and self.view.current is not None:
            self.code = task_template(self.view.current)
        return added

    async def generate_custom_task(self) -> TaskView:
        """Ask the task generator for a new exercise with a random category and difficulty."""

        if self.task_generator is None:
            raise ExecutionError("No task generator configured.")
        description = await self.task_generator.generate_description()
        return await self.add_custom_task(
            CustomTaskCreate(
                description=description,
                category=self.rng.choice(GENERATED_TASK_CATEGORIES),
                difficulty=self.rng.choice(list(Difficulty)),
            ),
        )

    async def documentation_entries(self) -> list[DocumentationEntryView]:
        if self.user_id is None:
            return []
        return await asyncio.to_thread(self.repository.list_documentation_entries, self.user_id)

    def sign_out(self) -> None:
        """Drop the user identity and every piece of session state."""

        self._reset_session()
        self.user_id = None
        self.user_name = None
        self.view = SessionView()
        self.code = DEFAULT_LAST_CODE
        self.output = ""
        self.error = None
        self.degraded = False

    async def wait_for_background(self) -> None:
        """Wait until fire-and-forget documentation work has finished."""

        while self._background:
            await asyncio.gather(*list(self._background), return_exceptions=True)

    async def _run_cycle(self, token: int, code: str, task: TaskView | None) -> RunOutcome:
        try:
            output = await self.execution_oracle.execute(code)
        except ExecutionError as error:
            if token != self._token:
                return RunOutcome(status=RunStatus.STALE, token=token)
            self.error = str(error)
            return RunOutcome(
                status=RunStatus.EXECUTION_FAILED,
                token=token,
                error=str(error),
                current_task=self.view.current,
            )
        if token != self._token:
            return RunOutcome(status=RunStatus.STALE, token=token)

        self.output = output
        if task is None:
            return RunOutcome(status=RunStatus.OUTPUT, token=token, output=output)

        self.state = RunState.EVALUATING
        verdict = await self.completion_oracle.evaluate(code, output, task)
        if token != self._token:
            return RunOutcome(status=RunStatus.STALE, token=token)
        if not verdict:
            return RunOutcome(
                status=RunStatus.NOT_COMPLETED,
                token=token,
                output=output,
                current_task=self.view.current,
            )
        return await self._advance(token, task, output)

    async def _advance(self, token: int, task: TaskView, output: str) -> RunOutcome:
        self.state = RunState.ADVANCING
        try:
            if self.user_id is None:
                raise StorageError("User not authenticated")
            count = await asyncio.to_thread(self.repository.record_completion, self.user_id, task)
        except StorageError as error:
            logger.error("Could not record completion of task %s: %s", task.task_id, error)
            self.error = f"Could not save your progress, please retry: {error}"
            return RunOutcome(
                status=RunStatus.PERSISTENCE_FAILED,
                token=token,
                output=output,
                error=self.error,
                current_task=self.view.current,
            )

        completed = self.view.mark_completed(task.task_id)
        current = self.view.advance_from(completed)
        self.code = task_template(current)
        if current is not None:
            self.output = ""

        milestone: int | None = None
        if is_milestone(count, interval=self.milestone_interval):
            milestone = count
            self._spawn(
                asyncio.to_thread(self.documentation.generate, self.user_id, milestone),
                name=f"documentation-{milestone}",
            )
        return RunOutcome(
            status=RunStatus.COMPLETED,
            token=token,
            output=output,
            completed_task=completed,
            current_task=current,
            completed_count=count,
            milestone=milestone,
        )

    def _pending_task(self, task_id: str) -> TaskView:
        task = self.view.get(task_id)
        if task is None:
            raise ValueError(f"Unknown task: {task_id}")
        if task.completed:
            raise ValueError(f"Task {task_id} is already completed.")
        return task

    def _reset_session(self) -> None:
        if self.state is RunState.ADVANCING:
            raise SessionBusyError("A completion is being saved; try again shortly.")
        self._token += 1
        self.state = RunState.IDLE

    def _cached_settings(self) -> EditorSettings | None:
        if self.settings_cache is None:
            return None
        return self.settings_cache.read()

    async def _persist_state(self) -> None:
        if not self.autosave or self.user_id is None:
            return
        await asyncio.to_thread(
            self.repository.persist_user_state,
            self.user_id,
            self.settings,
            self.code,
        )

    def _backfill_documentation(self, user_id: str) -> list[int]:
        count = self.repository.completed_count(user_id)
        return self.documentation.backfill(user_id, count)

    def _spawn(self, coroutine, *, name: str) -> None:
        task = asyncio.create_task(coroutine, name=name)
        self._background.add(task)
        task.add_done_callback(self._on_background_done)

    def _on_background_done(self, task: asyncio.Task[object]) -> None:
        self._background.discard(task)
        if task.cancelled():
            return
        error = task.exception()
        if error is not None:
            logger.error("Background task %s failed", task.get_name(), exc_info=error)
