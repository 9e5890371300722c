"""Domain models for tasks, completion history and session runs."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum

DEFAULT_LAST_CODE = '# Start coding here\nprint("Hello, Developer!")'
EMPTY_STATE_TEMPLATE = "# Start coding here"
CUSTOM_TASK_TITLE = "Custom Task"
CUSTOM_TASK_CODE = "# Write your solution here"


class Difficulty(str, Enum):
    """Closed task difficulty scale."""

    EASY = "easy"
    MEDIUM = "medium"
    HARD = "hard"


class Theme(str, Enum):
    """Editor colour theme."""

    DARK = "dark"
    LIGHT = "light"


class FontSize(str, Enum):
    """Editor font size."""

    SMALL = "small"
    MEDIUM = "medium"
    LARGE = "large"


class RunState(str, Enum):
    """Per-session run cycle states."""

    IDLE = "idle"
    RUNNING = "running"
    EVALUATING = "evaluating"
    ADVANCING = "advancing"


class RunStatus(str, Enum):
    """How one submitted run resolved."""

    OUTPUT = "output"
    NOT_COMPLETED = "not_completed"
    COMPLETED = "completed"
    EXECUTION_FAILED = "execution_failed"
    PERSISTENCE_FAILED = "persistence_failed"
    REJECTED = "rejected"
    STALE = "stale"


@dataclass(slots=True, frozen=True)
class EditorSettings:
    """Persisted editor preferences."""

    theme: Theme = Theme.DARK
    font_size: FontSize = FontSize.MEDIUM

    @classmethod
    def parse(cls, *, theme: str | Theme, font_size: str | FontSize) -> EditorSettings:
        """Build settings from raw values, rejecting anything outside the enums."""

        try:
            return cls(theme=Theme(theme), font_size=FontSize(font_size))
        except ValueError as error:
            raise ValueError(f"Unsupported editor settings: {error}") from error

    def to_dict(self) -> dict[str, str]:
        return {"theme": self.theme.value, "fontSize": self.font_size.value}


@dataclass(slots=True)
class TaskView:
    """Task joined with the current user's completion flag."""

    task_id: str
    category: str
    title: str
    description: str
    code: str
    difficulty: Difficulty
    position: int
    builtin: bool
    completed: bool = False


@dataclass(slots=True)
class CustomTaskCreate:
    """Input payload for a user-authored task."""

    description: str
    category: str
    difficulty: str | Difficulty
    title: str = CUSTOM_TASK_TITLE
    code: str = CUSTOM_TASK_CODE


@dataclass(slots=True)
class CompletionRecordView:
    """Stored completion history row."""

    user_id: str
    task_id: str
    title: str
    description: str
    category: str
    difficulty: str
    completed: bool
    completed_at: datetime | None
    updated_at: datetime


@dataclass(slots=True)
class DocumentationEntryView:
    """Stored progress snapshot."""

    entry_id: int
    user_id: str
    title: str
    content: str
    tasks_completed: int
    created_at: datetime


@dataclass(slots=True)
class UserStateView:
    """Saved editor settings and buffer for one user."""

    settings: EditorSettings
    last_code: str
    updated_at: datetime | None = None


@dataclass(slots=True)
class RunOutcome:
    """Result of one run/evaluate/advance cycle."""

    status: RunStatus
    token: int
    output: str | None = None
    error: str | None = None
    completed_task: TaskView | None = None
    current_task: TaskView | None = None
    completed_count: int | None = None
    milestone: int | None = None

    @property
    def retryable(self) -> bool:
        return self.status is RunStatus.PERSISTENCE_FAILED
