"""Runtime configuration for the progress engine and its agent oracles."""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path

DEFAULT_AGENT_COMMAND = "claude -p --model {model} -- {prompt}"


@dataclass(slots=True)
class AgentSettings:
    """External agent used as execution, judgment and generation oracle."""

    command_template: str = DEFAULT_AGENT_COMMAND
    model: str = "sonnet"
    timeout_seconds: float = 60.0


@dataclass(slots=True)
class ProgressSettings:
    """Milestone and display settings."""

    milestone_interval: int = 5
    recent_limit: int = 5
    output_words_per_line: int = 15
    autosave: bool = True


@dataclass(slots=True)
class UserContextSettings:
    """User context settings."""

    user_id: str = "default_user"
    user_name: str = "Default User"


@dataclass(slots=True)
class Settings:
    """Application settings grouped by domain concerns."""

    db_path: Path = Path(".devspace.db")
    sqlite_busy_timeout_ms: int = 5_000
    settings_cache_path: Path = Path(".devspace-settings.json")
    agent: AgentSettings = field(default_factory=AgentSettings)
    progress: ProgressSettings = field(default_factory=ProgressSettings)
    user_context: UserContextSettings = field(default_factory=UserContextSettings)

    @classmethod
    def from_env(cls, db_path: Path | None = None) -> Settings:
        """Load settings from environment with sane defaults for local development."""

        return cls(
            db_path=db_path or Path(os.getenv("DEVSPACE_DB_PATH", ".devspace.db")),
            sqlite_busy_timeout_ms=int(os.getenv("DEVSPACE_SQLITE_BUSY_TIMEOUT_MS", "5000")),
            settings_cache_path=Path(
                os.getenv("DEVSPACE_SETTINGS_CACHE_PATH", ".devspace-settings.json"),
            ),
            agent=AgentSettings(
                command_template=os.getenv("DEVSPACE_AGENT_COMMAND", DEFAULT_AGENT_COMMAND),
                model=os.getenv("DEVSPACE_AGENT_MODEL", "sonnet"),
                timeout_seconds=float(os.getenv("DEVSPACE_AGENT_TIMEOUT_SECONDS", "60")),
            ),
            progress=ProgressSettings(
                milestone_interval=int(os.getenv("DEVSPACE_MILESTONE_INTERVAL", "5")),
                recent_limit=int(os.getenv("DEVSPACE_DOC_RECENT_LIMIT", "5")),
                output_words_per_line=int(os.getenv("DEVSPACE_OUTPUT_WORDS_PER_LINE", "15")),
                autosave=_env_bool("DEVSPACE_AUTOSAVE", default=True),
            ),
            user_context=UserContextSettings(
                user_id=os.getenv("DEVSPACE_USER_ID", "default_user"),
                user_name=os.getenv("DEVSPACE_USER_NAME", "Default User"),
            ),
        )

    def validate(self) -> None:
        """Raise configuration error for values the engine cannot work with."""

        if self.sqlite_busy_timeout_ms <= 0:
            raise ValueError("DEVSPACE_SQLITE_BUSY_TIMEOUT_MS must be > 0.")
        if self.agent.timeout_seconds <= 0:
            raise ValueError("DEVSPACE_AGENT_TIMEOUT_SECONDS must be > 0.")
        template = self.agent.command_template.strip()
        if not template:
            raise ValueError("DEVSPACE_AGENT_COMMAND must not be empty.")
        if "{prompt}" not in template and "{prompt_file}" not in template:
            raise ValueError("DEVSPACE_AGENT_COMMAND must include {prompt} or {prompt_file}.")
        if self.progress.milestone_interval <= 0:
            raise ValueError("DEVSPACE_MILESTONE_INTERVAL must be > 0.")
        if self.progress.recent_limit <= 0:
            raise ValueError("DEVSPACE_DOC_RECENT_LIMIT must be > 0.")
        if self.progress.output_words_per_line <= 0:
            raise ValueError("DEVSPACE_OUTPUT_WORDS_PER_LINE must be > 0.")
        if not self.user_context.user_id.strip():
            raise ValueError("DEVSPACE_USER_ID must not be empty.")


def _env_bool(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    normalized = value.strip().lower()
    if normalized in {"1", "true", "yes", "on"}:
        return True
    if normalized in {"0", "false", "no", "off"}:
        return False
    raise ValueError(f"Invalid boolean value for {name}: {value!r}")
