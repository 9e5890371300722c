from __future__ import annotations

from pathlib import Path

import allure
import pytest

from devspace.config import DEFAULT_AGENT_COMMAND, AgentSettings, ProgressSettings, Settings

pytestmark = [
    allure.epic("Progress Engine"),
    allure.feature("Configuration"),
]


def test_from_env_uses_defaults(monkeypatch: pytest.MonkeyPatch) -> None:
    for name in (
        "DEVSPACE_DB_PATH",
        "DEVSPACE_AGENT_COMMAND",
        "DEVSPACE_AGENT_TIMEOUT_SECONDS",
        "DEVSPACE_MILESTONE_INTERVAL",
        "DEVSPACE_AUTOSAVE",
        "DEVSPACE_USER_ID",
    ):
        monkeypatch.delenv(name, raising=False)

    settings = Settings.from_env()
    settings.validate()

    assert settings.db_path == Path(".devspace.db")
    assert settings.agent.command_template == DEFAULT_AGENT_COMMAND
    assert settings.agent.timeout_seconds == 60.0
    assert settings.progress.milestone_interval == 5
    assert settings.progress.recent_limit == 5
    assert settings.progress.output_words_per_line == 15
    assert settings.progress.autosave is True
    assert settings.user_context.user_id == "default_user"


def test_from_env_parses_overrides(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    monkeypatch.setenv("DEVSPACE_DB_PATH", str(tmp_path / "env.db"))
    monkeypatch.setenv("DEVSPACE_AGENT_COMMAND", "agent --file {prompt_file}")
    monkeypatch.setenv("DEVSPACE_AGENT_TIMEOUT_SECONDS", "2.5")
    monkeypatch.setenv("DEVSPACE_MILESTONE_INTERVAL", "3")
    monkeypatch.setenv("DEVSPACE_AUTOSAVE", "off")
    monkeypatch.setenv("DEVSPACE_USER_ID", "carol")

    settings = Settings.from_env()

    assert settings.db_path == tmp_path / "env.db"
    assert settings.agent.command_template == "agent --file {prompt_file}"
    assert settings.agent.timeout_seconds == 2.5
    assert settings.progress.milestone_interval == 3
    assert settings.progress.autosave is False
    assert settings.user_context.user_id == "carol"


def test_explicit_db_path_wins_over_env(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    monkeypatch.setenv("DEVSPACE_DB_PATH", str(tmp_path / "env.db"))

    assert Settings.from_env(db_path=tmp_path / "cli.db").db_path == tmp_path / "cli.db"


def test_from_env_rejects_invalid_boolean(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("DEVSPACE_AUTOSAVE", "sometimes")

    with pytest.raises(ValueError, match="Invalid boolean value for DEVSPACE_AUTOSAVE"):
        Settings.from_env()


def test_validate_rejects_template_without_prompt_placeholder() -> None:
    settings = Settings(agent=AgentSettings(command_template="agent --model {model}"))

    with pytest.raises(ValueError, match="must include"):
        settings.validate()


@pytest.mark.parametrize(
    ("progress", "message"),
    [
        (ProgressSettings(milestone_interval=0), "DEVSPACE_MILESTONE_INTERVAL"),
        (ProgressSettings(recent_limit=0), "DEVSPACE_DOC_RECENT_LIMIT"),
        (ProgressSettings(output_words_per_line=-1), "DEVSPACE_OUTPUT_WORDS_PER_LINE"),
    ],
)
def test_validate_rejects_non_positive_progress_values(
    progress: ProgressSettings,
    message: str,
) -> None:
    with pytest.raises(ValueError, match=message):
        Settings(progress=progress).validate()


def test_validate_rejects_non_positive_agent_timeout() -> None:
    settings = Settings(agent=AgentSettings(timeout_seconds=0))

    with pytest.raises(ValueError, match="DEVSPACE_AGENT_TIMEOUT_SECONDS"):
        settings.validate()
