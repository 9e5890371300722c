"""Oracle and agent backend interfaces."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Protocol

from devspace.progress.models import TaskView


class ExecutionError(RuntimeError):
    """Execution capability was unreachable or returned a failure."""


class EvaluationAnomaly(ValueError):
    """Judgment reply outside the two-valued true/false domain."""

    def __init__(self, reply: str) -> None:
        super().__init__(f"Unexpected verdict reply: {reply!r}")
        self.reply = reply


@dataclass(slots=True)
class AgentRequest:
    """Inputs required for one agent invocation."""

    prompt: str
    command_template: str
    model: str
    timeout_seconds: float


@dataclass(slots=True)
class AgentReply:
    """Agent process outcome."""

    exit_code: int
    timed_out: bool
    stdout: str
    stderr: str


class AgentBackend(Protocol):
    """Protocol implemented by agent runners."""

    async def run(self, request: AgentRequest) -> AgentReply:
        """Run one prompt and return the raw reply."""


class ExecutionOracle(Protocol):
    async def execute(self, code: str) -> str:
        """Return program output or raise ExecutionError."""


class CompletionOracle(Protocol):
    async def evaluate(self, code: str, output: str, task: TaskView) -> bool:
        """Return True only when the submission completes the task."""


class TaskGenerator(Protocol):
    async def generate_description(self) -> str:
        """Return a short exercise prompt or raise ExecutionError."""
