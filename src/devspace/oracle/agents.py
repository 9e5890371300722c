"""Agent-backed execution, judgment and task generation oracles."""

from __future__ import annotations

import logging

from devspace.oracle.base import (
    AgentBackend,
    AgentReply,
    AgentRequest,
    EvaluationAnomaly,
    ExecutionError,
)
from devspace.oracle.cli_backend import BackendRunError
from devspace.progress.models import TaskView

logger = logging.getLogger(__name__)

NO_OUTPUT_PLACEHOLDER = "No output generated."
EXECUTE_MARKER = "Execute this Python code and return only the output:"
VERDICT_MARKER = 'Answer only with "true" or "false".'
GENERATE_MARKER = "Generate a Python programming task."

_EXECUTOR_INSTRUCTIONS = (
    "You are a Python code executor. Execute the provided code and return ONLY the output. "
    "If there are errors, return ONLY a brief error message."
)

_EVALUATOR_INSTRUCTIONS = """\
You are a Python code evaluator. Determine if the submitted code successfully completes \
the given programming task.

Rules for evaluation:
1. Focus on functionality, not style.
2. Accept different valid approaches that achieve the same result.
3. Ignore cosmetic differences: variable names, quote style, print formatting, whitespace.
4. Accept more sophisticated solutions that still meet the requirements.
5. For output comparison ignore leading/trailing whitespace and accept equivalent
   string and number formats.
6. For tasks requiring specific output focus on equivalent content; accept variations
   in punctuation, spacing, quoting and string concatenation.

Respond ONLY with "true" or "false"."""

_GENERATOR_INSTRUCTIONS = (
    "You are a Python programming instructor. Generate a short, focused learning task "
    "that helps users learn Python programming. Keep it under 50 words."
)


def normalize_verdict(reply: str) -> bool:
    """Map an agent reply to a verdict; anything but exactly true/false is an anomaly."""

    token = reply.strip().lower()
    if token == "true":
        return True
    if token == "false":
        return False
    raise EvaluationAnomaly(reply)


class _AgentOracle:
    def __init__(
        self,
        *,
        backend: AgentBackend,
        command_template: str,
        model: str,
        timeout_seconds: float,
    ) -> None:
        self.backend = backend
        self.command_template = command_template
        self.model = model
        self.timeout_seconds = timeout_seconds

    async def _ask(self, prompt: str) -> str:
        try:
            reply = await self.backend.run(
                AgentRequest(
                    prompt=prompt,
                    command_template=self.command_template,
                    model=self.model,
                    timeout_seconds=self.timeout_seconds,
                ),
            )
        except BackendRunError as error:
            raise ExecutionError(str(error)) from error
        _raise_for_reply(reply, timeout_seconds=self.timeout_seconds)
        return reply.stdout


class AgentExecutionOracle(_AgentOracle):
    """Runs submitted code through the agent acting as a Python executor."""

    async def execute(self, code: str) -> str:
        reply = await self._ask(
            f"{_EXECUTOR_INSTRUCTIONS}\n\n{EXECUTE_MARKER}\n\n{code}",
        )
        # only the newline the agent process appends is dropped
        output = reply.removesuffix("\n")
        if not output:
            return NO_OUTPUT_PLACEHOLDER
        return output


class AgentCompletionOracle(_AgentOracle):
    """Asks the agent whether a submission completes a task; fails closed."""

    async def evaluate(self, code: str, output: str, task: TaskView) -> bool:
        if not code or not output:
            logger.warning("Missing code or output for completion check of task %s", task.task_id)
            return False
        prompt = (
            f"{_EVALUATOR_INSTRUCTIONS}\n\n"
            f"Task Description: {task.description}\n"
            f"Category: {task.category}\n"
            f"Difficulty: {task.difficulty.value}\n\n"
            f"Example Solution:\n{task.code}\n\n"
            f"Submitted Code:\n{code}\n\n"
            f"Actual Output:\n{output}\n\n"
            f"Does this solution correctly complete the task requirements? {VERDICT_MARKER}"
        )
        try:
            reply = await self._ask(prompt)
        except ExecutionError as error:
            logger.error("Completion check for task %s failed: %s", task.task_id, error)
            return False
        try:
            return normalize_verdict(reply)
        except EvaluationAnomaly as anomaly:
            logger.warning("Completion check for task %s: %s", task.task_id, anomaly)
            return False


class AgentTaskGenerator(_AgentOracle):
    """Asks the agent for a fresh exercise prompt."""

    async def generate_description(self) -> str:
        try:
            description = await self._ask(f"{_GENERATOR_INSTRUCTIONS}\n\n{GENERATE_MARKER}")
        except ExecutionError as error:
            raise ExecutionError(f"Failed to generate task: {error}") from error
        if not description.strip():
            raise ExecutionError("Failed to generate task: agent returned an empty reply.")
        return description.strip()


def _raise_for_reply(reply: AgentReply, *, timeout_seconds: float) -> None:
    if reply.timed_out:
        raise ExecutionError(f"Agent call timed out after {timeout_seconds:g}s.")
    if reply.exit_code != 0:
        detail = reply.stderr.strip().splitlines()[-1] if reply.stderr.strip() else "no details"
        raise ExecutionError(f"Agent exited with code {reply.exit_code}: {detail}")
