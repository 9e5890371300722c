"""Subprocess-based backend runner for CLI agents."""

from __future__ import annotations

import asyncio
import os
import shlex
from pathlib import Path
from tempfile import TemporaryDirectory

from devspace.oracle.base import AgentReply, AgentRequest


class BackendRunError(RuntimeError):
    """Backend execution error with retryability hint."""

    def __init__(self, message: str, *, transient: bool) -> None:
        super().__init__(message)
        self.transient = transient


class CliAgentBackend:
    """Run a prompt through the configured CLI command template; stdout is the reply."""

    async def run(self, request: AgentRequest) -> AgentReply:
        with TemporaryDirectory(prefix="devspace-agent-") as workdir:
            prompt_file = Path(workdir) / "prompt.txt"
            prompt_file.write_text(request.prompt, "utf-8")
            run_args = _build_run_args(
                command_template=request.command_template,
                model=request.model,
                prompt=request.prompt,
                prompt_file=prompt_file,
            )

            env = os.environ.copy()
            env["DEVSPACE_AGENT_MODEL"] = request.model
            try:
                process = await asyncio.create_subprocess_exec(
                    *run_args,
                    env=env,
                    stdout=asyncio.subprocess.PIPE,
                    stderr=asyncio.subprocess.PIPE,
                )
            except FileNotFoundError as error:
                raise BackendRunError(
                    f"CLI backend command not found: {run_args[0]}",
                    transient=False,
                ) from error
            except OSError as error:
                raise BackendRunError(
                    f"CLI backend failed to start: {error}",
                    transient=True,
                ) from error

            try:
                stdout, stderr = await asyncio.wait_for(
                    process.communicate(),
                    timeout=request.timeout_seconds,
                )
            except TimeoutError:
                await _terminate_process(process)
                return AgentReply(exit_code=124, timed_out=True, stdout="", stderr="")

        return AgentReply(
            exit_code=process.returncode if process.returncode is not None else 1,
            timed_out=False,
            stdout=stdout.decode("utf-8", errors="replace"),
            stderr=stderr.decode("utf-8", errors="replace"),
        )


def _build_run_args(
    *,
    command_template: str,
    model: str,
    prompt: str,
    prompt_file: Path,
) -> list[str]:
    stripped = command_template.strip()
    if not stripped:
        raise BackendRunError("CLI backend command template is empty.", transient=False)
    if "{prompt}" not in stripped and "{prompt_file}" not in stripped:
        raise BackendRunError(
            "CLI backend command template must include {prompt} or {prompt_file}.",
            transient=False,
        )

    try:
        rendered = stripped.format(
            model=shlex.quote(model),
            prompt=shlex.quote(prompt),
            prompt_file=shlex.quote(str(prompt_file)),
        )
    except KeyError as error:
        raise BackendRunError(
            f"Unsupported command template placeholder: {error}",
            transient=False,
        ) from error

    argv = shlex.split(rendered)
    if not argv:
        raise BackendRunError(
            "CLI backend command template rendered empty command.",
            transient=False,
        )
    return argv


async def _terminate_process(process: asyncio.subprocess.Process) -> None:
    try:
        process.terminate()
    except ProcessLookupError:
        return
    try:
        await asyncio.wait_for(process.wait(), timeout=2)
    except TimeoutError:
        try:
            process.kill()
        except ProcessLookupError:
            return
        await process.wait()
