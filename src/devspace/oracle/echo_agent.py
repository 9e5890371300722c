"""Local deterministic agent for CLI backend integration tests."""

from __future__ import annotations

import argparse
import os
import sys
from pathlib import Path

from devspace.oracle.agents import EXECUTE_MARKER, GENERATE_MARKER, VERDICT_MARKER

GENERATED_TASK = "Write a function square(n) that returns n * n and print square(4)."


def reply_for(prompt: str, *, verdict: str) -> str:
    """Answer a prompt the way a cooperative agent would."""

    if VERDICT_MARKER in prompt:
        return verdict
    if GENERATE_MARKER in prompt:
        return GENERATED_TASK
    if EXECUTE_MARKER in prompt:
        _, _, code = prompt.partition(EXECUTE_MARKER)
        return f"echo: {code.strip()}"
    return prompt.strip()


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser()
    parser.add_argument("--prompt-file", required=True)
    parser.add_argument("--fail", action="store_true", help="Exit non-zero with a message.")
    args = parser.parse_args(argv)

    if args.fail:
        sys.stderr.write("echo agent forced failure\n")
        return 3
    prompt = Path(args.prompt_file).read_text("utf-8")
    verdict = os.getenv("DEVSPACE_ECHO_VERDICT", "true")
    sys.stdout.write(reply_for(prompt, verdict=verdict) + "\n")
    return 0


if __name__ == "__main__":  # pragma: no cover
    sys.exit(main())
