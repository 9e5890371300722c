"""Pure text transforms for the editor buffer and output display."""

from __future__ import annotations

from devspace.progress.models import EMPTY_STATE_TEMPLATE, TaskView

OUTPUT_WORDS_PER_LINE = 15


def wrap_output(text: str, *, words_per_line: int = OUTPUT_WORDS_PER_LINE) -> str:
    """Re-flow oracle output to a fixed number of space-separated words per line.

    Display only: the evaluated output is always the unwrapped text.
    """

    if words_per_line <= 0:
        raise ValueError("words_per_line must be > 0.")
    words = text.split(" ")
    lines: list[str] = []
    for start in range(0, len(words), words_per_line):
        line = " ".join(words[start : start + words_per_line]).strip()
        if line:
            lines.append(line)
    return "\n".join(lines)


def task_template(task: TaskView | None) -> str:
    """Scratch buffer presented when a task becomes current."""

    if task is None:
        return EMPTY_STATE_TEMPLATE
    return f"# {task.description}\n\n# Write your solution here:"


def solution_template(task: TaskView) -> str:
    """Buffer pre-filled with the task's reference solution."""

    return f"# {task.description}\n{task.code}"
