"""In-memory pending/completed partition of one learner's task universe."""

from __future__ import annotations

from dataclasses import dataclass, field, replace

from devspace.progress.models import TaskView


@dataclass(slots=True)
class SessionView:
    """Stable-ordered task universe with a current-task pointer.

    Pending and completed are derived from the `completed` flag, so they are
    always disjoint and both keep each task's creation position.
    """

    tasks: list[TaskView] = field(default_factory=list)
    current: TaskView | None = None

    @classmethod
    def from_tasks(cls, tasks: list[TaskView]) -> SessionView:
        view = cls(tasks=sorted(tasks, key=lambda task: task.position))
        view.current = view.first_pending()
        return view

    @property
    def pending(self) -> list[TaskView]:
        return [task for task in self.tasks if not task.completed]

    @property
    def completed(self) -> list[TaskView]:
        return [task for task in self.tasks if task.completed]

    def get(self, task_id: str) -> TaskView | None:
        for task in self.tasks:
            if task.task_id == task_id:
                return task
        return None

    def first_pending(self) -> TaskView | None:
        for task in self.tasks:
            if not task.completed:
                return task
        return None

    def next_pending_after(self, position: int) -> TaskView | None:
        """First pending task whose stable position is strictly greater than `position`."""

        for task in self.tasks:
            if not task.completed and task.position > position:
                return task
        return None

    def append(self, task: TaskView) -> TaskView:
        """Add a newly created task after every existing one."""

        next_position = max((item.position for item in self.tasks), default=-1) + 1
        added = replace(task, position=max(task.position, next_position))
        self.tasks.append(added)
        if self.current is None and not added.completed:
            self.current = added
        return added

    def mark_completed(self, task_id: str) -> TaskView:
        """Flip one task to completed and return the updated copy."""

        for index, task in enumerate(self.tasks):
            if task.task_id == task_id:
                updated = replace(task, completed=True)
                self.tasks[index] = updated
                return updated
        raise KeyError(task_id)

    def advance_from(self, completed: TaskView) -> TaskView | None:
        """Pick the current task after `completed` moved out of pending.

        Progression continues from the completed task's position without
        re-scanning from the start; `current` is None when no later task is pending.
        """

        self.current = self.next_pending_after(completed.position)
        return self.current
