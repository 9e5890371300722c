"""Progress snapshots generated at completion milestones."""

from __future__ import annotations

import logging
from collections.abc import Sequence

from devspace.progress.models import CompletionRecordView, DocumentationEntryView
from devspace.progress.repository import TaskRepository

logger = logging.getLogger(__name__)

MILESTONE_INTERVAL = 5
RECENT_LIMIT = 5


def is_milestone(count: int, *, interval: int = MILESTONE_INTERVAL) -> bool:
    """True for positive multiples of the milestone interval."""

    return count > 0 and count % interval == 0


def report_title(milestone_count: int) -> str:
    return f"Progress Report - {milestone_count} Tasks"


def render_progress_report(
    records: Sequence[CompletionRecordView],
    *,
    milestone_count: int,
) -> str:
    """Render the markdown snapshot for the given completions (newest first)."""

    achievements = [
        f"{index}. {record.title} ({record.difficulty})"
        for index, record in enumerate(records, start=1)
    ]
    skills = [f"- {record.description}" for record in records]
    categories = [f"- {category}" for category in dict.fromkeys(r.category for r in records)]
    sections = [
        f"# {report_title(milestone_count)}",
        "## Recent Achievements\n" + "\n".join(achievements),
        "## Skills Practiced\n" + "\n".join(skills),
        "## Categories Covered\n" + "\n".join(categories),
        f"## Total Tasks Completed: {milestone_count}",
    ]
    return "\n\n".join(sections)


class DocumentationGenerator:
    """Builds and persists one documentation entry per milestone."""

    def __init__(
        self,
        repository: TaskRepository,
        *,
        interval: int = MILESTONE_INTERVAL,
        recent_limit: int = RECENT_LIMIT,
    ) -> None:
        self.repository = repository
        self.interval = interval
        self.recent_limit = recent_limit

    def generate(self, user_id: str, milestone_count: int) -> DocumentationEntryView | None:
        """Persist the snapshot for `milestone_count`.

        Returns None when another writer already produced the entry for this
        milestone; the unique (user, milestone) constraint makes that a no-op.
        """

        if not is_milestone(milestone_count, interval=self.interval):
            raise ValueError(
                f"Milestone must be a positive multiple of {self.interval}: {milestone_count}",
            )
        records = self.repository.recent_completions(user_id, limit=self.recent_limit)
        entry = self.repository.insert_documentation_entry(
            user_id,
            title=report_title(milestone_count),
            content=render_progress_report(records, milestone_count=milestone_count),
            tasks_completed=milestone_count,
        )
        if entry is None:
            logger.info(
                "Documentation for %s at %d tasks already exists", user_id, milestone_count
            )
            return None
        logger.info("Documentation generated for %s at %d tasks", user_id, milestone_count)
        return entry

    def backfill(self, user_id: str, completed_count: int) -> list[int]:
        """Generate entries for every reached milestone that has none yet."""

        existing = {
            entry.tasks_completed for entry in self.repository.list_documentation_entries(user_id)
        }
        generated: list[int] = []
        for milestone in range(self.interval, completed_count + 1, self.interval):
            if milestone in existing:
                continue
            if self.generate(user_id, milestone) is not None:
                generated.append(milestone)
        return generated
