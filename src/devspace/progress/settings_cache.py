"""Local best-effort copy of editor settings."""

from __future__ import annotations

import json
import logging
from pathlib import Path

from devspace.progress.models import EditorSettings

logger = logging.getLogger(__name__)


class LocalSettingsCache:
    """JSON file mirror of the last editor settings.

    Never authoritative: the repository value wins whenever both exist.
    """

    def __init__(self, path: Path) -> None:
        self.path = path

    def read(self) -> EditorSettings | None:
        try:
            payload = json.loads(self.path.read_text("utf-8"))
        except FileNotFoundError:
            return None
        except (OSError, ValueError) as error:
            logger.warning("Ignoring unreadable settings cache %s: %s", self.path, error)
            return None
        if not isinstance(payload, dict):
            return None
        try:
            return EditorSettings.parse(
                theme=payload.get("theme", "dark"),
                font_size=payload.get("fontSize", "medium"),
            )
        except ValueError as error:
            logger.warning("Ignoring invalid settings cache %s: %s", self.path, error)
            return None

    def write(self, settings: EditorSettings) -> None:
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            self.path.write_text(json.dumps(settings.to_dict()), "utf-8")
        except OSError as error:
            logger.warning("Could not write settings cache %s: %s", self.path, error)
