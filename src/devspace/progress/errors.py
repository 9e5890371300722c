"""Error taxonomy for task progress persistence."""

from __future__ import annotations


class StorageError(RuntimeError):
    """Repository could not be reached or a write failed."""

    retryable = True


class ValidationError(ValueError):
    """Custom task payload is malformed."""

    def __init__(self, message: str, *, field: str) -> None:
        super().__init__(message)
        self.field = field
