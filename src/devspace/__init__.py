"""Task progress orchestration for a code-exercise learning workspace."""

__version__ = "0.1.0"
