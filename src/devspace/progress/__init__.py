"""Task progress orchestration: repository, session view, documentation, orchestrator."""
