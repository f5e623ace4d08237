"""Senior developer role: project detection, quality checks and file readers."""

from roles.senior_developer.orchestrator import ProjectInfo, detect_project, main

__all__ = ["ProjectInfo", "detect_project", "main"]
