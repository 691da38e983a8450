"""Version-control collaborator."""

from .repository import GitError, LogEntry, Repository

__all__ = ["GitError", "LogEntry", "Repository"]
