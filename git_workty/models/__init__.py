"""Data models for git-workty."""

from .worktree import GitWorktreeEntry, Registry, WorktreeRecord, WorktreeStatus

__all__ = ["GitWorktreeEntry", "Registry", "WorktreeRecord", "WorktreeStatus"]
