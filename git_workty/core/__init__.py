"""Core functionality for git-workty."""

from .worktree_manager import DoctorCheck, WorktreeManager

__all__ = ["DoctorCheck", "WorktreeManager"]
