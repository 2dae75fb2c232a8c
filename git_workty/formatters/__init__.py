"""Formatting utilities for git-workty.

- date: relative timestamps for the list view
- worktree: status, changes, branch and name cells
"""

from .date import format_relative
from .worktree import format_branch, format_changes, format_name, format_status

__all__ = [
    "format_relative",
    "format_branch",
    "format_changes",
    "format_name",
    "format_status",
]
