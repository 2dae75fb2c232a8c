"""Git-related services for git-workty."""

from .repository import GitRepo
from .worktrees import WorktreeService, parse_porcelain

__all__ = [
    "GitRepo",
    "WorktreeService",
    "parse_porcelain",
]
