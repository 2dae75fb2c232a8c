"""Worktree data models."""

from dataclasses import dataclass, replace
from datetime import datetime
from enum import Enum
from typing import Dict, Iterator, Optional


class WorktreeStatus(Enum):
    """Reconciled status of a worktree."""
    ACTIVE = "active"
    ORPHANED = "orphaned"  # In the registry, gone from git or from disk
    UNTRACKED = "untracked"  # Known to git, not in the registry


@dataclass
class GitWorktreeEntry:
    """A worktree as reported by `git worktree list --porcelain`."""

    path: str
    head: str
    branch: Optional[str] = None  # None when detached
    is_bare: bool = False
    is_locked: bool = False
    is_prunable: bool = False
    is_main: bool = False  # First entry in the list is the main working tree

    @property
    def is_detached(self) -> bool:
        return self.branch is None and not self.is_bare

    def __str__(self) -> str:
        """String representation of worktree."""
        ref = self.branch or f"detached@{self.head[:7]}"
        main_marker = " (main)" if self.is_main else ""
        return f"{ref} @ {self.path}{main_marker}"


@dataclass
class WorktreeRecord:
    """A named worktree, either stored in the registry or synthesized from git."""

    name: str
    path: str
    branch: Optional[str]
    created_at: Optional[datetime]
    last_used_at: Optional[datetime]
    head: str = ""
    status: WorktreeStatus = WorktreeStatus.ACTIVE
    is_main: bool = False
    dirty_count: Optional[int] = None  # Uncommitted changes; filled in by list(), never stored

    def __str__(self) -> str:
        return f"{self.name} ({self.branch or 'detached'}) @ {self.path} [{self.status.value}]"


class Registry:
    """Insertion-ordered mapping of worktree name to record.

    Names and paths are both unique. All operations are in memory; saving is
    the caller's job.
    """

    def __init__(self, records: Optional[list[WorktreeRecord]] = None):
        self._records: Dict[str, WorktreeRecord] = {}
        for record in records or []:
            self.insert(record)

    def __len__(self) -> int:
        return len(self._records)

    def __iter__(self) -> Iterator[WorktreeRecord]:
        return iter(list(self._records.values()))

    def __contains__(self, name: object) -> bool:
        return name in self._records

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Registry):
            return NotImplemented
        return list(self._records.items()) == list(other._records.items())

    def names(self) -> list[str]:
        return list(self._records)

    def get(self, name: str) -> Optional[WorktreeRecord]:
        return self._records.get(name)

    def find_by_path(self, path: str) -> Optional[WorktreeRecord]:
        for record in self._records.values():
            if record.path == path:
                return record
        return None

    def insert(self, record: WorktreeRecord) -> None:
        """Add a record, rejecting duplicate names or paths."""
        if record.name in self._records:
            raise KeyError(f"name '{record.name}' is already registered")
        if self.find_by_path(record.path) is not None:
            raise KeyError(f"path '{record.path}' is already registered")
        self._records[record.name] = record

    def remove(self, name: str) -> WorktreeRecord:
        return self._records.pop(name)

    def rename(self, old_name: str, new_name: str) -> WorktreeRecord:
        """Rename a record in place, keeping its position."""
        if old_name not in self._records:
            raise KeyError(old_name)
        if new_name in self._records:
            raise KeyError(f"name '{new_name}' is already registered")
        self._records = {
            (new_name if name == old_name else name): (
                replace(record, name=new_name) if name == old_name else record
            )
            for name, record in self._records.items()
        }
        return self._records[new_name]

    def touch(self, name: str, when: datetime) -> WorktreeRecord:
        """Update last_used_at for a record."""
        record = self._records[name]
        record.last_used_at = when
        return record
