"""Custom exceptions for git-workty"""

from typing import Optional


class WorktyError(Exception):
    """Base exception for all git-workty errors.

    Each subclass carries its own process exit code so scripts can tell
    failure kinds apart.
    """

    exit_code = 1

    def __init__(self, operation: str, target: Optional[str] = None, message: Optional[str] = None):
        self.operation = operation
        self.target = target
        self.message = message

        error_msg = f"{operation} failed"
        if target:
            error_msg += f" for '{target}'"
        if message:
            error_msg += f": {message}"

        super().__init__(error_msg)


class VcsUnavailable(WorktyError):
    """Git is not installed or the directory is not inside a repository."""

    exit_code = 3


class VcsError(WorktyError):
    """Exception raised when an underlying git command fails."""

    exit_code = 4


class PathConflict(WorktyError):
    """Exception raised when a worktree path is already taken."""

    exit_code = 5


class BranchConflict(WorktyError):
    """Exception raised when a branch is already checked out in another worktree."""

    exit_code = 6

    def __init__(self, branch: str, checked_out_at: Optional[str] = None, message: Optional[str] = None):
        self.branch = branch
        self.checked_out_at = checked_out_at
        if message is None:
            message = "branch is already checked out"
            if checked_out_at:
                message += f" at {checked_out_at}"
        super().__init__("create_worktree", branch, message)


class DirtyWorktree(WorktyError):
    """Exception raised when removing a worktree with uncommitted changes."""

    exit_code = 7

    def __init__(self, path: str):
        super().__init__(
            "remove_worktree", path, "worktree has uncommitted changes (use --force to remove anyway)"
        )


class DuplicateName(WorktyError):
    """Exception raised when a worktree name is already registered."""

    exit_code = 8

    def __init__(self, name: str):
        self.name = name
        super().__init__("add", name, "a worktree with this name already exists")


class NotFound(WorktyError):
    """Exception raised when no worktree matches a reference."""

    exit_code = 9

    def __init__(self, reference: str):
        self.reference = reference
        super().__init__("resolve", reference, "no matching worktree")


class AmbiguousReference(WorktyError):
    """Exception raised when a reference matches more than one worktree."""

    exit_code = 10

    def __init__(self, reference: str, candidates: list[str]):
        self.reference = reference
        self.candidates = candidates
        super().__init__("resolve", reference, f"matches {', '.join(candidates)}")


class WorktreeNotActive(WorktyError):
    """Exception raised when switching to an orphaned or untracked worktree."""

    exit_code = 11

    def __init__(self, name: str, status: str, hint: Optional[str] = None):
        self.name = name
        self.status = status
        message = f"worktree is {status}"
        if hint:
            message += f" ({hint})"
        super().__init__("switch", name, message)


class RegistryError(WorktyError):
    """Base exception for registry file problems."""

    exit_code = 13


class IncompatibleRegistryVersion(RegistryError):
    """Exception raised when the registry file uses an unsupported format version."""

    exit_code = 12

    def __init__(self, path: str, found, supported: int):
        self.found = found
        self.supported = supported
        super().__init__(
            "load_registry", path, f"format version {found!r} is not supported (expected {supported})"
        )


class RegistryCorrupt(RegistryError):
    """Exception raised when the registry file cannot be parsed."""

    exit_code = 13


class EmissionError(WorktyError):
    """Exception raised when the switch target cannot be written out."""

    exit_code = 14


class ConfigError(WorktyError):
    """Exception raised for unreadable or invalid configuration files."""

    exit_code = 15


class PersistenceWarning(UserWarning):
    """Warning issued when git succeeded but the registry could not be saved.

    The worktree exists; the next reconciliation picks it up as untracked.
    """
