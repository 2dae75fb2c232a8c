"""Worktree operations service for git-workty."""

import os
from pathlib import Path
from typing import Any, Dict, Optional, Union

import git

from git_workty.constants import DEFAULT_GIT_TIMEOUT
from git_workty.exceptions import (
    BranchConflict,
    DirtyWorktree,
    PathConflict,
    VcsError,
    VcsUnavailable,
)
from git_workty.logging_config import get_logger
from git_workty.models.worktree import GitWorktreeEntry
from git_workty.utils.paths import normalize_path

logger = get_logger(__name__)

# Substrings of git's stderr that identify specific failures
_BRANCH_IN_USE_MARKERS = ("is already checked out at", "is already used by worktree at")
_DIRTY_MARKERS = ("contains modified or untracked files",)
_PATH_EXISTS_MARKERS = ("already exists",)


def _stderr_text(error: git.exc.GitCommandError) -> str:
    """Git's own diagnostic text from a GitCommandError, without GitPython's decoration."""
    text = (getattr(error, "stderr", "") or "").strip()
    if text.startswith("stderr: '") and text.endswith("'"):
        text = text[len("stderr: '"):-1].strip()
    return text or str(error)


def parse_porcelain(output: str) -> list[GitWorktreeEntry]:
    """Parse `git worktree list --porcelain` output.

    Format:
        worktree /path/to/worktree
        HEAD commit_sha
        branch refs/heads/branch-name   (or "detached", or "bare")
        locked [reason]                 (optional)
        prunable [reason]               (optional)
        (blank line between worktrees)

    Args:
        output: Raw porcelain output

    Returns:
        List of entries in git's order; the first one is the main worktree
    """
    entries: list[GitWorktreeEntry] = []
    current: Dict[str, Any] = {}

    def flush():
        if current.get("path"):
            entries.append(
                GitWorktreeEntry(
                    path=current["path"],
                    head=current.get("head", ""),
                    branch=current.get("branch"),
                    is_bare=current.get("bare", False),
                    is_locked=current.get("locked", False),
                    is_prunable=current.get("prunable", False),
                    is_main=not entries,
                )
            )

    for line in output.split("\n"):
        line = line.rstrip("\r")

        if not line.strip():
            # Empty line marks end of worktree entry
            flush()
            current = {}
            continue

        key, _, value = line.partition(" ")
        if key == "worktree":
            flush()
            current = {"path": value}
        elif key == "HEAD":
            current["head"] = value
        elif key == "branch":
            if value.startswith("refs/heads/"):
                current["branch"] = value[len("refs/heads/"):]
            else:
                current["branch"] = value
        elif key == "detached":
            current["branch"] = None
        elif key == "bare":
            current["bare"] = True
        elif key == "locked":
            current["locked"] = True
        elif key == "prunable":
            current["prunable"] = True

    # Handle last entry if no trailing blank line
    flush()
    return entries


class WorktreeService:
    """Thin adapter over `git worktree`.

    Nothing is cached: every call reflects what git reports right now.
    """

    def __init__(self, repo_path: Union[str, Path], timeout: int = DEFAULT_GIT_TIMEOUT):
        """Initialize the worktree service.

        Args:
            repo_path: Path to the git repository (any of its worktrees works)
            timeout: Seconds after which a git subprocess is killed
        """
        self.repo_path = str(repo_path)
        self.timeout = timeout

    def _get_repo(self) -> git.Repo:
        """Open the repository, translating failures to VcsUnavailable."""
        try:
            return git.Repo(self.repo_path, search_parent_directories=True)
        except (git.exc.InvalidGitRepositoryError, git.exc.NoSuchPathError):
            raise VcsUnavailable("open_repository", self.repo_path, "not a git repository")

    def _worktree(self, operation: str, target: Optional[str], *args: str) -> str:
        """Run `git worktree <args>` with the configured timeout."""
        repo = self._get_repo()
        try:
            return repo.git.worktree(*args, kill_after_timeout=self.timeout)
        except git.exc.GitCommandNotFound:
            raise VcsUnavailable(operation, target, "git executable not found")

    def _git_in(self, path: str, *args: str) -> str:
        """Run a git command inside another worktree directory."""
        repo = self._get_repo()
        try:
            return repo.git.execute(["git", "-C", path, *args], kill_after_timeout=self.timeout)
        except git.exc.GitCommandNotFound:
            raise VcsUnavailable(args[0], path, "git executable not found")

    def list_worktrees(self) -> list[GitWorktreeEntry]:
        """Get all worktrees registered in the repository.

        Returns:
            List of GitWorktreeEntry objects, main worktree first

        Raises:
            VcsUnavailable: git is missing or repo_path is not in a repository
            VcsError: git failed for any other reason
        """
        try:
            output = self._worktree("list_worktrees", self.repo_path, "list", "--porcelain")
        except git.exc.GitCommandError as e:
            stderr = _stderr_text(e)
            if "not a git repository" in stderr:
                raise VcsUnavailable("list_worktrees", self.repo_path, stderr)
            raise VcsError("list_worktrees", self.repo_path, stderr)

        entries = parse_porcelain(output)
        logger.debug(f"Found {len(entries)} worktrees")
        for entry in entries:
            logger.debug(f"  {entry}")
        return entries

    def find_worktree(self, path: str) -> Optional[GitWorktreeEntry]:
        """Find the live entry for a path, if git knows it."""
        wanted = normalize_path(path)
        for entry in self.list_worktrees():
            if normalize_path(entry.path) == wanted:
                return entry
        return None

    def _rev_parse_ok(self, *args: str) -> bool:
        try:
            self._get_repo().git.rev_parse("--verify", "--quiet", *args, kill_after_timeout=self.timeout)
            return True
        except git.exc.GitCommandError:
            return False

    def create_worktree(self, path: str, branch_spec: str, base: Optional[str] = None) -> GitWorktreeEntry:
        """Create a worktree at path checking out branch_spec.

        branch_spec is interpreted as:
        - an existing local branch: checked out as-is
        - anything else that resolves to a commit: checked out detached
        - otherwise: a new branch created from base (or HEAD)

        Args:
            path: Directory for the new worktree
            branch_spec: Branch name or commit-ish
            base: Start point for a new branch

        Returns:
            The live entry for the new worktree

        Raises:
            PathConflict: path exists and is not an empty directory
            BranchConflict: the branch is checked out in another worktree
            VcsError: any other git failure, with git's message unmodified
        """
        path = normalize_path(path)
        target = Path(path)
        if target.exists() and (not target.is_dir() or any(target.iterdir())):
            raise PathConflict("create_worktree", path, "path exists and is not empty")

        if self._rev_parse_ok(f"refs/heads/{branch_spec}"):
            for entry in self.list_worktrees():
                if entry.branch == branch_spec:
                    raise BranchConflict(branch_spec, entry.path)
            args = ["add", path, branch_spec]
        elif self._rev_parse_ok(f"{branch_spec}^{{commit}}"):
            args = ["add", "--detach", path, branch_spec]
        else:
            args = ["add", "-b", branch_spec, path, base or "HEAD"]

        try:
            self._worktree("create_worktree", path, *args)
        except git.exc.GitCommandError as e:
            stderr = _stderr_text(e)
            logger.error(f"Failed to create worktree at {path}: {stderr}")
            if any(marker in stderr for marker in _BRANCH_IN_USE_MARKERS):
                raise BranchConflict(branch_spec, message=stderr)
            if any(marker in stderr for marker in _PATH_EXISTS_MARKERS) and target.exists():
                raise PathConflict("create_worktree", path, stderr)
            raise VcsError("create_worktree", path, stderr)

        logger.info(f"Created worktree at {path} for {branch_spec}")
        entry = self.find_worktree(path)
        if entry is None:
            raise VcsError("create_worktree", path, "git reported success but the worktree is not listed")
        return entry

    def status_lines(self, path: str) -> list[str]:
        """`git status --porcelain` lines for a worktree."""
        try:
            output = self._git_in(path, "status", "--porcelain")
        except git.exc.GitCommandError as e:
            raise VcsError("status", path, _stderr_text(e))
        return [line for line in output.split("\n") if line.strip()]

    def dirty_count(self, path: str) -> int:
        """Number of modified, staged or untracked entries in a worktree."""
        return len(self.status_lines(path))

    def is_dirty(self, path: str) -> bool:
        """Check whether a worktree has uncommitted changes."""
        return self.dirty_count(path) > 0

    def remove_worktree(self, path: str, force: bool = False) -> None:
        """Remove a worktree and its working files.

        Args:
            path: Path to the worktree directory
            force: Remove even if the worktree is dirty or locked

        Raises:
            DirtyWorktree: uncommitted changes exist and force is False
            VcsError: git refused or failed
        """
        if not force and os.path.isdir(path) and self.is_dirty(path):
            raise DirtyWorktree(path)

        args = ["remove", path]
        if force:
            args.append("--force")
            entry = self.find_worktree(path)
            if entry is not None and entry.is_locked:
                # git needs --force twice for locked worktrees
                args.append("--force")

        try:
            self._worktree("remove_worktree", path, *args)
        except git.exc.GitCommandError as e:
            stderr = _stderr_text(e)
            logger.error(f"Failed to remove worktree at {path}: {stderr}")
            if not force and any(marker in stderr for marker in _DIRTY_MARKERS):
                raise DirtyWorktree(path)
            raise VcsError("remove_worktree", path, stderr)

        logger.info(f"Removed worktree at {path}")

    def prune_stale(self) -> None:
        """Prune administrative data for worktrees whose directory is gone."""
        try:
            self._worktree("prune_worktrees", self.repo_path, "prune")
        except git.exc.GitCommandError as e:
            raise VcsError("prune_worktrees", self.repo_path, _stderr_text(e))
        logger.info("Pruned stale worktree metadata")
