"""Repository discovery for git-workty."""

import os
from pathlib import Path
from typing import Optional, Union

import git

from git_workty.exceptions import VcsError, VcsUnavailable
from git_workty.logging_config import get_logger
from git_workty.services.git.worktrees import _stderr_text

logger = get_logger(__name__)

FALLBACK_BRANCHES = ("main", "master")


class GitRepo:
    """Locations of a repository: its working root and its shared git dir.

    The common dir is the same for every worktree of a repository, which makes
    it the natural home for per-repository state.
    """

    def __init__(self, root: Union[str, Path], common_dir: Union[str, Path]):
        self.root = Path(root)
        self.common_dir = Path(common_dir)

    def __repr__(self) -> str:
        return f"GitRepo(root={str(self.root)!r}, common_dir={str(self.common_dir)!r})"

    @classmethod
    def discover(cls, start_path: Optional[Union[str, Path]] = None) -> "GitRepo":
        """Find the repository containing start_path (defaults to the cwd).

        Raises:
            VcsUnavailable: git is missing or start_path is not in a repository
        """
        start = Path(start_path) if start_path else Path.cwd()
        try:
            repo = git.Repo(start, search_parent_directories=True)
            if repo.bare:
                root = Path(repo.git_dir)
            else:
                root = Path(repo.git.rev_parse("--show-toplevel").strip())
            common = Path(repo.git.rev_parse("--git-common-dir").strip())
        except (git.exc.InvalidGitRepositoryError, git.exc.NoSuchPathError):
            raise VcsUnavailable("discover_repository", str(start), "not a git repository")
        except git.exc.GitCommandNotFound:
            raise VcsUnavailable("discover_repository", str(start), "git executable not found")
        except git.exc.GitCommandError as e:
            raise VcsUnavailable("discover_repository", str(start), str(e))

        if not common.is_absolute():
            # rev-parse answers relative to the directory git ran in
            common = Path(repo.working_tree_dir or repo.git_dir) / common

        root = Path(os.path.realpath(root))
        common = Path(os.path.realpath(common))
        logger.debug(f"Discovered repository root={root} common_dir={common}")
        return cls(root, common)

    def _get_repo(self) -> git.Repo:
        return git.Repo(self.root)

    def origin_url(self) -> Optional[str]:
        """URL of the 'origin' remote, if there is one."""
        try:
            return self._get_repo().git.remote("get-url", "origin").strip() or None
        except git.exc.GitCommandError:
            return None

    def branch_exists(self, branch: str) -> bool:
        """Check whether a local branch exists."""
        try:
            self._get_repo().git.rev_parse("--verify", "--quiet", f"refs/heads/{branch}")
            return True
        except git.exc.GitCommandError:
            return False

    def default_branch(self) -> Optional[str]:
        """Detect the default branch of the repository.

        Strategy:
        1. The symbolic ref in the common dir's HEAD file.
        2. Fall back to "main", then "master", if they exist.
        """
        head_file = self.common_dir / "HEAD"
        try:
            contents = head_file.read_text().strip()
            if contents.startswith("ref: refs/heads/"):
                return contents[len("ref: refs/heads/"):]
        except OSError as e:
            logger.debug(f"Could not read {head_file}: {e}")

        for branch in FALLBACK_BRANCHES:
            if self.branch_exists(branch):
                return branch
        return None

    def is_ancestor(self, ancestor: str, descendant: str) -> bool:
        """Check whether ancestor is reachable from descendant (i.e. merged into it).

        Raises:
            VcsError: git could not compare the two revisions
        """
        try:
            self._get_repo().git.merge_base("--is-ancestor", ancestor, descendant)
            return True
        except git.exc.GitCommandError as e:
            # Exit status 1 is git's "no"; anything else is a real failure
            if e.status == 1:
                return False
            raise VcsError("is_ancestor", f"{ancestor}..{descendant}", _stderr_text(e))
