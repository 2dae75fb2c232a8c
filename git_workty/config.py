"""Configuration handling for git-workty"""

import hashlib
import os
import tomllib
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING, Optional

from git_workty.constants import (
    CONFIG_FILENAME,
    DEFAULT_BASE,
    DEFAULT_GIT_TIMEOUT,
    DEFAULT_ROOT,
    EMIT_MODES,
)
from git_workty.exceptions import ConfigError
from git_workty.logging_config import get_logger

if TYPE_CHECKING:
    from git_workty.services.git.repository import GitRepo

logger = get_logger(__name__)


@dataclass
class Config:
    """Configuration for git-workty with validation."""

    version: int = 1
    base: str = DEFAULT_BASE  # Start point for new branches
    root: str = DEFAULT_ROOT  # Where worktrees go when add gets no path
    timeout: int = DEFAULT_GIT_TIMEOUT  # Seconds before a git call is killed
    emit_mode: str = "path"  # path, command

    def __post_init__(self):
        """Validate configuration after initialization."""
        self._validate_version()
        self._validate_base()
        self._validate_root()
        self._validate_timeout()
        self._validate_emit_mode()

    def _validate_version(self):
        """Validate version is one we understand."""
        if self.version != 1:
            raise ValueError(f"version must be 1, got {self.version!r}")

    def _validate_base(self):
        """Validate base is not empty."""
        if not self.base or not self.base.strip():
            raise ValueError("base cannot be empty")
        self.base = self.base.strip()

    def _validate_root(self):
        """Validate root is not empty."""
        if not self.root or not self.root.strip():
            raise ValueError("root cannot be empty")

    def _validate_timeout(self):
        """Validate timeout is positive."""
        if not isinstance(self.timeout, int) or self.timeout <= 0:
            raise ValueError(f"timeout must be a positive integer, got {self.timeout!r}")

    def _validate_emit_mode(self):
        """Validate emit_mode is one of allowed values."""
        if self.emit_mode not in EMIT_MODES:
            raise ValueError(f"emit_mode must be one of {EMIT_MODES}, got '{self.emit_mode}'")

    def to_dict(self) -> dict:
        """Convert config to dictionary."""
        return {
            "version": self.version,
            "base": self.base,
            "root": self.root,
            "timeout": self.timeout,
            "emit_mode": self.emit_mode,
        }

    def get(self, key: str, default=None):
        """Get config value by key."""
        return getattr(self, key, default)

    @classmethod
    def from_dict(cls, config_dict: dict) -> "Config":
        """Create Config from dictionary, ignoring unknown keys."""
        known_fields = {"version", "base", "root", "timeout", "emit_mode"}
        unknown = sorted(set(config_dict) - known_fields)
        if unknown:
            logger.debug(f"Ignoring unknown config keys: {', '.join(unknown)}")
        filtered = {k: v for k, v in config_dict.items() if k in known_fields}
        return cls(**filtered)

    @staticmethod
    def candidate_paths(repo: "GitRepo") -> list[Path]:
        """Config file locations, most specific first."""
        candidates = [
            repo.root / CONFIG_FILENAME,
            repo.common_dir / CONFIG_FILENAME,
        ]
        xdg_config = os.environ.get("XDG_CONFIG_HOME")
        config_dir = Path(xdg_config) if xdg_config else Path.home() / ".config"
        candidates.append(config_dir / "workty" / CONFIG_FILENAME)
        candidates.append(Path.home() / f".{CONFIG_FILENAME}")
        candidates.append(Path.home() / CONFIG_FILENAME)
        return candidates

    @classmethod
    def load(cls, repo: "GitRepo") -> "Config":
        """Load the first config file found for a repository.

        Args:
            repo: Repository the configuration applies to

        Returns:
            Config from file, or defaults when no file exists

        Raises:
            ConfigError: a config file exists but cannot be read or is invalid
        """
        config = cls()
        for path in cls.candidate_paths(repo):
            if not path.is_file():
                continue
            try:
                with open(path, "rb") as f:
                    data = tomllib.load(f)
                config = cls.from_dict(data)
            except (OSError, tomllib.TOMLDecodeError, TypeError, ValueError) as e:
                raise ConfigError("load_config", str(path), str(e))
            logger.debug(f"Loaded config from {path}")
            break

        config.adjust_defaults(repo)
        return config

    def adjust_defaults(self, repo: "GitRepo") -> None:
        """Use the repository's default branch when the default base is missing."""
        if self.base == DEFAULT_BASE and not repo.branch_exists(DEFAULT_BASE):
            detected = repo.default_branch()
            if detected:
                logger.debug(f"Base branch '{DEFAULT_BASE}' not found, using '{detected}'")
                self.base = detected

    def workspace_root(self, repo: "GitRepo") -> Path:
        """Directory under which new worktrees are created by default."""
        repo_name = repo.root.name or "repo"
        expanded = self.root.replace("{repo}", repo_name).replace("{id}", compute_repo_id(repo))
        return Path(os.path.expanduser(expanded))

    def worktree_path(self, repo: "GitRepo", slug: str) -> Path:
        """Default location for a worktree named slug."""
        return self.workspace_root(repo) / slug


def normalize_url(url: str) -> str:
    """Normalize a remote URL so equivalent spellings hash the same."""
    url = url.strip().rstrip("/")
    if url.endswith(".git"):
        url = url[: -len(".git")]
    return url.lower()


def compute_repo_id(repo: "GitRepo") -> str:
    """Short stable identifier for a repository (origin URL, else common dir)."""
    source = repo.origin_url() or str(repo.common_dir)
    return hashlib.sha256(normalize_url(source).encode()).hexdigest()[:8]
