"""Path helpers shared by the git adapter and the worktree manager."""

import os
import re
from pathlib import Path
from typing import Union

PathLike = Union[str, Path]

_UNSAFE_SLUG_CHARS = re.compile(r"[^A-Za-z0-9._-]+")


def normalize_path(path: PathLike, case_insensitive: bool = False) -> str:
    """Absolute, symlink-free form of a path used as a comparison key.

    Args:
        path: Path to normalize (relative paths resolve against the cwd)
        case_insensitive: Fold case, for filesystems that ignore it

    Returns:
        Normalized path string
    """
    normalized = os.path.normpath(os.path.realpath(os.path.expanduser(str(path))))
    if case_insensitive:
        normalized = normalized.lower()
    return normalized


def is_case_insensitive_fs(directory: PathLike) -> bool:
    """Probe whether the filesystem holding an existing directory ignores case."""
    directory = Path(directory)
    flipped = directory.parent / directory.name.swapcase()
    if flipped == directory or not directory.exists():
        return False
    try:
        return flipped.exists() and os.path.samefile(directory, flipped)
    except OSError:
        return False


def is_within(path: str, parent: str) -> bool:
    """True if normalized path equals parent or lies below it."""
    if path == parent:
        return True
    return path.startswith(parent.rstrip(os.sep) + os.sep)


def slugify(value: str) -> str:
    """Turn a branch name into a single path component / display name."""
    slug = _UNSAFE_SLUG_CHARS.sub("-", value.replace("/", "-")).strip("-.")
    return slug or "worktree"
