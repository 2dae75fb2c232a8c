"""Utility functions for git-workty.

This package provides utility modules:
- paths: path normalization and comparison helpers
"""

from .paths import is_case_insensitive_fs, is_within, normalize_path, slugify

__all__ = [
    "is_case_insensitive_fs",
    "is_within",
    "normalize_path",
    "slugify",
]
