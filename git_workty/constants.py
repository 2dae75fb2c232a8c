"""Shared constants for git-workty."""

from dataclasses import dataclass
from typing import List

# Seconds before a git subprocess is killed
DEFAULT_GIT_TIMEOUT = 30

# Registry file, stored inside the repository's common git dir
REGISTRY_DIRNAME = "workty"
REGISTRY_FILENAME = "registry.json"
REGISTRY_VERSION = 1

CONFIG_FILENAME = "workty.toml"
DEFAULT_BASE = "main"
DEFAULT_ROOT = "~/.workty/{repo}-{id}"

# Set by the shell integration; when present the switch target goes here instead of stdout
CD_FILE_ENV = "GIT_WORKTY_CD_FILE"

EMIT_MODES = ["path", "command"]
SUPPORTED_SHELLS = ["bash", "zsh", "fish"]


@dataclass
class ColumnDefinition:
    """Definition of a table column."""

    key: str
    label: str
    width: int = 0  # 0 means auto-width


COLUMNS: List[ColumnDefinition] = [
    ColumnDefinition("name", "Name", 24),
    ColumnDefinition("branch", "Branch", 30),
    ColumnDefinition("status", "Status", 10),
    ColumnDefinition("changes", "Changes", 9),
    ColumnDefinition("last_used", "Last Used", 16),
    ColumnDefinition("path", "Path"),
]


SYMBOL_MAIN = "*"

# Rich styles per status
STATUS_COLORS = {
    "active": "green",
    "orphaned": "red",
    "untracked": "yellow",
}
