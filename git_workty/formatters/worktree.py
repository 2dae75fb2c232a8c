"""Worktree cell formatting utilities."""

from git_workty.constants import STATUS_COLORS, SYMBOL_MAIN
from git_workty.models.worktree import WorktreeRecord, WorktreeStatus


def format_status(status: WorktreeStatus, color: bool = True) -> str:
    """
    Format worktree status as display text.

    Args:
        status: Status enum value
        color: Wrap in Rich markup

    Returns:
        Display text for status
    """
    style = STATUS_COLORS.get(status.value)
    if color and style:
        return f"[{style}]{status.value}[/{style}]"
    return status.value


def format_branch(record: WorktreeRecord) -> str:
    """Branch name, or the short commit for detached worktrees."""
    if record.branch:
        return record.branch
    if record.head:
        return f"(detached {record.head[:7]})"
    return "(unknown)"


def format_name(record: WorktreeRecord) -> str:
    """Name with a marker for the main worktree."""
    return f"{record.name} {SYMBOL_MAIN}" if record.is_main else record.name


def format_changes(record: WorktreeRecord, color: bool = True) -> str:
    """Uncommitted change count, "-" when it was not read."""
    if record.dirty_count is None:
        return "-"
    if record.dirty_count == 0:
        return "clean"
    text = f"{record.dirty_count} dirty"
    return f"[yellow]{text}[/yellow]" if color else text
