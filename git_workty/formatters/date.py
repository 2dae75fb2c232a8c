"""Date and time formatting utilities."""

from datetime import datetime, timezone
from typing import Optional


def format_relative(date: Optional[datetime], now: Optional[datetime] = None) -> str:
    """
    Format a timestamp relative to now ("just now", "5m ago", "3d ago").

    Args:
        date: Timestamp, or None
        now: Reference time (defaults to the current time)

    Returns:
        Short relative description, "never" for None
    """
    if date is None:
        return "never"
    now = now or datetime.now(timezone.utc)
    seconds = int((now - date).total_seconds())
    if seconds < 60:
        return "just now"
    if seconds < 3600:
        return f"{seconds // 60}m ago"
    if seconds < 86400:
        return f"{seconds // 3600}h ago"
    return f"{seconds // 86400}d ago"
