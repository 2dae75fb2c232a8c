"""Display and formatting service for worktree information"""
import json
from typing import List, Optional

from rich.console import Console
from rich.markup import escape
from rich.table import Table

from git_workty.constants import COLUMNS, STATUS_COLORS
from git_workty.core.worktree_manager import DoctorCheck
from git_workty.formatters import format_branch, format_changes, format_name, format_relative, format_status
from git_workty.logging_config import get_logger
from git_workty.models.worktree import WorktreeRecord, WorktreeStatus

logger = get_logger(__name__)


class DisplayService:
    """Renders worktree views for humans (tables) and scripts (JSON)."""

    def __init__(self, console: Optional[Console] = None, color: bool = True):
        self.console = console or Console()
        self.color = color

    def display_worktree_table(self, records: List[WorktreeRecord], show_summary: bool = True) -> None:
        """Display a table of reconciled worktrees."""
        if not records:
            self.console.print("No worktrees found")
            return

        table = Table()
        for col in COLUMNS:
            table.add_column(col.label, min_width=col.width or None)

        for record in records:
            row_style = None
            if record.status != WorktreeStatus.ACTIVE and self.color:
                row_style = STATUS_COLORS.get(record.status.value)
            table.add_row(
                escape(format_name(record)),
                escape(format_branch(record)),
                format_status(record.status, color=self.color),
                format_changes(record, color=self.color),
                format_relative(record.last_used_at),
                escape(record.path),
                style=row_style,
            )

        self.console.print(table)

        if show_summary:
            counts = {status: 0 for status in WorktreeStatus}
            for record in records:
                counts[record.status] += 1
            self.console.print(
                f"{counts[WorktreeStatus.ACTIVE]} active, "
                f"{counts[WorktreeStatus.ORPHANED]} orphaned, "
                f"{counts[WorktreeStatus.UNTRACKED]} untracked"
            )
            if counts[WorktreeStatus.UNTRACKED]:
                self.console.print("[dim]Adopt untracked worktrees with: git-workty add <path> --name <name>[/dim]")
            if counts[WorktreeStatus.ORPHANED]:
                self.console.print("[dim]Drop orphaned records with: git-workty prune[/dim]")

    @staticmethod
    def to_json(records: List[WorktreeRecord], repo_root: str) -> str:
        """Machine-readable form of a reconciled view."""
        payload = {
            "repo": repo_root,
            "worktrees": [
                {
                    "name": record.name,
                    "path": record.path,
                    "branch": record.branch,
                    "head": record.head,
                    "status": record.status.value,
                    "is_main": record.is_main,
                    "dirty_count": record.dirty_count,
                    "created_at": record.created_at.isoformat() if record.created_at else None,
                    "last_used_at": record.last_used_at.isoformat() if record.last_used_at else None,
                }
                for record in records
            ],
        }
        return json.dumps(payload, indent=2)

    def display_doctor(self, checks: List[DoctorCheck]) -> None:
        """Print doctor results with check marks."""
        for check in checks:
            mark = "[green]✓[/green]" if check.ok else "[red]✗[/red]"
            detail = f" [dim]{check.detail}[/dim]" if check.detail else ""
            self.console.print(f"{mark} {check.name}{detail}")
