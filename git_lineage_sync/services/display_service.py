"""Display service for worktree inspection output"""
from typing import Any, List, Optional

from rich.console import Console
from rich.table import Table

from git_lineage_sync.models.git import CommitRecord, GitStatus
from git_lineage_sync.logging_config import get_logger

console = Console()
logger = get_logger(__name__)

STATUS_COLUMNS = (
    ("added", "Added", "green"),
    ("modified", "Modified", "yellow"),
    ("removed", "Removed", "red"),
    ("conflicting", "Conflicting", "magenta"),
    ("untracked", "Untracked", "cyan"),
)


def format_date(date: Any) -> str:
    """Format a datetime as YYYY-MM-DD HH:MM."""
    if hasattr(date, "strftime"):
        return date.strftime("%Y-%m-%d %H:%M")
    return str(date)


class DisplayService:
    def __init__(self, verbose: bool = False, debug: bool = False, output: Optional[Console] = None):
        self.verbose = verbose
        self.debug_mode = debug
        self.console = output or console

    def display_status(self, status: GitStatus, branch_name: str) -> None:
        """Display the changed paths of a worktree, one row per path."""
        if status.is_clean:
            self.console.print(f"[green]{branch_name}: nothing to commit, working tree clean[/green]")
        else:
            table = Table(title=f"Status of {branch_name}")
            table.add_column("Change")
            table.add_column("Path")
            for attribute, label, color in STATUS_COLUMNS:
                for path in sorted(getattr(status, attribute)):
                    table.add_row(f"[{color}]{label}[/{color}]", path)
            self.console.print(table)

        if status.ahead or status.behind:
            self.console.print(f"↑ {status.ahead} to push   ↓ {status.behind} to pull")

    def display_branches(self, branches: List[str], current_branch: Optional[str] = None) -> None:
        """Display local and remote-only branches."""
        table = Table()
        table.add_column("Branch")
        table.add_column("Location")
        for name in branches:
            is_remote = name.startswith("origin/")
            marker = "* " if name == current_branch else "  "
            style = "cyan" if name == current_branch else None
            table.add_row(f"{marker}{name}", "remote only" if is_remote else "local", style=style)
        self.console.print(table)

        if self.verbose:
            self.console.print("\n* = Current branch")

    def display_history(self, records: List[CommitRecord]) -> None:
        """Display commits, newest first."""
        if not records:
            self.console.print("[yellow]No commits yet[/yellow]")
            return

        table = Table()
        table.add_column("Commit", style="yellow")
        table.add_column("Date")
        table.add_column("Author")
        table.add_column("Message")
        for record in records:
            author = record.author_name
            if self.verbose:
                author += f" <{record.author_email}>"
            message = record.message if self.verbose else (record.message.splitlines() or [""])[0]
            table.add_row(record.short_hash, format_date(record.timestamp), author, message)
        self.console.print(table)
