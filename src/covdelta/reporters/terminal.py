"""Terminal reporter with rich output on stderr.

stdout is reserved for the step output line, so all human-facing output goes
to stderr.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from rich.console import Console
from rich.table import Table

if TYPE_CHECKING:
    from covdelta.models.coverage import SummaryTable
    from covdelta.required_files import RequiredFilesResult

console = Console(stderr=True)


class CLIReporter:
    """Rich terminal output for covdelta commands."""

    def __init__(self, output: Console | None = None) -> None:
        self.console = output or console

    def print_header(self, title: str) -> None:
        """Print a bold header."""
        self.console.print(f"\n[bold cyan]{title}[/bold cyan]\n")

    def print_success(self, message: str) -> None:
        """Print a success message."""
        self.console.print(f"[green]✓[/green] {message}")

    def print_error(self, message: str) -> None:
        """Print an error message."""
        self.console.print(f"[red]✗[/red] {message}")

    def print_warning(self, message: str) -> None:
        """Print a warning message."""
        self.console.print(f"[yellow]⚠[/yellow] {message}")

    def print_info(self, message: str) -> None:
        """Print an info message."""
        self.console.print(f"[blue]ℹ[/blue] {message}")

    def print_summary_table(self, table: SummaryTable) -> None:
        """Print the coverage summary as a rich table."""
        if table.is_empty:
            self.print_info("No packages affected; nothing to report.")
            return

        rich_table = Table(title="Coverage Delta")
        rich_table.add_column("Package", style="cyan")
        for column in ("Statements", "Branches", "Functions", "Lines"):
            rich_table.add_column(column, justify="right")

        for row in table.rows:
            cells = [
                f"[{metric.color}]{metric.display}[/{metric.color}] "
                f"[{delta.color}]{delta.display}[/{delta.color}]"
                for metric, delta in zip(row.report.metrics(), row.delta.deltas(), strict=True)
            ]
            rich_table.add_row(row.package.name, *cells)

        self.console.print(rich_table)

    def print_required_files(self, result: RequiredFilesResult) -> None:
        """Print the required-files checklist."""
        for entry in result.entries:
            if entry.present:
                self.console.print(f"  [green]✓[/green] {entry.file}")
            else:
                self.console.print(f"  [red]✗[/red] {entry.file}")


reporter = CLIReporter()
