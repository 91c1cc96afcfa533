"""Console UI for terminal output using Rich."""

import logging
from typing import Optional

from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape
from rich.table import Table

from researchhub.models.submission import Submission
from researchhub.services.access_service import AccessPlan


def configure_logging(level: str = "INFO", console: Optional[Console] = None) -> None:
    """Route standard logging through Rich."""
    logging.basicConfig(
        level=level.upper(),
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=console, show_path=False)],
        force=True,
    )


class ConsoleUI:
    """Rich-based console UI for submission display and notifications."""

    def __init__(self, console: Optional[Console] = None):
        """Initialize console."""
        self.console = console or Console()

    def success(self, message: str) -> None:
        """Print a success message in green."""
        self.console.print(f"[green]{escape(message)}[/green]")

    def error(self, message: str) -> None:
        """Print an error message in red."""
        self.console.print(f"[red]Error:[/red] {escape(message)}")

    def created(self, record: Submission) -> None:
        self.console.print(
            f"[green]Uploaded[/green] {escape(record.title)} [dim]({record.id})[/dim]"
        )

    def revised(self, record: Submission) -> None:
        self.console.print(
            f"[green]Revision submitted[/green] {record.id} "
            f"(revision {record.revision_count})"
        )

    def deleted(self, submission_id: str) -> None:
        self.success(f"Deleted {submission_id}")

    def reviewed(self, record: Submission) -> None:
        self.console.print(
            f"[green]Marked {record.status.value}[/green] {record.id}"
        )

    def access_plan(self, plan: AccessPlan) -> None:
        """Print where to fetch a file and whether a session is needed."""
        if plan.requires_session:
            self.console.print(
                f"[bold]Authenticated stream:[/bold] {escape(plan.url)}\n"
                "Send your session credentials with the request."
            )
        else:
            self.console.print(f"[bold]Signed link:[/bold] {escape(plan.url)}")
            if plan.expires_at:
                self.console.print(f"Expires at {plan.expires_at.isoformat()}")

    def status_counts(self, counts: dict[str, int]) -> None:
        """Display per-status totals."""
        table = Table(title="Submissions by status")
        table.add_column("Status")
        table.add_column("Count", justify="right")
        for key, value in counts.items():
            table.add_row(key, str(value))
        self.console.print(table)

    def display_submissions(self, records: list[Submission], title: str = "My submissions") -> None:
        """Display submissions in a formatted table.

        Args:
            records: Submissions to display
            title: Table title
        """
        table = Table(title=title)
        table.add_column("ID", overflow="fold")
        table.add_column("Submitted", width=10)
        table.add_column("Status")
        table.add_column("Type")
        table.add_column("Title", overflow="fold")
        table.add_column("Keywords", overflow="fold")
        table.add_column("Rev", justify="right")

        for record in records:
            keywords = record.keywords[:3]
            extra = len(record.keywords) - len(keywords)
            keyword_text = ", ".join(escape(k) for k in keywords)
            if extra > 0:
                keyword_text += f" +{extra}"
            table.add_row(
                escape(record.id),
                record.created_at.date().isoformat(),
                record.status.value,
                record.submission_type.value,
                escape(record.title),
                keyword_text or "-",
                str(record.revision_count),
            )

        if records:
            self.console.print(table)
        else:
            self.console.print("No submissions found.")
