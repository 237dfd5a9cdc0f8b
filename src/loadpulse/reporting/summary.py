"""Console summary of a finished run."""

from __future__ import annotations

from typing import TYPE_CHECKING

from rich.table import Table

if TYPE_CHECKING:
    from rich.console import Console

    from loadpulse.metrics.models import AggregateStats
    from loadpulse.reporting.verify import VerificationResult


def build_summary_table(stats: AggregateStats, *, title: str = "Test Results") -> Table:
    """Build a Rich table of the run's counters.

    Args:
        stats: Aggregate statistics of the run.
        title: Table title.

    Returns:
        Formatted Rich Table.
    """
    table = Table(title=title, show_header=True, header_style="bold green", expand=True)
    table.add_column("Metric", style="bold")
    table.add_column("Value", justify="right")

    table.add_row("Total Requests", str(stats.total))
    table.add_row("Successful POST requests", str(stats.successful_posts))
    table.add_row("Failed POST requests", str(stats.failed_posts))
    table.add_row("Successful GET requests", str(stats.successful_gets))
    table.add_row("Failed GET requests", str(stats.failed_gets))
    if stats.total > 0:
        table.add_row("Average Response Time", f"{stats.average_latency_ms:.2f} ms")
        table.add_row("Error Rate", f"{stats.error_rate * 100:.2f}%")

    return table


def build_verification_table(result: VerificationResult) -> Table:
    """Build a Rich table comparing server-side and client-side counts."""
    table = Table(title="Server Verification", show_header=True, header_style="bold cyan", expand=True)
    table.add_column("Check", style="bold")
    table.add_column("Server", justify="right")
    table.add_column("Client", justify="right")

    table.add_row(
        "Successful POST requests",
        str(result.server_messages),
        str(result.client_successful_posts),
    )
    table.add_row("Successful GET requests", "-", str(result.client_successful_gets))
    if result.posts_match:
        table.caption = "[green]Server message count matches successful POSTs[/green]"
    else:
        table.caption = "[red]MISMATCH: server message count differs from successful POSTs[/red]"
    return table


def render_summary(
    stats: AggregateStats,
    console: Console,
    verification: VerificationResult | None = None,
) -> None:
    """Print the result table, and the verification table when available."""
    console.print(build_summary_table(stats))
    if verification is not None:
        console.print()
        console.print(build_verification_table(verification))
