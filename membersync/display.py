"""Rich terminal output for reconciliation plans and apply summaries."""

from __future__ import annotations

from rich.console import Console
from rich.table import Table

from .models import Action, ApplySummary, PlannedAction
from .reconcile import actionable

console = Console()

_ACTION_STYLES = {
    Action.ADD: "[green]add[/green]",
    Action.REMOVE: "[red]remove[/red]",
    Action.EXPIRED: "[red]expired[/red]",
    Action.DO_NOTHING: "[dim]keep[/dim]",
    Action.NOT_EXPIRED: "[dim]keep[/dim]",
}


def display_plan(plan: list[PlannedAction], *, show_all: bool = False) -> None:
    """Print the planned changes; unchanged members only with *show_all*."""
    rows = plan if show_all else actionable(plan)
    if not rows:
        console.print("\n[green]Group already matches the roster.[/green]\n")
        return

    table = Table(title="Planned Changes")
    table.add_column("Email", style="bold")
    table.add_column("Name")
    table.add_column("Action", justify="center")
    table.add_column("Member ID", style="dim")

    for item in rows:
        table.add_row(item.email, item.name, _ACTION_STYLES[item.action], item.member_id)

    console.print()
    console.print(table)
    console.print()


def display_summary(summary: ApplySummary) -> None:
    """Print the counts and any per-item failures."""
    console.print(
        f"\n[bold]{summary.num_attempted} change(s):[/bold] "
        f"[green]{summary.num_added} added[/green], "
        f"[green]{summary.num_removed} removed[/green], "
        f"[red]{summary.num_failed} failed[/red]"
    )
    failures = summary.failures
    if not failures:
        return

    table = Table(title="Failures")
    table.add_column("Email", style="bold")
    table.add_column("Action")
    table.add_column("Error", style="red")
    for outcome in failures:
        table.add_row(outcome.planned.email, outcome.planned.action.value, outcome.error)
    console.print(table)
