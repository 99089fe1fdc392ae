"""Rich terminal renderer for run reports and catalogs.

Color scheme
------------
- green     : CURRENT, RESOLVED
- yellow    : BEHIND
- dim       : UNKNOWN, NOT_CHECKED
- bold red  : FAILED
"""

from __future__ import annotations

from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table

from patchforge.models.catalog import CatalogEntry
from patchforge.models.components import ComponentState
from patchforge.models.reports import ComponentReport, RunReport

_STATE_LABELS: dict[ComponentState, str] = {
    ComponentState.CURRENT: "[green]CURRENT[/green]",
    ComponentState.RESOLVED: "[bold green]RESOLVED[/bold green]",
    ComponentState.BEHIND: "[yellow]BEHIND[/yellow]",
    ComponentState.UNKNOWN: "[dim]UNKNOWN[/dim]",
    ComponentState.FAILED: "[bold red]FAILED[/bold red]",
    ComponentState.NOT_CHECKED: "[dim]NOT CHECKED[/dim]",
    ComponentState.CHECKING: "[cyan]CHECKING[/cyan]",
    ComponentState.REMEDIATING: "[cyan]REMEDIATING[/cyan]",
}


class ReportRenderer:
    """Renders ``RunReport`` and catalog listings as Rich output.

    Parameters
    ----------
    console:
        Rich Console instance.  A new one is created if not provided.
    """

    def __init__(self, console: Console | None = None) -> None:
        self.console = console or Console()

    # ------------------------------------------------------------------
    # Run reports
    # ------------------------------------------------------------------

    def render_report(self, report: RunReport) -> Panel:
        table = Table(show_header=True, header_style="bold cyan", expand=True)
        table.add_column("Component", min_width=14)
        table.add_column("State", justify="center", width=12)
        table.add_column("Installed")
        table.add_column("Latest")
        table.add_column("Details")

        for component in report.components:
            table.add_row(
                component.display_name,
                _STATE_LABELS.get(component.state, component.state.value),
                escape(component.local_version),
                escape(component.latest or "-"),
                _details(component),
            )

        failed = report.has_failures
        outstanding = len(report.outstanding)
        if failed:
            subtitle, border = "[bold red]Remediation failed for some components[/bold red]", "red"
        elif outstanding:
            subtitle, border = f"[yellow]{outstanding} component(s) need attention[/yellow]", "yellow"
        else:
            subtitle, border = "[bold green]Everything is up to date[/bold green]", "green"

        title = "Update Run" if report.remediate else "Currency Check"
        return Panel(
            table,
            title=f"[bold]{title}[/bold]",
            subtitle=subtitle,
            border_style=border,
            padding=(1, 2),
        )

    def print_report(self, report: RunReport) -> None:
        self.console.print()
        self.console.print(self.render_report(report))
        self.print_manual_steps(report)

    def print_manual_steps(self, report: RunReport) -> None:
        """List manual remediation steps for anything left outstanding."""
        pending = [c for c in report.outstanding if c.manual_steps]
        if not pending:
            return
        self.console.print("[bold]Manual steps:[/bold]")
        for component in pending:
            self.console.print(f"  [cyan]{component.display_name}[/cyan]: {escape(component.manual_steps)}")
        self.console.print()

    # ------------------------------------------------------------------
    # Catalogs
    # ------------------------------------------------------------------

    def render_catalog(self, title: str, entries: list[CatalogEntry], limit: int = 20) -> Table:
        table = Table(title=title, show_header=True, header_style="bold cyan")
        table.add_column("#", justify="right", style="dim")
        table.add_column("Identifier", style="cyan")
        table.add_column("Released")
        table.add_column("Builds / Version")
        for index, entry in enumerate(entries[:limit]):
            detail = ", ".join(entry.builds) if entry.builds else str(entry.version or "")
            table.add_row(
                str(index),
                escape(entry.identifier),
                entry.release_date.isoformat() if entry.release_date else "-",
                detail,
            )
        if len(entries) > limit:
            table.caption = f"... and {len(entries) - limit} more"
        return table


def _details(component: ComponentReport) -> str:
    if component.error:
        return escape(component.error)
    parts: list[str] = []
    if component.result is not None:
        parts.append(component.result.describe())
    if component.outcome is not None:
        for attempt in component.outcome.attempts:
            mark = "[green]ok[/green]" if attempt.succeeded else "[red]failed[/red]"
            parts.append(f"{escape(attempt.method)} {mark}")
    return "; ".join(parts)
