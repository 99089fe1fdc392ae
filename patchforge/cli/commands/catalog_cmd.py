"""``patchforge catalog COMPONENT``: show the remote catalog for a component.

Fetches and filters the component's catalog exactly as a check would and
prints it in catalog order.  With ``--id`` and/or ``--installed-on`` the
given local state is reconciled against it and the verdict is shown under
the table.
"""

from __future__ import annotations

import typer
from rich.console import Console

from patchforge.config import config
from patchforge.core.catalog_fetcher import FetchError
from patchforge.core.orchestrator import Orchestrator
from patchforge.core.reconciler import reconcile
from patchforge.core.version_parser import parse_date
from patchforge.report.renderer import ReportRenderer

console = Console()


def catalog_cmd(
    component: str = typer.Argument(..., help="Component id, e.g. 'windows' or 'git'."),
    limit: int = typer.Option(20, "--limit", "-n", help="Number of entries to show."),
    identifier: str = typer.Option(
        None,
        "--id",
        help="Reconcile this identifier (KB id or version) against the catalog.",
    ),
    installed_on: str = typer.Option(
        None,
        "--installed-on",
        help="Install date used when the identifier is not in the catalog.",
    ),
) -> None:
    """Show the remote catalog for a component."""
    orchestrator = Orchestrator(config)
    try:
        definition = orchestrator.select([component])[0]
    except KeyError as exc:
        console.print(f"[bold red]{exc.args[0]}[/bold red]")
        raise typer.Exit(code=2) from exc

    source = orchestrator.resolve_source(definition)
    if source is None:
        console.print(f"[yellow]{component} has no catalog source.[/yellow]")
        raise typer.Exit(code=1)

    try:
        entries = orchestrator.fetcher.fetch(source)
    except FetchError as exc:
        console.print(f"[bold red]Fetch failed:[/bold red] {exc}")
        raise typer.Exit(code=1) from exc
    finally:
        orchestrator.fetcher.close()

    renderer = ReportRenderer(console=console)
    console.print(renderer.render_catalog(f"{definition.display_name} ({source.locator})", entries, limit))

    if identifier or installed_on:
        local_date = parse_date(installed_on) if installed_on else None
        result = reconcile(entries, local_identifier=identifier, local_date=local_date)
        console.print(f"[bold]Verdict:[/bold] {result.describe()}  [dim]{result.reason}[/dim]")
