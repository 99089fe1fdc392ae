"""``patchforge check`` / ``patchforge update``: reconcile and remediate components.

``check`` is read-only: it probes local versions, fetches catalogs and
prints a verdict per component.  ``update`` additionally runs each behind
component's remediation chain.
"""

from __future__ import annotations

from typing import Optional

import typer
from rich.console import Console

from patchforge.config import config
from patchforge.core.orchestrator import Orchestrator
from patchforge.models.reports import RunReport
from patchforge.report.renderer import ReportRenderer

console = Console()


def _run(components: Optional[list[str]], *, remediate: bool) -> RunReport:
    orchestrator = Orchestrator(config)
    try:
        return orchestrator.check(components or None, remediate=remediate)
    except KeyError as exc:
        console.print(f"[bold red]{exc.args[0]}[/bold red]")
        raise typer.Exit(code=2) from exc
    finally:
        orchestrator.fetcher.close()


def check_cmd(
    components: Optional[list[str]] = typer.Argument(
        None,
        help="Component ids to check (default: all).",
    ),
    strict: bool = typer.Option(
        False,
        "--strict",
        help="Exit with code 1 if any component is behind or unknown.",
    ),
    as_json: bool = typer.Option(
        False,
        "--json",
        help="Print the run report as JSON instead of a table.",
    ),
) -> None:
    """Check installed components against their remote catalogs."""
    report = _run(components, remediate=False)

    if as_json:
        console.print_json(report.model_dump_json())
    else:
        ReportRenderer(console=console).print_report(report)

    if strict and report.outstanding:
        raise typer.Exit(code=1)


def update_cmd(
    components: Optional[list[str]] = typer.Argument(
        None,
        help="Component ids to update (default: all).",
    ),
    yes: bool = typer.Option(
        False,
        "--yes",
        "-y",
        help="Do not ask for confirmation before remediating.",
    ),
) -> None:
    """Check components and remediate those that are behind."""
    if not config.remediation_enabled:
        console.print("[yellow]Remediation is disabled (PATCHFORGE_REMEDIATION_ENABLED=false).[/yellow]")
    elif not yes and not typer.confirm("Install updates for components that are behind?"):
        raise typer.Exit(code=1)

    report = _run(components, remediate=True)
    ReportRenderer(console=console).print_report(report)

    if report.has_failures:
        raise typer.Exit(code=1)
