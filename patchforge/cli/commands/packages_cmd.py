"""``patchforge packages``: verify the apt packages a WSL distribution needs.

Checks each package with ``dpkg -l`` and, with ``--install``, installs the
missing ones through ``apt-get``.
"""

from __future__ import annotations

from typing import Optional

import typer
from rich.console import Console
from rich.table import Table

from patchforge.config import config
from patchforge.core.command_runner import CommandRunner, PreconditionError
from patchforge.core.probes import probe_dpkg_package
from patchforge.core.strategies import AptStrategy

console = Console()

DEFAULT_PACKAGES: list[str] = [
    "ca-certificates",
    "curl",
    "jq",
    "gh",
    "wslu",
    "mc",
    "htop",
]


def packages_cmd(
    packages: Optional[list[str]] = typer.Argument(
        None,
        help="Packages to verify (default: the standard WSL toolset).",
    ),
    install: bool = typer.Option(
        False,
        "--install",
        "-i",
        help="Install missing packages with apt-get (requires root).",
    ),
) -> None:
    """Verify (and optionally install) required apt packages."""
    runner = CommandRunner(timeout=config.command_timeout_seconds)
    try:
        runner.require_tool("dpkg", "This command must run inside a Debian or Ubuntu environment.")
    except PreconditionError as exc:
        console.print(f"[bold red]{exc}[/bold red]")
        raise typer.Exit(code=1) from exc

    table = Table(show_header=True, header_style="bold cyan")
    table.add_column("Package", style="cyan")
    table.add_column("Status", justify="center")
    table.add_column("Details")

    failed = False
    for package in packages or DEFAULT_PACKAGES:
        if probe_dpkg_package(package, runner):
            table.add_row(package, "[green]installed[/green]", "")
            continue
        if not install:
            table.add_row(package, "[yellow]missing[/yellow]", "")
            continue
        result = AptStrategy(package, timeout=config.remediation_timeout_seconds).apply(runner)
        if result.ok:
            table.add_row(package, "[bold green]installed now[/bold green]", result.reason)
        else:
            failed = True
            table.add_row(package, "[bold red]failed[/bold red]", result.reason)

    console.print(table)
    if failed:
        raise typer.Exit(code=1)
