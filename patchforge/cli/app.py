"""Main Typer application: imports and registers all CLI commands.

Entry point: ``patchforge`` (configured via pyproject.toml console_scripts).

Commands: check, update, catalog, packages, components, parse-version.
"""

from __future__ import annotations

import typer
from rich.console import Console
from rich.table import Table

from patchforge.cli.commands.catalog_cmd import catalog_cmd
from patchforge.cli.commands.check import check_cmd, update_cmd
from patchforge.cli.commands.packages_cmd import packages_cmd
from patchforge.config import config
from patchforge.logging_setup import configure_logging

app = typer.Typer(
    name="patchforge",
    help="Patchforge: version and patch currency checks for a provisioned workstation.",
    no_args_is_help=True,
    rich_markup_mode="rich",
    add_completion=False,
)


@app.callback()
def _root(
    log_level: str = typer.Option(
        None,
        "--log-level",
        help="Override PATCHFORGE_LOG_LEVEL for this invocation.",
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging."),
) -> None:
    """Configure logging before any command runs."""
    configure_logging(log_level or config.log_level, debug=verbose or config.debug)


# Register subcommands
app.command(name="check", help="Check installed components against remote catalogs.")(check_cmd)
app.command(name="update", help="Check components and remediate those that are behind.")(update_cmd)
app.command(name="catalog", help="Show the remote catalog for a component.")(catalog_cmd)
app.command(name="packages", help="Verify required apt packages inside WSL.")(packages_cmd)


@app.command(name="components", help="List the components patchforge knows about.")
def components_cmd() -> None:
    """List component definitions and their remediation chains."""
    from patchforge.models.components import DEFAULT_COMPONENTS

    console = Console()
    table = Table(title="Components")
    table.add_column("Id", style="cyan")
    table.add_column("Name")
    table.add_column("Catalog")
    table.add_column("Remediation chain")

    for d in DEFAULT_COMPONENTS:
        catalog = f"{d.catalog.kind.value}: {d.catalog.locator or 'settings'}" if d.catalog else "-"
        chain = " -> ".join(m.name for m in d.remediation) or "-"
        table.add_row(d.component_id, d.display_name, catalog, chain)

    console.print(table)


@app.command(name="parse-version", help="Extract a version token from free-form text.")
def parse_version_cmd(
    text: str = typer.Argument(..., help="Text to parse, e.g. 'git version 2.47.1.windows.1'."),
    pattern: list[str] = typer.Option(
        None,
        "--pattern",
        "-p",
        help="Extraction regex (first group); repeat to try several in order.",
    ),
) -> None:
    """Print the canonical version parsed from TEXT, or 'unknown'."""
    from patchforge.core.version_parser import parse_version
    from patchforge.models.versioning import ParseFailure

    console = Console()
    token = parse_version(text, pattern or None)
    if isinstance(token, ParseFailure):
        console.print(f"[yellow]unknown[/yellow] [dim]({token.reason})[/dim]")
        raise typer.Exit(code=1)
    console.print(str(token))


def main() -> None:
    """CLI entry point."""
    app()


if __name__ == "__main__":
    main()
