"""Patchforge CLI: Typer-based command-line interface.

Provides the ``patchforge`` command with subcommands for checking component
currency, remediating outdated components, inspecting remote catalogs and
parsing version strings.

All output uses Rich for formatted terminal display.
"""
