"""Logging setup: Rich-formatted stderr logging for the CLI."""

from __future__ import annotations

import logging

from rich.console import Console
from rich.logging import RichHandler


def configure_logging(level: str = "INFO", *, debug: bool = False) -> None:
    """Install a single RichHandler on the ``patchforge`` logger.

    Library modules only call ``logging.getLogger(__name__)``; handler
    installation happens once, here, from the CLI entry point.
    """
    root = logging.getLogger("patchforge")
    root.handlers.clear()
    handler = RichHandler(
        console=Console(stderr=True),
        show_path=debug,
        rich_tracebacks=debug,
        markup=False,
    )
    handler.setFormatter(logging.Formatter("%(message)s", datefmt="[%X]"))
    root.addHandler(handler)
    root.setLevel(logging.DEBUG if debug else level.upper())
    root.propagate = False
