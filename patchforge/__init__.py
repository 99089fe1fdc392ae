"""Patchforge: version and patch currency reconciliation for workstation provisioning.

v0.2.0: one reconciliation path for every component:
  - Version parser tolerant of platform suffixes and UTF-16 tool output
  - Remote catalogs from update-history pages, GitHub releases and winget
  - Three-valued verdicts (current / behind(n) / unknown), never guessed
  - Ordered remediation fallback chains (winget, apt, plain commands)
  - Per-component state machine; failures stay scoped to one component
"""

__version__ = "0.2.0"
__description__ = "Version and patch currency reconciliation for provisioned workstations"

from patchforge.core.orchestrator import Orchestrator
from patchforge.cli.app import app as cli

__all__ = ["Orchestrator", "cli", "__version__"]
