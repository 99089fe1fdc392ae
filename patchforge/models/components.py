"""Component state machine models and the default component definitions."""

from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field

from patchforge.models.catalog import CatalogSource, CatalogSourceKind


class ComponentState(str, Enum):
    """Per-component lifecycle during a check run."""

    NOT_CHECKED = "not_checked"
    CHECKING = "checking"
    CURRENT = "current"
    BEHIND = "behind"
    UNKNOWN = "unknown"
    REMEDIATING = "remediating"
    RESOLVED = "resolved"
    FAILED = "failed"


# Enforced structurally by ComponentMachine.
# Terminal states (CURRENT, UNKNOWN, RESOLVED, FAILED) have no outgoing transitions.
VALID_TRANSITIONS: dict[ComponentState, set[ComponentState]] = {
    ComponentState.NOT_CHECKED: {ComponentState.CHECKING},
    ComponentState.CHECKING: {
        ComponentState.CURRENT,
        ComponentState.BEHIND,
        ComponentState.UNKNOWN,
    },
    ComponentState.BEHIND: {ComponentState.REMEDIATING},
    ComponentState.REMEDIATING: {ComponentState.RESOLVED, ComponentState.FAILED},
    ComponentState.CURRENT: set(),  # terminal
    ComponentState.UNKNOWN: set(),  # terminal
    ComponentState.RESOLVED: set(),  # terminal
    ComponentState.FAILED: set(),  # terminal
}

# BEHIND is only terminal for a check-only run.
TERMINAL_STATES: frozenset[ComponentState] = frozenset(
    state for state, targets in VALID_TRANSITIONS.items() if not targets
)


class ComponentTransition(BaseModel):
    """Records a single state transition for the run report."""

    model_config = ConfigDict(frozen=True)

    component_id: str
    from_state: ComponentState
    to_state: ComponentState
    detail: str = ""
    timestamp_utc: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc)
    )


class RemediationKind(str, Enum):
    WINGET_UPGRADE = "winget_upgrade"
    WINGET_INSTALL = "winget_install"
    APT_INSTALL = "apt_install"
    COMMAND = "command"


class RemediationMethod(BaseModel):
    """One entry in a component's ordered fallback chain.

    ``argument`` is the package id for winget/apt kinds and the full
    command line (argv list) for COMMAND.
    """

    model_config = ConfigDict(frozen=True)

    name: str
    kind: RemediationKind
    argument: str | list[str]


class ComponentDefinition(BaseModel):
    """Declarative description of a checkable component.

    ``version_command`` is run locally and its output parsed with
    ``version_patterns`` (first match wins).  A component whose local state
    is an OS patch level sets ``hotfix=True`` instead.
    """

    model_config = ConfigDict(frozen=True)

    component_id: str
    display_name: str
    required_tool: str | None = None
    version_command: list[str] = []
    version_patterns: list[str] = []
    hotfix: bool = False
    catalog: CatalogSource | None = None
    remediation: list[RemediationMethod] = []
    manual_steps: str = ""


# The standard workstation components.
DEFAULT_COMPONENTS: list[ComponentDefinition] = [
    ComponentDefinition(
        component_id="git",
        display_name="Git for Windows",
        required_tool="git",
        version_command=["git", "--version"],
        version_patterns=[r"git version\s+(\d+\.\d+\.\d+)"],
        catalog=CatalogSource(
            kind=CatalogSourceKind.GITHUB_RELEASES,
            locator="git-for-windows/git",
        ),
        remediation=[
            RemediationMethod(
                name="winget upgrade Git.Git",
                kind=RemediationKind.WINGET_UPGRADE,
                argument="Git.Git",
            ),
            RemediationMethod(
                name="winget install Git.Git",
                kind=RemediationKind.WINGET_INSTALL,
                argument="Git.Git",
            ),
        ],
        manual_steps="Download the latest installer from https://git-scm.com/download/win.",
    ),
    ComponentDefinition(
        component_id="gh",
        display_name="GitHub CLI",
        required_tool="gh",
        version_command=["gh", "--version"],
        version_patterns=[r"gh version\s+(\d+\.\d+\.\d+)"],
        catalog=CatalogSource(
            kind=CatalogSourceKind.GITHUB_RELEASES,
            locator="cli/cli",
        ),
        remediation=[
            RemediationMethod(
                name="winget upgrade GitHub.cli",
                kind=RemediationKind.WINGET_UPGRADE,
                argument="GitHub.cli",
            ),
            RemediationMethod(
                name="winget install GitHub.cli",
                kind=RemediationKind.WINGET_INSTALL,
                argument="GitHub.cli",
            ),
            RemediationMethod(
                name="apt-get install gh",
                kind=RemediationKind.APT_INSTALL,
                argument="gh",
            ),
        ],
        manual_steps="Install from https://cli.github.com/ and re-run `gh auth login`.",
    ),
    ComponentDefinition(
        component_id="wsl",
        display_name="Windows Subsystem for Linux",
        required_tool="wsl",
        version_command=["wsl", "--version"],
        version_patterns=[r"WSL[^:\n]*:\s*(\d+\.\d+\.\d+(?:\.\d+)?)"],
        catalog=CatalogSource(
            kind=CatalogSourceKind.GITHUB_RELEASES,
            locator="microsoft/WSL",
        ),
        remediation=[
            RemediationMethod(
                name="wsl --update",
                kind=RemediationKind.COMMAND,
                argument=["wsl", "--update"],
            ),
            RemediationMethod(
                name="winget upgrade Microsoft.WSL",
                kind=RemediationKind.WINGET_UPGRADE,
                argument="Microsoft.WSL",
            ),
        ],
        manual_steps="Run `wsl --update --web-download` from an elevated prompt.",
    ),
    ComponentDefinition(
        component_id="docker",
        display_name="Docker Desktop",
        required_tool="winget",
        version_command=["winget", "list", "--id", "Docker.DockerDesktop", "--exact"],
        version_patterns=[r"Docker\.DockerDesktop\s+(\d+\.\d+\.\d+)"],
        catalog=CatalogSource(
            kind=CatalogSourceKind.WINGET,
            locator="Docker.DockerDesktop",
        ),
        remediation=[
            RemediationMethod(
                name="winget upgrade Docker.DockerDesktop",
                kind=RemediationKind.WINGET_UPGRADE,
                argument="Docker.DockerDesktop",
            ),
            RemediationMethod(
                name="winget install Docker.DockerDesktop",
                kind=RemediationKind.WINGET_INSTALL,
                argument="Docker.DockerDesktop",
            ),
        ],
        manual_steps="Update from the Docker Desktop tray menu or https://docs.docker.com/desktop/.",
    ),
    ComponentDefinition(
        component_id="windows",
        display_name="Windows cumulative update",
        required_tool="powershell",
        hotfix=True,
        catalog=CatalogSource(
            kind=CatalogSourceKind.UPDATE_HISTORY,
            locator="",  # filled from settings.update_history_url
            require_kb_identifier=True,
            order_by_date=True,
        ),
        remediation=[
            RemediationMethod(
                name="Install-WindowsUpdate",
                kind=RemediationKind.COMMAND,
                argument=[
                    "powershell",
                    "-NoProfile",
                    "-Command",
                    "Install-WindowsUpdate -AcceptAll -IgnoreReboot",
                ],
            ),
            RemediationMethod(
                name="UsoClient StartInteractiveScan",
                kind=RemediationKind.COMMAND,
                argument=["UsoClient", "StartInteractiveScan"],
            ),
        ],
        manual_steps="Open Settings > Windows Update and select 'Check for updates'.",
    ),
]
