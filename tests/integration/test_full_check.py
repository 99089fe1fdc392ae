"""End-to-end integration tests: a full check and update over the default components.

The Orchestrator, probes, CatalogFetcher, reconciler, ComponentMachine,
RemediationDispatcher and ReportRenderer work together against a scripted
workstation (FakeRunner) and scripted vendor endpoints (MockTransport).
"""

from __future__ import annotations

import json

import httpx
import pytest
from rich.console import Console

from conftest import GITHUB_RELEASES_JSON, UPDATE_HISTORY_HTML, FakeRunner, failed, ok
from patchforge.core.catalog_fetcher import CatalogFetcher
from patchforge.core.orchestrator import Orchestrator
from patchforge.models.components import ComponentState
from patchforge.report.renderer import ReportRenderer

GH_RELEASES = [
    {"tag_name": "v2.62.0", "published_at": "2024-11-14T16:00:00Z", "prerelease": False},
    {"tag_name": "v2.61.0", "published_at": "2024-10-23T16:00:00Z", "prerelease": False},
    {"tag_name": "v2.60.1", "published_at": "2024-10-25T16:00:00Z", "prerelease": False},
]

WINGET_LIST = """\
Name           Id                   Version Available Source
-------------------------------------------------------------
Docker Desktop Docker.DockerDesktop 4.36.0            winget
"""

WINGET_SHOW = """\
Found Docker Desktop [Docker.DockerDesktop]
Version
-------
4.36.0
4.35.1
"""


def _vendor(request: httpx.Request) -> httpx.Response:
    path = request.url.path
    if path == "/windows-11-update-history":
        return httpx.Response(200, text=UPDATE_HISTORY_HTML)
    if path == "/repos/git-for-windows/git/releases":
        return httpx.Response(200, json=GITHUB_RELEASES_JSON)
    if path == "/repos/cli/cli/releases":
        return httpx.Response(200, json=GH_RELEASES)
    if path == "/repos/microsoft/WSL/releases":
        return httpx.Response(500, text="upstream unavailable")
    return httpx.Response(404)


def _workstation() -> FakeRunner:
    return FakeRunner(
        {
            "git --version": ok("git version 2.47.1.windows.1\n"),
            "gh --version": ok("gh version 2.60.0 (2024-10-24)\nhttps://github.com/cli/cli/releases/tag/v2.60.0\n"),
            "wsl --version": ok("WSL version: 2.3.26.0\nKernel version: 5.15.167.4-1\n"),
            "winget list": ok(WINGET_LIST),
            "winget show": ok(WINGET_SHOW),
            "winget upgrade --id GitHub.cli": failed("No installed package found matching input criteria."),
            "winget install --id GitHub.cli": failed("Installer hash does not match."),
            "apt-get install -y gh": ok(),
            "powershell -NoProfile -Command Get-HotFix": ok('"HotFixID","InstalledOn"\r\n"KB5039212","2024-06-11"\r\n'),
            "powershell -NoProfile -Command Install-WindowsUpdate": failed(
                "Install-WindowsUpdate : The term 'Install-WindowsUpdate' is not recognized"
            ),
            "UsoClient": failed("Access is denied.", returncode=5),
        }
    )


class TestFullCheck:
    """check and update over git, gh, wsl, docker and windows."""

    @pytest.fixture
    def workstation(self) -> FakeRunner:
        return _workstation()

    @pytest.fixture
    def orch(self, settings, workstation) -> Orchestrator:
        client = httpx.Client(transport=httpx.MockTransport(_vendor))
        fetcher = CatalogFetcher(
            client,
            runner=workstation,
            github_api_url=settings.github_api_url,
        )
        yield Orchestrator(settings, fetcher=fetcher, runner=workstation)
        fetcher.close()

    def test_check_verdicts(self, orch: Orchestrator):
        report = orch.check()
        states = {c.component_id: c.state for c in report.components}
        assert states == {
            "git": ComponentState.CURRENT,
            "gh": ComponentState.BEHIND,
            "wsl": ComponentState.UNKNOWN,
            "docker": ComponentState.CURRENT,
            "windows": ComponentState.BEHIND,
        }

    def test_check_details(self, orch: Orchestrator):
        by_id = {c.component_id: c for c in orch.check().components}
        assert by_id["gh"].result.describe() == "behind(3)"
        assert by_id["gh"].latest == "v2.62.0"
        assert by_id["wsl"].local_version == "2.3.26.0"
        assert "HTTP 500" in by_id["wsl"].error
        assert by_id["docker"].local_version == "4.36.0"
        assert by_id["windows"].result.describe() == "behind(3)"

    def test_check_is_read_only(self, orch: Orchestrator, workstation: FakeRunner):
        orch.check()
        mutating = [
            argv for argv, _ in workstation.calls
            if argv[0] in ("apt-get", "UsoClient") or argv[:2] in (["winget", "upgrade"], ["winget", "install"])
        ]
        assert mutating == []

    def test_update_run(self, orch: Orchestrator):
        report = orch.check(remediate=True)
        by_id = {c.component_id: c for c in report.components}

        assert by_id["git"].state == ComponentState.CURRENT
        assert by_id["wsl"].state == ComponentState.UNKNOWN
        assert by_id["docker"].state == ComponentState.CURRENT

        gh = by_id["gh"]
        assert gh.state == ComponentState.RESOLVED
        assert gh.outcome.resolved_by == "apt-get install gh"
        assert [a.method for a in gh.outcome.failures] == [
            "winget upgrade GitHub.cli",
            "winget install GitHub.cli",
        ]

        windows = by_id["windows"]
        assert windows.state == ComponentState.FAILED
        assert [a.method for a in windows.outcome.attempts] == [
            "Install-WindowsUpdate",
            "UsoClient StartInteractiveScan",
        ]
        assert "exit 5: Access is denied." in windows.error

        assert report.has_failures
        assert [c.component_id for c in report.outstanding] == ["wsl", "windows"]

    def test_transition_history(self, orch: Orchestrator):
        report = orch.check(["gh"], remediate=True)
        assert [t.to_state for t in report.transitions] == [
            ComponentState.CHECKING,
            ComponentState.BEHIND,
            ComponentState.REMEDIATING,
            ComponentState.RESOLVED,
        ]

    def test_report_serializes(self, orch: Orchestrator):
        payload = json.loads(orch.check().model_dump_json())
        assert [c["state"] for c in payload["components"]] == [
            "current",
            "behind",
            "unknown",
            "current",
            "behind",
        ]
        assert payload["components"][2]["result"]["distance"] is None

    def test_rendered_report(self, orch: Orchestrator):
        console = Console(record=True, width=200, color_system=None)
        ReportRenderer(console).print_report(orch.check(remediate=True))
        text = console.export_text()
        assert "Update Run" in text
        assert "Manual steps" in text
        assert "Remediation failed for some components" in text
