"""Unit tests for the ReportRenderer: run panels, manual steps and catalog tables."""

from __future__ import annotations

from datetime import date

import pytest
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from patchforge.models.catalog import CatalogEntry
from patchforge.models.components import ComponentState
from patchforge.models.remediation import RemediationAttempt, RemediationOutcome, RemediationStatus
from patchforge.models.reports import ComponentReport, RunReport
from patchforge.models.verdicts import ReconciliationResult, Verdict
from patchforge.report.renderer import ReportRenderer


@pytest.fixture
def console() -> Console:
    return Console(record=True, width=200, color_system=None)


def _report(*components: ComponentReport, remediate: bool = False) -> RunReport:
    return RunReport(components=list(components), remediate=remediate)


class TestRunReport:
    def test_returns_panel(self, console):
        panel = ReportRenderer(console).render_report(_report())
        assert isinstance(panel, Panel)

    def test_all_current(self, console):
        report = _report(
            ComponentReport(
                component_id="git",
                display_name="Git for Windows",
                state=ComponentState.CURRENT,
                local_version="2.47.1",
                latest="v2.47.1.windows.1",
                result=ReconciliationResult(verdict=Verdict.CURRENT, distance=0),
            )
        )
        ReportRenderer(console).print_report(report)
        text = console.export_text()
        assert "Currency Check" in text
        assert "Git for Windows" in text
        assert "Everything is up to date" in text

    def test_behind_with_manual_steps(self, console):
        report = _report(
            ComponentReport(
                component_id="windows",
                display_name="Windows cumulative update",
                state=ComponentState.BEHIND,
                local_version="KB5040442",
                result=ReconciliationResult(verdict=Verdict.BEHIND, distance=2),
                manual_steps="Open Settings > Windows Update.",
            )
        )
        ReportRenderer(console).print_report(report)
        text = console.export_text()
        assert "behind(2)" in text
        assert "1 component(s) need attention" in text
        assert "Manual steps" in text
        assert "Open Settings > Windows Update." in text

    def test_failed_remediation_lists_attempts(self, console):
        outcome = RemediationOutcome(
            component_id="gh",
            status=RemediationStatus.FAILED,
            attempts=[
                RemediationAttempt(method="winget upgrade GitHub.cli", succeeded=False, reason="exit 1"),
            ],
        )
        report = _report(
            ComponentReport(
                component_id="gh",
                display_name="GitHub CLI",
                state=ComponentState.FAILED,
                result=ReconciliationResult(verdict=Verdict.BEHIND, distance=1),
                outcome=outcome,
            ),
            ComponentReport(
                component_id="wsl",
                display_name="WSL",
                state=ComponentState.FAILED,
                error="All 2 remediation methods failed for wsl",
            ),
            remediate=True,
        )
        ReportRenderer(console).print_report(report)
        text = console.export_text()
        assert "Update Run" in text
        assert "winget upgrade GitHub.cli failed" in text
        assert "All 2 remediation methods failed for wsl" in text
        assert "Remediation failed for some components" in text

    def test_bracketed_command_output_is_shown_verbatim(self, console):
        report = _report(
            ComponentReport(
                component_id="git",
                display_name="Git for Windows",
                state=ComponentState.FAILED,
                error="winget install Git.Git: exit 1: Found Git [Git.Git]",
                manual_steps="Run [bold]winget install Git.Git[/bold] manually.",
            ),
            remediate=True,
        )
        ReportRenderer(console).print_report(report)
        text = console.export_text()
        assert "Found Git [Git.Git]" in text
        assert "[bold]winget install Git.Git[/bold]" in text


class TestCatalogTable:
    def test_rows_and_caption(self, console):
        entries = [
            CatalogEntry(
                identifier=f"KB50430{i:02d}",
                release_date=date(2024, 9, 10),
                builds=("22631.4169",),
            )
            for i in range(5)
        ]
        table = ReportRenderer(console).render_catalog("Windows", entries, limit=3)
        assert isinstance(table, Table)
        assert table.row_count == 3
        assert table.caption == "... and 2 more"

    def test_undated_entry(self, console):
        renderer = ReportRenderer(console)
        console.print(renderer.render_catalog("Docker", [CatalogEntry(identifier="4.36.0")]))
        assert "4.36.0" in console.export_text()
