"""Patchforge reporting: Rich terminal rendering of run reports and catalogs."""

from patchforge.report.renderer import ReportRenderer

__all__ = ["ReportRenderer"]
