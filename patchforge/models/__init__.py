"""Patchforge data models: all Pydantic v2, all frozen (immutable)."""

from patchforge.models.catalog import CatalogEntry, CatalogSource, CatalogSourceKind
from patchforge.models.components import (
    DEFAULT_COMPONENTS,
    TERMINAL_STATES,
    VALID_TRANSITIONS,
    ComponentDefinition,
    ComponentState,
    ComponentTransition,
    RemediationKind,
    RemediationMethod,
)
from patchforge.models.remediation import (
    RemediationAttempt,
    RemediationOutcome,
    RemediationStatus,
)
from patchforge.models.reports import ComponentReport, RunReport
from patchforge.models.verdicts import ReconciliationResult, Verdict
from patchforge.models.versioning import ParseFailure, VersionToken

__all__ = [
    # versioning
    "VersionToken",
    "ParseFailure",
    # catalog
    "CatalogEntry",
    "CatalogSource",
    "CatalogSourceKind",
    # verdicts
    "Verdict",
    "ReconciliationResult",
    # components
    "ComponentState",
    "ComponentTransition",
    "ComponentDefinition",
    "RemediationKind",
    "RemediationMethod",
    "VALID_TRANSITIONS",
    "TERMINAL_STATES",
    "DEFAULT_COMPONENTS",
    # remediation
    "RemediationAttempt",
    "RemediationOutcome",
    "RemediationStatus",
    # reports
    "ComponentReport",
    "RunReport",
]
