"""Run report models: what a check or update run found and did."""

from __future__ import annotations

from datetime import datetime, timezone

from pydantic import BaseModel, ConfigDict, Field

from patchforge.models.components import ComponentState, ComponentTransition
from patchforge.models.remediation import RemediationOutcome
from patchforge.models.verdicts import ReconciliationResult


class ComponentReport(BaseModel):
    """Final state of one component after a run."""

    model_config = ConfigDict(frozen=True)

    component_id: str
    display_name: str
    state: ComponentState
    local_version: str = "unknown"  # canonical version or KB identifier
    latest: str | None = None  # identifier of the newest catalog entry
    result: ReconciliationResult | None = None
    outcome: RemediationOutcome | None = None
    error: str | None = None
    manual_steps: str = ""


class RunReport(BaseModel):
    """Summary of a full run over all selected components."""

    model_config = ConfigDict(frozen=True)

    started_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc)
    )
    remediate: bool = False
    components: list[ComponentReport] = []
    transitions: list[ComponentTransition] = []

    def by_state(self, state: ComponentState) -> list[ComponentReport]:
        return [c for c in self.components if c.state == state]

    @property
    def has_failures(self) -> bool:
        return any(c.state == ComponentState.FAILED for c in self.components)

    @property
    def outstanding(self) -> list[ComponentReport]:
        """Components still behind or unverifiable after the run."""
        return [
            c
            for c in self.components
            if c.state
            in (ComponentState.BEHIND, ComponentState.UNKNOWN, ComponentState.FAILED)
        ]
