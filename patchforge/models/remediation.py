"""Remediation result models."""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, ConfigDict


class RemediationStatus(str, Enum):
    RESOLVED = "resolved"
    FAILED = "failed"


class RemediationAttempt(BaseModel):
    """The result of trying one method in a fallback chain."""

    model_config = ConfigDict(frozen=True)

    method: str
    succeeded: bool
    reason: str = ""
    elapsed_ms: int = 0


class RemediationOutcome(BaseModel):
    """Per-component remediation outcome.

    ``attempts`` is in the order the methods were tried; on success the
    earlier failures stay in the list for diagnostics.  ``env_updates``
    holds environment changes (e.g. a refreshed PATH) that later commands
    should see; they are never applied to ``os.environ``.
    """

    model_config = ConfigDict(frozen=True)

    component_id: str
    status: RemediationStatus
    attempts: list[RemediationAttempt] = []
    env_updates: dict[str, str] = {}

    @property
    def resolved_by(self) -> str | None:
        for attempt in self.attempts:
            if attempt.succeeded:
                return attempt.method
        return None

    @property
    def failures(self) -> list[RemediationAttempt]:
        return [a for a in self.attempts if not a.succeeded]
