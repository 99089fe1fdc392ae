"""Reconciliation verdict models."""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, ConfigDict, model_validator

from patchforge.models.catalog import CatalogEntry


class Verdict(str, Enum):
    """Three-valued outcome of comparing local state with a catalog."""

    CURRENT = "current"
    BEHIND = "behind"
    UNKNOWN = "unknown"


class ReconciliationResult(BaseModel):
    """Verdict plus the distance metric.

    ``distance`` counts catalog entries ahead of the local install.  It is
    ``None`` exactly when the verdict is UNKNOWN, so an unknown result can
    never be mistaken for ``Behind(0)`` or an unbounded distance.
    """

    model_config = ConfigDict(frozen=True)

    verdict: Verdict
    distance: int | None = None
    matched_entry: CatalogEntry | None = None
    reason: str = ""

    @model_validator(mode="after")
    def _distance_matches_verdict(self) -> ReconciliationResult:
        if self.verdict == Verdict.UNKNOWN:
            if self.distance is not None:
                raise ValueError("an unknown verdict carries no distance")
        elif self.distance is None or self.distance < 0:
            raise ValueError(f"{self.verdict.value} requires a distance >= 0")
        elif self.verdict == Verdict.BEHIND and self.distance == 0:
            raise ValueError("behind requires a distance >= 1")
        return self

    @property
    def needs_remediation(self) -> bool:
        return self.verdict == Verdict.BEHIND and (self.distance or 0) >= 1

    def describe(self) -> str:
        """Short human-readable form, e.g. ``behind(3)``."""
        if self.verdict == Verdict.BEHIND:
            return f"behind({self.distance})"
        return self.verdict.value
