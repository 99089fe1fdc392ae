"""Reconciliation: compare local state with a catalog and decide a verdict.

Distance is always "count of catalog entries ahead of the local install":

- exact identifier match at index *i*: CURRENT, distance *i*;
- otherwise, by date: the number of entries released strictly after the
  local install date (0 means CURRENT, >0 means BEHIND), provided at
  least one entry carries a date;
- otherwise, by version: the number of entries with a strictly greater
  version token.

With no match and nothing to compare against, the verdict is UNKNOWN.
"""

from __future__ import annotations

from datetime import date

from patchforge.core.version_parser import canonical_identifier
from patchforge.models.catalog import CatalogEntry
from patchforge.models.verdicts import ReconciliationResult, Verdict
from patchforge.models.versioning import ParseFailure, VersionToken


def find_identifier(
    catalog: list[CatalogEntry], identifier: str
) -> tuple[int, CatalogEntry] | None:
    """Return ``(index, entry)`` of the first entry matching *identifier*."""
    wanted = canonical_identifier(identifier)
    for index, entry in enumerate(catalog):
        if canonical_identifier(entry.identifier) == wanted:
            return index, entry
    return None


def reconcile(
    catalog: list[CatalogEntry],
    *,
    local_identifier: str | None = None,
    local_date: date | ParseFailure | None = None,
) -> ReconciliationResult:
    """Reconcile an identifier (KB id, version string) and install date."""
    if local_identifier:
        found = find_identifier(catalog, local_identifier)
        if found is not None:
            index, entry = found
            return ReconciliationResult(
                verdict=Verdict.CURRENT,
                distance=index,
                matched_entry=entry,
                reason=f"{local_identifier} found at position {index}",
            )

    if local_date is None or isinstance(local_date, ParseFailure):
        return ReconciliationResult(
            verdict=Verdict.UNKNOWN,
            reason="no identifier match and local install date unknown",
        )

    dated = [e for e in catalog if e.release_date is not None]
    if not dated:
        return ReconciliationResult(
            verdict=Verdict.UNKNOWN,
            reason="no identifier match and catalog has no dated entries",
        )

    newer = sum(1 for e in dated if e.release_date > local_date)  # type: ignore[operator]
    return ReconciliationResult(
        verdict=Verdict.BEHIND if newer else Verdict.CURRENT,
        distance=newer,
        reason=f"{newer} catalog entries released after {local_date.isoformat()}",
    )


def reconcile_version(
    catalog: list[CatalogEntry],
    local: VersionToken | ParseFailure,
) -> ReconciliationResult:
    """Reconcile a parsed tool version against a version catalog."""
    if isinstance(local, ParseFailure):
        return ReconciliationResult(
            verdict=Verdict.UNKNOWN,
            reason=f"local version unknown ({local.reason})",
        )

    for index, entry in enumerate(catalog):
        if entry.version is not None and entry.version == local:
            return ReconciliationResult(
                verdict=Verdict.CURRENT,
                distance=index,
                matched_entry=entry,
                reason=f"{local} found at position {index}",
            )

    comparable = [e for e in catalog if e.version is not None]
    if not comparable:
        return ReconciliationResult(
            verdict=Verdict.UNKNOWN,
            reason="catalog has no comparable versions",
        )

    newer = sum(1 for e in comparable if e.version > local)  # type: ignore[operator]
    return ReconciliationResult(
        verdict=Verdict.BEHIND if newer else Verdict.CURRENT,
        distance=newer,
        reason=f"{newer} catalog versions newer than {local}",
    )


def stable_sort_by_date(catalog: list[CatalogEntry]) -> list[CatalogEntry]:
    """Newest first; equal dates keep fetch order, undated entries go last.

    Order among entries sharing a date carries no meaning.
    """
    dated = [e for e in catalog if e.release_date is not None]
    undated = [e for e in catalog if e.release_date is None]
    dated.sort(key=lambda e: e.release_date, reverse=True)  # type: ignore[arg-type, return-value]
    return dated + undated
