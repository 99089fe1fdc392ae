"""Catalog models: remote releases and patches, and where to fetch them."""

from __future__ import annotations

from datetime import date
from enum import Enum

from pydantic import BaseModel, ConfigDict

from patchforge.models.versioning import VersionToken


class CatalogEntry(BaseModel):
    """One known remote release or OS patch.

    Ordering within a catalog is decided by the fetch step (typically
    newest first) and is never re-derived from these fields implicitly.
    """

    model_config = ConfigDict(frozen=True)

    identifier: str  # "KB5043076" or "2.47.1"
    release_date: date | None = None
    builds: tuple[str, ...] = ()  # e.g. ("22621.4169", "22631.4169")
    version: VersionToken | None = None
    title: str = ""
    preview: bool = False


class CatalogSourceKind(str, Enum):
    """How a catalog is obtained."""

    UPDATE_HISTORY = "update_history"  # vendor update-history web page
    GITHUB_RELEASES = "github_releases"  # GitHub releases API (JSON)
    WINGET = "winget"  # `winget show --versions`


class CatalogSource(BaseModel):
    """Source locator plus the filter predicates applied after parsing."""

    model_config = ConfigDict(frozen=True)

    kind: CatalogSourceKind
    locator: str  # URL, "owner/repo", or winget package id
    exclude_preview: bool = True
    require_kb_identifier: bool = False
    # Re-order newest first after filtering; ties keep fetch order.
    order_by_date: bool = False
