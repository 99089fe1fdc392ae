"""Remote catalog fetching: vendor release listings normalised to CatalogEntry.

Three sources are supported:

- ``update_history``: the vendor's OS update-history web page.  Entries are
  the navigation anchors carrying the ``supLeftNavLink`` marker class whose
  text reads ``"<date><em dash><KB id> (OS Build ...)"``.  The page is an
  uncontrolled third-party document, so parsing degrades per entry instead
  of failing the whole listing.
- ``github_releases``: the GitHub releases API for ``owner/repo``.
- ``winget``: ``winget show --versions`` for a package id.

A fetch either returns a list or raises ``FetchError``.  An update-history
page with no marker anchors is a fetch failure, not an empty catalog.
"""

from __future__ import annotations

import html
import logging
import re
from collections.abc import Callable, Iterable
from typing import TYPE_CHECKING, Any

import httpx

from patchforge.core.reconciler import stable_sort_by_date
from patchforge.core.version_parser import (
    canonical_identifier,
    extract_builds,
    extract_kb_identifier,
    parse_date,
    parse_version,
)
from patchforge.models.catalog import CatalogEntry, CatalogSource, CatalogSourceKind
from patchforge.models.versioning import ParseFailure, VersionToken

if TYPE_CHECKING:
    from patchforge.core.command_runner import CommandRunner

logger = logging.getLogger(__name__)

CatalogPredicate = Callable[[CatalogEntry], bool]

NAV_LINK_CLASS = "supLeftNavLink"
# Em dash first; the others are drift seen on localized and mirrored pages.
DATE_SEPARATORS: tuple[str, ...] = ("—", "–", " - ")

_ANCHOR_RE = re.compile(r"<a\b(?P<attrs>[^>]*)>(?P<body>.*?)</a\s*>", re.IGNORECASE | re.DOTALL)
_CLASS_RE = re.compile(r"""\bclass\s*=\s*(["'])(?P<value>.*?)\1""", re.IGNORECASE | re.DOTALL)
_TAG_RE = re.compile(r"<[^>]+>")
_KB_ONLY_RE = re.compile(r"^KB\d{6,8}$")
_WINGET_RULE_RE = re.compile(r"^-{3,}\s*$")


class FetchError(RuntimeError):
    """Raised when a catalog cannot be retrieved or decoded.

    Distinct from an empty catalog: callers must never read a fetch
    failure as "no updates available".
    """

    def __init__(self, locator: str, reason: str) -> None:
        self.locator = locator
        self.reason = reason
        super().__init__(f"Could not fetch catalog from {locator}: {reason}")


# ---------------------------------------------------------------------------
# Predicates and ordering helpers
# ---------------------------------------------------------------------------


def exclude_preview(entry: CatalogEntry) -> bool:
    return not entry.preview


def require_kb_identifier(entry: CatalogEntry) -> bool:
    return bool(_KB_ONLY_RE.match(entry.identifier))


def predicates_for(source: CatalogSource) -> list[CatalogPredicate]:
    """Return the filter predicates a source declares."""
    predicates: list[CatalogPredicate] = []
    if source.exclude_preview:
        predicates.append(exclude_preview)
    if source.require_kb_identifier:
        predicates.append(require_kb_identifier)
    return predicates


def dedupe_entries(entries: Iterable[CatalogEntry]) -> list[CatalogEntry]:
    """Drop repeated identifiers, keeping the first occurrence in input order.

    Identifiers are compared in canonical form, the same way the reconciler
    matches them, so ``v2.47.1`` and ``2.47.1`` count as one entry.
    """
    seen: set[str] = set()
    unique: list[CatalogEntry] = []
    for entry in entries:
        key = canonical_identifier(entry.identifier)
        if key in seen:
            continue
        seen.add(key)
        unique.append(entry)
    return unique


def apply_filters(
    entries: Iterable[CatalogEntry],
    predicates: Iterable[CatalogPredicate],
) -> list[CatalogEntry]:
    checks = list(predicates)
    return [e for e in entries if all(check(e) for check in checks)]


# ---------------------------------------------------------------------------
# Parsers (pure)
# ---------------------------------------------------------------------------


def parse_update_history(markup: str) -> list[CatalogEntry]:
    """Parse update-history markup into entries, in page order.

    Anchors without the marker class are ignored.  An anchor whose date
    cannot be read still yields an entry with ``release_date=None``.
    """
    entries: list[CatalogEntry] = []
    for match in _ANCHOR_RE.finditer(markup):
        class_match = _CLASS_RE.search(match.group("attrs"))
        if class_match is None or NAV_LINK_CLASS not in class_match.group("value").split():
            continue
        text = " ".join(html.unescape(_TAG_RE.sub(" ", match.group("body"))).split())
        if not text:
            continue
        entries.append(_entry_from_nav_text(text))
    return entries


def _entry_from_nav_text(text: str) -> CatalogEntry:
    date_part, rest = "", text
    for separator in DATE_SEPARATORS:
        if separator in text:
            date_part, rest = text.split(separator, 1)
            break

    release_date = parse_date(date_part) if date_part else None
    if isinstance(release_date, ParseFailure):
        logger.debug("Unreadable date in update-history entry: %r", text)
        release_date = None

    identifier = extract_kb_identifier(rest) or extract_kb_identifier(text) or rest.strip()
    lowered = text.lower()
    return CatalogEntry(
        identifier=identifier,
        release_date=release_date,
        builds=extract_builds(text),
        title=text,
        preview="preview" in lowered,
    )


def parse_github_releases(payload: Any) -> list[CatalogEntry]:
    """Parse a GitHub ``/releases`` JSON list, in API order (newest first)."""
    if not isinstance(payload, list):
        raise ValueError("expected a JSON list of releases")

    entries: list[CatalogEntry] = []
    for release in payload:
        if not isinstance(release, dict):
            continue
        tag = str(release.get("tag_name") or "").strip()
        if not tag:
            continue
        token = parse_version(tag)
        published = parse_date(release.get("published_at") or "")
        entries.append(
            CatalogEntry(
                identifier=tag,
                release_date=None if isinstance(published, ParseFailure) else published,
                version=token if isinstance(token, VersionToken) else None,
                title=str(release.get("name") or tag),
                preview=bool(release.get("prerelease") or release.get("draft")),
            )
        )
    return entries


def parse_winget_versions(output: str) -> list[CatalogEntry]:
    """Parse ``winget show --versions`` output: one version per line after the rule."""
    lines = output.splitlines()
    start = next(
        (i + 1 for i, line in enumerate(lines) if _WINGET_RULE_RE.match(line.strip())),
        None,
    )
    if start is None:
        return []

    entries: list[CatalogEntry] = []
    for line in lines[start:]:
        value = line.strip()
        if not value:
            continue
        token = parse_version(value)
        entries.append(
            CatalogEntry(
                identifier=value,
                version=token if isinstance(token, VersionToken) else None,
                title=value,
            )
        )
    return entries


# ---------------------------------------------------------------------------
# Fetcher
# ---------------------------------------------------------------------------


class CatalogFetcher:
    """Retrieves and normalises catalogs from their sources.

    Parameters
    ----------
    http_client:
        Optional ``httpx.Client``; one is created lazily if omitted.
    runner:
        Command runner used for the ``winget`` source.
    timeout:
        HTTP timeout in seconds.
    """

    def __init__(
        self,
        http_client: httpx.Client | None = None,
        *,
        runner: CommandRunner | None = None,
        timeout: float = 20.0,
        user_agent: str = "patchforge",
        github_api_url: str = "https://api.github.com",
        github_token: str = "",
    ) -> None:
        self._http = http_client
        self._runner = runner
        self._timeout = timeout
        self._user_agent = user_agent
        self._github_api_url = github_api_url.rstrip("/")
        self._github_token = github_token

    def fetch(
        self,
        source: CatalogSource,
        predicate: CatalogPredicate | None = None,
    ) -> list[CatalogEntry]:
        """Fetch, filter and de-duplicate the catalog for *source*."""
        if source.kind == CatalogSourceKind.UPDATE_HISTORY:
            raw = parse_update_history(self._get_text(source.locator))
            if not raw:
                raise FetchError(
                    source.locator,
                    f"no {NAV_LINK_CLASS} entries found; page layout may have changed",
                )
        elif source.kind == CatalogSourceKind.GITHUB_RELEASES:
            raw = self._fetch_github(source.locator)
        elif source.kind == CatalogSourceKind.WINGET:
            raw = self._fetch_winget(source.locator)
        else:
            raise FetchError(source.locator, f"unsupported source kind {source.kind!r}")

        predicates = predicates_for(source)
        if predicate is not None:
            predicates.append(predicate)
        entries = dedupe_entries(apply_filters(raw, predicates))
        if source.order_by_date:
            entries = stable_sort_by_date(entries)
        logger.info(
            "Catalog %s: %d entries (%d before filtering)",
            source.locator,
            len(entries),
            len(raw),
        )
        return entries

    def probe(self, url: str, timeout: float = 5.0) -> bool:
        """Bounded connectivity check; any response counts as reachable."""
        try:
            self._get_client().head(url, timeout=timeout)
        except httpx.HTTPError as exc:
            logger.warning("Connectivity probe to %s failed: %s", url, exc)
            return False
        return True

    def close(self) -> None:
        if self._http is not None:
            self._http.close()
            self._http = None

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _get_client(self) -> httpx.Client:
        if self._http is None:
            self._http = httpx.Client(
                timeout=self._timeout,
                follow_redirects=True,
                headers={"User-Agent": self._user_agent},
            )
        return self._http

    def _get(self, url: str, headers: dict[str, str] | None = None) -> httpx.Response:
        if not url:
            raise FetchError(url, "no source URL configured")
        try:
            resp = self._get_client().get(url, headers=headers, timeout=self._timeout)
            resp.raise_for_status()
        except httpx.HTTPStatusError as exc:
            raise FetchError(url, f"HTTP {exc.response.status_code}") from exc
        except httpx.HTTPError as exc:
            raise FetchError(url, str(exc) or type(exc).__name__) from exc
        return resp

    def _get_text(self, url: str) -> str:
        return self._get(url).text

    def _fetch_github(self, repo: str) -> list[CatalogEntry]:
        url = f"{self._github_api_url}/repos/{repo}/releases?per_page=100"
        headers = {"Accept": "application/vnd.github+json"}
        if self._github_token:
            headers["Authorization"] = f"Bearer {self._github_token}"
        resp = self._get(url, headers=headers)
        try:
            return parse_github_releases(resp.json())
        except ValueError as exc:
            raise FetchError(url, f"malformed release listing: {exc}") from exc

    def _fetch_winget(self, package_id: str) -> list[CatalogEntry]:
        if self._runner is None:
            raise FetchError(package_id, "no command runner configured for winget")
        result = self._runner.run(
            ["winget", "show", "--id", package_id, "--exact", "--versions"]
        )
        if not result.ok:
            raise FetchError(package_id, f"winget show failed ({result.describe_failure()})")
        return parse_winget_versions(result.stdout)
