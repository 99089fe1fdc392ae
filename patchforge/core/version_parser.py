"""Version and date extraction from free-form command output and markup.

Nothing in this module raises on malformed input.  Unrecognised text
yields a ``ParseFailure``, which callers treat as the Unknown state.
"""

from __future__ import annotations

import re
from datetime import date, datetime

from patchforge.models.versioning import ParseFailure, VersionToken

# Tried in order; the first capture group of the first match wins.
DEFAULT_VERSION_PATTERNS: list[str] = [
    r"\bv?(\d+\.\d+\.\d+(?:\.\d+)?)",
    r"\bv?(\d+\.\d+)\b",
]

# Tried in order, stopping at the first success.
DEFAULT_DATE_FORMATS: list[str] = [
    "%B %d, %Y",  # September 10, 2024
    "%b %d, %Y",  # Sep 10, 2024
    "%Y-%m-%d",  # 2024-09-10
    "%Y-%m-%dT%H:%M:%SZ",  # GitHub published_at
    "%m/%d/%Y",  # 9/10/2024 (Get-HotFix, en-US)
    "%d/%m/%Y",
    "%d.%m.%Y",
]

_KB_RE = re.compile(r"\bKB\s?(\d{6,8})\b", re.IGNORECASE)
_BUILD_RE = re.compile(r"\b(\d{5}\.\d{1,5})\b")
_NUMERIC_PREFIX_RE = re.compile(r"^(\d+(?:\.\d+)*)(.*)$")
_RAW_LIMIT = 200


def clean_output(text: str) -> str:
    """Normalise tool output: drop UTF-16 NUL padding, BOMs and CRs.

    ``wsl.exe`` writes UTF-16LE, which arrives as text with a NUL after
    every character when decoded as UTF-8.
    """
    if not isinstance(text, str):
        text = str(text)
    return text.replace("\x00", "").replace("\ufeff", "").replace("\r", "")


def parse_version(
    text: str | None,
    patterns: list[str] | None = None,
) -> VersionToken | ParseFailure:
    """Extract a ``VersionToken`` from *text*.

    Each pattern's first capture group (or whole match, if it has none)
    is reduced to its leading dotted-numeric run, so platform suffixes
    such as ``2.47.1.windows.1`` reduce to ``2.47.1``.
    """
    if not text:
        return ParseFailure(raw="", reason="empty input")

    cleaned = clean_output(text)
    for pattern in patterns or DEFAULT_VERSION_PATTERNS:
        try:
            match = re.search(pattern, cleaned)
        except re.error as exc:
            return ParseFailure(raw=pattern, reason=f"invalid pattern: {exc}")
        if match is None:
            continue
        candidate = match.group(1) if match.groups() else match.group(0)
        numeric, _ = split_platform_suffix(candidate)
        if numeric:
            try:
                return VersionToken(parts=tuple(int(p) for p in numeric.split(".")))
            except ValueError as exc:
                return ParseFailure(raw=numeric[:_RAW_LIMIT], reason=f"unusable version: {exc}")

    return ParseFailure(raw=cleaned[:_RAW_LIMIT], reason="no pattern matched")


def split_platform_suffix(raw: str) -> tuple[str, str]:
    """Split ``"2.47.1.windows.1"`` into ``("2.47.1", "windows.1")``.

    Returns ``("", raw)`` when *raw* has no leading numeric component.
    """
    stripped = raw.strip().lstrip("vV")
    match = _NUMERIC_PREFIX_RE.match(stripped)
    if match is None:
        return "", raw.strip()
    numeric, rest = match.groups()
    return numeric, rest.lstrip(".-+ ")


def parse_date(
    text: str | None,
    formats: list[str] | None = None,
) -> date | ParseFailure:
    """Parse *text* with each format in priority order; first success wins."""
    if not text:
        return ParseFailure(raw="", reason="empty input")
    if not isinstance(text, str):
        return ParseFailure(raw=repr(text)[:_RAW_LIMIT], reason="not a text value")

    candidate = " ".join(clean_output(text).split())
    for fmt in formats or DEFAULT_DATE_FORMATS:
        try:
            return datetime.strptime(candidate, fmt).date()
        except ValueError:
            continue

    return ParseFailure(raw=candidate[:_RAW_LIMIT], reason="no date format matched")


def extract_kb_identifier(text: str | None) -> str | None:
    """Return the canonical ``KB1234567`` form of the first KB id in *text*."""
    if not text:
        return None
    match = _KB_RE.search(text)
    if match is None:
        return None
    return f"KB{match.group(1)}"


def extract_builds(text: str | None) -> tuple[str, ...]:
    """Return OS build strings (``22631.4169``) in order of appearance."""
    if not text:
        return ()
    seen: list[str] = []
    for build in _BUILD_RE.findall(text):
        if build not in seen:
            seen.append(build)
    return tuple(seen)


def canonical_identifier(identifier: str) -> str:
    """Normalise an identifier for equality checks.

    KB ids compare case-insensitively with optional whitespace; versions
    compare on their numeric prefix, so ``v2.47.1.windows.1`` equals
    ``2.47.1``.
    """
    kb = extract_kb_identifier(identifier)
    if kb is not None:
        return kb
    numeric, _ = split_platform_suffix(identifier)
    if numeric:
        return numeric
    return identifier.strip().lower()


def is_unknown(value: object) -> bool:
    """True for ``ParseFailure`` and ``None``."""
    return value is None or isinstance(value, ParseFailure)
