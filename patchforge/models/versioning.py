"""Version token model: comparable versions and the explicit Unknown value."""

from __future__ import annotations

import functools

from pydantic import BaseModel, ConfigDict, field_validator


@functools.total_ordering
class VersionToken(BaseModel):
    """An ordered tuple of non-negative integers (major, minor, patch, ...).

    Comparison is lexicographic over ``parts``.  ``str(token)`` yields the
    canonical dotted form, and ``VersionToken.parse(str(token)) == token``.
    """

    model_config = ConfigDict(frozen=True)

    parts: tuple[int, ...]

    @field_validator("parts")
    @classmethod
    def _non_negative(cls, value: tuple[int, ...]) -> tuple[int, ...]:
        if not value:
            raise ValueError("a version token needs at least one component")
        if any(p < 0 for p in value):
            raise ValueError(f"version components must be non-negative: {value}")
        return value

    @classmethod
    def parse(cls, canonical: str) -> VersionToken:
        """Parse the canonical dotted form produced by ``str()``.

        Raises ``ValueError`` for anything else; free-form text goes through
        ``patchforge.core.version_parser.parse_version`` instead.
        """
        return cls(parts=tuple(int(p) for p in canonical.strip().split(".")))

    @property
    def major(self) -> int:
        return self.parts[0]

    @property
    def minor(self) -> int:
        return self.parts[1] if len(self.parts) > 1 else 0

    @property
    def patch(self) -> int:
        return self.parts[2] if len(self.parts) > 2 else 0

    def __str__(self) -> str:
        return ".".join(str(p) for p in self.parts)

    def __lt__(self, other: object) -> bool:
        if not isinstance(other, VersionToken):
            return NotImplemented
        return self.parts < other.parts

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, VersionToken):
            return NotImplemented
        return self.parts == other.parts

    def __hash__(self) -> int:
        return hash(self.parts)


class ParseFailure(BaseModel):
    """The Unknown outcome of parsing a version or a date.

    Returned, never raised.  Callers treat it as a third state distinct
    from both "current" and "behind".
    """

    model_config = ConfigDict(frozen=True)

    raw: str = ""
    reason: str = "no pattern matched"

    def __str__(self) -> str:
        return "unknown"

    def __bool__(self) -> bool:
        return False
