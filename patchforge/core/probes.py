"""Local state probes: what is installed right now.

Read-only: runs version commands and inventory queries through the
``CommandRunner`` and parses their text output.  A probe never raises for
unreadable output; the unreadable part comes back as ``ParseFailure``.
"""

from __future__ import annotations

import csv
import io
import logging
import re
from datetime import date

from pydantic import BaseModel, ConfigDict

from patchforge.core.command_runner import CommandRunner
from patchforge.core.version_parser import (
    extract_kb_identifier,
    parse_date,
    parse_version,
)
from patchforge.models.components import ComponentDefinition
from patchforge.models.versioning import ParseFailure, VersionToken

logger = logging.getLogger(__name__)

HOTFIX_COMMAND: list[str] = [
    "powershell",
    "-NoProfile",
    "-Command",
    "Get-HotFix | Where-Object { $_.InstalledOn } "
    "| Sort-Object -Property InstalledOn -Descending "
    "| Select-Object -First 1 HotFixID,"
    "@{n='InstalledOn';e={$_.InstalledOn.ToString('yyyy-MM-dd')}} "
    "| ConvertTo-Csv -NoTypeInformation",
]


class LocalState(BaseModel):
    """What a probe found for one component."""

    model_config = ConfigDict(frozen=True)

    raw: str = ""
    version: VersionToken | ParseFailure = ParseFailure(reason="not probed")
    identifier: str | None = None  # KB id for the OS component
    installed_on: date | ParseFailure | None = None

    @property
    def display(self) -> str:
        if self.identifier:
            return self.identifier
        return str(self.version)


def probe_tool_version(definition: ComponentDefinition, runner: CommandRunner) -> LocalState:
    """Run the component's version command and parse the output."""
    if not definition.version_command:
        return LocalState(version=ParseFailure(reason="no version command defined"))

    result = runner.run(definition.version_command, timeout=30)
    if not result.ok:
        reason = f"version command failed ({result.describe_failure()})"
        logger.warning("%s: %s", definition.component_id, reason)
        return LocalState(raw=result.output, version=ParseFailure(raw=result.output[:200], reason=reason))

    version = parse_version(result.output, definition.version_patterns or None)
    if isinstance(version, ParseFailure):
        logger.warning(
            "%s: could not read a version from %r",
            definition.component_id,
            result.output[:80],
        )
    return LocalState(raw=result.output, version=version)


def parse_hotfix_csv(output: str) -> LocalState:
    """Parse ``Get-HotFix ... | ConvertTo-Csv`` output (first data row)."""
    rows = list(csv.DictReader(io.StringIO(output.strip())))
    if not rows:
        return LocalState(
            raw=output,
            version=ParseFailure(raw=output[:200], reason="no hotfix rows"),
            installed_on=ParseFailure(raw=output[:200], reason="no hotfix rows"),
        )

    row = {(k or "").strip(): (v or "").strip() for k, v in rows[0].items()}
    identifier = extract_kb_identifier(row.get("HotFixID", ""))
    installed_raw = row.get("InstalledOn", "")
    # Locale-formatted values may carry a time part: "8/13/2024 12:00:00 AM".
    installed_on = parse_date(installed_raw.split(" ")[0] if installed_raw else "")
    return LocalState(
        raw=output,
        version=ParseFailure(raw="", reason="OS patch level has no version token"),
        identifier=identifier,
        installed_on=installed_on,
    )


def probe_latest_hotfix(runner: CommandRunner) -> LocalState:
    """Return the most recently installed OS update (KB id and date)."""
    result = runner.run(HOTFIX_COMMAND, timeout=60)
    if not result.ok:
        reason = f"Get-HotFix failed ({result.describe_failure()})"
        logger.warning(reason)
        return LocalState(
            raw=result.output,
            version=ParseFailure(reason=reason),
            installed_on=ParseFailure(reason=reason),
        )
    return parse_hotfix_csv(result.stdout)


def dpkg_installed(output: str, package: str) -> bool:
    """True when ``dpkg -l`` output lists *package* as installed (``ii``)."""
    pattern = re.compile(rf"^ii\s+{re.escape(package)}(?::\S+)?\s", re.MULTILINE)
    return pattern.search(output) is not None


def probe_dpkg_package(package: str, runner: CommandRunner) -> bool:
    """Query dpkg for one package; False when dpkg is unavailable."""
    result = runner.run(["dpkg", "-l", package], timeout=30)
    return result.ok and dpkg_installed(result.stdout, package)
