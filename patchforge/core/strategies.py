"""Remediation strategies: one class per package-manager method.

Every strategy satisfies ``RemediationStrategy``: a ``method_name`` and an
``apply(runner)`` that returns a ``StrategyResult``.  Strategies report
failure through the result; the dispatcher also treats a raised exception
as a failed attempt.
"""

from __future__ import annotations

import logging
from typing import Protocol, runtime_checkable

from pydantic import BaseModel, ConfigDict

from patchforge.core.command_runner import CommandRunner
from patchforge.models.components import RemediationKind, RemediationMethod

logger = logging.getLogger(__name__)

_REFRESH_PATH_COMMAND = [
    "powershell",
    "-NoProfile",
    "-Command",
    "[Environment]::GetEnvironmentVariable('Path','Machine') + ';' + "
    "[Environment]::GetEnvironmentVariable('Path','User')",
]


class StrategyResult(BaseModel):
    """Outcome of one strategy application."""

    model_config = ConfigDict(frozen=True)

    ok: bool
    reason: str = ""
    env_updates: dict[str, str] = {}


@runtime_checkable
class RemediationStrategy(Protocol):
    """Protocol that every remediation method must implement."""

    @property
    def method_name(self) -> str:
        """Human-readable method name used in logs and failure reports."""
        ...

    def apply(self, runner: CommandRunner) -> StrategyResult:
        """Run the method once and report success or the failure reason."""
        ...


class CommandStrategy:
    """Runs a fixed command line; success is a zero exit code."""

    def __init__(self, name: str, argv: list[str], *, timeout: int | None = None) -> None:
        self._name = name
        self._argv = list(argv)
        self._timeout = timeout

    @property
    def method_name(self) -> str:
        return self._name

    @property
    def argv(self) -> list[str]:
        return list(self._argv)

    def apply(self, runner: CommandRunner) -> StrategyResult:
        result = runner.run(self._argv, timeout=self._timeout)
        if result.ok:
            return StrategyResult(ok=True, reason=f"exit 0 in {result.elapsed_ms} ms")
        return StrategyResult(ok=False, reason=result.describe_failure())


class WingetStrategy(CommandStrategy):
    """``winget install`` or ``winget upgrade`` for an exact package id.

    On success the machine and user PATH are re-read so that later
    commands in the same run can find a freshly installed binary.
    """

    def __init__(
        self,
        package_id: str,
        *,
        upgrade: bool = True,
        name: str | None = None,
        timeout: int | None = None,
    ) -> None:
        verb = "upgrade" if upgrade else "install"
        argv = [
            "winget",
            verb,
            "--id",
            package_id,
            "--exact",
            "--silent",
            "--accept-package-agreements",
            "--accept-source-agreements",
        ]
        super().__init__(name or f"winget {verb} {package_id}", argv, timeout=timeout)
        self.package_id = package_id

    def apply(self, runner: CommandRunner) -> StrategyResult:
        outcome = super().apply(runner)
        if not outcome.ok:
            return outcome
        refreshed = runner.run(_REFRESH_PATH_COMMAND, timeout=30)
        path = refreshed.stdout.strip()
        if refreshed.ok and path:
            return StrategyResult(ok=True, reason=outcome.reason, env_updates={"PATH": path})
        logger.debug("PATH refresh skipped: %s", refreshed.describe_failure())
        return outcome


class AptStrategy(CommandStrategy):
    """``apt-get install -y`` inside a Debian/Ubuntu environment."""

    def __init__(self, package: str, *, name: str | None = None, timeout: int | None = None) -> None:
        super().__init__(
            name or f"apt-get install {package}",
            ["apt-get", "install", "-y", package],
            timeout=timeout,
        )
        self.package = package

    def apply(self, runner: CommandRunner) -> StrategyResult:
        return super().apply(runner.with_env({"DEBIAN_FRONTEND": "noninteractive"}))


def build_strategy(method: RemediationMethod, *, timeout: int | None = None) -> RemediationStrategy:
    """Map a declarative ``RemediationMethod`` to its strategy."""
    if method.kind in (RemediationKind.WINGET_UPGRADE, RemediationKind.WINGET_INSTALL):
        return WingetStrategy(
            _as_package(method),
            upgrade=method.kind == RemediationKind.WINGET_UPGRADE,
            name=method.name,
            timeout=timeout,
        )
    if method.kind == RemediationKind.APT_INSTALL:
        return AptStrategy(_as_package(method), name=method.name, timeout=timeout)
    if method.kind == RemediationKind.COMMAND:
        argv = method.argument if isinstance(method.argument, list) else method.argument.split()
        return CommandStrategy(method.name, argv, timeout=timeout)
    raise ValueError(f"Unsupported remediation kind: {method.kind!r}")


def _as_package(method: RemediationMethod) -> str:
    if not isinstance(method.argument, str):
        raise ValueError(f"{method.name}: expected a package id, got {method.argument!r}")
    return method.argument
