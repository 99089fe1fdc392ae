"""Subprocess execution for probes, catalogs and remediation.

The single place where ``subprocess.run`` is called.  Non-zero exits,
timeouts and launch errors all come back as a failed ``CommandResult``;
only ``require_tool`` raises.
"""

from __future__ import annotations

import logging
import os
import shutil
import subprocess
import time

from pydantic import BaseModel, ConfigDict

from patchforge.core.version_parser import clean_output

logger = logging.getLogger(__name__)

_OUTPUT_LIMIT = 4000


class PreconditionError(RuntimeError):
    """Raised when a required external tool is missing.

    The message carries the manual remediation text for the operator.
    """

    def __init__(self, tool: str, hint: str = "") -> None:
        self.tool = tool
        self.hint = hint
        message = f"Required tool '{tool}' was not found on PATH."
        if hint:
            message = f"{message} {hint}"
        super().__init__(message)


class CommandResult(BaseModel):
    """Captured result of one subprocess invocation."""

    model_config = ConfigDict(frozen=True)

    argv: list[str]
    returncode: int | None = None  # None when the process never ran
    stdout: str = ""
    stderr: str = ""
    error: str = ""
    elapsed_ms: int = 0

    @property
    def ok(self) -> bool:
        return self.returncode == 0 and not self.error

    @property
    def output(self) -> str:
        """stdout followed by stderr; some tools print versions to stderr."""
        return "\n".join(part for part in (self.stdout, self.stderr) if part)

    def describe_failure(self) -> str:
        if self.error:
            return self.error
        detail = (self.stderr or self.stdout).strip().splitlines()
        tail = detail[-1] if detail else ""
        reason = f"exit {self.returncode}"
        return f"{reason}: {tail}" if tail else reason


class CommandRunner:
    """Runs commands with a default timeout and scoped env overrides.

    Parameters
    ----------
    timeout:
        Default timeout in seconds for each call.
    env_overrides:
        Variables layered over ``os.environ`` for every child process.
        ``os.environ`` itself is never modified.
    """

    def __init__(
        self,
        timeout: int = 120,
        env_overrides: dict[str, str] | None = None,
    ) -> None:
        self.timeout = timeout
        self._env_overrides: dict[str, str] = dict(env_overrides or {})

    @property
    def env_overrides(self) -> dict[str, str]:
        return dict(self._env_overrides)

    def with_env(self, updates: dict[str, str]) -> CommandRunner:
        """Return a runner whose children also see *updates*."""
        merged = {**self._env_overrides, **updates}
        return CommandRunner(timeout=self.timeout, env_overrides=merged)

    def which(self, tool: str) -> str | None:
        path = self._env_overrides.get("PATH")
        return shutil.which(tool, path=path) if path else shutil.which(tool)

    def require_tool(self, tool: str, hint: str = "") -> str:
        """Return the resolved path of *tool* or raise ``PreconditionError``."""
        resolved = self.which(tool)
        if resolved is None:
            raise PreconditionError(tool, hint)
        return resolved

    def run(self, argv: list[str], *, timeout: int | None = None) -> CommandResult:
        limit = timeout or self.timeout
        env = os.environ.copy()
        for key, value in self._env_overrides.items():
            env[key] = os.path.expandvars(value)

        logger.debug("Running: %s", " ".join(argv))
        start = time.monotonic()
        try:
            proc = subprocess.run(
                argv,
                capture_output=True,
                timeout=limit,
                env=env,
            )
        except subprocess.TimeoutExpired:
            return CommandResult(
                argv=argv,
                error=f"Command timed out ({limit}s)",
                elapsed_ms=_elapsed(start),
            )
        except OSError as exc:
            return CommandResult(
                argv=argv,
                error=f"Could not start {argv[0]}: {exc}",
                elapsed_ms=_elapsed(start),
            )

        result = CommandResult(
            argv=argv,
            returncode=proc.returncode,
            stdout=_decode(proc.stdout)[-_OUTPUT_LIMIT:],
            stderr=_decode(proc.stderr)[-_OUTPUT_LIMIT:],
            elapsed_ms=_elapsed(start),
        )
        if not result.ok:
            logger.debug("%s failed: %s", argv[0], result.describe_failure())
        return result


def _decode(raw: bytes | None) -> str:
    """Decode child output, including UTF-16LE from Windows binaries."""
    if not raw:
        return ""
    if raw.startswith(b"\xff\xfe") or (len(raw) > 1 and raw[1:2] == b"\x00"):
        try:
            return clean_output(raw.decode("utf-16-le"))
        except UnicodeDecodeError:
            pass
    return clean_output(raw.decode("utf-8", errors="replace"))


def _elapsed(start: float) -> int:
    return int((time.monotonic() - start) * 1000)
