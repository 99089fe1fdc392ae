"""RemediationDispatcher: ordered fallback chains per component.

For a component found BEHIND, the registered strategies are tried in
registration order.  The first success resolves the component; earlier
failures stay in the outcome for diagnostics.  If every strategy fails,
``RemediationFailedError`` names each attempted method and its reason.
A component is never left half-remediated without a report.
"""

from __future__ import annotations

import logging
import time

from patchforge.core.command_runner import CommandRunner
from patchforge.core.strategies import RemediationStrategy
from patchforge.models.remediation import (
    RemediationAttempt,
    RemediationOutcome,
    RemediationStatus,
)
from patchforge.models.verdicts import ReconciliationResult

logger = logging.getLogger(__name__)


class RemediationFailedError(RuntimeError):
    """Raised when every remediation method for a component failed."""

    def __init__(self, component_id: str, attempts: list[RemediationAttempt]) -> None:
        self.component_id = component_id
        self.attempts = list(attempts)
        if attempts:
            detail = "; ".join(f"{a.method}: {a.reason}" for a in attempts)
            message = (
                f"All {len(attempts)} remediation methods failed for {component_id}: {detail}"
            )
        else:
            message = f"No remediation methods registered for {component_id}"
        super().__init__(message)

    @property
    def outcome(self) -> RemediationOutcome:
        return RemediationOutcome(
            component_id=self.component_id,
            status=RemediationStatus.FAILED,
            attempts=self.attempts,
        )


class RemediationDispatcher:
    """Holds each component's fallback chain and runs it on demand.

    Usage
    -----
    >>> dispatcher = RemediationDispatcher()
    >>> dispatcher.register("git", [winget_upgrade, winget_install])
    >>> outcome = dispatcher.remediate("git", result, runner)
    """

    def __init__(self) -> None:
        self._chains: dict[str, list[RemediationStrategy]] = {}

    # ------------------------------------------------------------------
    # Registration
    # ------------------------------------------------------------------

    def register(self, component_id: str, strategies: list[RemediationStrategy]) -> None:
        """Register (or replace) the ordered fallback chain for a component."""
        self._chains[component_id] = list(strategies)
        logger.debug(
            "Registered %d remediation methods for %s: %s",
            len(strategies),
            component_id,
            ", ".join(s.method_name for s in strategies),
        )

    def methods_for(self, component_id: str) -> list[str]:
        return [s.method_name for s in self._chains.get(component_id, [])]

    # ------------------------------------------------------------------
    # Dispatch
    # ------------------------------------------------------------------

    def remediate(
        self,
        component_id: str,
        result: ReconciliationResult,
        runner: CommandRunner,
    ) -> RemediationOutcome:
        """Run the fallback chain for a component found behind.

        Raises
        ------
        ValueError
            If *result* is not ``Behind(n)`` with n >= 1.
        RemediationFailedError
            If no method is registered or every method failed.
        """
        if not result.needs_remediation:
            raise ValueError(
                f"{component_id} is {result.describe()}; remediation applies only when behind"
            )

        strategies = self._chains.get(component_id, [])
        if not strategies:
            raise RemediationFailedError(component_id, [])

        attempts: list[RemediationAttempt] = []
        for strategy in strategies:
            start = time.monotonic()
            try:
                applied = strategy.apply(runner)
                ok, reason, env_updates = applied.ok, applied.reason, applied.env_updates
            except Exception as exc:  # noqa: BLE001
                ok, reason, env_updates = False, f"{type(exc).__name__}: {exc}", {}
            elapsed_ms = int((time.monotonic() - start) * 1000)
            attempts.append(
                RemediationAttempt(
                    method=strategy.method_name,
                    succeeded=ok,
                    reason=reason,
                    elapsed_ms=elapsed_ms,
                )
            )

            if ok:
                logger.info("%s remediated via %s", component_id, strategy.method_name)
                return RemediationOutcome(
                    component_id=component_id,
                    status=RemediationStatus.RESOLVED,
                    attempts=attempts,
                    env_updates=env_updates,
                )
            logger.warning(
                "%s: remediation method %s failed: %s",
                component_id,
                strategy.method_name,
                reason,
            )

        raise RemediationFailedError(component_id, attempts)
