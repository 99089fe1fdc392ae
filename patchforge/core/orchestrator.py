"""Run orchestrator: checks every component and optionally remediates.

Wires the command runner, probes, CatalogFetcher, reconciler,
ComponentMachine and RemediationDispatcher together.  Each component is
handled in isolation: a fetch error, missing tool or failed remediation
ends that component in UNKNOWN or FAILED and the run moves on.
"""

from __future__ import annotations

import logging

from patchforge.config import Settings
from patchforge.core.catalog_fetcher import CatalogFetcher, FetchError
from patchforge.core.command_runner import CommandRunner, PreconditionError
from patchforge.core.component_machine import ComponentMachine
from patchforge.core.probes import LocalState, probe_latest_hotfix, probe_tool_version
from patchforge.core.reconciler import reconcile, reconcile_version
from patchforge.core.remediation import RemediationDispatcher, RemediationFailedError
from patchforge.core.strategies import build_strategy
from patchforge.models.catalog import CatalogEntry, CatalogSource, CatalogSourceKind
from patchforge.models.components import (
    DEFAULT_COMPONENTS,
    ComponentDefinition,
    ComponentState,
)
from patchforge.models.remediation import RemediationOutcome
from patchforge.models.reports import ComponentReport, RunReport
from patchforge.models.verdicts import ReconciliationResult, Verdict

logger = logging.getLogger(__name__)

_VERDICT_STATES: dict[Verdict, ComponentState] = {
    Verdict.CURRENT: ComponentState.CURRENT,
    Verdict.BEHIND: ComponentState.BEHIND,
    Verdict.UNKNOWN: ComponentState.UNKNOWN,
}


class Orchestrator:
    """Checks components against their catalogs.

    Parameters
    ----------
    settings:
        Explicit configuration; defaults are read from the environment.
    components:
        Component definitions to check.  Defaults to ``DEFAULT_COMPONENTS``.
    fetcher, runner, dispatcher:
        Collaborators; built from *settings* when omitted.
    """

    def __init__(
        self,
        settings: Settings | None = None,
        *,
        components: list[ComponentDefinition] | None = None,
        fetcher: CatalogFetcher | None = None,
        runner: CommandRunner | None = None,
        dispatcher: RemediationDispatcher | None = None,
    ) -> None:
        self.settings = settings or Settings()
        self.components = list(components or DEFAULT_COMPONENTS)
        self.runner = runner or CommandRunner(timeout=self.settings.command_timeout_seconds)
        self.fetcher = fetcher or CatalogFetcher(
            runner=self.runner,
            timeout=self.settings.http_timeout_seconds,
            user_agent=self.settings.user_agent,
            github_api_url=self.settings.github_api_url,
            github_token=self.settings.github_token,
        )
        if dispatcher is None:
            dispatcher = RemediationDispatcher()
            for definition in self.components:
                dispatcher.register(
                    definition.component_id,
                    [
                        build_strategy(m, timeout=self.settings.remediation_timeout_seconds)
                        for m in definition.remediation
                    ],
                )
        self.dispatcher = dispatcher
        self.machine = ComponentMachine()
        self._probed: dict[str, bool] = {}

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def select(self, component_ids: list[str] | None = None) -> list[ComponentDefinition]:
        """Return definitions for *component_ids* (all when None), in the given order."""
        if not component_ids:
            return list(self.components)
        by_id = {d.component_id: d for d in self.components}
        unknown = [cid for cid in component_ids if cid not in by_id]
        if unknown:
            raise KeyError(
                f"Unknown component(s): {', '.join(unknown)}. "
                f"Known: {', '.join(by_id)}"
            )
        return [by_id[cid] for cid in component_ids]

    def resolve_source(self, definition: ComponentDefinition) -> CatalogSource | None:
        """Fill the update-history URL from settings when the definition leaves it blank."""
        source = definition.catalog
        if (
            source is not None
            and source.kind == CatalogSourceKind.UPDATE_HISTORY
            and not source.locator
        ):
            return source.model_copy(update={"locator": self.settings.update_history_url})
        return source

    def probe_endpoint(self, source: CatalogSource) -> str | None:
        """URL whose reachability gates an HTTP fetch; None for local sources."""
        if source.kind == CatalogSourceKind.UPDATE_HISTORY:
            return source.locator or None
        if source.kind == CatalogSourceKind.GITHUB_RELEASES:
            return self.settings.github_api_url
        return None

    def _reachable(self, url: str) -> bool:
        if url not in self._probed:
            self._probed[url] = self.fetcher.probe(url, self.settings.probe_timeout_seconds)
        return self._probed[url]

    def check(
        self,
        component_ids: list[str] | None = None,
        *,
        remediate: bool = False,
    ) -> RunReport:
        """Check the selected components; remediate those behind if asked."""
        selected = self.select(component_ids)
        self.machine.initialize([d.component_id for d in selected])
        self._probed = {}
        remediate = remediate and self.settings.remediation_enabled
        runner = self.runner

        reports: list[ComponentReport] = []
        for definition in selected:
            try:
                report, outcome = self._check_one(definition, runner, remediate=remediate)
            except Exception as exc:  # noqa: BLE001
                logger.exception("Unexpected error checking %s", definition.component_id)
                report, outcome = self._aborted(definition, exc), None
            reports.append(report)
            if outcome is not None and outcome.env_updates:
                runner = runner.with_env(outcome.env_updates)

        return RunReport(
            remediate=remediate,
            components=reports,
            transitions=self.machine.history,
        )

    # ------------------------------------------------------------------
    # Per-component flow
    # ------------------------------------------------------------------

    def _check_one(
        self,
        definition: ComponentDefinition,
        runner: CommandRunner,
        *,
        remediate: bool,
    ) -> tuple[ComponentReport, RemediationOutcome | None]:
        cid = definition.component_id
        self.machine.transition(cid, ComponentState.CHECKING)

        base = {
            "component_id": cid,
            "display_name": definition.display_name,
            "manual_steps": definition.manual_steps,
        }

        try:
            if definition.required_tool:
                runner.require_tool(definition.required_tool, definition.manual_steps)
        except PreconditionError as exc:
            return self._unknown(base, str(exc)), None

        local = probe_latest_hotfix(runner) if definition.hotfix else probe_tool_version(definition, runner)

        source = self.resolve_source(definition)
        if source is None:
            return self._unknown(base, "no catalog source defined", local=local), None

        endpoint = self.probe_endpoint(source)
        if endpoint and not self._reachable(endpoint):
            error = f"{endpoint} is unreachable (probe timeout {self.settings.probe_timeout_seconds}s)"
            logger.warning("%s: %s", cid, error)
            return self._unknown(base, error, local=local), None

        try:
            catalog = self.fetcher.fetch(source)
        except FetchError as exc:
            logger.warning("%s: %s", cid, exc)
            return self._unknown(base, str(exc), local=local), None

        result = self._reconcile(definition, local, catalog)
        state = _VERDICT_STATES[result.verdict]
        self.machine.transition(cid, state, result.reason)
        latest = catalog[0].identifier if catalog else None

        if not (remediate and result.needs_remediation):
            return (
                ComponentReport(
                    **base,
                    state=state,
                    local_version=local.display,
                    latest=latest,
                    result=result,
                ),
                None,
            )

        self.machine.transition(cid, ComponentState.REMEDIATING)
        try:
            outcome = self.dispatcher.remediate(cid, result, runner)
        except RemediationFailedError as exc:
            logger.error("%s", exc)
            self.machine.transition(cid, ComponentState.FAILED, str(exc))
            return (
                ComponentReport(
                    **base,
                    state=ComponentState.FAILED,
                    local_version=local.display,
                    latest=latest,
                    result=result,
                    outcome=exc.outcome,
                    error=str(exc),
                ),
                None,
            )

        self.machine.transition(cid, ComponentState.RESOLVED, outcome.resolved_by or "")
        return (
            ComponentReport(
                **base,
                state=ComponentState.RESOLVED,
                local_version=local.display,
                latest=latest,
                result=result,
                outcome=outcome,
            ),
            outcome,
        )

    @staticmethod
    def _reconcile(
        definition: ComponentDefinition,
        local: LocalState,
        catalog: list[CatalogEntry],
    ) -> ReconciliationResult:
        if definition.hotfix:
            return reconcile(
                catalog,
                local_identifier=local.identifier,
                local_date=local.installed_on,
            )
        return reconcile_version(catalog, local.version)

    def _aborted(self, definition: ComponentDefinition, exc: Exception) -> ComponentReport:
        """End a component whose check raised unexpectedly.

        Mid-remediation errors end FAILED; anything earlier ends UNKNOWN.
        """
        cid = definition.component_id
        error = f"{type(exc).__name__}: {exc}"
        state = self.machine.get_state(cid)
        if state == ComponentState.NOT_CHECKED:
            self.machine.transition(cid, ComponentState.CHECKING)
            state = ComponentState.CHECKING
        if state == ComponentState.CHECKING:
            state = ComponentState.UNKNOWN
            self.machine.transition(cid, state, error)
        elif state == ComponentState.REMEDIATING:
            state = ComponentState.FAILED
            self.machine.transition(cid, state, error)
        return ComponentReport(
            component_id=cid,
            display_name=definition.display_name,
            manual_steps=definition.manual_steps,
            state=state,
            local_version="unknown",
            result=ReconciliationResult(verdict=Verdict.UNKNOWN, reason=error),
            error=error,
        )

    def _unknown(
        self,
        base: dict[str, str],
        error: str,
        *,
        local: LocalState | None = None,
    ) -> ComponentReport:
        self.machine.transition(base["component_id"], ComponentState.UNKNOWN, error)
        return ComponentReport(
            **base,
            state=ComponentState.UNKNOWN,
            local_version=local.display if local else "unknown",
            result=ReconciliationResult(verdict=Verdict.UNKNOWN, reason=error),
            error=error,
        )
