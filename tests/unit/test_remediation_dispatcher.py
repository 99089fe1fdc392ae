"""Tests for RemediationDispatcher: ordered fallback chains."""

from __future__ import annotations

import pytest

from patchforge.core.command_runner import CommandRunner
from patchforge.core.remediation import RemediationDispatcher, RemediationFailedError
from patchforge.core.strategies import StrategyResult
from patchforge.models.remediation import RemediationStatus
from patchforge.models.verdicts import ReconciliationResult, Verdict

BEHIND = ReconciliationResult(verdict=Verdict.BEHIND, distance=2)


class ScriptedStrategy:
    """Strategy stub that records how often it ran."""

    def __init__(self, name: str, ok: bool, reason: str = "", env: dict[str, str] | None = None):
        self._name = name
        self._ok = ok
        self._reason = reason or ("done" if ok else f"{name} failed")
        self._env = env or {}
        self.calls = 0

    @property
    def method_name(self) -> str:
        return self._name

    def apply(self, runner: CommandRunner) -> StrategyResult:
        self.calls += 1
        return StrategyResult(ok=self._ok, reason=self._reason, env_updates=self._env)


class ExplodingStrategy(ScriptedStrategy):
    def apply(self, runner: CommandRunner) -> StrategyResult:
        self.calls += 1
        raise OSError("installer crashed")


@pytest.fixture
def dispatcher() -> RemediationDispatcher:
    return RemediationDispatcher()


class TestRemediationDispatcher:
    def test_third_method_succeeds_after_two_failures(self, dispatcher, make_runner):
        a = ScriptedStrategy("A", ok=False, reason="not found")
        b = ScriptedStrategy("B", ok=False, reason="exit 1")
        c = ScriptedStrategy("C", ok=True)
        dispatcher.register("gh", [a, b, c])

        outcome = dispatcher.remediate("gh", BEHIND, make_runner())
        assert outcome.status == RemediationStatus.RESOLVED
        assert outcome.resolved_by == "C"
        assert [f.method for f in outcome.failures] == ["A", "B"]
        assert [f.reason for f in outcome.failures] == ["not found", "exit 1"]

    def test_stops_at_first_success(self, dispatcher, make_runner):
        a = ScriptedStrategy("A", ok=True)
        b = ScriptedStrategy("B", ok=True)
        dispatcher.register("git", [a, b])
        dispatcher.remediate("git", BEHIND, make_runner())
        assert (a.calls, b.calls) == (1, 0)

    def test_all_fail_raises_with_every_attempt(self, dispatcher, make_runner):
        dispatcher.register(
            "wsl",
            [
                ScriptedStrategy("A", ok=False, reason="r1"),
                ScriptedStrategy("B", ok=False, reason="r2"),
                ScriptedStrategy("C", ok=False, reason="r3"),
            ],
        )
        with pytest.raises(RemediationFailedError) as excinfo:
            dispatcher.remediate("wsl", BEHIND, make_runner())

        error = excinfo.value
        assert [(a.method, a.reason) for a in error.attempts] == [
            ("A", "r1"),
            ("B", "r2"),
            ("C", "r3"),
        ]
        assert "A: r1; B: r2; C: r3" in str(error)
        assert error.outcome.status == RemediationStatus.FAILED
        assert len(error.outcome.attempts) == 3

    def test_exception_counts_as_failed_attempt(self, dispatcher, make_runner):
        boom = ExplodingStrategy("A", ok=False)
        fallback = ScriptedStrategy("B", ok=True)
        dispatcher.register("git", [boom, fallback])

        outcome = dispatcher.remediate("git", BEHIND, make_runner())
        assert outcome.resolved_by == "B"
        assert outcome.failures[0].reason == "OSError: installer crashed"

    def test_env_updates_from_successful_method(self, dispatcher, make_runner):
        dispatcher.register("git", [ScriptedStrategy("A", ok=True, env={"PATH": "C:/new"})])
        outcome = dispatcher.remediate("git", BEHIND, make_runner())
        assert outcome.env_updates == {"PATH": "C:/new"}

    def test_no_methods_registered(self, dispatcher, make_runner):
        with pytest.raises(RemediationFailedError, match="No remediation methods"):
            dispatcher.remediate("docker", BEHIND, make_runner())

    @pytest.mark.parametrize(
        "result",
        [
            ReconciliationResult(verdict=Verdict.CURRENT, distance=0),
            ReconciliationResult(verdict=Verdict.CURRENT, distance=3),
            ReconciliationResult(verdict=Verdict.UNKNOWN),
        ],
    )
    def test_refuses_components_that_are_not_behind(self, dispatcher, make_runner, result):
        strategy = ScriptedStrategy("A", ok=True)
        dispatcher.register("git", [strategy])
        with pytest.raises(ValueError, match="only when behind"):
            dispatcher.remediate("git", result, make_runner())
        assert strategy.calls == 0

    def test_methods_for(self, dispatcher):
        dispatcher.register("gh", [ScriptedStrategy("A", ok=True), ScriptedStrategy("B", ok=True)])
        assert dispatcher.methods_for("gh") == ["A", "B"]
        assert dispatcher.methods_for("missing") == []

    def test_register_replaces_chain(self, dispatcher):
        dispatcher.register("gh", [ScriptedStrategy("A", ok=True)])
        dispatcher.register("gh", [ScriptedStrategy("B", ok=True)])
        assert dispatcher.methods_for("gh") == ["B"]
