"""Per-component state machine for a check or update run.

Enforces:
- Valid state transitions only (VALID_TRANSITIONS table)
- Terminal states are final
- Every transition recorded, in order, in an in-memory history
"""

from __future__ import annotations

import logging

from patchforge.models.components import (
    TERMINAL_STATES,
    VALID_TRANSITIONS,
    ComponentState,
    ComponentTransition,
)

logger = logging.getLogger(__name__)


class InvalidTransitionError(RuntimeError):
    """Raised when a requested state transition is not valid."""


class ComponentMachine:
    """Tracks the state of every component in one run.

    The machine lives for a single run; nothing is persisted.
    """

    def __init__(self) -> None:
        self._states: dict[str, ComponentState] = {}
        self._history: list[ComponentTransition] = []

    # ------------------------------------------------------------------
    # State management
    # ------------------------------------------------------------------

    def initialize(self, component_ids: list[str]) -> dict[str, ComponentState]:
        """Set every component to NOT_CHECKED."""
        self._states = {cid: ComponentState.NOT_CHECKED for cid in component_ids}
        self._history = []
        return dict(self._states)

    def get_state(self, component_id: str) -> ComponentState:
        try:
            return self._states[component_id]
        except KeyError:
            raise KeyError(f"Unknown component: {component_id}") from None

    def get_all_states(self) -> dict[str, ComponentState]:
        return dict(self._states)

    @property
    def history(self) -> list[ComponentTransition]:
        return list(self._history)

    def is_terminal(self, component_id: str) -> bool:
        return self.get_state(component_id) in TERMINAL_STATES

    # ------------------------------------------------------------------
    # Transition logic
    # ------------------------------------------------------------------

    def transition(
        self,
        component_id: str,
        target_state: ComponentState,
        detail: str = "",
    ) -> ComponentTransition:
        """Move a component to *target_state* and record the transition."""
        current = self.get_state(component_id)
        allowed = VALID_TRANSITIONS.get(current, set())
        if target_state not in allowed:
            raise InvalidTransitionError(
                f"Cannot transition {component_id} from {current.value} to {target_state.value}. "
                f"Allowed: {sorted(s.value for s in allowed)}"
            )

        record = ComponentTransition(
            component_id=component_id,
            from_state=current,
            to_state=target_state,
            detail=detail,
        )
        self._history.append(record)
        self._states[component_id] = target_state
        logger.debug(
            "%s: %s -> %s %s",
            component_id,
            current.value,
            target_state.value,
            detail,
        )
        return record

    def get_available_transitions(self, component_id: str) -> set[ComponentState]:
        return set(VALID_TRANSITIONS.get(self.get_state(component_id), set()))
