"""Supervisor state machine logic for managing valid lifecycle transitions."""
from typing import Set, Dict
from bridgenode.core.enums import SupervisorState
from bridgenode.core.exceptions import InvalidStateTransitionError


class SupervisorStateMachine:
    """
    Defines valid state transitions for a supervisor.

    State Diagram:
        CREATED → INITIALIZING → READY → EXECUTING → REPORTING → CLOSED
                       ↓           ↓         ↓
                  FAILED_INIT    CLOSED    CLOSED   (abort on host shutdown)
    """

    TRANSITIONS: Dict[SupervisorState, Set[SupervisorState]] = {
        SupervisorState.CREATED: {SupervisorState.INITIALIZING},
        SupervisorState.INITIALIZING: {
            SupervisorState.READY,
            SupervisorState.FAILED_INIT,
        },
        SupervisorState.READY: {SupervisorState.EXECUTING, SupervisorState.CLOSED},
        SupervisorState.EXECUTING: {SupervisorState.REPORTING, SupervisorState.CLOSED},
        SupervisorState.REPORTING: {SupervisorState.CLOSED},
        SupervisorState.CLOSED: set(),  # Terminal state
        SupervisorState.FAILED_INIT: set(),  # Terminal state
    }

    TERMINAL_STATES = {SupervisorState.CLOSED, SupervisorState.FAILED_INIT}

    @classmethod
    def can_transition(cls, from_state: SupervisorState, to_state: SupervisorState) -> bool:
        """
        Check if transition from from_state to to_state is valid.

        Args:
            from_state: Current supervisor state
            to_state: Desired supervisor state

        Returns:
            bool: True if transition is valid, False otherwise
        """
        return to_state in cls.TRANSITIONS.get(from_state, set())

    @classmethod
    def validate_transition(cls, from_state: SupervisorState, to_state: SupervisorState) -> None:
        """
        Validate state transition and raise exception if invalid.

        Raises:
            InvalidStateTransitionError: If transition is not valid
        """
        if not cls.can_transition(from_state, to_state):
            raise InvalidStateTransitionError(
                f"Invalid state transition: {from_state} -> {to_state}"
            )

    @classmethod
    def is_terminal(cls, state: SupervisorState) -> bool:
        """Check if state is terminal (no further transitions possible)."""
        return state in cls.TERMINAL_STATES

    @classmethod
    def get_valid_transitions(cls, from_state: SupervisorState) -> Set[SupervisorState]:
        """Get all valid next states from current state."""
        return cls.TRANSITIONS.get(from_state, set())
