"""
Finite state machine for the wizard session lifecycle.

Three states: the session waits for input, dispatches a turn to the
dialogue service, and eventually completes. Every transition is
declared explicitly; anything else is rejected.

Usage:
    sm = SessionStateMachine()
    sm.transition(TransitionTrigger.USER_TURN)
    assert sm.current_state == SessionState.DISPATCHING
"""

import logging
from enum import Enum
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional

logger = logging.getLogger(__name__)


class SessionState(str, Enum):
    """All possible states of a wizard session."""
    AWAITING_INPUT = "awaiting_input"
    DISPATCHING = "dispatching"
    COMPLETED = "completed"


class TransitionTrigger(str, Enum):
    """Events that cause state transitions."""
    USER_TURN = "user_turn"
    REPLY_RECEIVED = "reply_received"
    DIALOGUE_FAILED = "dialogue_failed"
    SESSION_COMPLETED = "session_completed"


@dataclass
class Transition:
    """A single valid state transition."""
    from_state: SessionState
    to_state: SessionState
    trigger: TransitionTrigger


@dataclass
class StateEntry:
    """Recorded history entry for a state visit."""
    state: SessionState
    entered_at: datetime
    trigger: Optional[TransitionTrigger] = None


class InvalidTransitionError(Exception):
    """Raised when a transition is not valid from the current state."""


class SessionStateMachine:
    """
    Deterministic state machine controlling one wizard session.

    ``completed`` is terminal: no trigger leaves it.
    """

    TRANSITIONS: list[Transition] = [
        Transition(SessionState.AWAITING_INPUT, SessionState.DISPATCHING,
                   TransitionTrigger.USER_TURN),
        Transition(SessionState.DISPATCHING, SessionState.AWAITING_INPUT,
                   TransitionTrigger.REPLY_RECEIVED),
        Transition(SessionState.DISPATCHING, SessionState.AWAITING_INPUT,
                   TransitionTrigger.DIALOGUE_FAILED),
        Transition(SessionState.DISPATCHING, SessionState.COMPLETED,
                   TransitionTrigger.SESSION_COMPLETED),
    ]

    def __init__(self) -> None:
        self._current_state = SessionState.AWAITING_INPUT
        self._history: list[StateEntry] = [
            StateEntry(state=SessionState.AWAITING_INPUT, entered_at=datetime.now(timezone.utc))
        ]
        self._failure_count: int = 0

    @property
    def current_state(self) -> SessionState:
        return self._current_state

    @property
    def failure_count(self) -> int:
        return self._failure_count

    def transition(self, trigger: TransitionTrigger) -> SessionState:
        """
        Execute a state transition.

        Raises:
            InvalidTransitionError: If no valid transition exists.
        """
        for t in self.TRANSITIONS:
            if t.from_state == self._current_state and t.trigger == trigger:
                old_state = self._current_state
                self._current_state = t.to_state

                self._history.append(StateEntry(
                    state=self._current_state,
                    entered_at=datetime.now(timezone.utc),
                    trigger=trigger,
                ))

                if trigger == TransitionTrigger.DIALOGUE_FAILED:
                    self._failure_count += 1

                logger.debug(
                    "State transition: %s -> %s (trigger: %s)",
                    old_state.value, self._current_state.value, trigger.value,
                )
                return self._current_state

        valid = [t.value for t in self.get_valid_triggers()]
        raise InvalidTransitionError(
            f"No valid transition from '{self._current_state.value}' "
            f"with trigger '{trigger.value}'. Valid triggers: {valid}"
        )

    def get_valid_triggers(self) -> list[TransitionTrigger]:
        """Return all triggers valid from the current state."""
        return [t.trigger for t in self.TRANSITIONS if t.from_state == self._current_state]

    def get_history(self) -> list[StateEntry]:
        return list(self._history)

    def get_state_trace(self) -> list[str]:
        """Return ordered list of state names visited."""
        return [entry.state.value for entry in self._history]

    def is_terminal(self) -> bool:
        return self._current_state == SessionState.COMPLETED
