"""
Interaction state machine for the conversation loop.
"""

from enum import Enum
from typing import Optional, Callable, Dict, Any, List
from dataclasses import dataclass, field
from datetime import datetime

from .error_handling import VoiceGPTError
from .logging_config import get_logger


logger = get_logger("state")


class InteractionState(Enum):
    """Orchestrator states. Exactly one is current at any instant."""
    IDLE = "idle"
    LISTENING = "listening"
    PROCESSING = "processing"
    SPEAKING = "speaking"


class InvalidTransition(VoiceGPTError, ValueError):
    """Raised when a transition is not in the transition table."""


@dataclass
class StateTransition:
    """Record of a state transition."""
    from_state: InteractionState
    to_state: InteractionState
    reason: str
    timestamp: float = field(default_factory=lambda: datetime.now().timestamp())


StateListener = Callable[[InteractionState, InteractionState], None]


class InteractionStateMachine:
    """
    Validates and records orchestrator state changes.

    Features:
    - Validates transitions against a fixed table
    - Bounded transition history
    - Synchronous listeners notified after every change

    Everything runs on the event loop, so transitions are plain method calls
    and take no lock.
    """

    # Define valid transitions
    VALID_TRANSITIONS: Dict[InteractionState, List[InteractionState]] = {
        InteractionState.IDLE: [
            InteractionState.LISTENING,
            InteractionState.SPEAKING,  # First-interaction greeting
        ],
        InteractionState.LISTENING: [
            InteractionState.PROCESSING,
            InteractionState.SPEAKING,
            InteractionState.IDLE,
        ],
        InteractionState.PROCESSING: [
            InteractionState.LISTENING,
            InteractionState.IDLE,
        ],
        InteractionState.SPEAKING: [
            InteractionState.LISTENING,
            InteractionState.IDLE,
        ],
    }

    def __init__(self, max_history: int = 50):
        self._state = InteractionState.IDLE
        self._transition_history: List[StateTransition] = []
        self._max_history = max_history
        self._listeners: List[StateListener] = []

    @property
    def current_state(self) -> InteractionState:
        """Get current state."""
        return self._state

    def can_transition(self, target_state: InteractionState) -> bool:
        return target_state in self.VALID_TRANSITIONS.get(self._state, [])

    def add_listener(self, listener: StateListener) -> None:
        if listener not in self._listeners:
            self._listeners.append(listener)

    def remove_listener(self, listener: StateListener) -> None:
        if listener in self._listeners:
            self._listeners.remove(listener)

    def transition_to(self, target_state: InteractionState, reason: str = "") -> None:
        """
        Move to a new state.

        Args:
            target_state: Desired state
            reason: Short description recorded in the history

        Raises:
            InvalidTransition: If the transition is not allowed
        """
        if not self.can_transition(target_state):
            raise InvalidTransition(
                f"Invalid transition: {self._state.name} → {target_state.name}"
            )
        self._apply(target_state, reason)

    def force_idle(self, reason: str = "stop") -> None:
        """Return to IDLE from any state. No-op when already idle."""
        if self._state == InteractionState.IDLE:
            return
        self._apply(InteractionState.IDLE, reason)

    def _apply(self, target_state: InteractionState, reason: str) -> None:
        previous_state = self._state
        self._transition_history.append(
            StateTransition(from_state=previous_state, to_state=target_state, reason=reason)
        )
        if len(self._transition_history) > self._max_history:
            self._transition_history.pop(0)

        self._state = target_state
        logger.debug(f"🔄 State transition: {previous_state.name} → {target_state.name} ({reason})")

        for listener in list(self._listeners):
            try:
                listener(previous_state, target_state)
            except Exception:
                logger.exception("State listener failed")

    def get_transition_history(self, last_n: int = 10) -> List[StateTransition]:
        """
        Get recent transition history.

        Args:
            last_n: Number of recent transitions to return
        """
        return self._transition_history[-last_n:]

    def get_status(self) -> Dict[str, Any]:
        """Get current status."""
        last: Optional[StateTransition] = (
            self._transition_history[-1] if self._transition_history else None
        )
        return {
            'state': self._state.name,
            'history_size': len(self._transition_history),
            'last_transition': (
                f"{last.from_state.name} → {last.to_state.name}" if last else None
            )
        }
