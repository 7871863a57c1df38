"""Coordinator lifecycle states and transition validation."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Dict, List, Optional, Set

from lifereveal.errors import InvalidStateTransitionError

logger = logging.getLogger(__name__)


class CoordinatorState(str, Enum):
    """Settings change coordinator states."""

    UNINITIALIZED = "uninitialized"  # Constructed, start() not called
    LOADING = "loading"  # Checking permission and loading settings
    SCHEDULED = "scheduled"  # A generation is registered
    PERMISSION_DENIED = "permission_denied"  # Start refused, nothing scheduled
    STOPPED = "stopped"  # Shut down, generation cancelled


VALID_TRANSITIONS: Dict[CoordinatorState, Set[CoordinatorState]] = {
    CoordinatorState.UNINITIALIZED: {
        CoordinatorState.LOADING,
        CoordinatorState.STOPPED,
    },
    CoordinatorState.LOADING: {
        CoordinatorState.UNINITIALIZED,  # Start failed before scheduling; may be retried
        CoordinatorState.SCHEDULED,
        CoordinatorState.PERMISSION_DENIED,
        CoordinatorState.STOPPED,
    },
    CoordinatorState.SCHEDULED: {
        CoordinatorState.SCHEDULED,  # Rebuild on settings write
        CoordinatorState.STOPPED,
    },
    CoordinatorState.PERMISSION_DENIED: {
        CoordinatorState.LOADING,  # Retry start after the user allows notifications
        CoordinatorState.STOPPED,
    },
    CoordinatorState.STOPPED: {
        CoordinatorState.STOPPED,
    },
}


@dataclass
class StateTransition:
    """Records one lifecycle transition."""

    from_state: CoordinatorState
    to_state: CoordinatorState
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    reason: Optional[str] = None

    def is_valid(self) -> bool:
        return self.to_state in VALID_TRANSITIONS.get(self.from_state, set())

    def is_idempotent(self) -> bool:
        return self.from_state == self.to_state


class CoordinatorLifecycle:
    """Current coordinator state plus a validated transition history."""

    def __init__(self) -> None:
        self._state = CoordinatorState.UNINITIALIZED
        self._history: List[StateTransition] = []

    @property
    def state(self) -> CoordinatorState:
        return self._state

    @property
    def history(self) -> List[StateTransition]:
        return list(self._history)

    def can_transition(self, to_state: CoordinatorState) -> bool:
        return StateTransition(self._state, to_state).is_valid()

    def transition(self, to_state: CoordinatorState, *, reason: Optional[str] = None) -> StateTransition:
        """Move to ``to_state``.

        Raises:
            InvalidStateTransitionError: If the move is not in VALID_TRANSITIONS
        """
        transition = StateTransition(self._state, to_state, reason=reason)
        if not transition.is_valid():
            logger.error(
                "Invalid coordinator transition",
                extra={"from_state": self._state.value, "to_state": to_state.value},
            )
            raise InvalidStateTransitionError(
                f"Invalid transition: {self._state.value} → {to_state.value}"
            )

        if transition.is_idempotent():
            logger.debug("Idempotent coordinator transition", extra={"state": to_state.value})

        self._history.append(transition)
        self._state = to_state
        return transition
