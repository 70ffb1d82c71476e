"""Loading session state machine.

A ``LoadingSession`` tracks one attempt to load a resource from start until
a terminal outcome. Within a session the allowed moves are fixed by
``VALID_TRANSITIONS``; reloads (automatic or manual) replace the session
object entirely and are recorded by the orchestrator instead.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from enum import Enum

from loadwatch.models.phases import PhaseDefinition
from loadwatch.monitoring.health import HealthStatus
from loadwatch.monitoring.network import NetworkClass, NetworkCondition


class SessionState(Enum):
    """Lifecycle states of a loading session."""

    LOADING = "loading"
    TIMED_OUT = "timed_out"
    RETRYING = "retrying"
    GIVEN_UP = "given_up"
    COMPLETED = "completed"


class InvalidTransitionError(Exception):
    """Raised when an invalid session transition is attempted."""

    def __init__(self, current: SessionState, target: SessionState) -> None:
        self.current = current
        self.target = target
        super().__init__(f"Invalid transition from {current.value} to {target.value}")


VALID_TRANSITIONS: dict[SessionState, set[SessionState]] = {
    SessionState.LOADING: {SessionState.TIMED_OUT, SessionState.COMPLETED},
    SessionState.TIMED_OUT: {SessionState.RETRYING, SessionState.GIVEN_UP},
    # Retrying ends when the orchestrator swaps in a fresh session
    SessionState.RETRYING: set(),
    SessionState.GIVEN_UP: set(),
    SessionState.COMPLETED: set(),
}

# States in which the session still expects health observations.
POLLING_STATES: frozenset[SessionState] = frozenset(
    {SessionState.LOADING, SessionState.RETRYING}
)

TERMINAL_STATES: frozenset[SessionState] = frozenset(
    {SessionState.GIVEN_UP, SessionState.COMPLETED}
)


def new_session_id() -> str:
    """Create an opaque session identifier."""
    return uuid.uuid4().hex


@dataclass
class LoadingSession:
    """Mutable state for one load attempt, owned by the orchestrator."""

    started_at: float
    timeout_seconds: float
    current_phase: PhaseDefinition
    session_id: str = field(default_factory=new_session_id)
    state: SessionState = SessionState.LOADING
    progress_percent: float = 0.0
    current_phase_index: int = 0
    retry_count: int = 0
    health_status: HealthStatus = HealthStatus.UNKNOWN
    network_class: NetworkClass = NetworkClass.UNKNOWN
    network: NetworkCondition | None = None
    timeout_fired: bool = False
    state_history: list[dict[str, str]] = field(default_factory=list)

    def elapsed(self, now: float) -> float:
        """Seconds since the session started on the scheduler clock."""
        return max(0.0, now - self.started_at)

    def remaining_seconds(self, now: float) -> int:
        """Whole seconds left before the deadline, never negative."""
        if self.state != SessionState.LOADING:
            return 0
        return round(max(0.0, self.timeout_seconds - self.elapsed(now)))

    def can_transition(self, target: SessionState) -> bool:
        """Check if transition to target state is valid."""
        return target in VALID_TRANSITIONS.get(self.state, set())

    def transition(self, target: SessionState, *, at: float, reason: str = "") -> None:
        """Move to *target*, recording the change in ``state_history``.

        Raises:
            InvalidTransitionError: If the transition is not valid.
        """
        if not self.can_transition(target):
            raise InvalidTransitionError(self.state, target)
        self.state_history.append(
            {
                "from": self.state.value,
                "to": target.value,
                "at": f"{at:.3f}",
                "reason": reason,
            }
        )
        self.state = target

    def advance_progress(self, value: float) -> None:
        """Raise progress to *value*; lower values are ignored."""
        self.progress_percent = min(100.0, max(self.progress_percent, value))

    def advance_phase(self, index: int, phase: PhaseDefinition) -> bool:
        """Move to a later phase. Returns True if the phase changed."""
        if index <= self.current_phase_index:
            return False
        self.current_phase_index = index
        self.current_phase = phase
        return True
