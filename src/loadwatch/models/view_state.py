"""Read-only projection of a loading session for presentation layers."""

from __future__ import annotations

from dataclasses import dataclass

from loadwatch.models.phases import PhaseDefinition
from loadwatch.models.session import SessionState
from loadwatch.monitoring.health import HealthStatus
from loadwatch.monitoring.network import NetworkClass, NetworkCondition


@dataclass(frozen=True, slots=True)
class LoadViewState:
    """Snapshot emitted to subscribers whenever the session changes."""

    state: SessionState
    progress_percent: float
    current_phase: PhaseDefinition
    health_status: HealthStatus
    network_class: NetworkClass
    retry_count: int
    remaining_seconds: int
    page_name: str = "Page"
    session_id: str = ""
    max_retries: int = 0
    timeout_seconds: float = 0.0
    elapsed_seconds: float = 0.0
    slow_connection: bool = False
    almost_there: bool = False
    network: NetworkCondition | None = None
    auto_retry_enabled: bool = True
    show_progress: bool = True
    average_load_seconds: float | None = None

    @property
    def is_loading(self) -> bool:
        return self.state == SessionState.LOADING

    @property
    def is_terminal(self) -> bool:
        return self.state in {SessionState.GIVEN_UP, SessionState.COMPLETED}

    @property
    def needs_recovery(self) -> bool:
        """Whether the user should be offered manual recovery actions."""
        return self.state in {SessionState.TIMED_OUT, SessionState.GIVEN_UP}
