"""Data models for loading sessions."""

from loadwatch.models.phases import (
    COMPLETED_PHASE,
    DEFAULT_PHASES,
    TIMEOUT_PHASE,
    PhaseDefinition,
    build_phase_table,
)
from loadwatch.models.session import (
    POLLING_STATES,
    TERMINAL_STATES,
    VALID_TRANSITIONS,
    InvalidTransitionError,
    LoadingSession,
    SessionState,
)
from loadwatch.models.view_state import LoadViewState

__all__ = [
    "COMPLETED_PHASE",
    "DEFAULT_PHASES",
    "POLLING_STATES",
    "TERMINAL_STATES",
    "TIMEOUT_PHASE",
    "VALID_TRANSITIONS",
    "InvalidTransitionError",
    "LoadViewState",
    "LoadingSession",
    "PhaseDefinition",
    "SessionState",
    "build_phase_table",
]
