"""Shared orchestration types."""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Any

from loadwatch.models.phases import DEFAULT_PHASES, PhaseDefinition, build_phase_table
from loadwatch.models.session import SessionState
from loadwatch.runtime.retry_policy import RetryPolicy

if TYPE_CHECKING:
    from loadwatch.config.settings import Settings


@dataclass(frozen=True, slots=True)
class LoadConfig:
    """Configuration accepted by ``LoadOrchestrator.start``."""

    page_name: str = "Page"
    timeout_seconds: float = 30.0
    show_progress: bool = True
    enable_advanced_monitoring: bool = True
    show_network_diagnostics: bool = False
    enable_retry_strategies: bool = True
    max_retries: int = 2
    retry_delay_seconds: float = 3.0
    retry_only_if_healthy: bool = True
    on_timeout: Callable[[], None] | None = None
    phases: tuple[PhaseDefinition, ...] = DEFAULT_PHASES
    progress_tick_seconds: float = 0.15
    phase_tick_seconds: float = 0.5
    health_poll_seconds: float = 5.0

    def __post_init__(self) -> None:
        if self.timeout_seconds <= 0:
            raise ValueError(
                f"timeout_seconds must be positive, got {self.timeout_seconds}"
            )
        for name in ("progress_tick_seconds", "phase_tick_seconds", "health_poll_seconds"):
            if getattr(self, name) <= 0:
                raise ValueError(f"{name} must be positive")
        object.__setattr__(self, "phases", build_phase_table(self.phases))
        # RetryPolicy validates max_retries and retry_delay_seconds
        _ = self.retry_policy

    @property
    def retry_policy(self) -> RetryPolicy:
        return RetryPolicy(
            max_retries=self.max_retries,
            retry_delay_seconds=self.retry_delay_seconds,
            retry_only_if_healthy=self.retry_only_if_healthy,
            enabled=self.enable_retry_strategies,
        )

    @classmethod
    def from_settings(cls, settings: "Settings", **overrides: Any) -> "LoadConfig":
        """Build a config from persisted settings, applying *overrides*."""
        values: dict[str, Any] = {
            "timeout_seconds": settings.timeout_seconds,
            "max_retries": settings.max_retries,
            "retry_delay_seconds": settings.retry_delay_seconds,
            "retry_only_if_healthy": settings.retry_only_if_healthy,
            "enable_retry_strategies": settings.enable_retry_strategies,
            "show_network_diagnostics": settings.show_network_diagnostics,
            "health_poll_seconds": settings.health_poll_seconds,
        }
        values.update(overrides)
        return cls(**values)


@dataclass(frozen=True, slots=True)
class TransitionRecord:
    """One state change observed by the orchestrator."""

    session_id: str
    from_state: SessionState | None
    to_state: SessionState
    at: float
    reason: str = ""


@dataclass(frozen=True, slots=True)
class NavigationRequest:
    """Navigation the orchestrator asked its host to perform."""

    action: str  # "home" or "reload"
    marker: str | None = None


class CompletionOutcome(str, Enum):
    """What became of a completion signal."""

    COMPLETED = "completed"
    # Queued behind the mutation in progress; applied once it finishes,
    # unless that mutation replaced or closed the session.
    DEFERRED = "deferred"
    IGNORED = "ignored"
