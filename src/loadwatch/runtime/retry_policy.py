"""Automatic retry policy for timed-out loading sessions."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Literal

from loadwatch.monitoring.health import HealthStatus


@dataclass(frozen=True, slots=True)
class RetryDecision:
    """Outcome of evaluating the retry policy after a timeout."""

    action: Literal["retry", "give_up"]
    reason: str

    @property
    def should_retry(self) -> bool:
        return self.action == "retry"


@dataclass(frozen=True, slots=True)
class RetryPolicy:
    """Bounded automatic retry configuration for one load goal."""

    max_retries: int = 2
    retry_delay_seconds: float = 3.0
    retry_only_if_healthy: bool = True
    enabled: bool = True

    def __post_init__(self) -> None:
        if self.max_retries < 0:
            raise ValueError(f"max_retries must be >= 0, got {self.max_retries}")
        if self.retry_delay_seconds < 0:
            raise ValueError(
                f"retry_delay_seconds must be >= 0, got {self.retry_delay_seconds}"
            )

    def decide(self, retry_count: int, health: HealthStatus) -> RetryDecision:
        """Whether a timeout with this history should trigger another attempt."""
        if not self.enabled:
            return RetryDecision("give_up", "automatic retry disabled")
        if retry_count >= self.max_retries:
            return RetryDecision(
                "give_up", f"retry budget exhausted ({retry_count}/{self.max_retries})"
            )
        if self.retry_only_if_healthy and health != HealthStatus.HEALTHY:
            return RetryDecision("give_up", f"backend {health.value}")
        return RetryDecision(
            "retry", f"automatic retry {retry_count + 1}/{self.max_retries}"
        )
