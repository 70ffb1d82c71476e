"""Presentation helpers for load view-state messaging."""

from __future__ import annotations

from loadwatch.models.session import SessionState
from loadwatch.models.view_state import LoadViewState
from loadwatch.monitoring.health import HealthStatus

ALMOST_THERE_MESSAGE = (
    "Almost there! Finalizing secure connections and optimizing performance..."
)
SLOW_CONNECTION_MESSAGE = (
    "Slow connection detected. Loading may take longer than usual."
)

HEALTH_BADGE_CLASSES: dict[HealthStatus, str] = {
    HealthStatus.HEALTHY: "healthy",
    HealthStatus.DEGRADED: "degraded",
    HealthStatus.UNHEALTHY: "unhealthy",
    HealthStatus.UNKNOWN: "unknown",
}

RECOMMENDED_ACTIONS: tuple[str, ...] = (
    "Check your internet connection stability",
    "Try refreshing the page (retry #{attempt})",
    "Clear browser cache and reload",
    "Try accessing from a different network",
)


def _format_seconds(seconds: float) -> str:
    if seconds == int(seconds):
        return f"{int(seconds)}s"
    return f"{seconds:.1f}s"


def build_status_message(view: LoadViewState) -> str:
    """Build the one-line status for the given view-state.

    Args:
        view: Current orchestrator view-state.

    Returns:
        User-facing status message for the session state.
    """
    if view.state == SessionState.LOADING:
        return f"Loading {view.page_name} · {view.current_phase.name}"

    if view.state == SessionState.TIMED_OUT:
        return f"Loading timeout - {view.page_name}"

    if view.state == SessionState.RETRYING:
        return (
            f"Retrying {view.page_name} "
            f"(attempt {view.retry_count}/{view.max_retries})..."
        )

    if view.state == SessionState.GIVEN_UP:
        return (
            f"Loading failed after {_format_seconds(view.timeout_seconds)}. "
            "Press 'r' to retry"
        )

    if view.state == SessionState.COMPLETED:
        elapsed = _format_seconds(round(view.elapsed_seconds, 1))
        return f"{view.page_name} loaded in {elapsed}"

    return ""


def build_progress_line(view: LoadViewState) -> str:
    """Format ``"42% complete · 12s remaining"``."""
    return (
        f"{round(view.progress_percent)}% complete · "
        f"{view.remaining_seconds}s remaining"
    )


def build_timeout_reasons(view: LoadViewState) -> list[str]:
    """List the likely causes shown after a timeout."""
    network = view.network_class.value
    reasons = [
        f"Slow network connection ({network})",
        "Server response delays",
        "Large resource files or complex calculations",
        "Bundle loading issues",
    ]
    if view.retry_count > 0:
        reasons.append(f"Previous retry attempts: {view.retry_count}")
    return reasons


def build_recommended_actions(view: LoadViewState) -> list[str]:
    return [
        action.format(attempt=view.retry_count + 1) for action in RECOMMENDED_ACTIONS
    ]


def build_recovery_hint(view: LoadViewState) -> str:
    """Describe what automatic recovery will do next."""
    if not view.auto_retry_enabled:
        return "Manual retry required."
    if view.retry_count < view.max_retries:
        return "Intelligent retry enabled. Will auto-retry if system is healthy."
    return "Intelligent retry enabled. Max retries reached."


def build_advisories(view: LoadViewState) -> list[str]:
    """Transient notices shown under the progress bar while loading."""
    advisories: list[str] = []
    if view.slow_connection:
        advisories.append(SLOW_CONNECTION_MESSAGE)
    if view.almost_there:
        advisories.append(ALMOST_THERE_MESSAGE)
    return advisories


def health_badge_class(status: HealthStatus) -> str:
    """CSS class name for a health badge."""
    return HEALTH_BADGE_CLASSES.get(status, "unknown")
