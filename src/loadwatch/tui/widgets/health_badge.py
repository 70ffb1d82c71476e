"""Backend health badge widget."""

from textual.reactive import reactive
from textual.widgets import Static

from loadwatch.monitoring.health import HealthStatus
from loadwatch.orchestration.presenter import HEALTH_BADGE_CLASSES, health_badge_class


class HealthBadge(Static):
    """
    Badge showing the last sampled backend health.

    - Green: healthy
    - Yellow: degraded
    - Red: unhealthy
    - Dim: not checked yet
    """

    DEFAULT_CSS = """
    HealthBadge {
        width: auto;
        height: 1;
        padding: 0 1;
    }

    HealthBadge.healthy {
        color: $success;
    }

    HealthBadge.degraded {
        color: $warning;
    }

    HealthBadge.unhealthy {
        color: $error;
    }

    HealthBadge.unknown {
        color: $text-muted;
    }
    """

    status: reactive[HealthStatus] = reactive(HealthStatus.UNKNOWN)

    def __init__(self, **kwargs: object) -> None:
        super().__init__("● unknown", **kwargs)
        self.add_class("unknown")

    def watch_status(self, status: HealthStatus) -> None:
        """Update appearance when the health status changes."""
        self.remove_class(*HEALTH_BADGE_CLASSES.values())
        self.add_class(health_badge_class(status))
        self.update(f"● {status.value}")
