"""TUI widgets for loadwatch."""

from .health_badge import HealthBadge
from .loading_panel import LoadingPanel, TimeoutPanel

__all__ = [
    "HealthBadge",
    "LoadingPanel",
    "TimeoutPanel",
]
