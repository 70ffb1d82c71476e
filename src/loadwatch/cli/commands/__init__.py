"""CLI command handlers."""

from .history import cmd_history
from .probe import cmd_probe
from .watch import cmd_watch

__all__ = [
    "cmd_history",
    "cmd_probe",
    "cmd_watch",
]
