"""Runtime primitives shared across orchestration and monitoring layers."""

from loadwatch.runtime.load_history import LoadHistory, get_load_history
from loadwatch.runtime.retry_policy import RetryDecision, RetryPolicy
from loadwatch.runtime.scheduler import (
    LoopScheduler,
    ManualScheduler,
    ScheduledTask,
    Scheduler,
    SchedulerError,
)

__all__ = [
    "LoadHistory",
    "LoopScheduler",
    "ManualScheduler",
    "RetryDecision",
    "RetryPolicy",
    "ScheduledTask",
    "Scheduler",
    "SchedulerError",
    "get_load_history",
]
