"""Orchestration layer for loadwatch.

This package contains the LoadOrchestrator, which supervises loading
sessions independent of any UI.

Usage:
    from loadwatch.orchestration import LoadConfig, LoadOrchestrator
    from loadwatch.runtime import LoopScheduler

    orchestrator = LoadOrchestrator(LoopScheduler(), health_probe=monitor)
    handle = orchestrator.start(LoadConfig(page_name="Dashboard"))
    handle.subscribe(render)
"""

from loadwatch.orchestration.navigation import (
    LoggingNavigator,
    Navigator,
    build_cache_busting_url,
    cache_busting_marker,
)
from loadwatch.orchestration.orchestrator import (
    LoadOrchestrator,
    OrchestratorStateError,
    SessionHandle,
)
from loadwatch.orchestration.phase_walker import PhaseWalker
from loadwatch.orchestration.progress import ProgressEstimator
from loadwatch.orchestration.supervisor import TimeoutSupervisor
from loadwatch.orchestration.types import (
    CompletionOutcome,
    LoadConfig,
    NavigationRequest,
    TransitionRecord,
)

__all__ = [
    "CompletionOutcome",
    "LoadConfig",
    "LoadOrchestrator",
    "LoggingNavigator",
    "NavigationRequest",
    "Navigator",
    "OrchestratorStateError",
    "PhaseWalker",
    "ProgressEstimator",
    "SessionHandle",
    "TimeoutSupervisor",
    "TransitionRecord",
    "build_cache_busting_url",
    "cache_busting_marker",
]
