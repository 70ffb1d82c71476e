"""Backend health probing and aggregation.

A ``HealthMonitor`` runs a set of named async checks concurrently, each under
its own timeout, and folds their results into one coarse ``HealthStatus``.
The orchestrator only consumes ``overall`` from whatever probe it is given,
so any object implementing ``HealthProbe`` can stand in for the monitor.
"""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Awaitable, Callable, Mapping
from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import Enum
from typing import Protocol, TypeAlias

logger = logging.getLogger(__name__)


class HealthStatus(str, Enum):
    """Coarse backend liveness signal."""

    HEALTHY = "healthy"
    DEGRADED = "degraded"
    UNHEALTHY = "unhealthy"
    UNKNOWN = "unknown"


# Accept the legacy "failing" label for unhealthy backends.
_STATUS_ALIASES: dict[str, HealthStatus] = {
    "failing": HealthStatus.UNHEALTHY,
    "failed": HealthStatus.UNHEALTHY,
    "ok": HealthStatus.HEALTHY,
    "checking": HealthStatus.UNKNOWN,
}


def coerce_health_status(value: object) -> HealthStatus:
    """Normalize a probe result into a ``HealthStatus``.

    Accepts a ``HealthStatus``, a status string, a mapping with an
    ``"overall"`` key, or any object exposing an ``overall`` attribute.
    Anything unrecognised maps to ``UNKNOWN``.
    """
    if isinstance(value, HealthStatus):
        return value
    if isinstance(value, str):
        normalized = value.strip().lower()
        if normalized in _STATUS_ALIASES:
            return _STATUS_ALIASES[normalized]
        try:
            return HealthStatus(normalized)
        except ValueError:
            return HealthStatus.UNKNOWN
    if isinstance(value, Mapping):
        return coerce_health_status(value.get("overall"))
    overall = getattr(value, "overall", None)
    if overall is not None:
        return coerce_health_status(overall)
    return HealthStatus.UNKNOWN


class HealthProbe(Protocol):
    """Anything that can asynchronously report backend health."""

    async def check_health(self) -> object: ...


CheckFn: TypeAlias = Callable[[], Awaitable[bool | HealthStatus]]


@dataclass
class HealthCheck:
    """Declarative description of a single dependency health check.

    ``check_fn`` returns ``True`` (healthy), ``False`` (unhealthy) or an
    explicit ``HealthStatus``; raising counts as unhealthy. A failing
    optional check only degrades the overall status.
    """

    name: str
    check_fn: CheckFn
    required: bool = True
    timeout_seconds: float = 5.0


@dataclass(frozen=True, slots=True)
class HealthCheckResult:
    """Result of one health check run."""

    service: str
    status: HealthStatus
    latency_ms: float
    error: str | None = None
    checked_at: datetime = field(default_factory=lambda: datetime.now(UTC))


@dataclass(frozen=True, slots=True)
class SystemHealth:
    """Aggregate result of a monitor run."""

    overall: HealthStatus
    services: tuple[HealthCheckResult, ...] = ()
    checked_at: datetime = field(default_factory=lambda: datetime.now(UTC))

    @property
    def issues(self) -> list[str]:
        return [
            f"{result.service}: {result.error or result.status.value}"
            for result in self.services
            if result.status != HealthStatus.HEALTHY
        ]


@dataclass(frozen=True, slots=True)
class HealthSummary:
    """Compact status for presentation."""

    is_healthy: bool
    status: HealthStatus
    issues: tuple[str, ...]


class HealthMonitor:
    """Registry of health checks with aggregated status."""

    def __init__(
        self,
        checks: list[HealthCheck] | None = None,
        *,
        default_timeout_seconds: float = 5.0,
    ) -> None:
        self._checks: dict[str, HealthCheck] = {}
        self._default_timeout_seconds = default_timeout_seconds
        self._last_result: SystemHealth | None = None
        for check in checks or []:
            self._checks[check.name] = check

    @property
    def check_names(self) -> list[str]:
        return list(self._checks)

    @property
    def last_result(self) -> SystemHealth | None:
        """Result of the most recent run, if any."""
        return self._last_result

    def add_check(
        self,
        name: str,
        check_fn: CheckFn,
        *,
        required: bool = True,
        timeout_seconds: float | None = None,
    ) -> None:
        """Register (or replace) a named health check."""
        self._checks[name] = HealthCheck(
            name=name,
            check_fn=check_fn,
            required=required,
            timeout_seconds=timeout_seconds or self._default_timeout_seconds,
        )

    def remove_check(self, name: str) -> None:
        """Remove a named health check if present."""
        self._checks.pop(name, None)

    async def run_checks(self) -> SystemHealth:
        """Run all checks concurrently and aggregate the result."""
        checks = list(self._checks.values())
        results = await asyncio.gather(*(_run_one(check) for check in checks))
        overall = _compute_overall(results, checks)
        self._last_result = SystemHealth(overall=overall, services=tuple(results))
        if overall != HealthStatus.HEALTHY:
            logger.info(
                "Health %s: %s", overall.value, "; ".join(self._last_result.issues)
            )
        return self._last_result

    async def check_health(self) -> SystemHealth:
        """Force a health check run and return its result."""
        return await self.run_checks()

    def is_healthy(self) -> bool:
        """Whether the last run reported a healthy backend."""
        return (
            self._last_result is not None
            and self._last_result.overall == HealthStatus.HEALTHY
        )

    def status_summary(self) -> HealthSummary:
        """Summarize the last run for presentation."""
        if self._last_result is None:
            return HealthSummary(
                is_healthy=False,
                status=HealthStatus.UNKNOWN,
                issues=("Health check not yet performed",),
            )
        return HealthSummary(
            is_healthy=self._last_result.overall == HealthStatus.HEALTHY,
            status=self._last_result.overall,
            issues=tuple(self._last_result.issues),
        )


async def _run_one(check: HealthCheck) -> HealthCheckResult:
    start = time.monotonic()
    try:
        outcome = await asyncio.wait_for(check.check_fn(), timeout=check.timeout_seconds)
    except TimeoutError:
        return HealthCheckResult(
            service=check.name,
            status=HealthStatus.UNHEALTHY,
            latency_ms=round(check.timeout_seconds * 1000, 2),
            error="Health check timeout",
        )
    except Exception as exc:
        logger.debug("Health check %s failed: %s", check.name, exc)
        return HealthCheckResult(
            service=check.name,
            status=HealthStatus.UNHEALTHY,
            latency_ms=round((time.monotonic() - start) * 1000, 2),
            error=str(exc)[:200] or type(exc).__name__,
        )

    latency_ms = round((time.monotonic() - start) * 1000, 2)
    if isinstance(outcome, HealthStatus):
        status = outcome
    else:
        status = HealthStatus.HEALTHY if outcome else HealthStatus.UNHEALTHY
    return HealthCheckResult(service=check.name, status=status, latency_ms=latency_ms)


def _compute_overall(
    results: list[HealthCheckResult],
    checks: list[HealthCheck],
) -> HealthStatus:
    """Derive aggregate status from individual check results."""
    if not results:
        return HealthStatus.UNKNOWN

    required = {check.name: check.required for check in checks}
    any_required_down = False
    any_degraded = False
    for result in results:
        if result.status == HealthStatus.HEALTHY:
            continue
        if result.status == HealthStatus.DEGRADED:
            any_degraded = True
        elif required.get(result.service, True):
            any_required_down = True
        else:
            any_degraded = True

    if any_required_down:
        return HealthStatus.UNHEALTHY
    if any_degraded:
        return HealthStatus.DEGRADED
    return HealthStatus.HEALTHY
