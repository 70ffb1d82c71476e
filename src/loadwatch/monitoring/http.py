"""HTTP-backed health checks and resource fetches via httpx."""

from __future__ import annotations

import logging
import time
from collections.abc import Awaitable, Callable

import httpx

from loadwatch.monitoring.health import HealthStatus

logger = logging.getLogger(__name__)


def http_check(
    url: str,
    *,
    timeout: float = 3.0,
    degraded_after_ms: float | None = 1500.0,
    transport: httpx.AsyncBaseTransport | None = None,
) -> Callable[[], Awaitable[HealthStatus]]:
    """Build a health check that ``GET``s *url* and expects a 2xx response.

    Slow but successful responses report ``DEGRADED`` once they exceed
    *degraded_after_ms*. Error statuses and transport failures raise, which
    the health monitor records as unhealthy.
    """

    async def _check() -> HealthStatus:
        start = time.monotonic()
        async with httpx.AsyncClient(timeout=timeout, transport=transport) as client:
            response = await client.get(url)
            response.raise_for_status()
        elapsed_ms = (time.monotonic() - start) * 1000
        if degraded_after_ms is not None and elapsed_ms > degraded_after_ms:
            logger.debug("%s answered slowly (%.0fms)", url, elapsed_ms)
            return HealthStatus.DEGRADED
        return HealthStatus.HEALTHY

    return _check


def http_fetch(
    url: str,
    *,
    timeout: float = 30.0,
    transport: httpx.AsyncBaseTransport | None = None,
) -> Callable[[], Awaitable[None]]:
    """Build a fetch that loads *url* fully and raises on non-2xx."""

    async def _fetch() -> None:
        async with httpx.AsyncClient(
            timeout=timeout, transport=transport, follow_redirects=True
        ) as client:
            response = await client.get(url)
            response.raise_for_status()
        logger.info("Fetched %s (%d bytes)", url, len(response.content))

    return _fetch
