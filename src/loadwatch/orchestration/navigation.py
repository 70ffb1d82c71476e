"""Navigation collaborator: effects the orchestrator requests from its host."""

from __future__ import annotations

import logging
import time
from typing import Protocol
from urllib.parse import parse_qsl, urlencode, urlsplit, urlunsplit

from loadwatch.orchestration.types import NavigationRequest

logger = logging.getLogger(__name__)


class Navigator(Protocol):
    """Host capability for leaving or reloading the current page."""

    def go_home(self) -> None: ...

    def force_reload(self, marker: str) -> None: ...


def cache_busting_marker(now: float | None = None) -> str:
    """Build a ``force=<epoch ms>`` marker for a forced reload."""
    epoch = time.time() if now is None else now
    return f"force={int(epoch * 1000)}"


def build_cache_busting_url(url: str, marker: str) -> str:
    """Append *marker* to *url*, replacing any earlier marker of that name."""
    key, _, value = marker.partition("=")
    parts = urlsplit(url)
    query = [(k, v) for k, v in parse_qsl(parts.query, keep_blank_values=True) if k != key]
    query.append((key, value))
    return urlunsplit(parts._replace(query=urlencode(query)))


class LoggingNavigator:
    """Navigator that records requests instead of acting on them."""

    def __init__(self) -> None:
        self.requests: list[NavigationRequest] = []

    @property
    def last_request(self) -> NavigationRequest | None:
        return self.requests[-1] if self.requests else None

    def go_home(self) -> None:
        logger.info("Navigation requested: home")
        self.requests.append(NavigationRequest(action="home"))

    def force_reload(self, marker: str) -> None:
        logger.info("Navigation requested: forced reload (%s)", marker)
        self.requests.append(NavigationRequest(action="reload", marker=marker))
