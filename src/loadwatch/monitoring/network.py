"""Best-effort network condition readings.

Readers are optional capabilities: a host that cannot observe its
connection returns ``None`` and the orchestrator falls back to
``NetworkClass.UNKNOWN``. Nothing here may raise into the caller.
"""

from __future__ import annotations

import logging
import os
from collections.abc import Mapping
from dataclasses import dataclass
from enum import Enum
from typing import Protocol

logger = logging.getLogger(__name__)


class NetworkClass(str, Enum):
    """Effective connection class, named after the Network Information API."""

    SLOW_2G = "slow-2g"
    TWO_G = "2g"
    THREE_G = "3g"
    FOUR_G = "4g"
    UNKNOWN = "unknown"


SLOW_CLASSES = frozenset({NetworkClass.SLOW_2G, NetworkClass.TWO_G})

# (class, minimum rtt ms, maximum downlink Mbps), slowest first.
_THRESHOLDS: tuple[tuple[NetworkClass, float, float], ...] = (
    (NetworkClass.SLOW_2G, 2000.0, 0.05),
    (NetworkClass.TWO_G, 1400.0, 0.07),
    (NetworkClass.THREE_G, 270.0, 0.7),
)


@dataclass(frozen=True, slots=True)
class NetworkCondition:
    """One reading of ambient connection quality."""

    effective_class: NetworkClass
    downlink_mbps: float = 0.0
    rtt_ms: float = 0.0
    save_data: bool = False
    connection_type: str = "unknown"

    @property
    def is_slow(self) -> bool:
        return self.effective_class in SLOW_CLASSES


def classify_connection(
    rtt_ms: float | None, downlink_mbps: float | None
) -> NetworkClass:
    """Map round-trip time and bandwidth onto an effective class."""
    if rtt_ms is None and downlink_mbps is None:
        return NetworkClass.UNKNOWN
    for network_class, min_rtt, max_downlink in _THRESHOLDS:
        if rtt_ms is not None and rtt_ms >= min_rtt:
            return network_class
        if downlink_mbps is not None and 0 < downlink_mbps <= max_downlink:
            return network_class
    return NetworkClass.FOUR_G


def parse_network_class(value: str | None) -> NetworkClass:
    """Parse an effective-type label, defaulting to ``UNKNOWN``."""
    if not value:
        return NetworkClass.UNKNOWN
    try:
        return NetworkClass(value.strip().lower())
    except ValueError:
        return NetworkClass.UNKNOWN


class NetworkConditionReader(Protocol):
    """Optional capability that samples the current connection."""

    def read(self) -> NetworkCondition | None: ...


class UnavailableNetworkReader:
    """Reader for hosts without any connection information."""

    def read(self) -> NetworkCondition | None:
        return None


class StaticNetworkReader:
    """Reader returning a fixed, externally supplied condition."""

    def __init__(self, condition: NetworkCondition | None) -> None:
        self._condition = condition

    def read(self) -> NetworkCondition | None:
        return self._condition


class EnvironmentNetworkReader:
    """Reads connection hints exported by the host environment.

    Recognised variables: ``LOADWATCH_NET_EFFECTIVE_TYPE``,
    ``LOADWATCH_NET_RTT_MS``, ``LOADWATCH_NET_DOWNLINK_MBPS``,
    ``LOADWATCH_NET_SAVE_DATA`` and ``LOADWATCH_NET_TYPE``.
    """

    PREFIX = "LOADWATCH_NET_"

    def __init__(self, environ: Mapping[str, str] | None = None) -> None:
        self._environ = environ if environ is not None else os.environ

    def read(self) -> NetworkCondition | None:
        env = self._environ
        effective = env.get(f"{self.PREFIX}EFFECTIVE_TYPE")
        rtt = _parse_float(env.get(f"{self.PREFIX}RTT_MS"))
        downlink = _parse_float(env.get(f"{self.PREFIX}DOWNLINK_MBPS"))
        if effective is None and rtt is None and downlink is None:
            return None

        network_class = parse_network_class(effective)
        if network_class == NetworkClass.UNKNOWN:
            network_class = classify_connection(rtt, downlink)

        save_data = env.get(f"{self.PREFIX}SAVE_DATA", "").strip().lower()
        return NetworkCondition(
            effective_class=network_class,
            downlink_mbps=downlink or 0.0,
            rtt_ms=rtt or 0.0,
            save_data=save_data in {"1", "true", "yes", "on"},
            connection_type=env.get(f"{self.PREFIX}TYPE", "unknown"),
        )


def read_network_condition(
    reader: NetworkConditionReader | None,
) -> NetworkCondition | None:
    """Read from *reader*, converting absence or failure into ``None``."""
    if reader is None:
        return None
    try:
        return reader.read()
    except Exception as exc:
        logger.debug("Network condition unavailable: %s", exc)
        return None


def _parse_float(raw: str | None) -> float | None:
    if raw is None or not raw.strip():
        return None
    try:
        return float(raw)
    except ValueError:
        logger.debug("Ignoring malformed network hint %r", raw)
        return None
