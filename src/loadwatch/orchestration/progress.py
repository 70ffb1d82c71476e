"""Adaptive progress estimation for loading sessions."""

from __future__ import annotations

import random

from loadwatch.monitoring.network import NetworkClass

# Multiplier applied to the base per-tick increment for each connection class.
NETWORK_INCREMENT_SCALE: dict[NetworkClass, float] = {
    NetworkClass.SLOW_2G: 0.5,
    NetworkClass.TWO_G: 0.5,
    NetworkClass.THREE_G: 1.0,
    NetworkClass.FOUR_G: 2.0,
    NetworkClass.UNKNOWN: 1.0,
}


def expected_progress(elapsed_seconds: float, timeout_seconds: float) -> float:
    """Percentage of the timeout budget consumed so far, capped at 100."""
    if timeout_seconds <= 0:
        return 100.0
    return min(100.0, 100.0 * max(0.0, elapsed_seconds) / timeout_seconds)


class ProgressEstimator:
    """Turns elapsed time and network class into a bounded progress value.

    Each tick adds a jittered increment scaled by the network class, but the
    result never runs more than ``lead_margin`` points ahead of elapsed-time
    progress, never exceeds ``loading_ceiling`` and never goes backwards.
    """

    def __init__(
        self,
        *,
        base_increment: float = 1.0,
        jitter_max: float = 2.0,
        lead_margin: float = 10.0,
        loading_ceiling: float = 95.0,
        rng: random.Random | None = None,
    ) -> None:
        if not 0 <= loading_ceiling < 100:
            raise ValueError("loading_ceiling must be in [0, 100)")
        self.base_increment = base_increment
        self.jitter_max = jitter_max
        self.lead_margin = lead_margin
        self.loading_ceiling = loading_ceiling
        self._rng = rng or random.Random()

    def increment_for(self, network_class: NetworkClass) -> float:
        """Base increment before jitter for a connection class."""
        return self.base_increment * NETWORK_INCREMENT_SCALE.get(network_class, 1.0)

    def next_value(
        self,
        previous: float,
        *,
        elapsed_seconds: float,
        timeout_seconds: float,
        network_class: NetworkClass,
    ) -> float:
        """Compute the progress for the next tick."""
        increment = self.increment_for(network_class) + self._rng.uniform(
            0.0, self.jitter_max
        )
        bounded = min(
            previous + increment,
            expected_progress(elapsed_seconds, timeout_seconds) + self.lead_margin,
            self.loading_ceiling,
        )
        return max(previous, bounded)
