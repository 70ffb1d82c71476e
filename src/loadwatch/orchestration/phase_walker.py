"""Maps elapsed-time fractions onto the phase table."""

from __future__ import annotations

import math

from loadwatch.models.phases import PhaseDefinition, build_phase_table


class PhaseWalker:
    """Selects the current phase from the fraction of the timeout consumed."""

    def __init__(self, phases: tuple[PhaseDefinition, ...] | None = None) -> None:
        self.phases = build_phase_table(phases)

    def __len__(self) -> int:
        return len(self.phases)

    def index_for(self, elapsed_seconds: float, timeout_seconds: float) -> int:
        """``floor(e / T * n)`` clamped to the table bounds."""
        if timeout_seconds <= 0:
            return len(self.phases) - 1
        fraction = max(0.0, elapsed_seconds) / timeout_seconds
        index = math.floor(fraction * len(self.phases))
        return min(max(index, 0), len(self.phases) - 1)

    def advance(
        self, current_index: int, elapsed_seconds: float, timeout_seconds: float
    ) -> int:
        """Next phase index, never lower than *current_index*."""
        return max(current_index, self.index_for(elapsed_seconds, timeout_seconds))

    def phase(self, index: int) -> PhaseDefinition:
        return self.phases[index]
