"""Static loading phase table."""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class PhaseDefinition:
    """A named step in the perceived loading sequence."""

    name: str
    description: str
    nominal_duration_seconds: float = 0.0


DEFAULT_PHASES: tuple[PhaseDefinition, ...] = (
    PhaseDefinition(
        name="Initializing Security",
        description="Establishing secure connection and authentication",
        nominal_duration_seconds=2.0,
    ),
    PhaseDefinition(
        name="Loading Core Systems",
        description="Initializing platform components and services",
        nominal_duration_seconds=3.0,
    ),
    PhaseDefinition(
        name="Fetching Real-time Data",
        description="Retrieving latest data and analytics",
        nominal_duration_seconds=2.5,
    ),
    PhaseDefinition(
        name="Optimizing Performance",
        description="Configuring adaptive performance settings",
        nominal_duration_seconds=2.0,
    ),
    PhaseDefinition(
        name="Finalizing Interface",
        description="Rendering user interface and applying preferences",
        nominal_duration_seconds=1.5,
    ),
)

TIMEOUT_PHASE = PhaseDefinition(
    name="Timeout Detected",
    description="Loading is taking longer than expected",
)

COMPLETED_PHASE = PhaseDefinition(
    name="Ready",
    description="Loading finished",
)


def build_phase_table(
    phases: Iterable[PhaseDefinition] | None,
) -> tuple[PhaseDefinition, ...]:
    """Freeze a phase table, falling back to the defaults.

    Raises:
        ValueError: If an explicitly supplied table is empty.
    """
    if phases is None:
        return DEFAULT_PHASES
    table = tuple(phases)
    if not table:
        raise ValueError("Phase table must contain at least one phase")
    return table
