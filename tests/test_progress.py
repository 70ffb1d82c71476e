"""Tests for progress estimation and the phase walker."""

from __future__ import annotations

import random

import pytest

from loadwatch.models.phases import DEFAULT_PHASES, PhaseDefinition, build_phase_table
from loadwatch.monitoring.network import NetworkClass
from loadwatch.orchestration.phase_walker import PhaseWalker
from loadwatch.orchestration.progress import ProgressEstimator, expected_progress


def test_expected_progress_is_capped() -> None:
    assert expected_progress(5, 10) == 50
    assert expected_progress(20, 10) == 100
    assert expected_progress(-1, 10) == 0


@pytest.mark.parametrize(
    ("network", "increment"),
    [
        (NetworkClass.SLOW_2G, 0.5),
        (NetworkClass.TWO_G, 0.5),
        (NetworkClass.THREE_G, 1.0),
        (NetworkClass.FOUR_G, 2.0),
        (NetworkClass.UNKNOWN, 1.0),
    ],
)
def test_increment_scales_with_network_class(
    network: NetworkClass, increment: float
) -> None:
    assert ProgressEstimator().increment_for(network) == increment


def test_next_value_stays_within_jitter_band() -> None:
    estimator = ProgressEstimator(rng=random.Random(1))

    for _ in range(50):
        value = estimator.next_value(
            10.0,
            elapsed_seconds=15.0,
            timeout_seconds=30.0,
            network_class=NetworkClass.UNKNOWN,
        )
        assert 11.0 <= value <= 13.0


def test_next_value_respects_lead_margin_and_ceiling() -> None:
    estimator = ProgressEstimator(rng=random.Random(2))

    early = estimator.next_value(
        30.0, elapsed_seconds=1.0, timeout_seconds=10.0, network_class=NetworkClass.FOUR_G
    )
    late = estimator.next_value(
        94.5, elapsed_seconds=9.9, timeout_seconds=10.0, network_class=NetworkClass.FOUR_G
    )

    assert early == 30.0
    assert late == 95.0


def test_next_value_never_decreases() -> None:
    estimator = ProgressEstimator(rng=random.Random(3))
    value = 0.0
    for tick in range(200):
        new_value = estimator.next_value(
            value,
            elapsed_seconds=tick * 0.15,
            timeout_seconds=30.0,
            network_class=NetworkClass.SLOW_2G,
        )
        assert new_value >= value
        assert new_value <= 95
        value = new_value


def test_ceiling_must_stay_below_100() -> None:
    with pytest.raises(ValueError):
        ProgressEstimator(loading_ceiling=100)


def test_phase_walker_maps_fraction_to_index() -> None:
    walker = PhaseWalker()

    assert len(walker) == 5
    assert walker.index_for(0, 10) == 0
    assert walker.index_for(2.0, 10) == 1
    assert walker.index_for(9.99, 10) == 4
    assert walker.index_for(50, 10) == 4


def test_phase_walker_is_monotonic_and_idempotent() -> None:
    walker = PhaseWalker()

    assert walker.advance(3, 0.5, 10) == 3
    assert walker.advance(1, 6.0, 10) == walker.advance(1, 6.0, 10) == 3


def test_custom_phase_table() -> None:
    phases = (PhaseDefinition("Connect", "Opening socket"), PhaseDefinition("Read", "Reading"))
    walker = PhaseWalker(phases)

    assert walker.phase(walker.index_for(6, 10)).name == "Read"


def test_empty_phase_table_is_rejected() -> None:
    assert build_phase_table(None) is DEFAULT_PHASES
    with pytest.raises(ValueError):
        build_phase_table([])
