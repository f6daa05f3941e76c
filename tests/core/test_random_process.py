"""Random-process descriptor tests."""

from __future__ import annotations

import pytest

from finite_dp.core.random_process import DiscreteRandomProcess, SampledRandomProcess
from finite_dp.core.types import RandomOutcome


def test_discrete_process_enumerates_fixed_outcomes() -> None:
    process = DiscreteRandomProcess([0, 1, 2], [0.25, 0.5, 0.25])

    outcomes = process.outcomes(post_state=(3.0,), period=1)

    assert outcomes == (
        RandomOutcome(value=0, probability=0.25),
        RandomOutcome(value=1, probability=0.5),
        RandomOutcome(value=2, probability=0.25),
    )
    assert process.outcomes(post_state=(9.0,), period=4) == outcomes


@pytest.mark.parametrize(
    ("values", "probabilities", "match"),
    [
        ([0, 1], [1.0], "2 values but 1"),
        ([], [], "at least one"),
        ([0, 1], [0.5, 0.6], "sum to 1"),
        ([0, 1], [1.5, -0.5], "non-negative"),
        ([0, 1], [float("nan"), 1.0], "finite"),
    ],
)
def test_discrete_process_validates_distribution(values, probabilities, match) -> None:
    with pytest.raises(ValueError, match=match):
        DiscreteRandomProcess(values, probabilities)


def _uniform_sampler(rng, post_state, period):
    return float(rng.uniform(0.0, 1.0))


def test_sampled_process_is_reproducible_per_state() -> None:
    process = SampledRandomProcess(_uniform_sampler, n_samples=5, seed=7)

    first = process.outcomes(post_state=(1.0, 2.0), period=3)
    # Drawing for another state in between must not change the draws.
    process.outcomes(post_state=(4.0, 4.0), period=3)
    second = process.outcomes(post_state=(1.0, 2.0), period=3)

    assert first == second
    assert len(first) == 5
    assert all(outcome.probability == pytest.approx(0.2) for outcome in first)


def test_sampled_process_streams_differ_across_states_and_periods() -> None:
    process = SampledRandomProcess(_uniform_sampler, n_samples=3, seed=0)

    base = [o.value for o in process.outcomes(post_state=(1.0,), period=1)]
    other_state = [o.value for o in process.outcomes(post_state=(2.0,), period=1)]
    other_period = [o.value for o in process.outcomes(post_state=(1.0,), period=2)]

    assert base != other_state
    assert base != other_period


def test_sampled_process_validates_arguments() -> None:
    with pytest.raises(ValueError, match="n_samples"):
        SampledRandomProcess(_uniform_sampler, n_samples=0)
    with pytest.raises(ValueError, match="seed"):
        SampledRandomProcess(_uniform_sampler, seed=-1)
