"""Grid discretization tests."""

from __future__ import annotations

import numpy as np
import pytest

from finite_dp.dp.discretization import (
    GridSpec,
    grid_specs,
    grid_values,
    index_of,
    integer_range_from_real,
    real_range_from_integer,
    round_half_away,
    snap_to_grid,
)

WORKED_MIN_MAX = [[0, 1, 1.5, 3, 3.2, 20], [2, 2, 3, 4.2, 4, 80]]
WORKED_STEPS = [0.5, 0.5, 0.3, 0.2, 0, 60]


def test_worked_example_matches_documented_output() -> None:
    integer_max, offset, step_size = integer_range_from_real(WORKED_MIN_MAX, WORKED_STEPS)

    assert integer_max.tolist() == [5, 3, 6, 7, 11, 2]
    assert offset.tolist() == [0, 1, 1.5, 3, 3.2, 20]
    np.testing.assert_allclose(step_size, [0.5, 0.5, 0.3, 0.2, 0.08, 60])


def test_worked_example_rebuilds_original_range() -> None:
    integer_max, offset, step_size = integer_range_from_real(WORKED_MIN_MAX, WORKED_STEPS)

    rebuilt = real_range_from_integer(integer_max, offset, step_size)

    assert rebuilt.shape == (2, 6)
    np.testing.assert_allclose(rebuilt, np.array(WORKED_MIN_MAX, dtype=float))


def test_input_arrays_are_not_mutated() -> None:
    steps = np.array(WORKED_STEPS, dtype=float)
    integer_range_from_real(WORKED_MIN_MAX, steps)
    assert steps[4] == 0.0


def test_continuous_dimension_is_split_into_chunks() -> None:
    integer_max, offset, step_size = integer_range_from_real([[0], [2]], [0])

    assert step_size[0] == pytest.approx(0.2)
    assert integer_max[0] == 11
    assert offset[0] == 0


def test_custom_chunk_count_for_continuous_dimension() -> None:
    integer_max, _, step_size = integer_range_from_real([[0], [2]], [0], continuous_chunks=4)

    assert step_size[0] == pytest.approx(0.5)
    assert integer_max[0] == 5


def test_degenerate_continuous_range_clamps_to_single_point() -> None:
    integer_max, offset, step_size = integer_range_from_real([[5], [5]], [0])

    assert step_size[0] == 1.0
    assert integer_max[0] == 1
    assert offset[0] == 5


@pytest.mark.parametrize(
    ("min_max", "step"),
    [
        ([[5], [1]], [1]),
        ([[5], [1]], [0]),
        ([[5], [5]], [2]),
        ([[3], [-3]], [0.5]),
        ([[0], [0]], [0]),
    ],
)
def test_grid_size_is_never_below_one(min_max, step) -> None:
    integer_max, _, step_size = integer_range_from_real(min_max, step)

    assert integer_max[0] >= 1
    assert step_size[0] > 0


def test_inverted_range_is_clamped_not_raised() -> None:
    integer_max, offset, _ = integer_range_from_real([[5], [1]], [1])

    assert integer_max[0] == 1
    assert offset[0] == 5


def test_negative_explicit_step_is_forced_to_one() -> None:
    integer_max, _, step_size = integer_range_from_real([[0], [3]], [-2])

    assert step_size[0] == 1.0
    assert integer_max[0] == 4


@pytest.mark.parametrize(
    ("lo", "hi", "step"),
    [
        (0.0, 2.0, 0.5),
        (1.5, 3.0, 0.3),
        (3.0, 4.2, 0.2),
        (-2.7, 1.1, 0.4),
        (0.1, 0.1, 0.25),
        (20.0, 80.0, 60.0),
        (0.333, 7.0, 0.7),
    ],
)
def test_first_grid_point_is_original_minimum(lo: float, hi: float, step: float) -> None:
    (spec,) = grid_specs([[lo], [hi]], [step])

    assert grid_values(spec)[0] == lo
    # Upper end is approximated within one step.
    assert abs(spec.maximum - hi) <= spec.step_size + 1e-12


def test_last_grid_point_is_exact_when_range_is_multiple_of_step() -> None:
    (spec,) = grid_specs([[0.0], [2.0]], [0.5])

    assert spec == GridSpec(integer_max=5, offset=0.0, step_size=0.5)
    assert grid_values(spec)[-1] == 2.0


def test_last_grid_point_approximates_when_range_is_not_multiple_of_step() -> None:
    (spec,) = grid_specs([[0.0], [1.0]], [0.4])

    # round(1.0 / 0.4) = round(2.5) = 3 -> four points 0, 0.4, 0.8, 1.2.
    assert spec.integer_max == 4
    assert spec.maximum == pytest.approx(1.2)


def test_round_half_away_from_zero_on_exact_ties() -> None:
    rounded = round_half_away(np.array([0.5, 1.5, 2.5, -0.5, -1.5, 0.49, 2.51]))

    assert rounded.tolist() == [1.0, 2.0, 3.0, -1.0, -2.0, 0.0, 3.0]


def test_tie_rounding_drives_grid_size() -> None:
    # d_min = round(0.5) = 1 and d_max = round(1.5) = 2; half-to-even would give 0 and 2.
    integer_max, _, _ = integer_range_from_real([[0.5], [1.5]], [1])
    assert integer_max[0] == 2

    integer_max, _, _ = integer_range_from_real([[-1.5], [-0.5]], [1])
    assert integer_max[0] == 2


def test_single_dimension_pair_is_accepted() -> None:
    integer_max, offset, step_size = integer_range_from_real([0, 2], 0.5)

    assert integer_max.tolist() == [5]
    assert offset.tolist() == [0.0]
    assert step_size.tolist() == [0.5]


def test_shape_mismatch_raises() -> None:
    with pytest.raises(ValueError, match="step_size must have length 2"):
        integer_range_from_real([[0, 1], [2, 3]], [0.5])
    with pytest.raises(ValueError, match="min_max must have shape"):
        integer_range_from_real([[0, 1], [2, 3], [4, 5]], [0.5, 0.5])
    with pytest.raises(ValueError, match="continuous_chunks"):
        integer_range_from_real([[0], [1]], [0], continuous_chunks=0)


def test_index_of_and_snap_clamp_to_grid() -> None:
    spec = GridSpec(integer_max=5, offset=1.0, step_size=0.5)

    assert index_of(spec, 1.0) == 1
    assert index_of(spec, 1.74) == 2
    assert index_of(spec, 1.75) == 3
    assert index_of(spec, -10.0) == 1
    assert index_of(spec, 10.0) == 5
    assert snap_to_grid(spec, 2.2) == 2.0
    assert snap_to_grid(spec, 99.0) == 3.0
