"""State and decision space tests."""

from __future__ import annotations

import numpy as np

from finite_dp.core.problem import space_elements
from finite_dp.dp.discretization import GridSpec
from finite_dp.dp.spaces import DiscreteSpace, GridSpace


def test_grid_space_enumerates_lexicographically() -> None:
    space = GridSpace(
        [
            GridSpec(integer_max=2, offset=0.0, step_size=1.0),
            GridSpec(integer_max=3, offset=10.0, step_size=0.5),
        ]
    )

    assert space.shape == (2, 3)
    assert len(space) == 6
    assert space.as_array() == (
        (0.0, 10.0),
        (0.0, 10.5),
        (0.0, 11.0),
        (1.0, 10.0),
        (1.0, 10.5),
        (1.0, 11.0),
    )


def test_grid_space_from_ranges_uses_discretizer() -> None:
    space = GridSpace.from_ranges([[0, 5], [1, 5]], [0.5, 0])

    assert space.shape == (3, 1)
    assert space.as_array() == ((0.0, 5.0), (0.5, 5.0), (1.0, 5.0))


def test_discrete_space_normalizes_elements_to_tuples() -> None:
    space = DiscreteSpace([1, [2, 3], (4,), np.array([5.0, 6.0])])

    assert space.as_array() == ((1,), (2, 3), (4,), (5.0, 6.0))
    assert len(space) == 4


def test_space_elements_accepts_plain_sequences_and_arrays() -> None:
    assert space_elements([(1, 2), (3, 4)]) == ((1, 2), (3, 4))
    assert space_elements(np.array([[1, 2], [3, 4]])) == ((1, 2), (3, 4))
    assert space_elements([]) == ()
