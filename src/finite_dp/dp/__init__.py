"""Backward-induction engine and grid discretization."""

from finite_dp.dp.backward_induction import (
    BackwardInductionResult,
    bellman_backup,
    evaluate_policy,
    solve_backward_induction,
)
from finite_dp.dp.discretization import (
    GridSpec,
    integer_range_from_real,
    real_range_from_integer,
)
from finite_dp.dp.spaces import DiscreteSpace, GridSpace

__all__ = [
    "BackwardInductionResult",
    "DiscreteSpace",
    "GridSpace",
    "GridSpec",
    "bellman_backup",
    "evaluate_policy",
    "integer_range_from_real",
    "real_range_from_integer",
    "solve_backward_induction",
]
