"""Finite-horizon stochastic dynamic programming by backward induction."""

from finite_dp.core.config import BackwardInductionConfig
from finite_dp.core.problem import CallbackProblem, Problem
from finite_dp.dp.backward_induction import (
    BackwardInductionResult,
    solve_backward_induction,
)
from finite_dp.dp.discretization import integer_range_from_real

__all__ = [
    "BackwardInductionConfig",
    "BackwardInductionResult",
    "CallbackProblem",
    "Problem",
    "integer_range_from_real",
    "solve_backward_induction",
]
