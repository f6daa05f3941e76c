"""Shared state, decision and outcome types used across the solver."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Hashable


State = tuple
Decision = tuple

# Value of a state that was never reached by a feasible decision.
UNVISITED = float("-inf")


@dataclass(frozen=True)
class RandomOutcome:
    """One realization of a period's random process.

    Attributes:
        value: Realized value handed to ``Problem.random_apply``.
        probability: Probability (or normalized weight) of the realization.
    """

    value: Any
    probability: float


def as_state(raw: Hashable) -> State:
    """Normalize a raw state element (scalar, list, array row) into a tuple."""
    if isinstance(raw, tuple):
        return raw
    if hasattr(raw, "tolist"):
        raw = raw.tolist()
    if isinstance(raw, list):
        return tuple(raw)
    return (raw,)
