"""Ordered state and decision spaces exposing ``as_array()``."""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from itertools import product
from typing import Any

from finite_dp.core.types import as_state
from finite_dp.dp.discretization import (
    DEFAULT_CONTINUOUS_CHUNKS,
    GridSpec,
    grid_specs,
    grid_values,
)


class DiscreteSpace:
    """Explicit ordered collection of tuple elements."""

    def __init__(self, elements: Iterable[Any]) -> None:
        self._elements = tuple(as_state(element) for element in elements)

    def as_array(self) -> tuple[tuple, ...]:
        return self._elements

    def __len__(self) -> int:
        return len(self._elements)

    def __repr__(self) -> str:
        return f"DiscreteSpace(n={len(self._elements)})"


class GridSpace:
    """Cartesian product of per-dimension grids in lexicographic order.

    The last dimension varies fastest, matching ``itertools.product``.
    """

    def __init__(self, specs: Sequence[GridSpec]) -> None:
        if not specs:
            raise ValueError("GridSpace needs at least one dimension.")
        self.specs = tuple(specs)

    @classmethod
    def from_ranges(
        cls,
        min_max,
        step_size,
        continuous_chunks: int = DEFAULT_CONTINUOUS_CHUNKS,
    ) -> "GridSpace":
        """Discretize real ranges and build the product grid."""
        return cls(grid_specs(min_max, step_size, continuous_chunks))

    @property
    def shape(self) -> tuple[int, ...]:
        return tuple(spec.integer_max for spec in self.specs)

    def as_array(self) -> tuple[tuple[float, ...], ...]:
        axes = [grid_values(spec).tolist() for spec in self.specs]
        return tuple(product(*axes))

    def __len__(self) -> int:
        size = 1
        for n in self.shape:
            size *= n
        return size

    def __repr__(self) -> str:
        return f"GridSpace(shape={self.shape})"
