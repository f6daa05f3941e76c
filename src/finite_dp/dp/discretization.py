"""Real-range to integer-grid discretization for DP state and decision spaces."""

from __future__ import annotations

from dataclasses import dataclass

import numpy as np

# Number of equal intervals used for dimensions flagged continuous (step 0).
DEFAULT_CONTINUOUS_CHUNKS = 10


@dataclass(frozen=True)
class GridSpec:
    """Integer grid for one dimension.

    Grid point ``k`` (1-based, ``k = 1..integer_max``) has real value
    ``offset + (k - 1) * step_size``.
    """

    integer_max: int
    offset: float
    step_size: float

    @property
    def maximum(self) -> float:
        return self.offset + (self.integer_max - 1) * self.step_size


def round_half_away(values: np.ndarray) -> np.ndarray:
    """Round to the nearest integer, sending exact halves away from zero.

    ``0.5 -> 1``, ``1.5 -> 2``, ``2.5 -> 3`` and ``-1.5 -> -2``. numpy's own
    ``round`` sends halves to the nearest even integer instead.
    """
    values = np.asarray(values, dtype=np.float64)
    truncated = np.trunc(values)
    rounded = np.round(values)
    ties = np.abs(values - truncated) == 0.5
    return np.where(ties, truncated + np.sign(values), rounded)


def integer_range_from_real(
    min_max,
    step_size,
    continuous_chunks: int = DEFAULT_CONTINUOUS_CHUNKS,
) -> tuple[np.ndarray, np.ndarray, np.ndarray]:
    """Convert real ranges into integer grid sizes.

    Args:
        min_max: ``2 x D`` array; row 0 holds minimums, row 1 maximums.
        step_size: Length-``D`` step sizes; ``0`` marks a continuous dimension.
        continuous_chunks: Number of intervals a continuous dimension is split into.

    Returns:
        ``(integer_max, offset, step_size)``, each of length ``D``. ``offset``
        is the original, unrounded minimum and ``step_size`` the step actually
        used. The range is rebuilt by :func:`real_range_from_integer`.

    Degenerate dimensions never raise: a zero or negative step is replaced by
    1 and an empty or inverted range yields ``integer_max == 1``.

    Example:
        >>> integer_range_from_real(
        ...     [[0, 1, 1.5, 3, 3.2, 20], [2, 2, 3, 4.2, 4, 80]],
        ...     [0.5, 0.5, 0.3, 0.2, 0, 60],
        ... )[0]
        array([ 5,  3,  6,  7, 11,  2])
    """
    bounds = np.array(min_max, dtype=np.float64, ndmin=2)
    if bounds.shape == (1, 2):
        # A single [min, max] pair describes one dimension.
        bounds = bounds.reshape(2, 1)
    if bounds.ndim != 2 or bounds.shape[0] != 2:
        raise ValueError(f"min_max must have shape (2, D); got {bounds.shape}.")
    steps = np.array(step_size, dtype=np.float64, ndmin=1).copy()
    if steps.shape != (bounds.shape[1],):
        raise ValueError(
            f"step_size must have length {bounds.shape[1]}; got shape {steps.shape}."
        )
    if continuous_chunks <= 0:
        raise ValueError("continuous_chunks must be positive.")

    minimums = bounds[0]
    maximums = bounds[1]

    continuous = steps == 0
    steps[continuous] = (maximums[continuous] - minimums[continuous]) / continuous_chunks
    # Zero (min == max) or negative (min > max) steps would divide by zero or
    # produce an invalid grid.
    steps[steps <= 0] = 1.0

    d_min = round_half_away(minimums / steps)
    d_max = round_half_away(maximums / steps)

    integer_max = (d_max - d_min + 1).astype(np.int64)
    integer_max[integer_max <= 0] = 1

    return integer_max, minimums.copy(), steps


def real_range_from_integer(integer_max, offset, step_size) -> np.ndarray:
    """Rebuild the ``2 x D`` real range covered by an integer grid."""
    integer_max = np.asarray(integer_max, dtype=np.float64)
    offset = np.asarray(offset, dtype=np.float64)
    step_size = np.asarray(step_size, dtype=np.float64)
    return np.vstack([offset, offset + (integer_max - 1) * step_size])


def grid_specs(
    min_max,
    step_size,
    continuous_chunks: int = DEFAULT_CONTINUOUS_CHUNKS,
) -> tuple[GridSpec, ...]:
    """Same as :func:`integer_range_from_real`, packaged as one spec per dimension."""
    integer_max, offset, steps = integer_range_from_real(
        min_max, step_size, continuous_chunks
    )
    return tuple(
        GridSpec(integer_max=int(n), offset=float(o), step_size=float(s))
        for n, o, s in zip(integer_max, offset, steps)
    )


def grid_values(spec: GridSpec) -> np.ndarray:
    """Return the real value of every grid point in index order."""
    return spec.offset + np.arange(spec.integer_max, dtype=np.float64) * spec.step_size


def index_of(spec: GridSpec, value: float) -> int:
    """Return the 1-based index of the grid point nearest ``value``, clamped to the grid."""
    raw = round_half_away(np.asarray((value - spec.offset) / spec.step_size))
    return int(min(max(int(raw) + 1, 1), spec.integer_max))


def snap_to_grid(spec: GridSpec, value: float) -> float:
    """Return the grid value nearest ``value``."""
    return float(spec.offset + (index_of(spec, value) - 1) * spec.step_size)
