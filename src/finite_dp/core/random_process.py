"""Random-process descriptors enumerating ``(outcome, probability)`` pairs."""

from __future__ import annotations

from collections.abc import Callable, Sequence
import math
import zlib
from typing import Any

import numpy as np

from finite_dp.core.types import RandomOutcome, State

_PROB_ATOL = 1e-9


class DiscreteRandomProcess:
    """Fixed discrete distribution, identical for every post-decision state."""

    def __init__(self, values: Sequence[Any], probabilities: Sequence[float]) -> None:
        if len(values) != len(probabilities):
            raise ValueError(
                f"Got {len(values)} values but {len(probabilities)} probabilities."
            )
        if len(values) == 0:
            raise ValueError("A random process needs at least one outcome.")
        probs = tuple(float(p) for p in probabilities)
        if any(not math.isfinite(p) or p < 0.0 for p in probs):
            raise ValueError("Probabilities must be finite and non-negative.")
        total = sum(probs)
        if abs(total - 1.0) > _PROB_ATOL:
            raise ValueError(f"Probabilities must sum to 1; got {total:.12f}.")
        self._outcomes = tuple(
            RandomOutcome(value=value, probability=prob)
            for value, prob in zip(values, probs)
        )

    def outcomes(self, post_state: State, period: int) -> tuple[RandomOutcome, ...]:
        return self._outcomes

    def __repr__(self) -> str:
        return f"DiscreteRandomProcess(n_outcomes={len(self._outcomes)})"


class SampledRandomProcess:
    """Equally weighted Monte-Carlo samples drawn per post-decision state.

    Each ``(period, post_state)`` pair gets its own generator seeded from
    ``(seed, period, crc32(repr(post_state)))``, so draws do not depend on
    evaluation order or on how states are split across workers.
    """

    def __init__(
        self,
        sampler: Callable[[np.random.Generator, State, int], Any],
        n_samples: int = 10,
        seed: int = 0,
    ) -> None:
        if n_samples <= 0:
            raise ValueError("n_samples must be positive.")
        if seed < 0:
            raise ValueError("seed must be non-negative.")
        self.sampler = sampler
        self.n_samples = n_samples
        self.seed = seed

    def rng_for(self, post_state: State, period: int) -> np.random.Generator:
        state_key = zlib.crc32(repr(post_state).encode("utf-8"))
        return np.random.default_rng([self.seed, period, state_key])

    def outcomes(self, post_state: State, period: int) -> tuple[RandomOutcome, ...]:
        rng = self.rng_for(post_state, period)
        weight = 1.0 / self.n_samples
        return tuple(
            RandomOutcome(value=self.sampler(rng, post_state, period), probability=weight)
            for _ in range(self.n_samples)
        )
