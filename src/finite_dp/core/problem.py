"""Problem interface consumed by the backward-induction engine."""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Callable, Mapping, Sequence
from typing import Any, Protocol, runtime_checkable

from finite_dp.core.errors import ProblemConfigError, UnsupportedRandomProcessError
from finite_dp.core.types import Decision, RandomOutcome, State, as_state


@runtime_checkable
class OrderedSpace(Protocol):
    """Anything that can produce all of its elements as an ordered array."""

    def as_array(self) -> Sequence[Any]: ...


@runtime_checkable
class RandomProcess(Protocol):
    """Random-process descriptor attached to one period."""

    def outcomes(self, post_state: State, period: int) -> Sequence[RandomOutcome]: ...


def space_elements(space: OrderedSpace | Sequence[Any]) -> tuple[tuple, ...]:
    """Materialize a space (or plain sequence) as an ordered tuple of tuples."""
    raw = space.as_array() if isinstance(space, OrderedSpace) else space
    return tuple(as_state(element) for element in raw)


class Problem(ABC):
    """Finite-horizon decision problem solved by backward induction.

    Periods are numbered ``1..n_periods``; ``n_periods + 1`` is the terminal
    period, which only has a terminal value. ``params`` is opaque to the
    engine and is available to every callback unchanged.

    ``state_sets`` maps each period ``1..n_periods+1`` to an ordered space (a
    plain sequence indexed from period 1 is accepted as well). ``random_items``
    maps periods to zero or one random process.
    """

    def __init__(
        self,
        *,
        n_periods: int,
        discount_rate: float,
        state_sets: Mapping[int, Any] | Sequence[Any],
        random_items: Mapping[int, Any] | Sequence[Any] | None = None,
        params: Any = None,
    ) -> None:
        self.n_periods = n_periods
        self.discount_rate = discount_rate
        self.state_sets = _by_period(state_sets)
        self.random_items = {
            period: _as_process_tuple(items)
            for period, items in _by_period(random_items or {}).items()
        }
        self.params = params

    def states(self, period: int) -> tuple[State, ...]:
        """Return all states of ``period`` in enumeration order."""
        return space_elements(self.state_sets[period])

    def random_processes(self, period: int) -> tuple[RandomProcess, ...]:
        return self.random_items.get(period, ())

    @abstractmethod
    def terminal_value(self, period: int, states: Sequence[State]) -> Sequence[float]:
        """Return the terminal value of every state in ``states``."""

    @abstractmethod
    def decision_set(self, period: int, state: State) -> OrderedSpace | Sequence[Any]:
        """Return the feasible decisions for ``state`` in ``period``."""

    @abstractmethod
    def decision_apply(
        self, period: int, state: State, decisions: Sequence[Decision]
    ) -> Sequence[State]:
        """Return one post-decision state per decision."""

    @abstractmethod
    def decision_contribution(self, period: int, state: State, decision: Decision) -> float:
        """Return the immediate contribution of taking ``decision`` in ``state``."""

    def random_apply(
        self, period: int, post_state: State, outcome: RandomOutcome
    ) -> State:
        """Map a post-decision state and a random outcome to the next pre-decision state."""
        raise NotImplementedError(
            f"{type(self).__name__} declares random processes but no random_apply."
        )

    def random_contribution(
        self, period: int, post_state: State, outcome: RandomOutcome
    ) -> float:
        """Contribution realized with the random outcome (zero unless overridden)."""
        return 0.0

    def optimal_decision(
        self,
        period: int,
        state: State,
        decisions: Sequence[Decision],
        expected_values: Sequence[float],
    ) -> int | None:
        """Optionally override the argmax; return a decision index or ``None``."""
        return None

    @property
    def has_random_apply(self) -> bool:
        return type(self).random_apply is not Problem.random_apply


class CallbackProblem(Problem):
    """Problem assembled from plain functions taking ``(params, period, ...)``."""

    def __init__(
        self,
        *,
        n_periods: int,
        discount_rate: float,
        state_sets: Mapping[int, Any] | Sequence[Any],
        f_terminal_value: Callable[..., Sequence[float]],
        f_decision_set: Callable[..., Any],
        f_decision_apply: Callable[..., Sequence[State]],
        f_decision_cost: Callable[..., float],
        random_items: Mapping[int, Any] | Sequence[Any] | None = None,
        f_random_apply: Callable[..., State] | None = None,
        f_random_cost: Callable[..., float] | None = None,
        f_optimal_decision: Callable[..., int | None] | None = None,
        params: Any = None,
    ) -> None:
        super().__init__(
            n_periods=n_periods,
            discount_rate=discount_rate,
            state_sets=state_sets,
            random_items=random_items,
            params=params,
        )
        self._f_terminal_value = f_terminal_value
        self._f_decision_set = f_decision_set
        self._f_decision_apply = f_decision_apply
        self._f_decision_cost = f_decision_cost
        self._f_random_apply = f_random_apply
        self._f_random_cost = f_random_cost
        self._f_optimal_decision = f_optimal_decision

    def terminal_value(self, period, states):
        return self._f_terminal_value(self.params, period, states)

    def decision_set(self, period, state):
        return self._f_decision_set(self.params, period, state)

    def decision_apply(self, period, state, decisions):
        return self._f_decision_apply(self.params, period, state, decisions)

    def decision_contribution(self, period, state, decision):
        return self._f_decision_cost(self.params, period, state, decision)

    def random_apply(self, period, post_state, outcome):
        if self._f_random_apply is None:
            return super().random_apply(period, post_state, outcome)
        return self._f_random_apply(self.params, period, post_state, outcome)

    def random_contribution(self, period, post_state, outcome):
        if self._f_random_cost is None:
            return 0.0
        return self._f_random_cost(self.params, period, post_state, outcome)

    def optimal_decision(self, period, state, decisions, expected_values):
        if self._f_optimal_decision is None:
            return None
        return self._f_optimal_decision(
            self.params, period, state, decisions, expected_values
        )

    @property
    def has_random_apply(self) -> bool:
        return self._f_random_apply is not None


def verify_problem(problem: Problem) -> None:
    """Validate a problem before recursion starts.

    Raises:
        ProblemConfigError: If periods, discount rate, state spaces or random
            processes are malformed.
        UnsupportedRandomProcessError: If a period declares more than one
            random process.
    """
    n_periods = problem.n_periods
    if isinstance(n_periods, bool) or not isinstance(n_periods, int) or n_periods < 1:
        raise ProblemConfigError(f"n_periods must be a positive integer; got {n_periods!r}.")
    if not (0.0 < problem.discount_rate <= 1.0):
        raise ProblemConfigError(
            f"discount_rate must be in (0, 1]; got {problem.discount_rate!r}."
        )

    expected = set(range(1, n_periods + 2))
    missing = sorted(expected - set(problem.state_sets))
    if missing:
        raise ProblemConfigError(
            f"state_sets missing period(s): {', '.join(str(t) for t in missing)}."
        )
    for period in sorted(expected):
        space = problem.state_sets[period]
        if not (isinstance(space, OrderedSpace) or hasattr(space, "__iter__")):
            raise ProblemConfigError(
                f"state_sets[{period}] must expose as_array() or be a sequence."
            )

    for period, processes in problem.random_items.items():
        if not processes:
            continue
        if not (1 <= period <= n_periods):
            raise ProblemConfigError(
                f"random_items declared for period {period}; expected 1..{n_periods}."
            )
        if len(processes) > 1:
            raise UnsupportedRandomProcessError(
                f"Period {period} declares {len(processes)} random processes; "
                "only one random process per period is supported."
            )
        if not isinstance(processes[0], RandomProcess):
            raise ProblemConfigError(
                f"random_items[{period}] must expose outcomes(post_state, period)."
            )
        if not problem.has_random_apply:
            raise ProblemConfigError(
                f"Period {period} has a random process but the problem has no random_apply."
            )


def _by_period(items: Mapping[int, Any] | Sequence[Any]) -> dict[int, Any]:
    if isinstance(items, Mapping):
        return {int(period): value for period, value in items.items()}
    return {idx + 1: value for idx, value in enumerate(items)}


def _as_process_tuple(items: Any) -> tuple[Any, ...]:
    if items is None:
        return ()
    if isinstance(items, (list, tuple)):
        return tuple(item for item in items if item is not None)
    return (items,)
