"""Backward-induction solver for finite-horizon stochastic DP."""

from __future__ import annotations

from collections.abc import Callable, Sequence
from concurrent.futures import Executor, ProcessPoolExecutor, ThreadPoolExecutor, as_completed
from dataclasses import dataclass
import logging
import math
import numbers
import threading
from typing import Any

from finite_dp.core.config import BackwardInductionConfig
from finite_dp.core.errors import CallbackError, ProblemConfigError, SolveCancelledError
from finite_dp.core.problem import Problem, space_elements, verify_problem
from finite_dp.core.types import UNVISITED, Decision, State, as_state

log = logging.getLogger(__name__)

_TIE_TOL = 1e-12

# Target number of chunks per worker when chunk_size is not configured.
_CHUNKS_PER_WORKER = 4

_VERBOSE_FORMAT = "%(asctime)s [%(levelname)s] %(message)s"


@dataclass(frozen=True)
class StateEvaluation:
    """Outcome of one state's Bellman evaluation."""

    state: State
    value: float
    decision: Decision | None
    decisions: tuple[Decision, ...] = ()
    decision_values: tuple[float, ...] = ()

    @property
    def feasible(self) -> bool:
        return self.decision is not None


@dataclass(frozen=True)
class BackwardInductionResult:
    """Outputs from a backward-induction solve.

    ``values`` is keyed by period ``1..n_periods+1`` and ``policy`` by period
    ``1..n_periods``. Infeasible states keep ``UNVISITED`` and have no policy
    entry.
    """

    values: dict[int, dict[State, float]]
    policy: dict[int, dict[State, Decision]]
    opts: BackwardInductionConfig
    infeasible: dict[int, int]
    decision_values: dict[int, dict[State, dict[Decision, float]]] | None = None

    @property
    def n_periods(self) -> int:
        return len(self.policy)


def terminal_values(problem: Problem) -> dict[State, float]:
    """Evaluate the terminal value function ``V[n_periods + 1]``."""
    period = problem.n_periods + 1
    states = problem.states(period)
    raw = _call("terminal_value", period, None, problem.terminal_value, period, states)
    values = [float(value) for value in raw]
    if len(values) != len(states):
        raise ProblemConfigError(
            f"terminal_value returned {len(values)} values for {len(states)} states "
            f"in period {period}."
        )
    return dict(zip(states, values))


def bellman_decision_value(
    problem: Problem,
    period: int,
    state: State,
    decision: Decision,
    post_state: State,
    next_values: dict[State, float],
) -> float:
    """Compute the expected value of one decision against ``V[period + 1]``.

    Each random outcome contributes
    ``p * (contribution + random_contribution + discount * V[next])``. Without
    a random process the post-decision state is the next state.
    """
    contribution = float(
        _call(
            "decision_contribution",
            period,
            state,
            problem.decision_contribution,
            period,
            state,
            decision,
        )
    )
    discount = problem.discount_rate
    processes = problem.random_processes(period)
    if not processes:
        continuation = _lookup(next_values, period, post_state)
        return contribution + discount * continuation

    outcomes = _call("outcomes", period, state, processes[0].outcomes, post_state, period)
    total = 0.0
    accumulated = False
    for outcome in outcomes:
        if outcome.probability == 0.0:
            continue
        accumulated = True
        next_state = as_state(
            _call(
                "random_apply",
                period,
                state,
                problem.random_apply,
                period,
                post_state,
                outcome,
            )
        )
        reward = contribution + float(
            _call(
                "random_contribution",
                period,
                state,
                problem.random_contribution,
                period,
                post_state,
                outcome,
            )
        )
        continuation = _lookup(next_values, period, next_state)
        total += outcome.probability * (reward + discount * continuation)
    if not accumulated:
        raise ProblemConfigError(
            f"Random process of period {period} produced no outcome with positive "
            f"probability for post-decision state {post_state} (state {state})."
        )
    return total


def bellman_backup(
    problem: Problem,
    period: int,
    state: State,
    next_values: dict[State, float],
) -> StateEvaluation:
    """Compute the Bellman-optimal value and decision at one state."""
    decision_space = _call("decision_set", period, state, problem.decision_set, period, state)
    decisions = space_elements(decision_space)
    if not decisions:
        return StateEvaluation(state=state, value=UNVISITED, decision=None)

    post_states = _post_decision_states(problem, period, state, decisions)

    q_values = tuple(
        bellman_decision_value(problem, period, state, decision, post_state, next_values)
        for decision, post_state in zip(decisions, post_states)
    )
    for decision, q_value in zip(decisions, q_values):
        if math.isnan(q_value):
            raise ProblemConfigError(
                f"Decision {decision} at period {period}, state {state} has a NaN "
                "expected value."
            )

    best_idx = _call(
        "optimal_decision",
        period,
        state,
        problem.optimal_decision,
        period,
        state,
        decisions,
        q_values,
    )
    if best_idx is None:
        best_idx = _first_argmax(q_values)
    elif not (isinstance(best_idx, numbers.Integral) and 0 <= best_idx < len(decisions)):
        raise ProblemConfigError(
            f"optimal_decision returned {best_idx!r} at period {period}, state {state}; "
            f"expected an index in [0, {len(decisions) - 1}]."
        )
    else:
        best_idx = int(best_idx)

    if best_idx is None or q_values[best_idx] == UNVISITED:
        return StateEvaluation(
            state=state,
            value=UNVISITED,
            decision=None,
            decisions=decisions,
            decision_values=q_values,
        )
    return StateEvaluation(
        state=state,
        value=q_values[best_idx],
        decision=decisions[best_idx],
        decisions=decisions,
        decision_values=q_values,
    )


def solve_backward_induction(
    problem: Problem,
    config: BackwardInductionConfig | None = None,
    *,
    cancel_event: threading.Event | None = None,
) -> BackwardInductionResult:
    """Compute optimal values and policy for every period by backward induction.

    Args:
        problem: Problem definition; never mutated.
        config: Solver configuration. Defaults to a serial solve.
        cancel_event: Optional event checked between periods. When set, the
            solve stops with :class:`SolveCancelledError`.

    Returns:
        Values for periods ``1..n_periods+1`` and policy for ``1..n_periods``.
    """
    config = config or BackwardInductionConfig()
    config.validate()
    verify_problem(problem)

    with _SolveLog(config.verbose) as report:
        report.info(
            "Backward induction: n_periods=%d, discount_rate=%s, n_workers=%d",
            problem.n_periods,
            problem.discount_rate,
            config.n_workers,
        )
        terminal = problem.n_periods + 1
        values: dict[int, dict[State, float]] = {terminal: terminal_values(problem)}
        policy: dict[int, dict[State, Decision]] = {}
        infeasible: dict[int, int] = {}
        decision_values: dict[int, dict[State, dict[Decision, float]]] | None = (
            {} if config.keep_decision_values else None
        )
        report.info("T=%d (terminal period): %d states", terminal, len(values[terminal]))

        executor = _make_executor(config)
        try:
            for period in range(problem.n_periods, 0, -1):
                if cancel_event is not None and cancel_event.is_set():
                    report.info("Cancelled before period %d", period)
                    raise SolveCancelledError(period, values, policy)

                states = problem.states(period)
                evaluations = _evaluate_period(
                    problem=problem,
                    period=period,
                    states=states,
                    next_values=values[period + 1],
                    config=config,
                    executor=executor,
                )

                period_values: dict[State, float] = {}
                period_policy: dict[State, Decision] = {}
                for evaluation in evaluations:
                    period_values[evaluation.state] = evaluation.value
                    if evaluation.feasible:
                        period_policy[evaluation.state] = evaluation.decision
                    else:
                        log.debug("T=%d: infeasible state %s", period, evaluation.state)
                    if decision_values is not None:
                        decision_values.setdefault(period, {})[evaluation.state] = dict(
                            zip(evaluation.decisions, evaluation.decision_values)
                        )

                values[period] = period_values
                policy[period] = period_policy
                infeasible[period] = len(period_values) - len(period_policy)
                report.info(
                    "T=%d: %d states, %d infeasible",
                    period,
                    len(period_values),
                    infeasible[period],
                )
        finally:
            if executor is not None:
                executor.shutdown(wait=True, cancel_futures=True)

    return BackwardInductionResult(
        values=dict(sorted(values.items())),
        policy=dict(sorted(policy.items())),
        opts=config,
        infeasible=dict(sorted(infeasible.items())),
        decision_values=(
            dict(sorted(decision_values.items())) if decision_values is not None else None
        ),
    )


def evaluate_policy(
    problem: Problem,
    policy: dict[int, dict[State, Decision]],
) -> dict[int, dict[State, float]]:
    """Compute V^π for a fixed policy over every period.

    Every state with at least one feasible decision must have a policy entry
    naming a decision from its decision set; states without decisions keep
    ``UNVISITED``.

    Raises:
        ValueError: If the policy misses a feasible state or names an
            infeasible decision.
    """
    verify_problem(problem)
    terminal = problem.n_periods + 1
    values: dict[int, dict[State, float]] = {terminal: terminal_values(problem)}

    for period in range(problem.n_periods, 0, -1):
        period_policy = policy.get(period, {})
        next_values = values[period + 1]
        period_values: dict[State, float] = {}
        for state in problem.states(period):
            decisions = space_elements(
                _call("decision_set", period, state, problem.decision_set, period, state)
            )
            if not decisions:
                period_values[state] = UNVISITED
                continue
            if state not in period_policy:
                raise ValueError(
                    f"Policy is missing state {state} in period {period}."
                )
            decision = as_state(period_policy[state])
            if decision not in decisions:
                raise ValueError(
                    f"Invalid decision {decision} for state {state} in period {period}."
                )
            (post_state,) = _post_decision_states(problem, period, state, (decision,))
            period_values[state] = bellman_decision_value(
                problem, period, state, decision, post_state, next_values
            )
        values[period] = period_values

    return dict(sorted(values.items()))


def first_period_decision(result: BackwardInductionResult, state: State) -> Decision | None:
    """Return the optimal period-1 decision for ``state`` (``None`` if infeasible)."""
    return result.policy[1].get(as_state(state))


def first_period_value(result: BackwardInductionResult, state: State) -> float:
    return result.values[1][as_state(state)]


def _evaluate_chunk(
    problem: Problem,
    period: int,
    states: Sequence[State],
    next_values: dict[State, float],
) -> list[StateEvaluation]:
    return [bellman_backup(problem, period, state, next_values) for state in states]


def _evaluate_period(
    *,
    problem: Problem,
    period: int,
    states: tuple[State, ...],
    next_values: dict[State, float],
    config: BackwardInductionConfig,
    executor: Executor | None,
) -> list[StateEvaluation]:
    chunks = _chunked(states, _resolve_chunk_size(len(states), config))

    progress = None
    if config.show_progress:
        # Import tqdm lazily to avoid notebook-side effects when progress is disabled.
        from tqdm.auto import tqdm

        progress = tqdm(
            total=len(states),
            desc=f"{config.progress_desc} (T={period})",
            dynamic_ncols=True,
            leave=False,
        )

    try:
        if executor is None:
            evaluations: list[StateEvaluation] = []
            for chunk in chunks:
                evaluations.extend(_evaluate_chunk(problem, period, chunk, next_values))
                if progress is not None:
                    progress.update(len(chunk))
            return evaluations

        futures = {
            executor.submit(_evaluate_chunk, problem, period, chunk, next_values): idx
            for idx, chunk in enumerate(chunks)
        }
        by_chunk: dict[int, list[StateEvaluation]] = {}
        try:
            for future in as_completed(futures):
                idx = futures[future]
                by_chunk[idx] = future.result()
                if progress is not None:
                    progress.update(len(chunks[idx]))
        except BaseException:
            for future in futures:
                future.cancel()
            raise
        # Reassemble in enumeration order so results do not depend on scheduling.
        return [evaluation for idx in range(len(chunks)) for evaluation in by_chunk[idx]]
    finally:
        if progress is not None:
            progress.close()


def _make_executor(config: BackwardInductionConfig) -> Executor | None:
    if config.n_workers == 1:
        return None
    if config.executor == "process":
        return ProcessPoolExecutor(max_workers=config.n_workers)
    return ThreadPoolExecutor(max_workers=config.n_workers)


def _resolve_chunk_size(n_states: int, config: BackwardInductionConfig) -> int:
    if config.chunk_size is not None:
        return config.chunk_size
    return max(1, math.ceil(n_states / (config.n_workers * _CHUNKS_PER_WORKER)))


def _chunked(states: tuple[State, ...], size: int) -> list[tuple[State, ...]]:
    return [states[idx : idx + size] for idx in range(0, len(states), size)]


def _post_decision_states(
    problem: Problem,
    period: int,
    state: State,
    decisions: Sequence[Decision],
) -> list[State]:
    post_states = _call(
        "decision_apply", period, state, problem.decision_apply, period, state, decisions
    )
    post_states = [as_state(post_state) for post_state in post_states]
    if len(post_states) != len(decisions):
        raise ProblemConfigError(
            f"decision_apply returned {len(post_states)} post-decision states for "
            f"{len(decisions)} decisions at period {period}, state {state}."
        )
    return post_states


def _first_argmax(values: Sequence[float]) -> int | None:
    best_idx = None
    best_value = -math.inf
    for idx, value in enumerate(values):
        if value > best_value + _TIE_TOL:
            best_value = value
            best_idx = idx
    return best_idx


def _lookup(next_values: dict[State, float], period: int, next_state: State) -> float:
    try:
        return next_values[next_state]
    except KeyError:
        raise ProblemConfigError(
            f"Next state {next_state} reached from period {period} is not in the "
            f"state space of period {period + 1}."
        ) from None


def _call(
    name: str,
    period: int,
    state: State | None,
    fn: Callable[..., Any],
    *args: Any,
) -> Any:
    """Invoke a problem callback, attaching period/state context to failures."""
    try:
        return fn(*args)
    except (ProblemConfigError, CallbackError):
        raise
    except Exception as exc:
        raise CallbackError(name, period, state) from exc


class _SolveLog:
    """INFO progress messages for one solve.

    Messages go through the module logger whenever the caller's logging
    configuration enables INFO. Otherwise a verbose solve writes them to its
    own stderr handler. Logger levels and handlers are never modified.
    """

    def __init__(self, verbose: bool) -> None:
        self._handler: logging.Handler | None = None
        if verbose:
            self._handler = logging.StreamHandler()
            self._handler.setFormatter(
                logging.Formatter(_VERBOSE_FORMAT, datefmt="%H:%M:%S")
            )

    def __enter__(self) -> _SolveLog:
        return self

    def __exit__(self, *exc_info: Any) -> None:
        if self._handler is not None:
            self._handler.close()

    def info(self, msg: str, *args: Any) -> None:
        if log.isEnabledFor(logging.INFO):
            log.info(msg, *args, stacklevel=2)
        elif self._handler is not None:
            self._handler.handle(
                log.makeRecord(log.name, logging.INFO, __file__, 0, msg, args, None)
            )
