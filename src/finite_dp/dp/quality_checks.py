"""Quality checks for backward-induction outputs."""

from __future__ import annotations

from dataclasses import dataclass
import math

from finite_dp.core.problem import Problem
from finite_dp.dp.backward_induction import (
    BackwardInductionResult,
    bellman_backup,
    terminal_values,
)


@dataclass(frozen=True)
class CheckResult:
    """One quality-check result."""

    name: str
    passed: bool
    details: str
    metric: float | None = None

    def to_dict(self) -> dict[str, object]:
        payload: dict[str, object] = {
            "name": self.name,
            "passed": self.passed,
            "details": self.details,
        }
        if self.metric is not None:
            payload["metric"] = self.metric
        return payload


@dataclass(frozen=True)
class QualityReport:
    """Aggregated checks over a solved problem."""

    checks: tuple[CheckResult, ...]

    @property
    def failures(self) -> tuple[CheckResult, ...]:
        return tuple(check for check in self.checks if not check.passed)

    @property
    def passed(self) -> bool:
        return not self.failures

    def to_dict(self) -> dict[str, object]:
        return {
            "checks": [check.to_dict() for check in self.checks],
            "failures": [check.to_dict() for check in self.failures],
            "passed": self.passed,
        }


def run_quality_checks(
    *,
    problem: Problem,
    result: BackwardInductionResult,
    bellman_atol: float = 1e-9,
) -> QualityReport:
    """Re-derive terminal values and Bellman backups and compare with ``result``."""
    return QualityReport(
        checks=(
            _check_discount_domain(problem),
            _check_period_coverage(problem=problem, result=result),
            _check_terminal_values(problem=problem, result=result),
            _check_policy_coverage(result=result),
            _check_bellman_residual(
                problem=problem,
                result=result,
                bellman_atol=bellman_atol,
            ),
        )
    )


def _check_discount_domain(problem: Problem) -> CheckResult:
    passed = 0.0 < problem.discount_rate <= 1.0
    details = (
        "discount_rate in (0, 1]"
        if passed
        else f"discount_rate {problem.discount_rate!r} outside (0, 1]"
    )
    return CheckResult(name="discount_domain", passed=passed, details=details)


def _check_period_coverage(
    *, problem: Problem, result: BackwardInductionResult
) -> CheckResult:
    expected_values = list(range(1, problem.n_periods + 2))
    expected_policy = list(range(1, problem.n_periods + 1))
    if list(result.values) != expected_values or list(result.policy) != expected_policy:
        return CheckResult(
            name="period_coverage",
            passed=False,
            details=(
                f"values periods {list(result.values)} / policy periods "
                f"{list(result.policy)} do not match n_periods={problem.n_periods}"
            ),
        )
    for period in expected_values:
        missing = [state for state in problem.states(period) if state not in result.values[period]]
        if missing:
            return CheckResult(
                name="period_coverage",
                passed=False,
                details=(
                    f"period {period} missing {len(missing)} state(s); "
                    f"example missing state: {missing[0]}"
                ),
            )
    return CheckResult(
        name="period_coverage",
        passed=True,
        details="values cover every state of every period",
    )


def _check_terminal_values(
    *, problem: Problem, result: BackwardInductionResult
) -> CheckResult:
    terminal = problem.n_periods + 1
    expected = terminal_values(problem)
    for state, value in expected.items():
        if result.values[terminal].get(state) != value:
            return CheckResult(
                name="terminal_values",
                passed=False,
                details=(
                    f"terminal value mismatch at {state}: "
                    f"{result.values[terminal].get(state)} != {value}"
                ),
            )
    return CheckResult(
        name="terminal_values",
        passed=True,
        details=f"{len(expected)} terminal values match terminal_value",
    )


def _check_policy_coverage(*, result: BackwardInductionResult) -> CheckResult:
    for period, period_policy in result.policy.items():
        period_values = result.values[period]
        for state in period_policy:
            if not math.isfinite(period_values.get(state, -math.inf)):
                return CheckResult(
                    name="policy_coverage",
                    passed=False,
                    details=f"policy entry for non-finite state {state} in period {period}",
                )
        finite = sum(1 for value in period_values.values() if math.isfinite(value))
        if finite != len(period_policy):
            return CheckResult(
                name="policy_coverage",
                passed=False,
                details=(
                    f"period {period}: {finite} finite values but "
                    f"{len(period_policy)} policy entries"
                ),
            )
    return CheckResult(
        name="policy_coverage",
        passed=True,
        details="policy defined exactly on feasible states",
    )


def _check_bellman_residual(
    *,
    problem: Problem,
    result: BackwardInductionResult,
    bellman_atol: float,
) -> CheckResult:
    residual = 0.0
    for period in range(problem.n_periods, 0, -1):
        next_values = result.values[period + 1]
        for state, value in result.values[period].items():
            evaluation = bellman_backup(problem, period, state, next_values)
            if not math.isfinite(value) or not math.isfinite(evaluation.value):
                if value != evaluation.value:
                    return CheckResult(
                        name="bellman_residual",
                        passed=False,
                        details=(
                            f"non-finite mismatch at period {period}, state {state}: "
                            f"{value} != {evaluation.value}"
                        ),
                    )
                continue
            residual = max(residual, abs(value - evaluation.value))

    passed = residual <= bellman_atol
    details = (
        f"bellman residual {residual:.3e} <= atol {bellman_atol:.3e}"
        if passed
        else f"bellman residual {residual:.3e} exceeds atol {bellman_atol:.3e}"
    )
    return CheckResult(
        name="bellman_residual",
        passed=passed,
        details=details,
        metric=residual,
    )
