"""Policy inspection and reporting helpers for backward-induction results."""

from __future__ import annotations

from collections import Counter
import math
from statistics import mean

import pandas as pd

from finite_dp.core.types import Decision, State
from finite_dp.dp.backward_induction import BackwardInductionResult


def state_to_id(state: State) -> str:
    """Encode a state or decision tuple as a stable string identifier."""
    return ",".join(_format_coordinate(value) for value in state)


def policy_rows(
    result: BackwardInductionResult,
    period: int,
) -> list[dict[str, object]]:
    """Build flat tabular rows for one period's values and decisions.

    The terminal period has values but no decisions.
    """
    if period not in result.values:
        raise ValueError(
            f"Period {period} not in result; expected 1..{max(result.values)}."
        )
    period_policy = result.policy.get(period, {})
    rows: list[dict[str, object]] = []
    for state, value in result.values[period].items():
        decision = period_policy.get(state)
        row: dict[str, object] = {
            "period": period,
            "state_id": state_to_id(state),
            "feasible": decision is not None or period not in result.policy,
            "decision_id": state_to_id(decision) if decision is not None else "",
            "value": value,
        }
        for idx, coordinate in enumerate(state):
            row[f"state_{idx}"] = coordinate
        if decision is not None:
            for idx, coordinate in enumerate(decision):
                row[f"decision_{idx}"] = coordinate
        rows.append(row)
    return rows


def policy_frame(
    result: BackwardInductionResult,
    period: int | None = None,
) -> pd.DataFrame:
    """Return policy rows as a DataFrame for one period, or all periods if ``None``."""
    periods = [period] if period is not None else sorted(result.values)
    rows: list[dict[str, object]] = []
    for current in periods:
        rows.extend(policy_rows(result, current))
    return pd.DataFrame(rows)


def decision_histogram(
    policy: dict[State, Decision],
) -> dict[str, int]:
    """Count how often each decision is chosen."""
    counter = Counter(state_to_id(decision) for decision in policy.values())
    return dict(sorted(counter.items()))


def summarize_result(result: BackwardInductionResult) -> dict[str, object]:
    """Summarize per-period state counts, feasibility and value ranges."""
    periods: dict[str, dict[str, object]] = {}
    for period, period_values in result.values.items():
        finite = [value for value in period_values.values() if math.isfinite(value)]
        if finite:
            value_summary = {
                "min": min(finite),
                "max": max(finite),
                "mean": float(mean(finite)),
            }
        else:
            value_summary = {"min": None, "max": None, "mean": None}

        summary: dict[str, object] = {
            "n_states": len(period_values),
            "n_infeasible": result.infeasible.get(period, 0),
            "value_summary": value_summary,
        }
        if period in result.policy:
            summary["decision_histogram"] = decision_histogram(result.policy[period])
        periods[str(period)] = summary

    return {
        "n_periods": result.n_periods,
        "periods": periods,
    }


def top_states_by_value(
    result: BackwardInductionResult,
    period: int,
    n: int = 10,
) -> list[dict[str, object]]:
    """Return the ``n`` highest-value feasible rows of a period."""
    rows = [
        row
        for row in policy_rows(result, period)
        if row["feasible"] and math.isfinite(float(row["value"]))
    ]
    return sorted(rows, key=lambda row: float(row["value"]), reverse=True)[:n]


def _format_coordinate(value: object) -> str:
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)
