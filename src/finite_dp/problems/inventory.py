"""Single-item inventory control with i.i.d. discrete demand.

Stock levels live on a grid built from ``[0, max_stock]`` and ``stock_step``.
Each period the manager orders up to the remaining capacity, demand is
realized, sales earn ``price`` per unit and leftover stock pays
``holding_cost``. Stock left after the last period is salvaged.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass
from pathlib import Path
from typing import Any

import yaml

from finite_dp.core.problem import Problem
from finite_dp.core.random_process import DiscreteRandomProcess
from finite_dp.core.types import RandomOutcome
from finite_dp.dp.discretization import grid_specs, grid_values, snap_to_grid
from finite_dp.dp.spaces import DiscreteSpace, GridSpace

_CAPACITY_TOL = 1e-9


@dataclass(frozen=True)
class InventoryParams:
    """Inventory problem parameters."""

    n_periods: int
    discount_rate: float
    max_stock: float
    stock_step: float
    price: float
    order_cost: float
    holding_cost: float
    salvage_value: float
    demand_values: tuple[float, ...]
    demand_probabilities: tuple[float, ...]
    fixed_order_cost: float = 0.0

    def to_dict(self) -> dict[str, Any]:
        payload = asdict(self)
        payload["demand_values"] = list(self.demand_values)
        payload["demand_probabilities"] = list(self.demand_probabilities)
        return payload

    @classmethod
    def from_dict(cls, payload: dict[str, Any]) -> "InventoryParams":
        return cls(
            n_periods=int(payload["n_periods"]),
            discount_rate=float(payload["discount_rate"]),
            max_stock=float(payload["max_stock"]),
            stock_step=float(payload["stock_step"]),
            price=float(payload["price"]),
            order_cost=float(payload["order_cost"]),
            holding_cost=float(payload["holding_cost"]),
            salvage_value=float(payload["salvage_value"]),
            demand_values=tuple(float(v) for v in payload["demand_values"]),
            demand_probabilities=tuple(float(p) for p in payload["demand_probabilities"]),
            fixed_order_cost=float(payload.get("fixed_order_cost", 0.0)),
        )


def save_inventory_params(params: InventoryParams, output_path: Path) -> None:
    """Serialize parameters to YAML."""
    output_path.parent.mkdir(parents=True, exist_ok=True)
    output_path.write_text(yaml.safe_dump(params.to_dict(), sort_keys=False))


def load_inventory_params(path: Path) -> InventoryParams:
    """Load parameters from YAML."""
    payload = yaml.safe_load(path.read_text())
    if not isinstance(payload, dict):
        raise ValueError("Expected a mapping in inventory parameter YAML.")
    return InventoryParams.from_dict(payload)


class InventoryProblem(Problem):
    """Inventory control over a discretized stock grid."""

    def __init__(self, params: InventoryParams) -> None:
        (self.stock_grid,) = grid_specs([[0.0], [params.max_stock]], [params.stock_step])
        stock_space = GridSpace([self.stock_grid])
        demand = DiscreteRandomProcess(params.demand_values, params.demand_probabilities)
        super().__init__(
            n_periods=params.n_periods,
            discount_rate=params.discount_rate,
            state_sets={t: stock_space for t in range(1, params.n_periods + 2)},
            random_items={t: demand for t in range(1, params.n_periods + 1)},
            params=params,
        )

    def terminal_value(self, period, states):
        return [self.params.salvage_value * state[0] for state in states]

    def decision_set(self, period, state):
        capacity = self.stock_grid.maximum - state[0] + _CAPACITY_TOL
        orders = [q for q in grid_values(self.stock_grid).tolist() if q <= capacity]
        return DiscreteSpace((q,) for q in orders)

    def decision_apply(self, period, state, decisions):
        return [
            (snap_to_grid(self.stock_grid, state[0] + decision[0]),)
            for decision in decisions
        ]

    def decision_contribution(self, period, state, decision):
        quantity = decision[0]
        if quantity <= 0.0:
            return 0.0
        return -(self.params.fixed_order_cost + self.params.order_cost * quantity)

    def random_apply(self, period, post_state, outcome: RandomOutcome):
        leftover = max(post_state[0] - outcome.value, 0.0)
        return (snap_to_grid(self.stock_grid, leftover),)

    def random_contribution(self, period, post_state, outcome: RandomOutcome):
        sold = min(post_state[0], outcome.value)
        leftover = max(post_state[0] - outcome.value, 0.0)
        return self.params.price * sold - self.params.holding_cost * leftover
