"""Pytest configuration and shared fixtures."""

from __future__ import annotations

from pathlib import Path

import pytest

from finite_dp.problems.inventory import InventoryParams, load_inventory_params

FIXTURES_DIR = Path(__file__).resolve().parent / "fixtures"


@pytest.fixture
def fixtures_dir() -> Path:
    return FIXTURES_DIR


@pytest.fixture
def inventory_params() -> InventoryParams:
    return load_inventory_params(FIXTURES_DIR / "inventory_small.yaml")


@pytest.fixture
def hand_check_inventory_params() -> InventoryParams:
    # One period, stock in {0, 1, 2}, demand 0 or 1 with equal odds.
    return InventoryParams(
        n_periods=1,
        discount_rate=1.0,
        max_stock=2.0,
        stock_step=1.0,
        price=4.0,
        order_cost=1.0,
        holding_cost=0.5,
        salvage_value=0.5,
        demand_values=(0.0, 1.0),
        demand_probabilities=(0.5, 0.5),
    )
