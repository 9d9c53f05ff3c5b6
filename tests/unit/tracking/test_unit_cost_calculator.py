# tests/unit/tracking/test_unit_cost_calculator.py - v1
"""Tests for tracking/cost_calculator.py."""

from __future__ import annotations

import pytest

from ceremonykit.tracking.cost_calculator import (
    calculate_cost,
    estimate_cost,
    format_cost,
    get_pricing,
)
from ceremonykit.tracking.models import ModelPricing


class TestCalculateCost:
    def test_known_model(self):
        cost = calculate_cost(1_000_000, 500_000, "claude-sonnet-4-5-20250929")
        assert cost.input == pytest.approx(3.0)
        assert cost.output == pytest.approx(7.5)
        assert cost.total == pytest.approx(10.5)

    def test_unknown_model_is_zero(self):
        cost = calculate_cost(1000, 1000, "unknown-model")
        assert (cost.input, cost.output, cost.total) == (0.0, 0.0, 0.0)

    def test_no_model_is_zero(self):
        assert calculate_cost(1000, 1000, None).total == 0.0

    def test_custom_pricing(self):
        pricing = {"m": ModelPricing(model="m", input_price_per_1m=2.0, output_price_per_1m=4.0)}
        assert calculate_cost(500_000, 250_000, "m", pricing).total == pytest.approx(2.0)
        assert get_pricing("gpt-4o", pricing) is None


class TestEstimateCost:
    def test_model_price_wins(self):
        assert estimate_cost(1_000_000, 0, "gpt-4o", provider="openai") == pytest.approx(5.0)

    def test_provider_fallback(self):
        assert estimate_cost(1_000_000, 1_000_000, "claude-new", provider="claude") == pytest.approx(18.0)

    def test_unknown_everything(self):
        assert estimate_cost(1000, 1000, "x", provider="mystery") == 0.0


class TestFormatCost:
    @pytest.mark.parametrize(
        "cost, expected",
        [(0, "Free"), (0.0, "Free"), (0.004, "< $0.01"), (0.01, "$0.01"), (12.345, "$12.35")],
    )
    def test_format(self, cost, expected):
        assert format_cost(cost) == expected
