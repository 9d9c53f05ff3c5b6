# src/tracking/cost_calculator.py - v1
"""Cost calculation from token counts and a per-model pricing table."""

from __future__ import annotations

from ceremonykit.tracking.models import CostBreakdown, ModelPricing

# Default pricing per 1M tokens.
DEFAULT_PRICING: dict[str, ModelPricing] = {
    "claude-opus-4-6": ModelPricing(
        model="claude-opus-4-6", input_price_per_1m=15.0, output_price_per_1m=75.0,
    ),
    "claude-sonnet-4-5-20250929": ModelPricing(
        model="claude-sonnet-4-5-20250929", input_price_per_1m=3.0, output_price_per_1m=15.0,
    ),
    "claude-3-5-haiku-20241022": ModelPricing(
        model="claude-3-5-haiku-20241022", input_price_per_1m=1.0, output_price_per_1m=5.0,
    ),
    "gemini-2.0-flash-exp": ModelPricing(
        model="gemini-2.0-flash-exp", input_price_per_1m=0.0, output_price_per_1m=0.0,
    ),
    "gemini-2.5-flash": ModelPricing(
        model="gemini-2.5-flash", input_price_per_1m=0.0, output_price_per_1m=0.0,
    ),
    "gemini-1.5-pro": ModelPricing(
        model="gemini-1.5-pro", input_price_per_1m=1.25, output_price_per_1m=5.0,
    ),
    "gpt-4o": ModelPricing(
        model="gpt-4o", input_price_per_1m=5.0, output_price_per_1m=15.0,
    ),
    "gpt-4o-mini": ModelPricing(
        model="gpt-4o-mini", input_price_per_1m=0.15, output_price_per_1m=0.60,
    ),
}

# Provider-level rates used when a model is missing from the table.
PROVIDER_FALLBACK_PRICING: dict[str, ModelPricing] = {
    "claude": ModelPricing(model="claude", input_price_per_1m=3.0, output_price_per_1m=15.0),
    "gemini": ModelPricing(model="gemini", input_price_per_1m=0.15, output_price_per_1m=0.60),
    "openai": ModelPricing(model="openai", input_price_per_1m=1.75, output_price_per_1m=14.0),
}


def get_pricing(
    model: str | None,
    pricing: dict[str, ModelPricing] | None = None,
) -> ModelPricing | None:
    """Look up pricing for a model id, or None if unknown."""
    if not model:
        return None
    table = pricing if pricing is not None else DEFAULT_PRICING
    return table.get(model)


def _cost_for(p: ModelPricing, input_tokens: int, output_tokens: int) -> CostBreakdown:
    input_cost = input_tokens * p.input_price_per_1m / 1_000_000
    output_cost = output_tokens * p.output_price_per_1m / 1_000_000
    return CostBreakdown(input=input_cost, output=output_cost, total=input_cost + output_cost)


def calculate_cost(
    input_tokens: int,
    output_tokens: int,
    model: str | None,
    pricing: dict[str, ModelPricing] | None = None,
) -> CostBreakdown:
    """Compute USD cost split by direction. Unknown models cost zero."""
    p = get_pricing(model, pricing)
    if p is None:
        return CostBreakdown()
    return _cost_for(p, input_tokens, output_tokens)


def estimate_cost(
    input_tokens: int,
    output_tokens: int,
    model: str | None,
    provider: str | None = None,
    pricing: dict[str, ModelPricing] | None = None,
) -> float:
    """Total USD cost, falling back to provider-level rates for unknown models."""
    p = get_pricing(model, pricing)
    if p is None and provider:
        p = PROVIDER_FALLBACK_PRICING.get(provider)
    if p is None:
        return 0.0
    return _cost_for(p, input_tokens, output_tokens).total


def format_cost(cost: float) -> str:
    """Human-readable cost: 'Free', '< $0.01' or '$x.xx'."""
    if cost == 0:
        return "Free"
    if cost < 0.01:
        return "< $0.01"
    return f"${cost:.2f}"
