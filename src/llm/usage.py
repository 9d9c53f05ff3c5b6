# src/llm/usage.py - v1
"""Normalization of provider usage metadata into input/output token counts.

Each backend names its counters differently. The lookup is an explicit
table tried in priority order, so the mapping can be audited and tested
without any provider SDK installed.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from ceremonykit.llm.models import LLMResponse, TokenUsage

# Field names tried in order for each counter.
USAGE_FIELD_MAP: dict[str, tuple[str, ...]] = {
    "input": (
        "input_tokens",            # Anthropic
        "inputTokens",
        "prompt_token_count",      # google-genai
        "promptTokenCount",        # Gemini REST
        "prompt_tokens",           # OpenAI
    ),
    "output": (
        "output_tokens",
        "outputTokens",
        "candidates_token_count",
        "candidatesTokenCount",
        "completion_tokens",
    ),
}


def _lookup(usage: Any, names: tuple[str, ...]) -> int:
    for name in names:
        if isinstance(usage, Mapping):
            value = usage.get(name)
        else:
            value = getattr(usage, name, None)
        if isinstance(value, bool):
            continue
        if isinstance(value, (int, float)):
            return int(value)
    return 0


def normalize_usage(usage: Any) -> tuple[int, int]:
    """Return (input_tokens, output_tokens) from any provider usage object.

    Missing or unrecognized usage yields (0, 0).
    """
    if usage is None:
        return 0, 0
    return (
        _lookup(usage, USAGE_FIELD_MAP["input"]),
        _lookup(usage, USAGE_FIELD_MAP["output"]),
    )


class TokenCounter:
    """Running token and call counters owned by one provider instance."""

    def __init__(self) -> None:
        self.input_tokens = 0
        self.output_tokens = 0
        self.total_calls = 0

    def add(self, input_tokens: int, output_tokens: int) -> None:
        self.input_tokens += input_tokens
        self.output_tokens += output_tokens
        self.total_calls += 1

    def add_response(self, response: LLMResponse) -> None:
        self.add(response.input_tokens, response.output_tokens)

    def reset(self) -> None:
        self.input_tokens = 0
        self.output_tokens = 0
        self.total_calls = 0

    def snapshot(self, estimated_cost_usd: float = 0.0) -> TokenUsage:
        return TokenUsage(
            input_tokens=self.input_tokens,
            output_tokens=self.output_tokens,
            total_tokens=self.input_tokens + self.output_tokens,
            total_calls=self.total_calls,
            estimated_cost_usd=estimated_cost_usd,
        )
