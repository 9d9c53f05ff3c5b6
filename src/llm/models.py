# src/llm/models.py - v1
"""Call Layer types: LLMResponse, TokenUsage, ValidationResult."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel


class LLMResponse(BaseModel):
    """Normalized result of one provider call."""

    content: str
    input_tokens: int = 0
    output_tokens: int = 0
    model: str
    provider: str
    latency_ms: int = 0
    raw_response: Any = None

    @property
    def total_tokens(self) -> int:
        return self.input_tokens + self.output_tokens


class TokenUsage(BaseModel):
    """Running token counters of a provider instance, with estimated cost."""

    input_tokens: int = 0
    output_tokens: int = 0
    total_tokens: int = 0
    total_calls: int = 0
    estimated_cost_usd: float = 0.0


class ValidationResult(BaseModel):
    """Outcome of a credential pre-flight. Never raised, always returned."""

    valid: bool
    error: str | None = None
    code: str | int | None = None
