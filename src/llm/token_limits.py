# src/llm/token_limits.py - v1
"""Per-model maximum output tokens and request clamping."""

from __future__ import annotations

import logging

logger = logging.getLogger(__name__)

DEFAULT_MAX_TOKENS = 8192

# Maximum output tokens accepted per model.
MODEL_MAX_TOKENS: dict[str, int] = {
    # Anthropic
    "claude-sonnet-4-5-20250929": 64000,
    "claude-sonnet-4-5": 64000,
    "claude-sonnet-4": 64000,
    "claude-haiku-4-5": 64000,
    "claude-opus-4-6": 128000,
    "claude-opus-4": 128000,
    "claude-3-5-haiku-20241022": 8192,
    # OpenAI
    "gpt-5.2-chat-latest": 16384,
    "gpt-5.2": 16384,
    "gpt-4o": 16384,
    "gpt-4o-mini": 16384,
    "gpt-4-turbo": 4096,
    # Google
    "gemini-2.5-pro": 65535,
    "gemini-2.5-flash": 65535,
    "gemini-2.0-flash": 8192,
    "gemini-2.0-flash-exp": 8192,
    "gemini-1.5-pro": 8192,
    "gemini-1.5-flash": 8192,
}


def get_max_tokens_for_model(model: str | None) -> int:
    """Return the output-token ceiling for a model.

    Lookup order: exact id, then the first three dash-separated segments
    (``claude-opus-4-6-20260101`` matches ``claude-opus-4``), then the
    default.
    """
    if not model:
        return DEFAULT_MAX_TOKENS

    if model in MODEL_MAX_TOKENS:
        return MODEL_MAX_TOKENS[model]

    prefix = "-".join(model.split("-")[:3])
    if prefix in MODEL_MAX_TOKENS:
        return MODEL_MAX_TOKENS[prefix]

    logger.debug(
        "No token limit known for model %s, using default %d",
        model, DEFAULT_MAX_TOKENS,
    )
    return DEFAULT_MAX_TOKENS


def clamp_tokens(requested: int, model: str | None) -> int:
    """Clamp a requested output budget to what the model accepts."""
    limit = get_max_tokens_for_model(model)
    if requested > limit:
        logger.debug("Clamping max_tokens %d -> %d for %s", requested, limit, model)
        return limit
    return requested
