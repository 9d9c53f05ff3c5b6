# tests/unit/llm/test_unit_token_limits.py - v1
"""Tests for llm/token_limits.py."""

from __future__ import annotations

from ceremonykit.llm.token_limits import (
    DEFAULT_MAX_TOKENS,
    clamp_tokens,
    get_max_tokens_for_model,
)


class TestGetMaxTokens:
    def test_exact_match(self):
        assert get_max_tokens_for_model("gpt-4-turbo") == 4096

    def test_prefix_match(self):
        assert get_max_tokens_for_model("claude-opus-4-20990101") == 128000

    def test_unknown_model_default(self):
        assert get_max_tokens_for_model("mystery-model") == DEFAULT_MAX_TOKENS

    def test_empty_model_default(self):
        assert get_max_tokens_for_model(None) == DEFAULT_MAX_TOKENS
        assert get_max_tokens_for_model("") == DEFAULT_MAX_TOKENS


class TestClampTokens:
    def test_within_limit_unchanged(self):
        assert clamp_tokens(256, "gpt-4-turbo") == 256

    def test_above_limit_clamped(self):
        assert clamp_tokens(100_000, "gpt-4-turbo") == 4096

    def test_unknown_model_uses_default(self):
        assert clamp_tokens(50_000, "mystery-model") == DEFAULT_MAX_TOKENS
