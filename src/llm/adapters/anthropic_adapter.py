# src/llm/adapters/anthropic_adapter.py - v1
"""Anthropic Claude adapter implementing BaseLLMProvider.

Uses the official anthropic SDK (async client).
"""

from __future__ import annotations

import time
from typing import Any

from ceremonykit.llm.base_client import BaseLLMProvider
from ceremonykit.llm.models import LLMResponse
from ceremonykit.llm.usage import normalize_usage


class AnthropicAdapter(BaseLLMProvider):
    """Adapter for Anthropic Claude models."""

    default_model = "claude-sonnet-4-5-20250929"
    api_key_env = "ANTHROPIC_API_KEY"

    @property
    def provider_name(self) -> str:
        return "claude"

    def _create_client(self) -> Any:
        try:
            import anthropic
        except ImportError as e:
            raise ImportError(
                "anthropic package required: pip install anthropic"
            ) from e
        return anthropic.AsyncAnthropic(api_key=self._api_key)

    async def _call_api(
        self,
        prompt: str,
        max_tokens: int,
        system: str | None = None,
        json_mode: bool = False,
    ) -> LLMResponse:
        kwargs: dict[str, Any] = {
            "model": self.model,
            "max_tokens": max_tokens,
            "messages": [{"role": "user", "content": prompt}],
        }
        if system:
            kwargs["system"] = system

        start = time.monotonic()
        response = await self._get_client().messages.create(**kwargs)
        latency_ms = int((time.monotonic() - start) * 1000)

        input_tokens, output_tokens = normalize_usage(getattr(response, "usage", None))
        return LLMResponse(
            content=self._extract_content(response),
            input_tokens=input_tokens,
            output_tokens=output_tokens,
            model=getattr(response, "model", None) or self.model,
            provider=self.provider_name,
            latency_ms=latency_ms,
            raw_response=response,
        )

    @staticmethod
    def _extract_content(response: Any) -> str:
        """Concatenate the text blocks of a Messages API response."""
        return "".join(
            block.text
            for block in response.content
            if getattr(block, "type", None) == "text"
        )
