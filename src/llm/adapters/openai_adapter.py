# src/llm/adapters/openai_adapter.py - v1
"""OpenAI GPT adapter implementing BaseLLMProvider.

Uses the official openai SDK (Chat Completions, async client).
"""

from __future__ import annotations

import time
from typing import Any

from ceremonykit.llm.base_client import BaseLLMProvider
from ceremonykit.llm.models import LLMResponse
from ceremonykit.llm.usage import normalize_usage

# Models that accept response_format={"type": "json_object"}.
_JSON_MODE_PREFIXES = ("gpt-4", "gpt-5", "o")
# Reasoning-era models take max_completion_tokens instead of max_tokens.
_COMPLETION_TOKENS_PREFIXES = ("gpt-5", "o")


class OpenAIAdapter(BaseLLMProvider):
    """OpenAI GPT adapter."""

    default_model = "gpt-5.2-chat-latest"
    api_key_env = "OPENAI_API_KEY"

    @property
    def provider_name(self) -> str:
        return "openai"

    def _create_client(self) -> Any:
        try:
            import openai
        except ImportError as e:
            raise ImportError("openai package required: pip install openai") from e
        return openai.AsyncOpenAI(api_key=self._api_key)

    async def _call_api(
        self,
        prompt: str,
        max_tokens: int,
        system: str | None = None,
        json_mode: bool = False,
    ) -> LLMResponse:
        messages: list[dict[str, Any]] = []
        if system:
            messages.append({"role": "system", "content": system})
        messages.append({"role": "user", "content": prompt})

        kwargs: dict[str, Any] = {"model": self.model, "messages": messages}
        if self.model.startswith(_COMPLETION_TOKENS_PREFIXES):
            kwargs["max_completion_tokens"] = max_tokens
        else:
            kwargs["max_tokens"] = max_tokens
        if json_mode and self.model.startswith(_JSON_MODE_PREFIXES):
            kwargs["response_format"] = {"type": "json_object"}

        t0 = time.monotonic()
        resp = await self._get_client().chat.completions.create(**kwargs)
        latency = int((time.monotonic() - t0) * 1000)

        input_tokens, output_tokens = normalize_usage(resp.usage)
        return LLMResponse(
            content=resp.choices[0].message.content or "",
            input_tokens=input_tokens,
            output_tokens=output_tokens,
            model=self.model,
            provider=self.provider_name,
            latency_ms=latency,
            raw_response=resp,
        )
