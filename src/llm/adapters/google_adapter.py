# src/llm/adapters/google_adapter.py - v1
"""Google Gemini adapter implementing BaseLLMProvider.

Uses the google-genai SDK through its async surface (client.aio).
"""

from __future__ import annotations

import time
from typing import Any

from ceremonykit.llm.base_client import BaseLLMProvider
from ceremonykit.llm.errors import EmptyResponseError
from ceremonykit.llm.models import LLMResponse
from ceremonykit.llm.usage import normalize_usage


class GoogleAdapter(BaseLLMProvider):
    """Google Gemini adapter."""

    default_model = "gemini-2.5-flash"
    api_key_env = "GEMINI_API_KEY"

    @property
    def provider_name(self) -> str:
        return "gemini"

    def _create_client(self) -> Any:
        try:
            from google import genai
        except ImportError as e:
            raise ImportError(
                "google-genai package required: pip install google-genai"
            ) from e
        return genai.Client(api_key=self._api_key)

    async def _call_api(
        self,
        prompt: str,
        max_tokens: int,
        system: str | None = None,
        json_mode: bool = False,
    ) -> LLMResponse:
        from google.genai import types

        config_kwargs: dict[str, Any] = {"max_output_tokens": max_tokens}
        if system:
            config_kwargs["system_instruction"] = system
        if json_mode:
            config_kwargs["response_mime_type"] = "application/json"

        t0 = time.monotonic()
        response = await self._get_client().aio.models.generate_content(
            model=self.model,
            contents=prompt,
            config=types.GenerateContentConfig(**config_kwargs),
        )
        latency = int((time.monotonic() - t0) * 1000)

        text = response.text
        if not text:
            raise EmptyResponseError(
                f"Gemini returned no text for {self.model} "
                "(possible safety filter block)"
            )

        input_tokens, output_tokens = normalize_usage(
            getattr(response, "usage_metadata", None)
        )
        return LLMResponse(
            content=text,
            input_tokens=input_tokens,
            output_tokens=output_tokens,
            model=self.model,
            provider=self.provider_name,
            latency_ms=latency,
            raw_response=response,
        )
