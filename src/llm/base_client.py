# src/llm/base_client.py - v1
"""Abstract provider interface shared by every text-generation backend.

Subclasses only know how to build their SDK client and issue one raw
call. Everything else lives here: lazy client creation, output budget
clamping, retries, token accounting, structured output and the
credential pre-flight.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import Any

from ceremonykit.llm.errors import ProviderConfigurationError
from ceremonykit.llm.models import LLMResponse, TokenUsage, ValidationResult
from ceremonykit.llm.parsing import parse_json_response
from ceremonykit.llm.retry import DEFAULT_RETRY_POLICY, RetryPolicy, SleepFn, with_retry
from ceremonykit.llm.token_limits import clamp_tokens
from ceremonykit.llm.usage import TokenCounter

logger = logging.getLogger(__name__)

VALIDATION_PROMPT = 'Reply with only the word "ok"'

STRUCTURED_MAX_TOKENS = 8000

JSON_SYSTEM_INSTRUCTIONS = (
    "You are a helpful assistant that always returns valid JSON. "
    "Your response must be a valid JSON object or array, nothing else."
)


class BaseLLMProvider(ABC):
    """Unified interface for all LLM providers."""

    #: Model used when none is given.
    default_model: str = ""
    #: Environment variable named in the missing-credential error.
    api_key_env: str = ""

    def __init__(
        self,
        model: str | None = None,
        api_key: str | None = None,
        retry_policy: RetryPolicy | None = None,
        sleep: SleepFn | None = None,
    ) -> None:
        self.model = model or self.default_model
        self._api_key = api_key
        self._retry_policy = retry_policy or DEFAULT_RETRY_POLICY
        self._sleep = sleep
        self._client: Any = None  # Lazy initialization
        self._usage = TokenCounter()

    # --- Provider hooks ---

    @property
    @abstractmethod
    def provider_name(self) -> str:
        """Provider identifier (claude, gemini, openai)."""

    @abstractmethod
    def _create_client(self) -> Any:
        """Build the SDK client. Called once, after the credential check."""

    @abstractmethod
    async def _call_api(
        self,
        prompt: str,
        max_tokens: int,
        system: str | None = None,
        json_mode: bool = False,
    ) -> LLMResponse:
        """Issue a single raw call. Retries are handled by the caller."""

    # --- Public API ---

    @property
    def retry_policy(self) -> RetryPolicy:
        return self._retry_policy

    def _get_client(self) -> Any:
        if self._client is None:
            if not self._api_key:
                raise ProviderConfigurationError(
                    self.provider_name,
                    f"{self.api_key_env} not set. Add it to your .env file.",
                )
            self._client = self._create_client()
        return self._client

    async def _complete(
        self,
        prompt: str,
        max_tokens: int,
        system: str | None = None,
        json_mode: bool = False,
    ) -> LLMResponse:
        # Configuration errors surface here, outside the retry loop.
        self._get_client()
        budget = clamp_tokens(max_tokens, self.model)

        response: LLMResponse = await with_retry(
            self._call_api,
            prompt,
            budget,
            system,
            json_mode,
            policy=self._retry_policy,
            label=f"{self.provider_name}:{self.model}",
            sleep=self._sleep,
        )
        self._usage.add_response(response)
        logger.debug(
            "%s call done: %d in / %d out tokens, %dms",
            self.provider_name, response.input_tokens,
            response.output_tokens, response.latency_ms,
        )
        return response

    async def generate(
        self,
        prompt: str,
        max_tokens: int = 256,
        system: str | None = None,
    ) -> str:
        """Generate text for a single prompt."""
        response = await self._complete(prompt, max_tokens, system)
        return response.content

    async def generate_text(
        self,
        prompt: str,
        agent_instructions: str | None = None,
        max_tokens: int = STRUCTURED_MAX_TOKENS,
    ) -> str:
        """Generate free text with optional agent instructions prepended."""
        full_prompt = f"{agent_instructions}\n\n{prompt}" if agent_instructions else prompt
        response = await self._complete(full_prompt, max_tokens)
        return response.content

    async def generate_structured(
        self,
        prompt: str,
        agent_instructions: str | None = None,
    ) -> Any:
        """Generate and parse a JSON value.

        Raises:
            MalformedResponseError: If the output is not valid JSON. Not retried.
        """
        full_prompt = f"{agent_instructions}\n\n{prompt}" if agent_instructions else prompt
        response = await self._complete(
            full_prompt,
            STRUCTURED_MAX_TOKENS,
            system=JSON_SYSTEM_INSTRUCTIONS,
            json_mode=True,
        )
        return parse_json_response(response.content)

    async def validate(self) -> ValidationResult:
        """Pre-flight credentials with one minimal call. Never raises."""
        try:
            await self.generate(VALIDATION_PROMPT, 10)
        except ProviderConfigurationError as e:
            return ValidationResult(valid=False, error=str(e), code="missing_api_key")
        except Exception as e:  # noqa: BLE001
            code = getattr(e, "status_code", None) or getattr(e, "code", None)
            logger.warning("%s credential check failed: %s", self.provider_name, e)
            return ValidationResult(valid=False, error=str(e), code=code)
        return ValidationResult(valid=True)

    def get_token_usage(self) -> TokenUsage:
        """Running counters for this instance, with estimated USD cost."""
        from ceremonykit.tracking.cost_calculator import estimate_cost

        cost = estimate_cost(
            self._usage.input_tokens,
            self._usage.output_tokens,
            self.model,
            provider=self.provider_name,
        )
        return self._usage.snapshot(estimated_cost_usd=cost)

    def reset_token_usage(self) -> None:
        self._usage.reset()
