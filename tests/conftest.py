# tests/conftest.py - v1
"""Shared test fixtures for all unit and integration tests.

Provides a queue-driven mock provider, fake SDK errors, a controllable
clock and temp state directories. No network access: every provider
call is mocked.
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from pathlib import Path
from types import SimpleNamespace
from typing import Any, Callable

import pytest

from ceremonykit.config.settings import Settings
from ceremonykit.llm.base_client import BaseLLMProvider
from ceremonykit.llm.models import LLMResponse
from ceremonykit.llm.retry import RetryPolicy

# === Mock provider ===


class MockLLMProvider(BaseLLMProvider):
    """Provider answering from a queue of strings, responses or exceptions.

    Queue items may also be callables taking the prompt. When the queue is
    empty the default response is returned.
    """

    default_model = "mock-model"
    api_key_env = "MOCK_API_KEY"

    def __init__(
        self,
        *responses: Any,
        default_response: str = "ok",
        api_key: str | None = "test-key",
        **kwargs: Any,
    ) -> None:
        kwargs.setdefault("retry_policy", RetryPolicy(max_retries=3, initial_delay_s=0.0))
        kwargs.setdefault("sleep", _no_sleep)
        super().__init__(api_key=api_key, **kwargs)
        self._queue: list[Any] = list(responses)
        self._default_response = default_response
        self.calls: list[dict[str, Any]] = []

    @property
    def provider_name(self) -> str:
        return "mock"

    def _create_client(self) -> Any:
        return SimpleNamespace(name="mock-client")

    async def _call_api(
        self,
        prompt: str,
        max_tokens: int,
        system: str | None = None,
        json_mode: bool = False,
    ) -> LLMResponse:
        self.calls.append({
            "prompt": prompt, "max_tokens": max_tokens,
            "system": system, "json_mode": json_mode,
        })
        item = self._queue.pop(0) if self._queue else self._default_response
        if isinstance(item, BaseException):
            raise item
        if callable(item):
            item = item(prompt)
        if isinstance(item, LLMResponse):
            return item
        return LLMResponse(
            content=item, input_tokens=10, output_tokens=5,
            model=self.model, provider="mock", latency_ms=1,
        )


async def _no_sleep(delay: float) -> None:
    return None


class FakeAPIError(Exception):
    """Stand-in for an SDK status error (status_code + response headers)."""

    def __init__(
        self,
        message: str = "error",
        status_code: int | None = None,
        headers: dict[str, str] | None = None,
        **attrs: Any,
    ) -> None:
        super().__init__(message)
        self.status_code = status_code
        if headers is not None:
            self.response = SimpleNamespace(headers=headers)
        for key, value in attrs.items():
            setattr(self, key, value)


class FakeClock:
    """Controllable UTC clock."""

    def __init__(self, start: datetime) -> None:
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs: float) -> None:
        self.now += timedelta(**kwargs)


# === FIXTURES ===


@pytest.fixture
def mock_provider_cls() -> type[MockLLMProvider]:
    return MockLLMProvider


@pytest.fixture
def mock_provider() -> MockLLMProvider:
    return MockLLMProvider()


@pytest.fixture
def api_error() -> Callable[..., FakeAPIError]:
    """Factory for fake SDK errors."""
    return FakeAPIError


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock(datetime(2026, 10, 17, 12, 30, 45, tzinfo=timezone.utc))


@pytest.fixture
def state_dir(tmp_path: Path) -> Path:
    """Temporary project state directory (not created up front)."""
    return tmp_path / ".avc"


@pytest.fixture
def rules_dir(tmp_path: Path) -> Path:
    d = tmp_path / "agents"
    d.mkdir()
    return d


@pytest.fixture
def settings(state_dir: Path, rules_dir: Path) -> Settings:
    """Settings isolated from any .env file."""
    return Settings(
        _env_file=None,
        state_dir=state_dir,
        rules_dir=rules_dir,
        anthropic_api_key="sk-test",
        log_file=None,
    )


@pytest.fixture
def sample_rule_data() -> dict[str, Any]:
    return {
        "id": "no-placeholders",
        "name": "No placeholder text",
        "severity": "major",
        "enabled": True,
        "check": {
            "prompt": "Does this contain placeholder text? Answer YES or NO.\n\n{content}",
            "maxTokens": 10,
            "expectedResponse": "YES|NO",
        },
        "fix": {
            "prompt": "Rewrite without placeholder text:\n\n{content}",
            "maxTokens": 4096,
        },
    }
