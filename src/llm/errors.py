# src/llm/errors.py - v1
"""Call Layer error taxonomy.

Transient provider failures are not wrapped: the SDK exception itself is
retried and, once attempts are exhausted, re-raised unchanged.
"""

from __future__ import annotations


class LLMError(Exception):
    """Base class for Call Layer errors raised by ceremonykit itself."""


class ProviderConfigurationError(LLMError):
    """Missing or invalid provider configuration (e.g. API key). Never retried."""

    def __init__(self, provider: str, message: str) -> None:
        self.provider = provider
        super().__init__(message)


class MalformedResponseError(LLMError):
    """Structured output could not be parsed. Never retried.

    The offending text is kept on ``raw_text`` for diagnostics.
    """

    def __init__(self, message: str, raw_text: str) -> None:
        self.raw_text = raw_text
        super().__init__(f"{message}\n\nResponse was:\n{raw_text}")


class EmptyResponseError(LLMError):
    """Provider returned no text (e.g. blocked by a safety filter)."""
