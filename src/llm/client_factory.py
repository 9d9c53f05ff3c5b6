# src/llm/client_factory.py - v1
"""Factory: instantiate an LLM provider from its runtime name.

Adapters are registered by dotted class path and imported lazily, so a
missing SDK only matters for the provider actually requested.
"""

from __future__ import annotations

import importlib
import logging
from typing import Any

from ceremonykit.config.settings import Settings
from ceremonykit.llm.base_client import BaseLLMProvider
from ceremonykit.llm.models import ValidationResult

logger = logging.getLogger(__name__)

# Registry of provider name → adapter class path (lazy import).
_PROVIDER_REGISTRY: dict[str, str] = {
    "claude": "ceremonykit.llm.adapters.anthropic_adapter.AnthropicAdapter",
    "gemini": "ceremonykit.llm.adapters.google_adapter.GoogleAdapter",
    "openai": "ceremonykit.llm.adapters.openai_adapter.OpenAIAdapter",
}

# Alternative spellings accepted for the built-in providers.
_PROVIDER_ALIASES: dict[str, str] = {
    "anthropic": "claude",
    "google": "gemini",
}


class UnsupportedProviderError(ValueError):
    """Raised when a provider is not registered."""


def available_providers() -> list[str]:
    return sorted(_PROVIDER_REGISTRY)


def create_provider(
    provider: str,
    model: str | None = None,
    settings: Settings | None = None,
    **kwargs: Any,
) -> BaseLLMProvider:
    """Instantiate the correct adapter from provider name.

    Args:
        provider: Provider identifier (claude, gemini, openai, or a registered name).
        model: Model name. Falls back to settings, then the adapter default.
        settings: Application settings (API key, retry policy).
        **kwargs: Additional adapter arguments (e.g. api_key, sleep).

    Returns:
        Configured BaseLLMProvider instance.

    Raises:
        UnsupportedProviderError: If provider is not registered.
    """
    name = _PROVIDER_ALIASES.get(provider, provider)
    if name not in _PROVIDER_REGISTRY:
        raise UnsupportedProviderError(
            f"Unsupported LLM provider: {provider!r}. "
            f"Available: {', '.join(available_providers())}"
        )

    adapter_cls = _import_class(_PROVIDER_REGISTRY[name])

    init_kwargs = dict(kwargs)
    if settings is not None:
        init_kwargs.setdefault("api_key", settings.api_key_for(name))
        init_kwargs.setdefault("retry_policy", settings.retry_policy())
        if not model and settings.llm_default_model and name == _PROVIDER_ALIASES.get(
            settings.llm_default_provider, settings.llm_default_provider
        ):
            model = settings.llm_default_model
    init_kwargs["model"] = model or None

    logger.debug("Creating LLM provider: provider=%s, model=%s", name, model or "default")
    return adapter_cls(**init_kwargs)


async def validate_provider(
    provider: str,
    model: str | None = None,
    settings: Settings | None = None,
    **kwargs: Any,
) -> ValidationResult:
    """Create a provider and pre-flight its credentials. Never raises."""
    try:
        instance = create_provider(provider, model, settings, **kwargs)
    except (UnsupportedProviderError, ImportError) as e:
        return ValidationResult(valid=False, error=str(e), code="unsupported_provider")
    return await instance.validate()


def register_provider(name: str, class_path: str) -> None:
    """Register a custom provider adapter.

    Args:
        name: Provider identifier.
        class_path: Fully qualified class path implementing BaseLLMProvider.
    """
    _PROVIDER_REGISTRY[name] = class_path
    logger.info("Registered LLM provider: %s -> %s", name, class_path)


def unregister_provider(name: str) -> None:
    _PROVIDER_REGISTRY.pop(name, None)


def _import_class(class_path: str) -> type:
    """Dynamically import a class from its fully qualified path."""
    module_path, class_name = class_path.rsplit(".", 1)
    module = importlib.import_module(module_path)
    return getattr(module, class_name)
