# src/config/settings.py - v1
"""Typed configuration loaded from .env via pydantic-settings.

Single source of truth for provider credentials, retry policy, state
locations, verification and logging options.
"""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING, Literal

from pydantic import field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

if TYPE_CHECKING:
    from ceremonykit.llm.retry import RetryPolicy


class ConfigurationError(Exception):
    """Raised when configuration is internally inconsistent."""


class Settings(BaseSettings):
    """Application settings loaded from .env file."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # === LLM PROVIDERS ===
    llm_default_provider: str = "claude"
    llm_default_model: str = ""

    # Provider API keys
    anthropic_api_key: str = ""
    openai_api_key: str = ""
    gemini_api_key: str = ""

    # === Retry policy ===
    llm_max_retries: int = 3
    llm_initial_delay_s: float = 2.0
    llm_max_delay_s: float = 60.0
    llm_backoff_multiplier: float = 2.0
    llm_retry_jitter: bool = False

    # === Project state ===
    state_dir: Path = Path(".avc")
    rules_dir: Path = Path("agents")

    # === Verification ===
    verification_enabled: bool = True
    verification_report_retention: int = 10
    verification_skip_stable_rules: bool = False

    # === Logging ===
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"
    log_format: Literal["json", "text"] = "text"
    log_file: Path | None = Path("~/.avc/logs/avc.log")
    log_rotation: str = "10MB"
    log_retention: int = 1

    # --- Validators ---

    @field_validator("llm_max_retries", "verification_report_retention")
    @classmethod
    def validate_non_negative(cls, v: int) -> int:  # noqa: N805
        if v < 0:
            raise ValueError("value must be >= 0")
        return v

    @model_validator(mode="after")
    def validate_config_consistency(self) -> Settings:
        """Validate cross-field consistency rules."""
        errors: list[str] = []

        if self.llm_initial_delay_s < 0:
            errors.append("LLM_INITIAL_DELAY_S must be >= 0")

        if self.llm_initial_delay_s > self.llm_max_delay_s:
            errors.append("LLM_INITIAL_DELAY_S must be <= LLM_MAX_DELAY_S")

        if self.llm_backoff_multiplier < 1.0:
            errors.append("LLM_BACKOFF_MULTIPLIER must be >= 1.0")

        if errors:
            raise ConfigurationError("; ".join(errors))

        return self

    # --- Helpers ---

    def retry_policy(self) -> RetryPolicy:
        """Build the immutable retry policy for provider instances."""
        from ceremonykit.llm.retry import RetryPolicy

        return RetryPolicy(
            max_retries=self.llm_max_retries,
            initial_delay_s=self.llm_initial_delay_s,
            max_delay_s=self.llm_max_delay_s,
            backoff_multiplier=self.llm_backoff_multiplier,
            jitter=self.llm_retry_jitter,
        )

    def api_key_for(self, provider: str) -> str:
        """Return the configured credential for a provider family."""
        keys = {
            "claude": self.anthropic_api_key,
            "anthropic": self.anthropic_api_key,
            "gemini": self.gemini_api_key,
            "google": self.gemini_api_key,
            "openai": self.openai_api_key,
        }
        return keys.get(provider, "")


def load_settings(**overrides: object) -> Settings:
    """Load settings from .env with optional overrides.

    Args:
        **overrides: Field-level overrides (for testing or per-project config).

    Returns:
        Validated Settings instance.

    Raises:
        ConfigurationError: If configuration is internally inconsistent.
    """
    return Settings(**overrides)  # type: ignore[arg-type]
