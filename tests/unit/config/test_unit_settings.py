# tests/unit/config/test_unit_settings.py - v1
"""Tests for config/settings.py: typed Settings and validation rules."""

from __future__ import annotations

from pathlib import Path

import pytest

from ceremonykit.config.settings import ConfigurationError, Settings, load_settings
from ceremonykit.llm.retry import RetryPolicy


class TestSettingsDefaults:
    def test_default_provider(self):
        s = Settings(_env_file=None)
        assert s.llm_default_provider == "claude"

    def test_default_retry(self):
        s = Settings(_env_file=None)
        assert s.llm_max_retries == 3
        assert s.llm_initial_delay_s == 2.0
        assert s.llm_backoff_multiplier == 2.0

    def test_default_state_dir(self):
        s = Settings(_env_file=None)
        assert s.state_dir == Path(".avc")

    def test_default_verification(self):
        s = Settings(_env_file=None)
        assert s.verification_report_retention == 10
        assert s.verification_skip_stable_rules is False


class TestSettingsValidation:
    def test_initial_delay_above_max(self):
        with pytest.raises(ConfigurationError, match="LLM_INITIAL_DELAY_S"):
            Settings(_env_file=None, llm_initial_delay_s=30.0, llm_max_delay_s=5.0)

    def test_multiplier_below_one(self):
        with pytest.raises(ConfigurationError, match="MULTIPLIER"):
            Settings(_env_file=None, llm_backoff_multiplier=0.5)

    def test_negative_retries_rejected(self):
        with pytest.raises(ValueError):
            Settings(_env_file=None, llm_max_retries=-1)


class TestSettingsHelpers:
    def test_retry_policy(self):
        s = Settings(_env_file=None, llm_max_retries=5, llm_initial_delay_s=1.0)
        policy = s.retry_policy()
        assert isinstance(policy, RetryPolicy)
        assert policy.max_retries == 5
        assert policy.initial_delay_s == 1.0

    def test_api_key_for_aliases(self):
        s = Settings(_env_file=None, anthropic_api_key="a", gemini_api_key="g")
        assert s.api_key_for("claude") == "a"
        assert s.api_key_for("anthropic") == "a"
        assert s.api_key_for("google") == "g"
        assert s.api_key_for("unknown") == ""

    def test_env_override(self, monkeypatch):
        monkeypatch.setenv("LLM_DEFAULT_PROVIDER", "gemini")
        s = Settings(_env_file=None)
        assert s.llm_default_provider == "gemini"

    def test_load_settings_overrides(self):
        s = load_settings(_env_file=None, llm_default_model="gpt-4o")
        assert s.llm_default_model == "gpt-4o"
