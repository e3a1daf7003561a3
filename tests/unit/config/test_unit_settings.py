# tests/unit/config/test_unit_settings.py
"""Tests for config/settings.py: defaults and validation rules."""

from __future__ import annotations

import pytest

from llmconductor.config.settings import SUPPORTED_VENDORS, ConfigurationError, Settings, load_settings


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch):
    for name in ("DEFAULT_VENDOR", "DEFAULT_MODEL", "RETRY_MAX_ATTEMPTS", "ZAI_BASE_URL"):
        monkeypatch.delenv(name, raising=False)


class TestSettingsDefaults:
    def test_routing(self):
        s = Settings(_env_file=None)
        assert s.default_vendor == "openai"
        assert s.default_model == "gpt-4o-mini"

    def test_retry_policy(self):
        s = Settings(_env_file=None)
        assert s.retry_max_attempts == 3
        assert s.retry_base_delay_s == 1.0
        assert s.retry_max_delay_s == 30.0

    def test_zai_base_url(self):
        assert Settings(_env_file=None).zai_base_url == "https://api.z.ai/api/paas/v4"

    def test_env_override(self, monkeypatch):
        monkeypatch.setenv("DEFAULT_VENDOR", "anthropic")
        monkeypatch.setenv("RETRY_MAX_ATTEMPTS", "5")
        s = Settings(_env_file=None)
        assert s.default_vendor == "anthropic"
        assert s.retry_max_attempts == 5


class TestSettingsValidation:
    def test_vendor_is_normalized(self):
        assert Settings(_env_file=None, default_vendor=" Gemini ").default_vendor == "gemini"

    def test_unknown_default_vendor(self):
        with pytest.raises(ConfigurationError, match="DEFAULT_VENDOR"):
            Settings(_env_file=None, default_vendor="mistral")

    @pytest.mark.parametrize("attempts", [0, -2])
    def test_max_attempts_at_least_one(self, attempts):
        with pytest.raises(ConfigurationError, match="RETRY_MAX_ATTEMPTS"):
            Settings(_env_file=None, retry_max_attempts=attempts)

    def test_jitter_ratio_range(self):
        with pytest.raises(ConfigurationError, match="JITTER"):
            Settings(_env_file=None, retry_jitter_ratio=1.5)

    def test_base_delay_above_max(self):
        with pytest.raises(ConfigurationError, match="BASE_DELAY"):
            Settings(_env_file=None, retry_base_delay_s=60.0, retry_max_delay_s=30.0)

    def test_backoff_factor(self):
        with pytest.raises(ConfigurationError, match="BACKOFF"):
            Settings(_env_file=None, retry_backoff_factor=0.5)

    def test_errors_are_combined(self):
        with pytest.raises(ConfigurationError) as exc_info:
            Settings(_env_file=None, default_vendor="x", retry_jitter_ratio=-1)
        assert "DEFAULT_VENDOR" in str(exc_info.value)
        assert "JITTER" in str(exc_info.value)


class TestHelpers:
    def test_api_key_for(self):
        s = Settings(_env_file=None, zai_api_key="zk", anthropic_api_key="ak")
        assert s.api_key_for("zai") == "zk"
        assert s.api_key_for("anthropic") == "ak"

    def test_api_key_for_keyless_vendor(self):
        assert Settings(_env_file=None).api_key_for("ollama") == ""

    def test_load_settings_overrides(self):
        s = load_settings(_env_file=None, default_model="claude-3-5-haiku-latest")
        assert s.default_model == "claude-3-5-haiku-latest"

    def test_supported_vendors_sorted(self):
        assert list(SUPPORTED_VENDORS) == sorted(SUPPORTED_VENDORS)
