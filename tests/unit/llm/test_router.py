# tests/unit/llm/test_router.py - v1
"""Tests for llm/router.py and llm/providers.py - settings cascade."""

from __future__ import annotations

import pytest

from gendispatch.config.settings import Settings
from gendispatch.core.errors import UnsupportedProviderError
from gendispatch.core.models import ModelClass, ModelOverrides, ModelProviderName
from gendispatch.llm.providers import PROVIDERS
from gendispatch.llm.router import get_provider, resolve_all, resolve_model_settings


class TestGetProvider:
    def test_every_provider_has_all_tiers(self):
        for name in ModelProviderName:
            spec = get_provider(name)
            assert set(spec.defaults) == set(ModelClass)

    def test_from_string(self):
        assert get_provider("anthropic").name is ModelProviderName.ANTHROPIC

    def test_unknown(self):
        with pytest.raises(UnsupportedProviderError, match="Available"):
            get_provider("skynet")


class TestCascade:
    def test_static_default(self):
        s = resolve_model_settings("openai", ModelClass.SMALL)
        assert s.model_name == "gpt-4o-mini"

    def test_tier_setting_overrides_default(self):
        settings = Settings(_env_file=None, together_model_large="my-large")
        s = resolve_model_settings("together", "large", settings)
        assert s.model_name == "my-large"

    def test_empty_tier_setting_ignored(self):
        settings = Settings(_env_file=None, together_model_large="")
        s = resolve_model_settings("together", "large", settings)
        assert s.model_name == PROVIDERS[ModelProviderName.TOGETHER].defaults[ModelClass.LARGE].model_name

    def test_character_override_wins(self):
        settings = Settings(_env_file=None, model_temperature=0.1, model_max_input_tokens=500)
        s = resolve_model_settings("openai", "medium", settings)
        assert s.temperature == 0.1
        assert s.max_input_tokens == 500

    def test_zero_is_a_real_override(self):
        s = resolve_model_settings("openai", "medium", overrides=ModelOverrides(temperature=0.0))
        assert s.temperature == 0.0

    def test_call_overrides_beat_settings(self):
        settings = Settings(_env_file=None, model_temperature=0.1)
        s = resolve_model_settings(
            "openai", "medium", settings, ModelOverrides(temperature=0.9),
        )
        assert s.temperature == 0.9

    def test_defaults_never_mutated(self):
        before = PROVIDERS[ModelProviderName.OPENAI].defaults[ModelClass.MEDIUM]
        resolve_model_settings("openai", "medium", overrides=ModelOverrides(temperature=1.5))
        after = PROVIDERS[ModelProviderName.OPENAI].defaults[ModelClass.MEDIUM]
        assert after is before
        assert after.temperature == 0.6

    def test_resolve_all(self):
        table = resolve_all()
        assert set(table) == set(ModelProviderName)


class TestBaseUrl:
    def test_endpoint_override(self):
        settings = Settings(_env_file=None, model_endpoint_override="http://proxy/v1")
        assert get_provider("openai").base_url(settings) == "http://proxy/v1"

    def test_cloudflare_gateway(self):
        settings = Settings(
            _env_file=None, cloudflare_gw_enabled=True,
            cloudflare_ai_account_id="acct", cloudflare_ai_gateway_id="gw",
        )
        url = get_provider("groq").base_url(settings)
        assert url == "https://gateway.ai.cloudflare.com/v1/acct/gw/groq"

    def test_cloudflare_missing_ids_falls_back(self):
        settings = Settings(_env_file=None, cloudflare_gw_enabled=True)
        assert get_provider("openai").base_url(settings) == "https://api.openai.com/v1"

    def test_cloudflare_ignored_for_unsupported_provider(self):
        settings = Settings(
            _env_file=None, cloudflare_gw_enabled=True,
            cloudflare_ai_account_id="acct", cloudflare_ai_gateway_id="gw",
        )
        assert "cloudflare" not in get_provider("google").base_url(settings)

    def test_ollama_base_url(self):
        settings = Settings(_env_file=None, ollama_base_url="http://gpu:11434")
        assert get_provider("ollama").base_url(settings) == "http://gpu:11434"
