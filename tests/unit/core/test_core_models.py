# tests/unit/core/test_core_models.py - v1
"""Tests for core/models.py and core/errors.py."""

from __future__ import annotations

import pytest
from pydantic import ValidationError

from gendispatch.core.errors import (
    GenDispatchError,
    InvalidArgumentError,
    ProviderError,
    RetryExhaustedError,
    UnsupportedProviderError,
)
from gendispatch.core.models import (
    ActionResponse,
    GenerationRequest,
    ImageGenerationSpec,
    ModelOverrides,
    ModelProviderName,
    ModelSettings,
    PublishWatermark,
)


class TestModelSettings:
    def test_defaults(self):
        s = ModelSettings(model_name="m")
        assert s.max_input_tokens == 128_000
        assert s.stop is None

    def test_frozen(self):
        s = ModelSettings(model_name="m")
        with pytest.raises(ValidationError):
            s.temperature = 1.0

    def test_temperature_range(self):
        with pytest.raises(ValidationError):
            ModelSettings(model_name="m", temperature=2.5)

    def test_budget_must_be_positive(self):
        with pytest.raises(ValidationError):
            ModelSettings(model_name="m", max_input_tokens=0)


class TestModelOverrides:
    def test_as_update_keeps_only_set_fields(self):
        o = ModelOverrides(temperature=0.0, max_output_tokens=200)
        assert o.as_update() == {"temperature": 0.0, "max_output_tokens": 200}

    def test_empty_overrides(self):
        assert ModelOverrides().as_update() == {}


class TestGenerationRequest:
    def test_minimal(self):
        r = GenerationRequest(context="hi", provider=ModelProviderName.OPENAI)
        assert r.max_steps == 1
        assert r.expected_shape.value == "text"

    def test_max_steps_lower_bound(self):
        with pytest.raises(ValidationError):
            GenerationRequest(context="hi", provider="openai", max_steps=0)

    def test_provider_from_string(self):
        r = GenerationRequest(context="hi", provider="groq")
        assert r.provider is ModelProviderName.GROQ


class TestImageGenerationSpec:
    @pytest.mark.parametrize("width,height,ratio", [
        (1024, 1024, "1:1"),
        (1536, 1024, "3:2"),
        (1024, 1536, "2:3"),
    ])
    def test_aspect_ratio(self, width, height, ratio):
        assert ImageGenerationSpec(prompt="p", width=width, height=height).aspect_ratio == ratio

    def test_count_at_least_one(self):
        with pytest.raises(ValidationError):
            ImageGenerationSpec(prompt="p", count=0)


class TestSmallModels:
    def test_action_response_any(self):
        assert not ActionResponse().any()
        assert ActionResponse(quote=True).any()

    def test_watermark_default(self):
        assert PublishWatermark().last_publish_timestamp == 0.0


class TestErrors:
    def test_hierarchy(self):
        assert issubclass(InvalidArgumentError, GenDispatchError)
        assert issubclass(InvalidArgumentError, ValueError)
        assert issubclass(UnsupportedProviderError, ValueError)

    def test_provider_error_keeps_original(self):
        cause = ConnectionError("reset")
        err = ProviderError("openai", cause)
        assert err.provider == "openai"
        assert err.original is cause
        assert "openai" in str(err)

    def test_retry_exhausted_message(self):
        err = RetryExhaustedError("generate_object", 3, TimeoutError("slow"))
        assert err.attempts == 3
        assert "3 attempts" in str(err)
        assert "slow" in str(err)
