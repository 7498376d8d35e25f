# src/llm/providers.py - v1
"""Provider variants: static defaults, settings resolution, client creation.

Each backend is one ProviderSpec in PROVIDERS. Adding a backend means adding
one entry here; callers never branch on provider identity.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from gendispatch.core.models import ModelClass, ModelOverrides, ModelProviderName, ModelSettings

if TYPE_CHECKING:
    from gendispatch.config.settings import Settings
    from gendispatch.llm.base_client import BaseLLMClient

logger = logging.getLogger(__name__)

_CLOUDFLARE_GATEWAY = "https://gateway.ai.cloudflare.com/v1"


def _tiers(
    small: str,
    medium: str,
    large: str,
    **params: object,
) -> dict[ModelClass, ModelSettings]:
    return {
        ModelClass.SMALL: ModelSettings(model_name=small, **params),
        ModelClass.MEDIUM: ModelSettings(model_name=medium, **params),
        ModelClass.LARGE: ModelSettings(model_name=large, **params),
    }


@dataclass(frozen=True)
class ProviderSpec:
    """One text generation backend.

    Attributes:
        name: Provider identifier.
        adapter: Adapter family used for transport (openai, anthropic, google, ollama).
        endpoint: Default base URL ('' lets the SDK choose).
        defaults: Static ModelSettings per capability tier.
        cloudflare: Whether requests may be routed through Cloudflare AI Gateway.
    """

    name: ModelProviderName
    adapter: str
    endpoint: str
    defaults: dict[ModelClass, ModelSettings] = field(default_factory=dict)
    cloudflare: bool = False

    def resolve_settings(
        self,
        model_class: ModelClass,
        settings: Settings | None = None,
        overrides: ModelOverrides | None = None,
    ) -> ModelSettings:
        """Merge static default < provider tier setting < character override."""
        base = self.defaults[model_class]
        update: dict[str, object] = {}

        if settings is not None:
            tier_model = getattr(
                settings, f"{self.name.value}_model_{model_class.value}", "",
            )
            if tier_model:
                update["model_name"] = tier_model
            update.update(_character_overrides(settings).as_update())

        if overrides is not None:
            update.update(overrides.as_update())

        if not update:
            return base
        # model_copy skips validation; round-trip keeps the range checks.
        return ModelSettings.model_validate({**base.model_dump(), **update})

    def base_url(self, settings: Settings | None = None) -> str:
        """Resolve the base URL, honouring endpoint and gateway settings."""
        if settings is None:
            return self.endpoint
        if settings.model_endpoint_override:
            return settings.model_endpoint_override
        if self.cloudflare and settings.cloudflare_gw_enabled:
            gateway = _cloudflare_base_url(self.name.value, settings)
            if gateway:
                return gateway
        if self.name is ModelProviderName.OLLAMA:
            return settings.ollama_base_url
        return self.endpoint

    def create_client(
        self, model: str, settings: Settings | None = None,
    ) -> BaseLLMClient:
        """Build the transport client serving `model` for this provider."""
        from gendispatch.llm.client_factory import create_llm_client

        api_key = settings.api_key_for(self.name.value) if settings is not None else ""
        return create_llm_client(
            self.adapter,
            model,
            api_key=api_key,
            base_url=self.base_url(settings),
            provider_name=self.name.value,
        )


def _character_overrides(settings: Settings) -> ModelOverrides:
    return ModelOverrides(
        temperature=settings.model_temperature,
        frequency_penalty=settings.model_frequency_penalty,
        presence_penalty=settings.model_presence_penalty,
        max_input_tokens=settings.model_max_input_tokens,
        max_output_tokens=settings.model_max_output_tokens,
    )


def _cloudflare_base_url(provider: str, settings: Settings) -> str | None:
    if not settings.cloudflare_ai_account_id:
        logger.warning(
            "Cloudflare Gateway is enabled but CLOUDFLARE_AI_ACCOUNT_ID is not set"
        )
        return None
    if not settings.cloudflare_ai_gateway_id:
        logger.warning(
            "Cloudflare Gateway is enabled but CLOUDFLARE_AI_GATEWAY_ID is not set"
        )
        return None
    url = (
        f"{_CLOUDFLARE_GATEWAY}/{settings.cloudflare_ai_account_id}"
        f"/{settings.cloudflare_ai_gateway_id}/{provider}"
    )
    logger.info("Using Cloudflare Gateway for %s: %s", provider, url)
    return url


PROVIDERS: dict[ModelProviderName, ProviderSpec] = {
    ModelProviderName.OPENAI: ProviderSpec(
        name=ModelProviderName.OPENAI,
        adapter="openai",
        endpoint="https://api.openai.com/v1",
        defaults=_tiers(
            "gpt-4o-mini", "gpt-4o", "gpt-4o",
            temperature=0.6, max_input_tokens=128_000, max_output_tokens=8192,
        ),
        cloudflare=True,
    ),
    ModelProviderName.ANTHROPIC: ProviderSpec(
        name=ModelProviderName.ANTHROPIC,
        adapter="anthropic",
        endpoint="https://api.anthropic.com",
        defaults=_tiers(
            "claude-3-haiku-20240307",
            "claude-3-5-sonnet-20241022",
            "claude-3-5-sonnet-20241022",
            temperature=0.7, max_input_tokens=200_000, max_output_tokens=4096,
        ),
        cloudflare=True,
    ),
    ModelProviderName.GOOGLE: ProviderSpec(
        name=ModelProviderName.GOOGLE,
        adapter="google",
        endpoint="",
        defaults=_tiers(
            "gemini-2.0-flash", "gemini-2.0-flash", "gemini-1.5-pro",
            temperature=0.7, frequency_penalty=0.4, presence_penalty=0.3,
            max_input_tokens=128_000, max_output_tokens=8192,
        ),
    ),
    ModelProviderName.OLLAMA: ProviderSpec(
        name=ModelProviderName.OLLAMA,
        adapter="ollama",
        endpoint="http://localhost:11434",
        defaults=_tiers(
            "llama3.2", "hermes3", "hermes3:70b",
            temperature=0.7, frequency_penalty=0.4, presence_penalty=0.4,
            max_input_tokens=8000, max_output_tokens=8192,
        ),
    ),
    ModelProviderName.GROQ: ProviderSpec(
        name=ModelProviderName.GROQ,
        adapter="openai",
        endpoint="https://api.groq.com/openai/v1",
        defaults=_tiers(
            "llama-3.1-8b-instant",
            "llama-3.3-70b-versatile",
            "llama-3.3-70b-versatile",
            temperature=0.7, frequency_penalty=0.4, presence_penalty=0.4,
            max_input_tokens=128_000, max_output_tokens=8000,
        ),
        cloudflare=True,
    ),
    ModelProviderName.TOGETHER: ProviderSpec(
        name=ModelProviderName.TOGETHER,
        adapter="openai",
        endpoint="https://api.together.ai/v1",
        defaults=_tiers(
            "meta-llama/Llama-3.2-3B-Instruct-Turbo",
            "meta-llama/Meta-Llama-3.1-8B-Instruct-Turbo",
            "meta-llama/Meta-Llama-3.1-405B-Instruct-Turbo",
            temperature=0.7, frequency_penalty=0.4, presence_penalty=0.4,
            max_input_tokens=128_000, max_output_tokens=8192,
        ),
    ),
    ModelProviderName.OPENROUTER: ProviderSpec(
        name=ModelProviderName.OPENROUTER,
        adapter="openai",
        endpoint="https://openrouter.ai/api/v1",
        defaults=_tiers(
            "nousresearch/hermes-3-llama-3.1-405b",
            "nousresearch/hermes-3-llama-3.1-405b",
            "nousresearch/hermes-3-llama-3.1-405b",
            temperature=0.7, frequency_penalty=0.4, presence_penalty=0.4,
            max_input_tokens=128_000, max_output_tokens=8192,
        ),
    ),
    ModelProviderName.LLAMACLOUD: ProviderSpec(
        name=ModelProviderName.LLAMACLOUD,
        adapter="openai",
        endpoint="https://api.llamacloud.com/v1",
        defaults=_tiers(
            "meta-llama/Llama-3.2-3B-Instruct-Turbo",
            "meta-llama-3.1-8b-instruct",
            "meta-llama/Meta-Llama-3.1-405B-Instruct-Turbo",
            temperature=0.7, frequency_penalty=0.4, presence_penalty=0.4,
            max_input_tokens=128_000, max_output_tokens=8192,
        ),
    ),
    ModelProviderName.DEEPSEEK: ProviderSpec(
        name=ModelProviderName.DEEPSEEK,
        adapter="openai",
        endpoint="https://api.deepseek.com",
        defaults=_tiers(
            "deepseek-chat", "deepseek-chat", "deepseek-chat",
            temperature=0.7, max_input_tokens=128_000, max_output_tokens=8192,
        ),
    ),
    ModelProviderName.MISTRAL: ProviderSpec(
        name=ModelProviderName.MISTRAL,
        adapter="openai",
        endpoint="https://api.mistral.ai/v1",
        defaults=_tiers(
            "mistral-small-latest", "mistral-large-latest", "mistral-large-latest",
            temperature=0.7, max_input_tokens=128_000, max_output_tokens=8192,
        ),
    ),
}
