# src/config/settings.py - v1
"""Typed configuration loaded from .env via pydantic-settings.

Single source of truth for all deployment-specific settings.
"""

from __future__ import annotations

from pathlib import Path
from typing import Literal

from pydantic import field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class ConfigurationError(Exception):
    """Raised when configuration is internally inconsistent."""


class Settings(BaseSettings):
    """Application settings loaded from .env file."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        protected_namespaces=(),
    )

    # === LLM PROVIDERS ===
    model_provider: str = "openai"
    system_prompt: str = ""
    model_endpoint_override: str = ""

    # Provider API keys
    openai_api_key: str = ""
    anthropic_api_key: str = ""
    google_api_key: str = ""
    groq_api_key: str = ""
    together_api_key: str = ""
    openrouter_api_key: str = ""
    llamacloud_api_key: str = ""
    deepseek_api_key: str = ""
    mistral_api_key: str = ""
    ollama_base_url: str = "http://localhost:11434"

    # Per-tier model overrides (<provider>_model_<tier>)
    openai_model_small: str = ""
    openai_model_medium: str = ""
    openai_model_large: str = ""
    anthropic_model_small: str = ""
    anthropic_model_medium: str = ""
    anthropic_model_large: str = ""
    google_model_small: str = ""
    google_model_medium: str = ""
    google_model_large: str = ""
    ollama_model_small: str = ""
    ollama_model_medium: str = ""
    ollama_model_large: str = ""
    groq_model_small: str = ""
    groq_model_medium: str = ""
    groq_model_large: str = ""
    together_model_small: str = ""
    together_model_medium: str = ""
    together_model_large: str = ""
    openrouter_model_small: str = ""
    openrouter_model_medium: str = ""
    openrouter_model_large: str = ""
    llamacloud_model_small: str = ""
    llamacloud_model_medium: str = ""
    llamacloud_model_large: str = ""
    deepseek_model_small: str = ""
    deepseek_model_medium: str = ""
    deepseek_model_large: str = ""
    mistral_model_small: str = ""
    mistral_model_medium: str = ""
    mistral_model_large: str = ""

    # Character-level overrides (highest priority)
    model_temperature: float | None = None
    model_frequency_penalty: float | None = None
    model_presence_penalty: float | None = None
    model_max_input_tokens: int | None = None
    model_max_output_tokens: int | None = None

    # === Tokenizer ===
    tokenizer_model: str = ""
    tokenizer_type: str = ""

    # === Cloudflare AI Gateway ===
    cloudflare_gw_enabled: bool = False
    cloudflare_ai_account_id: str = ""
    cloudflare_ai_gateway_id: str = ""

    # === Retry policy ===
    retry_max_attempts: int = 6  # 0 = unbounded
    retry_base_delay_s: float = 1.0
    retry_backoff_factor: float = 2.0
    retry_propagate_provider_errors: bool = False

    # === Image generation ===
    rendernet_api_key: str = ""
    rendernet_model: str = "JuggernautXL"
    rendernet_url: str = "https://api.rendernet.ai/pub/v1/generations"
    image_poll_interval_s: float = 2.0
    image_poll_max_attempts: int = 30
    image_output_dir: Path = Path("agent/generatedImages")

    # === Scheduled publishing ===
    enable_scheduled_images: bool = False
    enable_image_posting: bool = True
    image_post_interval_min: int = 120
    image_post_interval_max: int = 240
    image_post_hashtag: str = "GenDispatch"
    image_caption_max_length: int = 200

    # === Twitter (direct publishing fallback) ===
    twitter_username: str = ""
    twitter_api_key: str = ""
    twitter_api_secret: str = ""
    twitter_access_token: str = ""
    twitter_access_token_secret: str = ""

    # === Key-value store ===
    kv_backend: Literal["json", "sqlite"] = "json"
    kv_root: Path = Path("~/.gendispatch/kv")

    # === Logging ===
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"
    log_format: Literal["json", "text"] = "json"
    log_file: Path | None = None
    log_rotation: str = "10MB"
    log_retention: int = 30

    # === Call tracking ===
    call_log_file: Path | None = None

    # --- Validators ---

    @field_validator("retry_base_delay_s", "retry_backoff_factor", "image_poll_interval_s")
    @classmethod
    def validate_non_negative(cls, v: float) -> float:  # noqa: N805
        if v < 0:
            raise ValueError("must be >= 0")
        return v

    @field_validator("retry_max_attempts")
    @classmethod
    def validate_attempts(cls, v: int) -> int:  # noqa: N805
        if v < 0:
            raise ValueError("must be >= 0")
        return v

    @model_validator(mode="after")
    def validate_config_consistency(self) -> Settings:
        """Validate cross-field consistency rules."""
        errors: list[str] = []

        if self.image_post_interval_min < 1:
            errors.append("IMAGE_POST_INTERVAL_MIN must be >= 1")

        if self.image_post_interval_min > self.image_post_interval_max:
            errors.append(
                "IMAGE_POST_INTERVAL_MIN must be <= IMAGE_POST_INTERVAL_MAX"
            )

        if self.image_poll_max_attempts < 1:
            errors.append("IMAGE_POLL_MAX_ATTEMPTS must be >= 1")

        if self.image_caption_max_length < 4:
            errors.append("IMAGE_CAPTION_MAX_LENGTH must be >= 4")

        if errors:
            raise ConfigurationError("; ".join(errors))

        return self

    # --- Helpers ---

    @property
    def has_twitter_credentials(self) -> bool:
        """True when every credential of the direct Twitter client is set."""
        return all((
            self.twitter_api_key,
            self.twitter_api_secret,
            self.twitter_access_token,
            self.twitter_access_token_secret,
        ))

    def api_key_for(self, provider: str) -> str:
        """Return the API key configured for a provider, or ''."""
        return getattr(self, f"{provider}_api_key", "") or ""


def load_settings(**overrides: object) -> Settings:
    """Load settings from .env with optional overrides.

    Raises:
        ConfigurationError: If configuration is internally inconsistent.
    """
    return Settings(**overrides)  # type: ignore[arg-type]
