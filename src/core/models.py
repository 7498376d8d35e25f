# src/core/models.py - v1
"""Shared Pydantic domain models used across modules.

No module redefines these types; all imports come from core.models.
"""

from __future__ import annotations

from enum import Enum
from pathlib import Path
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field


# === ROUTING ENUMS ===


class ModelClass(str, Enum):
    """Capability tier selecting which model variant serves a request."""

    SMALL = "small"
    MEDIUM = "medium"
    LARGE = "large"


class ModelProviderName(str, Enum):
    """Text generation backends known to the router."""

    OPENAI = "openai"
    ANTHROPIC = "anthropic"
    GOOGLE = "google"
    OLLAMA = "ollama"
    GROQ = "groq"
    TOGETHER = "together"
    OPENROUTER = "openrouter"
    LLAMACLOUD = "llamacloud"
    DEEPSEEK = "deepseek"
    MISTRAL = "mistral"


class ExpectedShape(str, Enum):
    """Shape the caller expects the generated text to be coerced into."""

    TEXT = "text"
    BOOL = "bool"
    STRING_ARRAY = "string_array"
    OBJECT = "object"
    ACTION_LIST = "action_list"
    SHOULD_RESPOND = "should_respond"


ShouldRespond = Literal["RESPOND", "IGNORE", "STOP"]


# === GENERATION MODELS ===


class ModelOverrides(BaseModel):
    """Caller or character level overrides applied on top of provider settings.

    A field left as None does not override anything; 0.0 is a real value.
    """

    model_config = ConfigDict(frozen=True)

    temperature: float | None = Field(default=None, ge=0.0, le=2.0)
    frequency_penalty: float | None = Field(default=None, ge=0.0, le=2.0)
    presence_penalty: float | None = Field(default=None, ge=0.0, le=2.0)
    max_input_tokens: int | None = Field(default=None, gt=0)
    max_output_tokens: int | None = Field(default=None, gt=0)

    def as_update(self) -> dict[str, Any]:
        """Return only the fields that were set, ready for model_copy(update=...)."""
        return {k: v for k, v in self.model_dump().items() if v is not None}


class ModelSettings(BaseModel):
    """Resolved generation parameters for one (provider, tier) pair."""

    model_config = ConfigDict(frozen=True, protected_namespaces=())

    model_name: str
    temperature: float = Field(default=0.7, ge=0.0, le=2.0)
    frequency_penalty: float = Field(default=0.0, ge=0.0, le=2.0)
    presence_penalty: float = Field(default=0.0, ge=0.0, le=2.0)
    max_input_tokens: int = Field(default=128_000, gt=0)
    max_output_tokens: int = Field(default=8192, gt=0)
    stop: list[str] | None = None


class GenerationRequest(BaseModel):
    """One generation call, immutable once constructed."""

    model_config = ConfigDict(frozen=True, protected_namespaces=())

    context: str
    model_class: ModelClass = ModelClass.MEDIUM
    provider: ModelProviderName
    expected_shape: ExpectedShape = ExpectedShape.TEXT
    stop: list[str] | None = None
    max_steps: int = Field(default=1, ge=1)
    system: str | None = None
    tools: list[dict[str, Any]] | None = None
    overrides: ModelOverrides | None = None


class ActionResponse(BaseModel):
    """Social actions selected by the model from a fixed vocabulary."""

    like: bool = False
    retweet: bool = False
    quote: bool = False
    reply: bool = False

    def any(self) -> bool:
        return self.like or self.retweet or self.quote or self.reply


# === IMAGE MODELS ===


class ImageJobStatus(str, Enum):
    SUBMITTED = "submitted"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    FAILED = "failed"


class ImageJobOutcome(str, Enum):
    """Terminal result of a polled image job."""

    COMPLETED = "completed"
    FAILED = "failed"
    TIMEOUT = "timeout"


class ImageGenerationSpec(BaseModel):
    """Parameters for a text-to-image job."""

    prompt: str
    width: int = Field(default=1024, gt=0)
    height: int = Field(default=1024, gt=0)
    count: int = Field(default=1, ge=1)
    negative_prompt: str | None = None
    num_iterations: int | None = Field(default=None, gt=0)
    guidance_scale: float | None = Field(default=None, gt=0)
    model: str | None = None

    @property
    def aspect_ratio(self) -> str:
        """Standardized aspect ratio accepted by image providers."""
        if self.width == self.height:
            return "1:1"
        return "3:2" if self.width > self.height else "2:3"


class ImageJob(BaseModel):
    """Asynchronous image job as reported by the provider."""

    id: str
    prompt: str = ""
    width: int = 0
    height: int = 0
    status: ImageJobStatus = ImageJobStatus.SUBMITTED
    assets: list[str] = Field(default_factory=list)
    error: str | None = None


class ImageGenerationResult(BaseModel):
    """Structured outcome of the submit/poll/fetch pipeline."""

    success: bool
    outcome: ImageJobOutcome
    assets: list[str] = Field(default_factory=list)
    error: str | None = None
    job_id: str | None = None
    attempts: int = 0


# === PUBLISHING MODELS ===


class PublishWatermark(BaseModel):
    """Epoch-seconds timestamp of the last successful publish."""

    last_publish_timestamp: float = 0.0


class MediaAttachment(BaseModel):
    """Binary media attached to a published post."""

    data: bytes
    media_type: str = "image/png"
    alt_text: str = ""


class CycleResult(BaseModel):
    """Outcome of one scheduled publishing cycle."""

    published: bool
    delay_s: float
    now: float
    error: str | None = None
    image_path: Path | None = None
