# src/llm/models.py - v2
"""LLM-specific types: GenerationParams, LLMResponse."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class GenerationParams(BaseModel):
    """Uniform call contract every provider adapter accepts."""

    model_config = ConfigDict(frozen=True)

    prompt: str
    system: str | None = None
    temperature: float = 0.7
    frequency_penalty: float = 0.0
    presence_penalty: float = 0.0
    max_tokens: int = 8192
    stop: list[str] | None = None
    tools: list[dict[str, Any]] | None = None
    max_steps: int = Field(default=1, ge=1)


class LLMResponse(BaseModel):
    """Normalized response from any LLM provider."""

    content: str
    input_tokens: int = 0
    output_tokens: int = 0
    model: str
    provider: str
    latency_ms: int = 0
    raw_response: Any = None
