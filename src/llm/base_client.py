# src/llm/base_client.py - v2
"""Abstract LLM client interface.

Every provider strategy implements the same single-call contract: accept
GenerationParams, return an LLMResponse. Retries and parsing live above
this layer.
"""

from __future__ import annotations

from abc import ABC, abstractmethod

from gendispatch.llm.models import GenerationParams, LLMResponse


class BaseLLMClient(ABC):
    """Unified interface for all LLM providers."""

    @abstractmethod
    async def generate(self, params: GenerationParams) -> LLMResponse:
        """Run one text completion."""

    @property
    @abstractmethod
    def provider_name(self) -> str:
        """Provider identifier (openai, anthropic, google, ollama, ...)."""

    @property
    @abstractmethod
    def model(self) -> str:
        """Model name this client sends requests to."""
