# src/llm/adapters/anthropic_adapter.py - v3
"""Anthropic Claude adapter implementing BaseLLMClient.

Uses the official anthropic SDK. The Messages API has no frequency or
presence penalty, so those parameters are dropped.
"""

from __future__ import annotations

import logging
import time
from typing import Any

from gendispatch.llm.base_client import BaseLLMClient
from gendispatch.llm.models import GenerationParams, LLMResponse

logger = logging.getLogger(__name__)


class AnthropicAdapter(BaseLLMClient):
    """Adapter for Anthropic Claude models."""

    def __init__(
        self,
        model: str = "claude-3-5-sonnet-20241022",
        api_key: str | None = None,
        base_url: str = "",
        provider_name: str = "anthropic",
        **kwargs: Any,
    ) -> None:
        self._api_key = api_key
        self._model = model
        self._base_url = base_url or None
        self._provider = provider_name
        self.__client = None  # Lazy initialization

    @property
    def _client(self):
        """Lazy-init Anthropic client (only on first API call)."""
        if self.__client is None:
            try:
                import anthropic
            except ImportError as e:
                raise ImportError(
                    "anthropic package required: pip install anthropic"
                ) from e
            self.__client = anthropic.AsyncAnthropic(
                api_key=self._api_key or "", base_url=self._base_url,
            )
        return self.__client

    async def generate(self, params: GenerationParams) -> LLMResponse:
        """Text completion via Anthropic Messages API."""
        kwargs: dict[str, Any] = {
            "model": self._model,
            "max_tokens": params.max_tokens,
            "temperature": min(params.temperature, 1.0),
            "messages": [{"role": "user", "content": params.prompt}],
        }
        if params.system:
            kwargs["system"] = params.system
        # Whitespace-only stop sequences are rejected by the API.
        stop = [s for s in params.stop or [] if s.strip()]
        if stop:
            kwargs["stop_sequences"] = stop
        if params.tools:
            kwargs["tools"] = params.tools

        start = time.monotonic()
        response = await self._client.messages.create(**kwargs)
        latency_ms = int((time.monotonic() - start) * 1000)

        return LLMResponse(
            content=self._extract_content(response),
            input_tokens=response.usage.input_tokens,
            output_tokens=response.usage.output_tokens,
            model=response.model,
            provider=self._provider,
            latency_ms=latency_ms,
            raw_response=response,
        )

    @property
    def provider_name(self) -> str:
        return self._provider

    @property
    def model(self) -> str:
        return self._model

    @staticmethod
    def _extract_content(response: Any) -> str:
        """Concatenate text blocks of an Anthropic response."""
        parts = [
            block.text
            for block in response.content
            if getattr(block, "type", None) == "text"
        ]
        return "".join(parts)
