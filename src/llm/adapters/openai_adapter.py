# src/llm/adapters/openai_adapter.py - v2
"""OpenAI-compatible adapter implementing BaseLLMClient.

Uses the official openai SDK. Every OpenAI-compatible backend (groq,
together, openrouter, llamacloud, deepseek, mistral) goes through this
adapter with its own base URL.
"""

from __future__ import annotations

import time
from typing import Any

from gendispatch.llm.base_client import BaseLLMClient
from gendispatch.llm.models import GenerationParams, LLMResponse


class OpenAIAdapter(BaseLLMClient):
    """OpenAI chat completions adapter."""

    def __init__(
        self,
        model: str = "gpt-4o",
        api_key: str = "",
        base_url: str = "",
        provider_name: str = "openai",
        **kwargs: Any,
    ):
        self._model = model
        self._api_key = api_key
        self._base_url = base_url or None
        self._provider = provider_name
        self.__client = None  # Lazy initialization

    @property
    def _client(self):
        """Lazy-init AsyncOpenAI client (only on first API call)."""
        if self.__client is None:
            import openai

            self.__client = openai.AsyncOpenAI(
                api_key=self._api_key or None, base_url=self._base_url,
            )
        return self.__client

    async def generate(self, params: GenerationParams) -> LLMResponse:
        messages: list[dict[str, Any]] = []
        if params.system:
            messages.append({"role": "system", "content": params.system})
        messages.append({"role": "user", "content": params.prompt})

        kwargs: dict[str, Any] = {
            "model": self._model,
            "messages": messages,
            "max_tokens": params.max_tokens,
            "temperature": params.temperature,
            "frequency_penalty": params.frequency_penalty,
            "presence_penalty": params.presence_penalty,
        }
        if params.stop:
            # The chat API accepts at most 4 stop sequences.
            kwargs["stop"] = params.stop[:4]
        if params.tools:
            kwargs["tools"] = params.tools

        t0 = time.monotonic()
        resp = await self._client.chat.completions.create(**kwargs)
        latency = int((time.monotonic() - t0) * 1000)

        choice = resp.choices[0]
        usage = resp.usage
        return LLMResponse(
            content=choice.message.content or "",
            input_tokens=usage.prompt_tokens if usage else 0,
            output_tokens=usage.completion_tokens if usage else 0,
            model=self._model,
            provider=self._provider,
            latency_ms=latency,
            raw_response=resp,
        )

    @property
    def provider_name(self) -> str:
        return self._provider

    @property
    def model(self) -> str:
        return self._model
