# src/llm/adapters/ollama_adapter.py - v2
"""Ollama local LLM adapter implementing BaseLLMClient.

Uses the ollama Python SDK.
"""

from __future__ import annotations

import time
from typing import Any

from gendispatch.llm.base_client import BaseLLMClient
from gendispatch.llm.models import GenerationParams, LLMResponse


class OllamaAdapter(BaseLLMClient):
    """Ollama local inference adapter."""

    def __init__(
        self,
        model: str = "llama3.2",
        base_url: str = "http://localhost:11434",
        provider_name: str = "ollama",
        **kwargs: Any,
    ):
        self._model = model
        self._host = base_url or "http://localhost:11434"
        self._provider = provider_name

    async def generate(self, params: GenerationParams) -> LLMResponse:
        import ollama

        client = ollama.AsyncClient(host=self._host)
        msgs: list[dict[str, str]] = []
        if params.system:
            msgs.append({"role": "system", "content": params.system})
        msgs.append({"role": "user", "content": params.prompt})

        options: dict[str, Any] = {
            "num_predict": params.max_tokens,
            "temperature": params.temperature,
            "frequency_penalty": params.frequency_penalty,
            "presence_penalty": params.presence_penalty,
        }
        if params.stop:
            options["stop"] = params.stop
        kwargs: dict[str, Any] = {"model": self._model, "messages": msgs, "options": options}
        if params.tools:
            kwargs["tools"] = params.tools

        t0 = time.monotonic()
        resp = await client.chat(**kwargs)
        latency = int((time.monotonic() - t0) * 1000)

        return LLMResponse(
            content=resp["message"]["content"],
            input_tokens=resp.get("prompt_eval_count", 0) or 0,
            output_tokens=resp.get("eval_count", 0) or 0,
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
