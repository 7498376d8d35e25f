# src/llm/adapters/google_adapter.py - v2
"""Google Gemini adapter implementing BaseLLMClient.

Uses google-generativeai SDK.
"""

from __future__ import annotations

import time
from typing import Any

from gendispatch.llm.base_client import BaseLLMClient
from gendispatch.llm.models import GenerationParams, LLMResponse


class GoogleAdapter(BaseLLMClient):
    """Google Gemini adapter."""

    def __init__(
        self,
        model: str = "gemini-2.0-flash",
        api_key: str = "",
        provider_name: str = "google",
        **kwargs: Any,
    ):
        self._model = model
        self._api_key = api_key
        self._provider = provider_name

    async def generate(self, params: GenerationParams) -> LLMResponse:
        import google.generativeai as genai

        genai.configure(api_key=self._api_key)
        model = genai.GenerativeModel(
            self._model,
            system_instruction=params.system or None,
        )

        gen_config: dict[str, Any] = {
            "max_output_tokens": params.max_tokens,
            "temperature": params.temperature,
            "frequency_penalty": params.frequency_penalty,
            "presence_penalty": params.presence_penalty,
        }
        if params.stop:
            gen_config["stop_sequences"] = params.stop

        contents = [{"role": "user", "parts": [{"text": params.prompt}]}]

        t0 = time.monotonic()
        resp = await model.generate_content_async(
            contents, generation_config=gen_config,
        )
        latency = int((time.monotonic() - t0) * 1000)

        usage = getattr(resp, "usage_metadata", None)
        return LLMResponse(
            content=resp.text or "",
            input_tokens=getattr(usage, "prompt_token_count", 0) if usage else 0,
            output_tokens=getattr(usage, "candidates_token_count", 0) if usage else 0,
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
