# tests/conftest.py - v2
"""Shared test fixtures for all unit tests.

Provides a scripted LLM client, a character tokenizer, settings without
.env lookup and a recording sleep. No network access: every provider is
faked.
"""

from __future__ import annotations

from collections.abc import Iterable

import pytest

from gendispatch.config.settings import Settings
from gendispatch.core.models import ModelProviderName
from gendispatch.llm.base_client import BaseLLMClient
from gendispatch.llm.dispatcher import GenerationDispatcher
from gendispatch.llm.models import GenerationParams, LLMResponse
from gendispatch.llm.retry import RetryPolicy


class CharTokenizer:
    """One token per character; keeps budget arithmetic obvious in tests."""

    def encode(self, text: str) -> list[int]:
        return [ord(c) for c in text]

    def decode(self, tokens: list[int]) -> str:
        return "".join(chr(t) for t in tokens)


class ScriptedLLMClient(BaseLLMClient):
    """Returns scripted replies in order; an Exception item is raised instead."""

    def __init__(
        self,
        replies: Iterable[str | Exception] = (),
        provider_name: str = "openai",
        model: str = "gpt-4o",
    ) -> None:
        self._replies = list(replies)
        self._provider = provider_name
        self._model = model
        self.calls: list[GenerationParams] = []

    def push(self, *replies: str | Exception) -> None:
        self._replies.extend(replies)

    async def generate(self, params: GenerationParams) -> LLMResponse:
        self.calls.append(params)
        reply = self._replies.pop(0) if self._replies else ""
        if isinstance(reply, Exception):
            raise reply
        return LLMResponse(
            content=reply,
            input_tokens=len(params.prompt),
            output_tokens=len(reply),
            model=self._model,
            provider=self._provider,
            latency_ms=5,
        )

    @property
    def provider_name(self) -> str:
        return self._provider

    @property
    def model(self) -> str:
        return self._model


class RecordingSleep:
    """Awaitable sleep that records requested delays and returns at once."""

    def __init__(self) -> None:
        self.delays: list[float] = []

    async def __call__(self, delay: float) -> None:
        self.delays.append(delay)


# === FIXTURES ===


@pytest.fixture
def settings() -> Settings:
    """Settings isolated from the environment's .env file."""
    return Settings(_env_file=None, openai_api_key="sk-test")


@pytest.fixture
def tokenizer() -> CharTokenizer:
    return CharTokenizer()


@pytest.fixture
def scripted_client() -> ScriptedLLMClient:
    return ScriptedLLMClient()


@pytest.fixture
def recording_sleep() -> RecordingSleep:
    return RecordingSleep()


@pytest.fixture
def fast_policy() -> RetryPolicy:
    return RetryPolicy(max_attempts=4, base_delay_s=1.0, backoff_factor=2.0)


@pytest.fixture
def dispatcher(
    settings: Settings, tokenizer: CharTokenizer, scripted_client: ScriptedLLMClient,
) -> GenerationDispatcher:
    """Dispatcher whose OpenAI clients (every tier) are the scripted one."""
    return GenerationDispatcher(
        settings,
        tokenizer=tokenizer,
        clients={
            (ModelProviderName.OPENAI, "gpt-4o-mini"): scripted_client,
            (ModelProviderName.OPENAI, "gpt-4o"): scripted_client,
        },
    )
