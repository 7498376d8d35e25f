# src/llm/dispatcher.py - v2
"""Generation dispatcher: one budgeted call to the selected provider.

No retries and no interpretation of failures at this layer; transport
errors surface as ProviderError chained to the original exception.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from gendispatch.core.errors import ProviderError
from gendispatch.core.models import GenerationRequest, ModelProviderName, ModelSettings
from gendispatch.llm.models import GenerationParams
from gendispatch.llm.router import get_provider
from gendispatch.llm.token_budget import Tokenizer, get_tokenizer, trim_chars, trim_tokens

if TYPE_CHECKING:
    from gendispatch.config.settings import Settings
    from gendispatch.llm.base_client import BaseLLMClient
    from gendispatch.tracking.call_logger import CallLogger

logger = logging.getLogger(__name__)


class GenerationDispatcher:
    """Send a GenerationRequest to its provider and return the raw text.

    Args:
        settings: Application settings (API keys, endpoints, system prompt).
        tokenizer: Tokenizer for context budgeting (default from settings;
            the context is trimmed by characters when none can be loaded).
        call_logger: Optional call recorder.
        clients: Pre-built clients keyed by (provider, model), mainly for tests.
    """

    def __init__(
        self,
        settings: Settings | None = None,
        tokenizer: Tokenizer | None = None,
        call_logger: CallLogger | None = None,
        clients: dict[tuple[ModelProviderName, str], BaseLLMClient] | None = None,
    ) -> None:
        self._settings = settings
        self._tokenizer = tokenizer
        self._tokenizer_resolved = tokenizer is not None
        self._call_logger = call_logger
        self._clients: dict[tuple[ModelProviderName, str], BaseLLMClient] = dict(clients or {})

    @property
    def tokenizer(self) -> Tokenizer | None:
        if not self._tokenizer_resolved:
            self._tokenizer = get_tokenizer(self._settings)
            self._tokenizer_resolved = True
        return self._tokenizer

    @property
    def call_logger(self) -> CallLogger | None:
        return self._call_logger

    def client_for(self, provider: ModelProviderName, model: str) -> BaseLLMClient:
        """Return the cached client for (provider, model), creating it once."""
        key = (provider, model)
        client = self._clients.get(key)
        if client is None:
            client = get_provider(provider).create_client(model, self._settings)
            self._clients[key] = client
        return client

    def build_params(
        self, request: GenerationRequest, model_settings: ModelSettings,
    ) -> GenerationParams:
        """Budget the context and assemble the provider call parameters."""
        logger.debug(
            "Trimming context to max length of %d tokens",
            model_settings.max_input_tokens,
        )
        tokenizer = self.tokenizer
        if tokenizer is None:
            prompt = trim_chars(request.context, model_settings.max_input_tokens)
        else:
            prompt = trim_tokens(request.context, model_settings.max_input_tokens, tokenizer)
        system = request.system
        if system is None and self._settings is not None:
            system = self._settings.system_prompt or None

        return GenerationParams(
            prompt=prompt,
            system=system,
            temperature=model_settings.temperature,
            frequency_penalty=model_settings.frequency_penalty,
            presence_penalty=model_settings.presence_penalty,
            max_tokens=model_settings.max_output_tokens,
            stop=request.stop if request.stop is not None else model_settings.stop,
            tools=request.tools,
            max_steps=request.max_steps,
        )

    async def dispatch(
        self, request: GenerationRequest, model_settings: ModelSettings,
    ) -> str:
        """Run exactly one provider call for `request`.

        Raises:
            UnsupportedProviderError: If the provider is not registered.
            InvalidArgumentError: If the token budget is not positive.
            ProviderError: If the transport raised.
        """
        client = self.client_for(request.provider, model_settings.model_name)
        params = self.build_params(request, model_settings)

        logger.debug(
            "Using provider: %s, model: %s, temperature: %s, max response length: %d",
            request.provider.value, model_settings.model_name,
            params.temperature, params.max_tokens,
        )
        try:
            response = await client.generate(params)
        except Exception as e:
            if self._call_logger is not None:
                self._call_logger.record_failure(
                    request.provider.value, model_settings.model_name,
                    request.model_class.value, e,
                )
            raise ProviderError(request.provider.value, e) from e

        if self._call_logger is not None:
            self._call_logger.record(request.model_class.value, response)
        logger.info(
            "Received response from %s (%s) in %dms",
            response.provider, response.model, response.latency_ms,
        )
        return response.content
