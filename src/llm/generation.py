# src/llm/generation.py - v2
"""Caller-facing generation entry points.

Two failure policies coexist:
  - generate_text is the raw single-shot primitive: a transport error
    reaches the caller as ProviderError.
  - every classification entry point (bool, arrays, objects, actions,
    should-respond) runs inside with_retry: transport errors and
    unparseable replies are logged and retried with backoff until the
    retry policy is exhausted (RetryExhaustedError).
"""

from __future__ import annotations

import asyncio
import logging
import uuid
from typing import TYPE_CHECKING, Any, Callable, TypeVar

from pydantic import BaseModel

from gendispatch.core.errors import InvalidArgumentError
from gendispatch.core.models import (
    ActionResponse,
    ExpectedShape,
    GenerationRequest,
    ModelClass,
    ModelOverrides,
    ModelProviderName,
    ModelSettings,
)
from gendispatch.llm import parsing
from gendispatch.llm.dispatcher import GenerationDispatcher
from gendispatch.llm.retry import RetryPolicy, Sleep, with_retry
from gendispatch.llm.router import get_provider, resolve_model_settings
from gendispatch.logging.context import set_request_context
from gendispatch.tracking.call_logger import CallLogger

if TYPE_CHECKING:
    from gendispatch.config.settings import Settings

logger = logging.getLogger(__name__)

T = TypeVar("T")
M = TypeVar("M", bound=BaseModel)


class GenerationService:
    """Routes generation calls to the configured provider.

    Args:
        settings: Application settings.
        provider: Provider used when a call does not name one
            (default: MODEL_PROVIDER).
        dispatcher: Dispatcher performing the provider call (default: one
            recording into a fresh CallLogger).
        retry_policy: Policy of the classification entry points
            (default: from RETRY_* settings).
        sleep: Awaitable sleep used between retries.
    """

    def __init__(
        self,
        settings: Settings | None = None,
        provider: ModelProviderName | str | None = None,
        dispatcher: GenerationDispatcher | None = None,
        retry_policy: RetryPolicy | None = None,
        sleep: Sleep = asyncio.sleep,
    ) -> None:
        self._settings = settings
        if provider is None:
            provider = settings.model_provider if settings is not None else ModelProviderName.OPENAI
        self._provider = get_provider(provider).name
        self._dispatcher = dispatcher or GenerationDispatcher(settings, call_logger=CallLogger())
        if retry_policy is None:
            retry_policy = RetryPolicy.from_settings(settings) if settings is not None else RetryPolicy()
        self._retry_policy = retry_policy
        self._sleep = sleep

    @property
    def provider(self) -> ModelProviderName:
        return self._provider

    @property
    def retry_policy(self) -> RetryPolicy:
        return self._retry_policy

    @property
    def call_logger(self) -> CallLogger | None:
        return self._dispatcher.call_logger

    def resolve_settings(self, request: GenerationRequest) -> ModelSettings:
        """ModelSettings for a request (a derived copy, never shared state)."""
        return resolve_model_settings(
            request.provider, request.model_class, self._settings, request.overrides,
        )

    def build_request(
        self,
        context: str,
        model_class: ModelClass = ModelClass.MEDIUM,
        expected_shape: ExpectedShape = ExpectedShape.TEXT,
        **kwargs: Any,
    ) -> GenerationRequest:
        return GenerationRequest(
            context=context,
            model_class=model_class,
            provider=kwargs.pop("provider", None) or self._provider,
            expected_shape=expected_shape,
            **kwargs,
        )

    # --- Raw primitive ---

    async def generate_text(
        self,
        context: str,
        model_class: ModelClass = ModelClass.MEDIUM,
        *,
        stop: list[str] | None = None,
        system: str | None = None,
        tools: list[dict[str, Any]] | None = None,
        max_steps: int = 1,
        overrides: ModelOverrides | None = None,
        provider: ModelProviderName | None = None,
    ) -> str:
        """Single-shot text generation. Transport errors propagate.

        Returns "" without calling the provider when context is empty.

        Raises:
            ProviderError: If the provider call failed.
        """
        if not context:
            logger.error("generate_text context is empty")
            return ""
        request = self.build_request(
            context, model_class, ExpectedShape.TEXT,
            stop=stop, system=system, tools=tools, max_steps=max_steps,
            overrides=overrides, provider=provider,
        )
        return await self.run(request)

    async def run(self, request: GenerationRequest) -> str:
        """Dispatch one request without retry."""
        set_request_context(uuid.uuid4().hex[:12], request.provider.value)
        logger.info(
            "Generating text with provider=%s, tier=%s",
            request.provider.value, request.model_class.value,
        )
        return await self._dispatcher.dispatch(request, self.resolve_settings(request))

    # --- Retry-wrapped entry points ---

    async def generate(self, request: GenerationRequest) -> Any:
        """Generate and coerce into request.expected_shape.

        TEXT requests take the raw single-shot path; every other shape is
        retried until it parses.
        """
        if request.expected_shape is ExpectedShape.TEXT:
            return await self.run(request)
        return await self._parsed(
            request,
            lambda raw: parsing.parse(raw, request.expected_shape),
            label=f"generate[{request.expected_shape.value}]",
        )

    async def generate_text_with_retry(
        self, context: str, model_class: ModelClass = ModelClass.MEDIUM, **kwargs: Any,
    ) -> str:
        """Text generation retried until the reply is non-empty."""
        request = self.build_request(context, model_class, ExpectedShape.TEXT, **kwargs)
        return await self._parsed(
            request,
            lambda raw: parsing.parse(raw, ExpectedShape.TEXT),
            label="generate_text_with_retry",
        )

    async def generate_should_respond(
        self, context: str, model_class: ModelClass = ModelClass.SMALL,
    ) -> str:
        """Classify whether to RESPOND, IGNORE or STOP."""
        request = self.build_request(context, model_class, ExpectedShape.SHOULD_RESPOND)
        return await self._parsed(
            request, parsing.parse_should_respond, label="generate_should_respond",
        )

    async def generate_true_or_false(
        self, context: str = "", model_class: ModelClass = ModelClass.SMALL,
    ) -> bool:
        """Ask a yes/no question; generation stops at the first newline."""
        probe = self.build_request(context, model_class, ExpectedShape.BOOL)
        stop = list(dict.fromkeys([*(self.resolve_settings(probe).stop or []), "\n"]))
        request = probe.model_copy(update={"stop": stop})
        return await self._parsed(
            request, parsing.parse_boolean, label="generate_true_or_false",
        )

    async def generate_text_array(
        self, context: str, model_class: ModelClass = ModelClass.MEDIUM,
    ) -> list[str]:
        """Generate a JSON array of strings. Empty context returns []."""
        if not context:
            logger.error("generate_text_array context is empty")
            return []
        request = self.build_request(context, model_class, ExpectedShape.STRING_ARRAY)
        return await self._parsed(
            request, parsing.parse_string_array, label="generate_text_array",
        )

    async def generate_object_array(
        self, context: str, model_class: ModelClass = ModelClass.MEDIUM,
    ) -> list[Any]:
        """Generate a JSON array of arbitrary items. Empty context returns []."""
        if not context:
            logger.error("generate_object_array context is empty")
            return []
        request = self.build_request(context, model_class, ExpectedShape.STRING_ARRAY)
        return await self._parsed(
            request, parsing.parse_json_array, label="generate_object_array",
        )

    async def generate_object(
        self, context: str, model_class: ModelClass = ModelClass.MEDIUM,
    ) -> dict[str, Any]:
        """Generate a JSON object.

        Raises:
            InvalidArgumentError: If context is empty.
        """
        if not context:
            raise InvalidArgumentError("generate_object context is empty")
        request = self.build_request(context, model_class, ExpectedShape.OBJECT)
        return await self._parsed(
            request, parsing.parse_json_object, label="generate_object",
        )

    async def generate_message_response(
        self, context: str, model_class: ModelClass = ModelClass.LARGE,
    ) -> dict[str, Any]:
        """Generate a message object; must carry a text field."""
        if not context:
            raise InvalidArgumentError("generate_message_response context is empty")

        def parse_message(raw: str) -> dict[str, Any] | None:
            content = parsing.parse_json_object(raw)
            if content is None or not content.get("text"):
                return None
            return content

        request = self.build_request(context, model_class, ExpectedShape.OBJECT)
        return await self._parsed(
            request, parse_message, label="generate_message_response",
        )

    async def generate_actions(
        self, context: str, model_class: ModelClass = ModelClass.SMALL,
    ) -> ActionResponse:
        """Pick actions from the LIKE/RETWEET/QUOTE/REPLY vocabulary."""
        request = self.build_request(context, model_class, ExpectedShape.ACTION_LIST)
        return await self._parsed(
            request, parsing.parse_action_response, label="generate_actions",
        )

    async def generate_structured(
        self,
        context: str,
        schema: type[M],
        model_class: ModelClass = ModelClass.MEDIUM,
    ) -> M:
        """Generate an object validated against a caller-supplied schema."""
        if not context:
            raise InvalidArgumentError("generate_structured context is empty")
        request = self.build_request(context, model_class, ExpectedShape.OBJECT)
        return await self._parsed(
            request,
            lambda raw: parsing.parse_structured(raw, schema),
            label=f"generate_structured[{schema.__name__}]",
        )

    # --- Internal ---

    async def _parsed(
        self,
        request: GenerationRequest,
        parser: Callable[[str], T | None],
        label: str,
    ) -> T:
        async def attempt() -> T | None:
            raw = await self.run(request)
            logger.debug("Received response for %s: %.100s", label, raw)
            return parser(raw.strip())

        return await with_retry(
            attempt, self._retry_policy, label=label, sleep=self._sleep,
        )
