# src/llm/client_factory.py - v3
"""Factory: instantiate an LLM client from its adapter family.

Called by ProviderSpec.create_client; several providers share the OpenAI
adapter through a different base URL.
"""

from __future__ import annotations

import importlib
import logging

from gendispatch.core.errors import UnsupportedProviderError
from gendispatch.llm.base_client import BaseLLMClient

logger = logging.getLogger(__name__)

# Registry of adapter family -> adapter class path (lazy import).
_ADAPTER_REGISTRY: dict[str, str] = {
    "openai": "gendispatch.llm.adapters.openai_adapter.OpenAIAdapter",
    "anthropic": "gendispatch.llm.adapters.anthropic_adapter.AnthropicAdapter",
    "google": "gendispatch.llm.adapters.google_adapter.GoogleAdapter",
    "ollama": "gendispatch.llm.adapters.ollama_adapter.OllamaAdapter",
}


def create_llm_client(
    adapter: str,
    model: str,
    api_key: str = "",
    base_url: str = "",
    provider_name: str | None = None,
) -> BaseLLMClient:
    """Instantiate the adapter for an adapter family.

    Args:
        adapter: Adapter family (openai, anthropic, google, ollama).
        model: Model name.
        api_key: Provider API key.
        base_url: Endpoint ('' lets the SDK choose).
        provider_name: Provider reported in responses (defaults to adapter).

    Raises:
        UnsupportedProviderError: If the adapter family is not registered.
    """
    if adapter not in _ADAPTER_REGISTRY:
        raise UnsupportedProviderError(
            f"Unsupported LLM adapter: {adapter!r}. "
            f"Available: {', '.join(sorted(_ADAPTER_REGISTRY))}"
        )

    adapter_cls = _import_class(_ADAPTER_REGISTRY[adapter])
    logger.debug(
        "Creating LLM client: adapter=%s, provider=%s, model=%s",
        adapter, provider_name or adapter, model,
    )
    return adapter_cls(
        model=model,
        api_key=api_key,
        base_url=base_url,
        provider_name=provider_name or adapter,
    )


def register_adapter(name: str, class_path: str) -> None:
    """Register a custom adapter family.

    Args:
        name: Adapter identifier.
        class_path: Fully qualified class path implementing BaseLLMClient.
    """
    _ADAPTER_REGISTRY[name] = class_path
    logger.info("Registered LLM adapter: %s -> %s", name, class_path)


def _import_class(class_path: str) -> type:
    """Dynamically import a class from its fully qualified path."""
    module_path, class_name = class_path.rsplit(".", 1)
    module = importlib.import_module(module_path)
    return getattr(module, class_name)
