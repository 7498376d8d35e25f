# src/llm/router.py - v1
"""Provider routing with 3-level settings cascade.

Resolution order (highest wins):
  1. Character override (MODEL_TEMPERATURE, ... or a ModelOverrides object)
  2. Provider tier setting (TOGETHER_MODEL_LARGE=...)
  3. Static provider default
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from gendispatch.core.errors import UnsupportedProviderError
from gendispatch.core.models import ModelClass, ModelOverrides, ModelProviderName, ModelSettings
from gendispatch.llm.providers import PROVIDERS, ProviderSpec

if TYPE_CHECKING:
    from gendispatch.config.settings import Settings


def get_provider(provider: ModelProviderName | str) -> ProviderSpec:
    """Look up the provider variant.

    Raises:
        UnsupportedProviderError: If the provider has no registered defaults.
    """
    try:
        key = ModelProviderName(provider)
    except ValueError as e:
        raise UnsupportedProviderError(
            f"Unsupported provider: {provider!r}. "
            f"Available: {', '.join(sorted(p.value for p in PROVIDERS))}"
        ) from e

    spec = PROVIDERS.get(key)
    if spec is None:
        raise UnsupportedProviderError(f"Unsupported provider: {key.value!r}")
    return spec


def resolve_model_settings(
    provider: ModelProviderName | str,
    model_class: ModelClass | str,
    settings: Settings | None = None,
    overrides: ModelOverrides | None = None,
) -> ModelSettings:
    """Resolve the ModelSettings serving a (provider, tier) pair.

    Args:
        provider: Provider identifier.
        model_class: Capability tier (small, medium, large).
        settings: Application settings (tier overrides, character overrides).
        overrides: Per-call overrides, applied last.

    Returns:
        A ModelSettings instance. The static defaults are never mutated.

    Raises:
        UnsupportedProviderError: If the provider has no registered defaults.
    """
    spec = get_provider(provider)
    return spec.resolve_settings(ModelClass(model_class), settings, overrides)


def resolve_all(
    settings: Settings | None = None,
) -> dict[ModelProviderName, dict[ModelClass, ModelSettings]]:
    """Resolve every (provider, tier) pair, e.g. for diagnostics."""
    return {
        name: {tier: spec.resolve_settings(tier, settings) for tier in ModelClass}
        for name, spec in PROVIDERS.items()
    }
