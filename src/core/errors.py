# src/core/errors.py - v1
"""Exception taxonomy for the dispatch layer.

Parse failures are not exceptions (parsers return None) and image job
failures are reported as ImageGenerationResult, so neither appears here.
"""

from __future__ import annotations


class GenDispatchError(Exception):
    """Base class for all gendispatch errors."""


class InvalidArgumentError(GenDispatchError, ValueError):
    """Bad budget or shape request. Fatal, never retried."""


class UnsupportedProviderError(GenDispatchError, ValueError):
    """Raised when a provider has no registered defaults."""


class ProviderError(GenDispatchError):
    """Transport-level failure surfaced by a provider adapter."""

    def __init__(self, provider: str, original: BaseException):
        self.provider = provider
        self.original = original
        super().__init__(f"Provider '{provider}' failed: {original}")


class RetryExhaustedError(GenDispatchError):
    """All attempts of a bounded retry loop returned no valid result."""

    def __init__(self, label: str, attempts: int, last_error: BaseException | None = None):
        self.label = label
        self.attempts = attempts
        self.last_error = last_error
        detail = f": {last_error}" if last_error is not None else ""
        super().__init__(
            f"'{label}' produced no valid result after {attempts} attempts{detail}"
        )


class PublishError(GenDispatchError):
    """Raised by a publisher client that cannot complete a post."""
