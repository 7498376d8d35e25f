# src/llm/retry.py - v3
"""Retry-until-valid loop with exponential backoff.

An attempt returns a value (done), None (the reply did not parse: wait and
ask again) or raises. Raised errors are logged and retried; the policy can
propagate ProviderError instead.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Awaitable, Callable, TypeVar

from gendispatch.core.errors import (
    InvalidArgumentError,
    ProviderError,
    RetryExhaustedError,
    UnsupportedProviderError,
)

if TYPE_CHECKING:
    from gendispatch.config.settings import Settings

logger = logging.getLogger(__name__)

T = TypeVar("T")

Sleep = Callable[[float], Awaitable[object]]


@dataclass(frozen=True)
class RetryPolicy:
    """Retry configuration shared by every classification entry point.

    Attributes:
        max_attempts: Attempt ceiling; None retries forever.
        base_delay_s: First wait, doubled (backoff_factor) after each failure.
        backoff_factor: Multiplier applied to the delay after each wait.
        propagate_provider_errors: Re-raise ProviderError instead of retrying;
            other attempt exceptions are still retried.
    """

    max_attempts: int | None = 6
    base_delay_s: float = 1.0
    backoff_factor: float = 2.0
    propagate_provider_errors: bool = False

    def __post_init__(self) -> None:
        if self.max_attempts is not None and self.max_attempts < 1:
            raise ValueError("max_attempts must be >= 1 or None")

    @classmethod
    def from_settings(cls, settings: Settings) -> RetryPolicy:
        """Build from RETRY_* settings (RETRY_MAX_ATTEMPTS=0 means unbounded)."""
        return cls(
            max_attempts=settings.retry_max_attempts or None,
            base_delay_s=settings.retry_base_delay_s,
            backoff_factor=settings.retry_backoff_factor,
            propagate_provider_errors=settings.retry_propagate_provider_errors,
        )

    def delay_for(self, attempt: int) -> float:
        """Wait after the given failed attempt (0-based)."""
        return self.base_delay_s * (self.backoff_factor ** attempt)


UNBOUNDED = RetryPolicy(max_attempts=None)


async def with_retry(
    attempt: Callable[[], Awaitable[T | None]],
    policy: RetryPolicy | None = None,
    *,
    label: str = "generation",
    sleep: Sleep = asyncio.sleep,
) -> T:
    """Call `attempt` until it returns a non-None value.

    Args:
        attempt: Coroutine factory producing a value or None.
        policy: Retry policy (default: 6 attempts, 1s doubling backoff).
        label: Name used in logs and in RetryExhaustedError.
        sleep: Awaitable sleep, injectable for tests.

    Raises:
        RetryExhaustedError: If max_attempts is reached without a value.
    """
    policy = policy or RetryPolicy()
    attempts = 0
    last_error: Exception | None = None

    while True:
        try:
            result = await attempt()
        except (InvalidArgumentError, UnsupportedProviderError):
            raise
        except Exception as e:
            if policy.propagate_provider_errors and isinstance(e, ProviderError):
                raise
            logger.error("Error in %s: %s", label, e)
            last_error = e
            result = None
        else:
            if result is not None:
                return result
            logger.debug("%s produced no valid result", label)

        attempts += 1
        if policy.max_attempts is not None and attempts >= policy.max_attempts:
            raise RetryExhaustedError(label, attempts, last_error)

        delay = policy.delay_for(attempts - 1)
        logger.info("Retrying %s in %.1fs (attempt %d)", label, delay, attempts)
        await sleep(delay)
