# src/logging/context.py - v2
"""Contextual logging support: attach request_id, provider, cycle_id to log records."""

from __future__ import annotations

import contextvars
from dataclasses import dataclass
from typing import Any

# Context variables for structured logging, set per request or per cycle.
_request_id: contextvars.ContextVar[str | None] = contextvars.ContextVar(
    "request_id", default=None
)
_provider: contextvars.ContextVar[str | None] = contextvars.ContextVar(
    "provider", default=None
)
_cycle_id: contextvars.ContextVar[str | None] = contextvars.ContextVar(
    "cycle_id", default=None
)
_step: contextvars.ContextVar[str | None] = contextvars.ContextVar(
    "step", default=None
)


@dataclass
class LogContext:
    """Immutable snapshot of current logging context."""

    request_id: str | None = None
    provider: str | None = None
    cycle_id: str | None = None
    step: str | None = None

    def as_dict(self) -> dict[str, Any]:
        """Return non-None fields as dict for JSON log injection."""
        return {k: v for k, v in self.__dict__.items() if v is not None}


def get_context() -> LogContext:
    """Snapshot current context variables."""
    return LogContext(
        request_id=_request_id.get(),
        provider=_provider.get(),
        cycle_id=_cycle_id.get(),
        step=_step.get(),
    )


def set_request_context(request_id: str, provider: str | None = None) -> None:
    """Set request-level context (called once per generation request)."""
    _request_id.set(request_id)
    _provider.set(provider)


def set_cycle_context(cycle_id: str, step: str | None = None) -> None:
    """Set publishing-cycle context."""
    _cycle_id.set(cycle_id)
    _step.set(step)


def set_step(step: str | None) -> None:
    _step.set(step)


def clear_context() -> None:
    """Reset all context variables."""
    _request_id.set(None)
    _provider.set(None)
    _cycle_id.set(None)
    _step.set(None)
