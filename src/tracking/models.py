# src/tracking/models.py - v2
"""Tracking domain models: GenerationCallRecord."""

from __future__ import annotations

from datetime import datetime
from typing import Literal

from pydantic import BaseModel, ConfigDict


class GenerationCallRecord(BaseModel):
    """Individual provider call log entry."""

    model_config = ConfigDict(protected_namespaces=())

    call_id: str
    timestamp: datetime
    provider: str
    model: str
    model_class: str
    input_tokens: int = 0
    output_tokens: int = 0
    total_tokens: int = 0
    latency_ms: int = 0
    status: Literal["success", "failed"]
    error: str | None = None
