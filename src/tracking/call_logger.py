# src/tracking/call_logger.py - v2
"""Provider call logging: records every dispatch for usage tracking.

Writes GenerationCallRecord entries for post-run analysis.
"""

from __future__ import annotations

import json
import logging
import uuid
from datetime import datetime, timezone
from pathlib import Path

from gendispatch.llm.models import LLMResponse
from gendispatch.tracking.models import GenerationCallRecord

logger = logging.getLogger(__name__)


class CallLogger:
    """Accumulates provider call records during a process lifetime."""

    def __init__(self) -> None:
        self._records: list[GenerationCallRecord] = []

    def record(self, model_class: str, response: LLMResponse) -> GenerationCallRecord:
        """Record a successful provider call."""
        record = GenerationCallRecord(
            call_id=str(uuid.uuid4()),
            timestamp=datetime.now(timezone.utc),
            provider=response.provider,
            model=response.model,
            model_class=model_class,
            input_tokens=response.input_tokens,
            output_tokens=response.output_tokens,
            total_tokens=response.input_tokens + response.output_tokens,
            latency_ms=response.latency_ms,
            status="success",
        )
        self._records.append(record)
        return record

    def record_failure(
        self, provider: str, model: str, model_class: str, error: BaseException,
    ) -> GenerationCallRecord:
        """Record a provider call that raised."""
        record = GenerationCallRecord(
            call_id=str(uuid.uuid4()),
            timestamp=datetime.now(timezone.utc),
            provider=provider,
            model=model,
            model_class=model_class,
            status="failed",
            error=str(error),
        )
        self._records.append(record)
        return record

    @property
    def records(self) -> list[GenerationCallRecord]:
        """All recorded calls."""
        return list(self._records)

    @property
    def total_tokens(self) -> int:
        """Total tokens consumed across all calls."""
        return sum(r.total_tokens for r in self._records)

    @property
    def total_calls(self) -> int:
        return len(self._records)

    @property
    def failed_calls(self) -> int:
        return sum(1 for r in self._records if r.status == "failed")

    def save(self, path: Path) -> None:
        """Save all records to a JSON Lines file."""
        path.parent.mkdir(parents=True, exist_ok=True)
        with path.open("w") as f:
            for record in self._records:
                f.write(json.dumps(record.model_dump(), default=str) + "\n")
        logger.info("Saved %d call records to %s", len(self._records), path)
