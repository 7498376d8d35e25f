# src/logging/logger.py - v2
"""Logging setup: JSON and text formatters, optional rotating log file.

Library modules log through logging.getLogger(__name__); only the process
entry point calls setup_logging().
"""

from __future__ import annotations

import json
import logging
import re
import sys
from datetime import datetime, timezone
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import TYPE_CHECKING, Any

from gendispatch.logging.context import get_context

if TYPE_CHECKING:
    from gendispatch.config.settings import Settings

ROOT_LOGGER = "gendispatch"

# SDK loggers that log every HTTP request at INFO.
_NOISY_LOGGERS = ("httpx", "httpcore", "openai", "anthropic", "tweepy")

_SIZE_UNITS = {"KB": 1024, "MB": 1024**2, "GB": 1024**3}


class JsonFormatter(logging.Formatter):
    """One JSON object per line, with the current logging context."""

    def format(self, record: logging.LogRecord) -> str:
        entry: dict[str, Any] = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        context = get_context().as_dict()
        if context:
            entry["context"] = context

        data = getattr(record, "data", None)
        if data:
            entry["data"] = data

        if record.exc_info and record.exc_info[1] is not None:
            entry["exception"] = self.formatException(record.exc_info)

        return json.dumps(entry, default=str)


class TextFormatter(logging.Formatter):
    """Human-readable single-line formatter for development."""

    def format(self, record: logging.LogRecord) -> str:
        ctx = get_context()
        parts = [
            datetime.now(timezone.utc).strftime("%Y-%m-%d %H:%M:%S"),
            f"[{record.levelname:8s}]",
            record.name,
        ]
        if ctx.cycle_id:
            parts.append(f"<{ctx.cycle_id}>")
        if ctx.provider:
            parts.append(f"[{ctx.provider}]")
        if ctx.step:
            parts.append(f"({ctx.step})")
        parts.append(f"- {record.getMessage()}")
        line = " ".join(parts)
        if record.exc_info and record.exc_info[1] is not None:
            line += "\n" + self.formatException(record.exc_info)
        return line


def parse_size(size: str) -> int:
    """Parse a size string like '10MB' into bytes."""
    match = re.fullmatch(r"(\d+)\s*(KB|MB|GB)", size.strip(), re.IGNORECASE)
    if not match:
        raise ValueError(f"Invalid size format: {size!r}. Use e.g. '10MB'.")
    return int(match.group(1)) * _SIZE_UNITS[match.group(2).upper()]


def setup_logging(
    level: str = "INFO",
    log_format: str = "json",
    log_file: str | Path | None = None,
    rotation: str = "10MB",
    retention: int = 30,
) -> logging.Logger:
    """Configure the gendispatch root logger.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR).
        log_format: "json" or "text".
        log_file: Optional path of a rotating log file.
        rotation: Max file size before rotation (e.g. "10MB").
        retention: Number of rotated files to keep.

    Returns:
        The configured root logger.
    """
    root = logging.getLogger(ROOT_LOGGER)
    root.setLevel(getattr(logging, level.upper(), logging.INFO))
    root.handlers.clear()

    formatter: logging.Formatter = (
        JsonFormatter() if log_format == "json" else TextFormatter()
    )

    console = logging.StreamHandler(sys.stderr)
    console.setFormatter(formatter)
    root.addHandler(console)

    if log_file:
        path = Path(log_file).expanduser()
        path.parent.mkdir(parents=True, exist_ok=True)
        file_handler = RotatingFileHandler(
            filename=str(path),
            maxBytes=parse_size(rotation),
            backupCount=retention,
            encoding="utf-8",
        )
        file_handler.setFormatter(formatter)
        root.addHandler(file_handler)

    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    return root


def setup_logging_from_settings(settings: Settings, verbose: bool = False) -> logging.Logger:
    """Configure logging from LOG_* settings; verbose forces DEBUG."""
    return setup_logging(
        level="DEBUG" if verbose else settings.log_level,
        log_format=settings.log_format,
        log_file=settings.log_file,
        rotation=settings.log_rotation,
        retention=settings.log_retention,
    )
