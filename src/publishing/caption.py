# src/publishing/caption.py - v1
"""Caption formatting for image posts."""

from __future__ import annotations

DEFAULT_MAX_LENGTH = 200
ELLIPSIS = "..."
ALT_TEXT_LENGTH = 50


def format_caption(text: str, max_length: int = DEFAULT_MAX_LENGTH, hashtag: str | None = None) -> str:
    """Truncate to max_length (ellipsis included) and append " #hashtag"."""
    caption = text.strip()
    if len(caption) > max_length:
        caption = caption[: max_length - len(ELLIPSIS)] + ELLIPSIS
    if hashtag:
        caption = f"{caption} #{hashtag.lstrip('#')}"
    return caption


def alt_text_for(text: str) -> str:
    return text.strip()[:ALT_TEXT_LENGTH]
