# src/publishing/base_publisher.py - v1
"""Abstract publish capability."""

from __future__ import annotations

from abc import ABC, abstractmethod

from gendispatch.core.models import MediaAttachment


class Publisher(ABC):
    """Destination able to post text with optional media."""

    @abstractmethod
    async def publish(self, text: str, media: list[MediaAttachment] | None = None) -> bool:
        """Post `text` with `media`; True when the post went out."""

    @property
    @abstractmethod
    def name(self) -> str:
        """Publisher identifier used in logs."""
