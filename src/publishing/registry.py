# src/publishing/registry.py - v1
"""Capability-tagged publisher registry.

Publishers register under a capability tag; lookups are typed and return
None when nothing provides the capability.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from gendispatch.publishing.base_publisher import Publisher

if TYPE_CHECKING:
    from gendispatch.config.settings import Settings

logger = logging.getLogger(__name__)

POST_WITH_MEDIA = "post_with_media"


class PublisherRegistry:
    """Map capability tags to publishers."""

    def __init__(self) -> None:
        self._publishers: dict[str, Publisher] = {}

    def register(self, capability: str, publisher: Publisher) -> None:
        if capability in self._publishers:
            logger.warning(
                "Replacing publisher %s for capability %s",
                self._publishers[capability].name, capability,
            )
        self._publishers[capability] = publisher

    def unregister(self, capability: str) -> None:
        self._publishers.pop(capability, None)

    def resolve(self, capability: str) -> Publisher | None:
        return self._publishers.get(capability)

    @property
    def capabilities(self) -> list[str]:
        return sorted(self._publishers)


def resolve_media_publisher(
    registry: PublisherRegistry | None, settings: Settings | None = None,
) -> Publisher | None:
    """Registered post_with_media publisher, else the direct Twitter client.

    Returns None when neither is available.
    """
    if registry is not None:
        publisher = registry.resolve(POST_WITH_MEDIA)
        if publisher is not None:
            return publisher

    if settings is not None and settings.has_twitter_credentials:
        from gendispatch.publishing.twitter_publisher import TwitterPublisher

        logger.info("No registered media publisher, using direct Twitter client")
        return TwitterPublisher.from_settings(settings)

    return None
