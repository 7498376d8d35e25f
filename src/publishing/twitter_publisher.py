# src/publishing/twitter_publisher.py - v1
"""Direct Twitter/X publisher using tweepy.

Media goes through the v1.1 upload endpoint (tweepy.API.media_upload);
the post itself through the v2 endpoint (tweepy.Client.create_tweet).
tweepy is synchronous, so calls run in a worker thread.
"""

from __future__ import annotations

import asyncio
import io
import logging
from typing import TYPE_CHECKING, Any

from gendispatch.core.errors import PublishError
from gendispatch.core.models import MediaAttachment
from gendispatch.publishing.base_publisher import Publisher

if TYPE_CHECKING:
    from gendispatch.config.settings import Settings

logger = logging.getLogger(__name__)

_EXTENSIONS = {"image/png": "png", "image/jpeg": "jpg", "image/gif": "gif", "image/webp": "webp"}


class TwitterPublisher(Publisher):
    """Post tweets with images using OAuth 1.0a user credentials."""

    def __init__(
        self,
        api_key: str,
        api_secret: str,
        access_token: str,
        access_token_secret: str,
        username: str = "",
    ) -> None:
        self._credentials = {
            "consumer_key": api_key,
            "consumer_secret": api_secret,
            "access_token": access_token,
            "access_token_secret": access_token_secret,
        }
        self._username = username
        self._api: Any = None
        self._client: Any = None

    @classmethod
    def from_settings(cls, settings: Settings) -> TwitterPublisher:
        return cls(
            api_key=settings.twitter_api_key,
            api_secret=settings.twitter_api_secret,
            access_token=settings.twitter_access_token,
            access_token_secret=settings.twitter_access_token_secret,
            username=settings.twitter_username,
        )

    @property
    def name(self) -> str:
        return f"twitter:{self._username}" if self._username else "twitter"

    def _ensure_clients(self) -> None:
        if self._client is not None:
            return
        import tweepy

        creds = self._credentials
        auth = tweepy.OAuth1UserHandler(
            creds["consumer_key"], creds["consumer_secret"],
            creds["access_token"], creds["access_token_secret"],
        )
        self._api = tweepy.API(auth)
        self._client = tweepy.Client(**creds)

    def _post(self, text: str, media: list[MediaAttachment]) -> str:
        self._ensure_clients()
        media_ids: list[str] = []
        for index, item in enumerate(media):
            ext = _EXTENSIONS.get(item.media_type, "png")
            uploaded = self._api.media_upload(
                filename=f"media_{index}.{ext}", file=io.BytesIO(item.data),
            )
            if item.alt_text:
                self._api.create_media_metadata(uploaded.media_id, item.alt_text)
            media_ids.append(str(uploaded.media_id))

        response = self._client.create_tweet(text=text, media_ids=media_ids or None)
        return str(response.data["id"])

    async def publish(self, text: str, media: list[MediaAttachment] | None = None) -> bool:
        """Post the tweet.

        Raises:
            PublishError: If upload or posting failed.
        """
        try:
            tweet_id = await asyncio.to_thread(self._post, text, list(media or []))
        except Exception as e:
            raise PublishError(f"Twitter post failed: {e}") from e
        logger.info("Published tweet %s with %d media item(s)", tweet_id, len(media or []))
        return True
