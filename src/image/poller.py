# src/image/poller.py - v1
"""Submit an image job, poll it to a terminal state, collect its assets.

Every outcome is a structured ImageGenerationResult; nothing raises past
generate_image. Assets come back as data URLs so callers never need the
provider's download endpoint.
"""

from __future__ import annotations

import asyncio
import base64
import logging
from typing import TYPE_CHECKING

from gendispatch.core.models import (
    ImageGenerationResult,
    ImageGenerationSpec,
    ImageJobOutcome,
    ImageJobStatus,
)
from gendispatch.image.base_image_client import BaseImageClient
from gendispatch.llm.retry import Sleep

if TYPE_CHECKING:
    from gendispatch.config.settings import Settings

logger = logging.getLogger(__name__)

DEFAULT_POLL_INTERVAL_S = 2.0
DEFAULT_MAX_ATTEMPTS = 30


def to_data_url(data: bytes, media_type: str = "image/png") -> str:
    return f"data:{media_type};base64,{base64.b64encode(data).decode('ascii')}"


class ImageJobPoller:
    """Drive one image job from submission to a terminal outcome.

    Args:
        client: Image provider.
        poll_interval_s: Wait before each status poll.
        max_attempts: Poll budget; exhausting it yields a TIMEOUT outcome.
        sleep: Awaitable sleep, injectable for tests.
    """

    def __init__(
        self,
        client: BaseImageClient,
        poll_interval_s: float = DEFAULT_POLL_INTERVAL_S,
        max_attempts: int = DEFAULT_MAX_ATTEMPTS,
        sleep: Sleep = asyncio.sleep,
    ) -> None:
        if max_attempts < 1:
            raise ValueError("max_attempts must be >= 1")
        self._client = client
        self._interval = poll_interval_s
        self._max_attempts = max_attempts
        self._sleep = sleep

    @property
    def client(self) -> BaseImageClient:
        return self._client

    async def generate_image(self, spec: ImageGenerationSpec) -> ImageGenerationResult:
        try:
            job_id = await self._client.submit(spec)
        except Exception as e:
            logger.error("Image submission to %s failed: %s", self._client.provider_name, e)
            return ImageGenerationResult(
                success=False, outcome=ImageJobOutcome.FAILED, error=str(e),
            )

        for attempt in range(1, self._max_attempts + 1):
            await self._sleep(self._interval)
            try:
                job = await self._client.status(job_id)
            except Exception as e:
                logger.warning("Status poll %d for job %s failed: %s", attempt, job_id, e)
                continue

            if job.status is ImageJobStatus.COMPLETED:
                return await self._collect(job_id, job.assets, attempt)
            if job.status is ImageJobStatus.FAILED:
                logger.error("Image job %s failed: %s", job_id, job.error)
                return ImageGenerationResult(
                    success=False,
                    outcome=ImageJobOutcome.FAILED,
                    error=job.error or "Image generation failed",
                    job_id=job_id,
                    attempts=attempt,
                )
            logger.debug("Image job %s still %s (poll %d)", job_id, job.status.value, attempt)

        logger.error("Image job %s timed out after %d polls", job_id, self._max_attempts)
        return ImageGenerationResult(
            success=False,
            outcome=ImageJobOutcome.TIMEOUT,
            error=f"Image generation timed out after {self._max_attempts} polls",
            job_id=job_id,
            attempts=self._max_attempts,
        )

    async def _collect(
        self, job_id: str, urls: list[str], attempts: int,
    ) -> ImageGenerationResult:
        if not urls:
            return ImageGenerationResult(
                success=False,
                outcome=ImageJobOutcome.FAILED,
                error="Job completed without image assets",
                job_id=job_id,
                attempts=attempts,
            )
        try:
            assets = [to_data_url(await self._client.fetch_asset(url)) for url in urls]
        except Exception as e:
            logger.error("Fetching assets for job %s failed: %s", job_id, e)
            return ImageGenerationResult(
                success=False,
                outcome=ImageJobOutcome.FAILED,
                error=str(e),
                job_id=job_id,
                attempts=attempts,
            )

        logger.info("Image job %s completed with %d asset(s)", job_id, len(assets))
        return ImageGenerationResult(
            success=True,
            outcome=ImageJobOutcome.COMPLETED,
            assets=assets,
            job_id=job_id,
            attempts=attempts,
        )


def create_image_poller(
    settings: Settings | None = None, sleep: Sleep = asyncio.sleep,
) -> ImageJobPoller:
    """Build the configured image client and its poller."""
    from gendispatch.image.rendernet_client import DEFAULT_URL, RenderNetClient

    if settings is None:
        return ImageJobPoller(RenderNetClient(), sleep=sleep)

    client = RenderNetClient(
        api_key=settings.rendernet_api_key,
        model=settings.rendernet_model,
        url=settings.rendernet_url or DEFAULT_URL,
    )
    return ImageJobPoller(
        client,
        poll_interval_s=settings.image_poll_interval_s,
        max_attempts=settings.image_poll_max_attempts,
        sleep=sleep,
    )
