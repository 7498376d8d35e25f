# src/publishing/scheduler.py - v2
"""Scheduled image publishing loop.

Each cycle reads the last-publish watermark, draws a random interval and,
when the interval has elapsed, runs prompt -> image -> local file ->
publish. The watermark only moves after a successful publish. A cycle that
raises is retried after a fixed recovery delay.

The loop is a chain of cancellable loop.call_later handles; a cycle always
finishes before the next one is armed, so cycles never overlap.
"""

from __future__ import annotations

import asyncio
import logging
import random
import time
import uuid
from pathlib import Path
from typing import TYPE_CHECKING, Callable

from gendispatch.core.errors import PublishError
from gendispatch.core.models import (
    CycleResult,
    ImageGenerationSpec,
    MediaAttachment,
    ModelClass,
    ModelOverrides,
    PublishWatermark,
)
from gendispatch.logging.context import clear_context, set_cycle_context, set_step
from gendispatch.publishing.caption import alt_text_for, format_caption
from gendispatch.publishing.prompts import (
    FALLBACK_IMAGE_PROMPT,
    IMAGE_PROMPT_TEMPLATE,
    PROMPT_MAX_TOKENS,
    PROMPT_TEMPERATURE,
)
from gendispatch.publishing.registry import PublisherRegistry, resolve_media_publisher

if TYPE_CHECKING:
    from gendispatch.config.settings import Settings
    from gendispatch.image.poller import ImageJobPoller
    from gendispatch.llm.generation import GenerationService
    from gendispatch.storage.image_writer import ImageWriter
    from gendispatch.storage.kv_store import BaseKeyValueStore

logger = logging.getLogger(__name__)

WATERMARK_KEY = "twitter/scheduled/lastImagePost"
RECOVERY_DELAY_S = 15 * 60
DEFAULT_INTERVAL_MIN = 120
DEFAULT_INTERVAL_MAX = 240
DEFAULT_HASHTAG = "GenDispatch"
DEFAULT_CAPTION_MAX_LENGTH = 200


class ScheduledImagePublisher:
    """Periodically generate an image and publish it.

    Args:
        poller: Image job poller.
        store: Key-value store holding the watermark.
        writer: Local image writer.
        generation: Generation service for the image prompt; the fixed
            fallback prompt is used when None.
        registry: Publisher registry (post_with_media capability).
        settings: Application settings (intervals, caption, posting switch,
            direct Twitter credentials).
        clock: Returns epoch seconds.
        rng: Random source for the interval draw.
    """

    def __init__(
        self,
        poller: ImageJobPoller,
        store: BaseKeyValueStore,
        writer: ImageWriter,
        generation: GenerationService | None = None,
        registry: PublisherRegistry | None = None,
        settings: Settings | None = None,
        clock: Callable[[], float] = time.time,
        rng: random.Random | None = None,
    ) -> None:
        self._poller = poller
        self._store = store
        self._writer = writer
        self._generation = generation
        self._registry = registry
        self._settings = settings
        self._clock = clock
        self._rng = rng or random.Random()

        if settings is not None:
            self._interval_min = settings.image_post_interval_min
            self._interval_max = settings.image_post_interval_max
            self._hashtag = settings.image_post_hashtag
            self._caption_max_length = settings.image_caption_max_length
            self._posting_enabled = settings.enable_image_posting
        else:
            self._interval_min = DEFAULT_INTERVAL_MIN
            self._interval_max = DEFAULT_INTERVAL_MAX
            self._hashtag = DEFAULT_HASHTAG
            self._caption_max_length = DEFAULT_CAPTION_MAX_LENGTH
            self._posting_enabled = True

        self._loop: asyncio.AbstractEventLoop | None = None
        self._handle: asyncio.TimerHandle | None = None
        self._task: asyncio.Task[CycleResult] | None = None
        self._running = False
        self._stopped = asyncio.Event()
        self._last_result: CycleResult | None = None

    @property
    def running(self) -> bool:
        return self._running

    @property
    def last_result(self) -> CycleResult | None:
        return self._last_result

    @property
    def generation(self) -> GenerationService | None:
        return self._generation

    # --- Watermark ---

    async def read_watermark(self) -> PublishWatermark:
        data = await self._store.get(WATERMARK_KEY)
        if not data:
            return PublishWatermark()
        return PublishWatermark.model_validate(data)

    async def write_watermark(self, timestamp: float) -> None:
        await self._store.set(
            WATERMARK_KEY, PublishWatermark(last_publish_timestamp=timestamp).model_dump(),
        )

    # --- One cycle ---

    async def run_cycle(self) -> CycleResult:
        """Run one cycle and return the delay before the next one."""
        set_cycle_context(uuid.uuid4().hex[:12])
        now = self._clock()
        try:
            minutes = self._rng.randint(self._interval_min, self._interval_max)
            delay_s = float(minutes * 60)

            watermark = await self.read_watermark()
            published = False
            image_path: Path | None = None
            if now > watermark.last_publish_timestamp + delay_s:
                logger.info("Generating and posting scheduled image")
                published, image_path = await self._generate_and_publish(now)
                if published:
                    await self.write_watermark(now)

            logger.info("Next image generation scheduled in %d minutes", minutes)
            return CycleResult(
                published=published, delay_s=delay_s, now=now, image_path=image_path,
            )
        except Exception as e:
            logger.exception("Error in image generation cycle: %s", e)
            return CycleResult(
                published=False, delay_s=float(RECOVERY_DELAY_S), now=now, error=str(e),
            )
        finally:
            clear_context()

    async def generate_prompt(self) -> str:
        set_step("prompt")
        if self._generation is None:
            return FALLBACK_IMAGE_PROMPT
        prompt = await self._generation.generate_text_with_retry(
            IMAGE_PROMPT_TEMPLATE,
            ModelClass.MEDIUM,
            overrides=ModelOverrides(
                temperature=PROMPT_TEMPERATURE, max_output_tokens=PROMPT_MAX_TOKENS,
            ),
        )
        return prompt.strip()

    async def _generate_and_publish(self, now: float) -> tuple[bool, Path | None]:
        prompt = await self.generate_prompt()
        logger.info("Generated image prompt: %.100s", prompt)

        set_step("image")
        result = await self._poller.generate_image(
            ImageGenerationSpec(prompt=prompt, width=1024, height=1024, count=1)
        )
        if not result.success or not result.assets:
            logger.error("Failed to generate image: %s", result.error or "unknown error")
            return False, None

        set_step("save")
        path, data = await self._writer.write(result.assets[0], int(now * 1000))

        set_step("publish")
        return await self.publish(prompt, data), path

    async def publish(self, prompt: str, image: bytes) -> bool:
        """Publish one image with a caption derived from its prompt."""
        if not self._posting_enabled:
            logger.info("Image posting is disabled")
            return False

        publisher = resolve_media_publisher(self._registry, self._settings)
        if publisher is None:
            logger.error("No publisher provides post_with_media and no Twitter credentials are set")
            return False

        caption = format_caption(prompt, self._caption_max_length, self._hashtag)
        media = [MediaAttachment(data=image, media_type="image/png", alt_text=alt_text_for(prompt))]
        try:
            published = await publisher.publish(caption, media)
        except PublishError as e:
            logger.error("Publishing via %s failed: %s", publisher.name, e)
            return False

        if published:
            logger.info("Published scheduled image via %s", publisher.name)
        else:
            logger.error("Publisher %s did not publish the image", publisher.name)
        return published

    # --- Timer loop ---

    def start(self) -> None:
        """Arm the loop; the first cycle fires immediately.

        Must be called from a running event loop.
        """
        if self._running:
            return
        self._loop = asyncio.get_running_loop()
        self._running = True
        self._stopped.clear()
        logger.info("Starting scheduled image generation")
        self._arm(0.0)

    def stop(self) -> None:
        """Cancel the pending timer and any cycle in progress."""
        self._running = False
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None
        if self._task is not None and not self._task.done():
            self._task.cancel()
        self._task = None
        self._stopped.set()
        logger.info("Scheduled image generation stopped")

    async def wait_stopped(self) -> None:
        await self._stopped.wait()

    async def close(self) -> None:
        """Release the image client and the watermark store."""
        await self._poller.client.close()
        self._store.close()

    def start_if_enabled(self) -> bool:
        """Start only when ENABLE_SCHEDULED_IMAGES is set."""
        if self._settings is None or not self._settings.enable_scheduled_images:
            logger.info("Scheduled image generation is disabled")
            return False
        self.start()
        return True

    def _arm(self, delay_s: float) -> None:
        if self._loop is None:
            raise RuntimeError("scheduler is not started")
        self._handle = self._loop.call_later(delay_s, self._fire)

    def _fire(self) -> None:
        self._handle = None
        if not self._running or self._loop is None:
            return
        self._task = self._loop.create_task(self._cycle_and_rearm())

    async def _cycle_and_rearm(self) -> CycleResult:
        result = await self.run_cycle()
        self._last_result = result
        if self._running:
            self._arm(result.delay_s)
        return result


def create_scheduled_publisher(
    settings: Settings,
    generation: GenerationService | None = None,
    registry: PublisherRegistry | None = None,
    store: BaseKeyValueStore | None = None,
    poller: ImageJobPoller | None = None,
    writer: ImageWriter | None = None,
    clock: Callable[[], float] = time.time,
    rng: random.Random | None = None,
) -> ScheduledImagePublisher:
    """Wire a ScheduledImagePublisher from settings; injected parts win."""
    from gendispatch.image.poller import create_image_poller
    from gendispatch.llm.generation import GenerationService
    from gendispatch.storage.image_writer import ImageWriter
    from gendispatch.storage.kv_factory import create_kv_store

    return ScheduledImagePublisher(
        poller=poller or create_image_poller(settings),
        store=store or create_kv_store(settings),
        writer=writer or ImageWriter(settings.image_output_dir),
        generation=generation or GenerationService(settings),
        registry=registry or PublisherRegistry(),
        settings=settings,
        clock=clock,
        rng=rng,
    )
