# tests/unit/publishing/test_scheduler.py - v2
"""Tests for publishing/scheduler.py - publishing cycle and timer loop."""

from __future__ import annotations

import asyncio
import base64
from unittest.mock import AsyncMock, MagicMock

import pytest

from gendispatch.config.settings import Settings
from gendispatch.core.errors import PublishError, RetryExhaustedError
from gendispatch.core.models import CycleResult, ImageGenerationResult, ImageJobOutcome
from gendispatch.publishing.base_publisher import Publisher
from gendispatch.publishing.prompts import FALLBACK_IMAGE_PROMPT
from gendispatch.publishing.registry import POST_WITH_MEDIA, PublisherRegistry
from gendispatch.publishing.scheduler import (
    RECOVERY_DELAY_S,
    WATERMARK_KEY,
    ScheduledImagePublisher,
    create_scheduled_publisher,
)
from gendispatch.storage.image_writer import ImageWriter
from gendispatch.storage.kv_store import JsonKeyValueStore

NOW = 1_700_000_000.0
PNG = b"\x89PNGdata"
ASSET = "data:image/png;base64," + base64.b64encode(PNG).decode()


class FakeClock:
    def __init__(self, now: float = NOW) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def rng() -> MagicMock:
    rng = MagicMock()
    rng.randint.return_value = 150
    return rng


@pytest.fixture
def poller() -> MagicMock:
    poller = MagicMock()
    poller.generate_image = AsyncMock(return_value=ImageGenerationResult(
        success=True, outcome=ImageJobOutcome.COMPLETED, assets=[ASSET], job_id="job-1",
    ))
    return poller


@pytest.fixture
def generation() -> MagicMock:
    generation = MagicMock()
    generation.generate_text_with_retry = AsyncMock(return_value="  A lighthouse at dusk  ")
    return generation


@pytest.fixture
def media_publisher() -> MagicMock:
    publisher = MagicMock(spec=Publisher)
    publisher.name = "fake"
    publisher.publish = AsyncMock(return_value=True)
    return publisher


@pytest.fixture
def store(tmp_path) -> JsonKeyValueStore:
    return JsonKeyValueStore(tmp_path / "kv")


@pytest.fixture
def make_scheduler(tmp_path, poller, generation, media_publisher, store, clock, rng):
    def _make(settings: Settings | None = None, **kwargs) -> ScheduledImagePublisher:
        registry = PublisherRegistry()
        registry.register(POST_WITH_MEDIA, media_publisher)
        params = {
            "poller": poller,
            "store": store,
            "writer": ImageWriter(tmp_path / "images"),
            "generation": generation,
            "registry": registry,
            "settings": settings or Settings(_env_file=None, image_post_hashtag="Art"),
            "clock": clock,
            "rng": rng,
        }
        params.update(kwargs)
        return ScheduledImagePublisher(**params)

    return _make


class TestRunCycle:
    @pytest.mark.asyncio
    async def test_first_cycle_publishes(self, make_scheduler, store, media_publisher, tmp_path):
        result = await make_scheduler().run_cycle()

        assert result.published
        assert result.delay_s == 150 * 60
        assert result.error is None
        assert result.image_path == tmp_path / "images" / f"scheduled_image_{int(NOW * 1000)}.png"
        assert result.image_path.read_bytes() == PNG
        assert await store.get(WATERMARK_KEY) == {"last_publish_timestamp": NOW}

        caption, media = media_publisher.publish.await_args.args
        assert caption == "A lighthouse at dusk #Art"
        assert media[0].data == PNG
        assert media[0].alt_text == "A lighthouse at dusk"

    @pytest.mark.asyncio
    async def test_interval_drawn_inclusive(self, make_scheduler, rng):
        await make_scheduler().run_cycle()
        rng.randint.assert_called_once_with(120, 240)

    @pytest.mark.asyncio
    async def test_recent_watermark_skips(self, make_scheduler, store, generation, poller):
        await store.set(WATERMARK_KEY, {"last_publish_timestamp": NOW - 60})
        result = await make_scheduler().run_cycle()

        assert not result.published
        assert result.delay_s == 150 * 60
        generation.generate_text_with_retry.assert_not_awaited()
        poller.generate_image.assert_not_awaited()
        assert await store.get(WATERMARK_KEY) == {"last_publish_timestamp": NOW - 60}

    @pytest.mark.asyncio
    async def test_publishes_at_most_once_per_interval(self, make_scheduler, clock, media_publisher):
        scheduler = make_scheduler()
        assert (await scheduler.run_cycle()).published

        clock.now = NOW + 150 * 60 - 1
        assert not (await scheduler.run_cycle()).published

        clock.now = NOW + 150 * 60 + 1
        assert (await scheduler.run_cycle()).published
        assert media_publisher.publish.await_count == 2

    @pytest.mark.asyncio
    async def test_image_failure_keeps_watermark(self, make_scheduler, poller, store, media_publisher):
        poller.generate_image.return_value = ImageGenerationResult(
            success=False, outcome=ImageJobOutcome.TIMEOUT, error="timed out",
        )
        result = await make_scheduler().run_cycle()

        assert not result.published
        assert result.delay_s == 150 * 60
        assert result.error is None
        assert await store.get(WATERMARK_KEY) is None
        media_publisher.publish.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_publisher_error_keeps_watermark(self, make_scheduler, media_publisher, store):
        media_publisher.publish.side_effect = PublishError("rate limited")
        result = await make_scheduler().run_cycle()

        assert not result.published
        assert result.delay_s == 150 * 60
        assert await store.get(WATERMARK_KEY) is None

    @pytest.mark.asyncio
    async def test_publisher_declines(self, make_scheduler, media_publisher, store):
        media_publisher.publish.return_value = False
        assert not (await make_scheduler().run_cycle()).published
        assert await store.get(WATERMARK_KEY) is None

    @pytest.mark.asyncio
    async def test_posting_disabled(self, make_scheduler, media_publisher, store):
        settings = Settings(_env_file=None, enable_image_posting=False)
        result = await make_scheduler(settings).run_cycle()

        assert not result.published
        assert result.image_path is not None
        media_publisher.publish.assert_not_awaited()
        assert await store.get(WATERMARK_KEY) is None

    @pytest.mark.asyncio
    async def test_no_publisher_available(self, make_scheduler, store):
        result = await make_scheduler(registry=PublisherRegistry()).run_cycle()
        assert not result.published
        assert await store.get(WATERMARK_KEY) is None

    @pytest.mark.asyncio
    async def test_error_uses_recovery_delay(self, make_scheduler, generation, store):
        generation.generate_text_with_retry.side_effect = RetryExhaustedError("prompt", 6)
        result = await make_scheduler().run_cycle()

        assert not result.published
        assert result.delay_s == RECOVERY_DELAY_S == 900
        assert "prompt" in result.error
        assert await store.get(WATERMARK_KEY) is None

    @pytest.mark.asyncio
    async def test_fallback_prompt_without_generation(self, make_scheduler, poller):
        await make_scheduler(generation=None).run_cycle()
        spec = poller.generate_image.await_args.args[0]
        assert spec.prompt == FALLBACK_IMAGE_PROMPT
        assert (spec.width, spec.height, spec.count) == (1024, 1024, 1)

    @pytest.mark.asyncio
    async def test_prompt_overrides(self, make_scheduler, generation):
        await make_scheduler().run_cycle()
        overrides = generation.generate_text_with_retry.await_args.kwargs["overrides"]
        assert overrides.temperature == 0.8
        assert overrides.max_output_tokens == 200


class TestTimerLoop:
    @pytest.mark.asyncio
    async def test_start_runs_first_cycle_and_rearms(self, make_scheduler):
        scheduler = make_scheduler()
        scheduler.run_cycle = AsyncMock(
            return_value=CycleResult(published=False, delay_s=3600.0, now=NOW)
        )
        scheduler.start()
        assert scheduler.running
        for _ in range(5):
            await asyncio.sleep(0)

        scheduler.run_cycle.assert_awaited_once()
        assert scheduler.last_result.delay_s == 3600.0
        assert scheduler._handle is not None
        scheduler.stop()
        assert not scheduler.running
        assert scheduler._handle is None

    @pytest.mark.asyncio
    async def test_start_twice_is_noop(self, make_scheduler):
        scheduler = make_scheduler()
        scheduler.run_cycle = AsyncMock(
            return_value=CycleResult(published=False, delay_s=3600.0, now=NOW)
        )
        scheduler.start()
        scheduler.start()
        for _ in range(5):
            await asyncio.sleep(0)
        scheduler.run_cycle.assert_awaited_once()
        scheduler.stop()

    @pytest.mark.asyncio
    async def test_stop_before_first_fire(self, make_scheduler):
        scheduler = make_scheduler()
        scheduler.run_cycle = AsyncMock()
        scheduler.start()
        scheduler.stop()
        for _ in range(3):
            await asyncio.sleep(0)
        scheduler.run_cycle.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_start_if_enabled(self, make_scheduler):
        scheduler = make_scheduler(Settings(_env_file=None))
        assert scheduler.start_if_enabled() is False
        assert not scheduler.running

    @pytest.mark.asyncio
    async def test_wait_stopped(self, make_scheduler):
        scheduler = make_scheduler()
        scheduler.run_cycle = AsyncMock(
            return_value=CycleResult(published=False, delay_s=3600.0, now=NOW)
        )
        scheduler.start()
        asyncio.get_running_loop().call_later(0.01, scheduler.stop)
        await asyncio.wait_for(scheduler.wait_stopped(), timeout=1.0)


class TestFactory:
    def test_wires_components(self, tmp_path):
        settings = Settings(
            _env_file=None, kv_root=tmp_path / "kv", image_output_dir=tmp_path / "img",
        )
        scheduler = create_scheduled_publisher(settings)
        assert isinstance(scheduler, ScheduledImagePublisher)
        assert not scheduler.running
        assert scheduler.generation is not None
        assert scheduler.generation.call_logger is not None
        assert scheduler.generation.call_logger.total_calls == 0


class TestLifecycle:
    def test_arm_without_start_raises(self, make_scheduler):
        with pytest.raises(RuntimeError):
            make_scheduler()._arm(1.0)

    @pytest.mark.asyncio
    async def test_close_releases_client_and_store(self, make_scheduler, poller):
        store = MagicMock()
        poller.client.close = AsyncMock()
        scheduler = make_scheduler(store=store)
        await scheduler.close()
        poller.client.close.assert_awaited_once()
        store.close.assert_called_once()
