# tests/unit/image/test_poller.py - v1
"""Tests for image/poller.py - submit/poll/fetch outcomes."""

from __future__ import annotations

import base64
from unittest.mock import AsyncMock, MagicMock

import pytest

from gendispatch.config.settings import Settings
from gendispatch.core.models import (
    ImageGenerationSpec,
    ImageJob,
    ImageJobOutcome,
    ImageJobStatus,
)
from gendispatch.image.base_image_client import BaseImageClient
from gendispatch.image.poller import ImageJobPoller, create_image_poller, to_data_url
from gendispatch.image.rendernet_client import RenderNetClient

SPEC = ImageGenerationSpec(prompt="a lighthouse")


def _job(status: ImageJobStatus, assets=None, error=None) -> ImageJob:
    return ImageJob(id="job-1", status=status, assets=assets or [], error=error)


@pytest.fixture
def image_client() -> MagicMock:
    client = MagicMock(spec=BaseImageClient)
    client.provider_name = "fake"
    client.submit = AsyncMock(return_value="job-1")
    client.status = AsyncMock()
    client.fetch_asset = AsyncMock(return_value=b"png-bytes")
    return client


@pytest.fixture
def poller(image_client, recording_sleep) -> ImageJobPoller:
    return ImageJobPoller(image_client, poll_interval_s=2.0, max_attempts=5, sleep=recording_sleep)


class TestGenerateImage:
    @pytest.mark.asyncio
    async def test_completed(self, poller, image_client, recording_sleep):
        image_client.status.side_effect = [
            _job(ImageJobStatus.IN_PROGRESS),
            _job(ImageJobStatus.COMPLETED, ["https://cdn/a.png"]),
        ]
        result = await poller.generate_image(SPEC)

        assert result.success
        assert result.outcome is ImageJobOutcome.COMPLETED
        assert result.attempts == 2
        assert result.assets == ["data:image/png;base64," + base64.b64encode(b"png-bytes").decode()]
        assert recording_sleep.delays == [2.0, 2.0]

    @pytest.mark.asyncio
    async def test_failed_stops_immediately(self, poller, image_client):
        image_client.status.side_effect = [_job(ImageJobStatus.FAILED, error="nsfw")]
        result = await poller.generate_image(SPEC)

        assert not result.success
        assert result.outcome is ImageJobOutcome.FAILED
        assert result.error == "nsfw"
        assert image_client.status.await_count == 1

    @pytest.mark.asyncio
    async def test_timeout(self, poller, image_client, recording_sleep):
        image_client.status.return_value = _job(ImageJobStatus.IN_PROGRESS)
        result = await poller.generate_image(SPEC)

        assert not result.success
        assert result.outcome is ImageJobOutcome.TIMEOUT
        assert image_client.status.await_count == 5
        assert len(recording_sleep.delays) == 5

    @pytest.mark.asyncio
    async def test_submission_error(self, poller, image_client):
        image_client.submit.side_effect = ValueError("RENDERNET_API_KEY is not set")
        result = await poller.generate_image(SPEC)

        assert result.outcome is ImageJobOutcome.FAILED
        assert "RENDERNET_API_KEY" in result.error
        image_client.status.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_transient_poll_error_counts_as_attempt(self, poller, image_client):
        image_client.status.side_effect = [
            ConnectionError("blip"),
            _job(ImageJobStatus.COMPLETED, ["https://cdn/a.png"]),
        ]
        result = await poller.generate_image(SPEC)
        assert result.success
        assert result.attempts == 2

    @pytest.mark.asyncio
    async def test_completed_without_assets(self, poller, image_client):
        image_client.status.return_value = _job(ImageJobStatus.COMPLETED)
        result = await poller.generate_image(SPEC)
        assert result.outcome is ImageJobOutcome.FAILED

    @pytest.mark.asyncio
    async def test_asset_fetch_failure(self, poller, image_client):
        image_client.status.return_value = _job(ImageJobStatus.COMPLETED, ["https://cdn/a.png"])
        image_client.fetch_asset.side_effect = OSError("404")
        result = await poller.generate_image(SPEC)
        assert not result.success
        assert result.job_id == "job-1"


class TestHelpers:
    def test_data_url(self):
        assert to_data_url(b"abc") == "data:image/png;base64,YWJj"

    def test_invalid_budget(self, image_client):
        with pytest.raises(ValueError):
            ImageJobPoller(image_client, max_attempts=0)

    def test_factory_uses_settings(self):
        settings = Settings(
            _env_file=None, rendernet_api_key="k",
            image_poll_interval_s=0.5, image_poll_max_attempts=3,
        )
        poller = create_image_poller(settings)
        assert isinstance(poller.client, RenderNetClient)
