# src/image/rendernet_client.py - v1
"""RenderNet text-to-image client over httpx.

Jobs are submitted with POST /generations and polled with
GET /generations/{id}. Responses wrap their payload in a "data" field.
"""

from __future__ import annotations

import logging
from typing import Any

import httpx

from gendispatch.core.models import ImageGenerationSpec, ImageJob, ImageJobStatus
from gendispatch.image.base_image_client import BaseImageClient

logger = logging.getLogger(__name__)

DEFAULT_URL = "https://api.rendernet.ai/pub/v1/generations"
DEFAULT_MODEL = "JuggernautXL"
DEFAULT_NEGATIVE_PROMPT = "nsfw, deformed, extra limbs, bad anatomy"
DEFAULT_CFG_SCALE = 7
DEFAULT_STEPS = 30
DEFAULT_QUALITY = "Plus"

_STATUS_MAP = {
    "completed": ImageJobStatus.COMPLETED,
    "failed": ImageJobStatus.FAILED,
    "in_progress": ImageJobStatus.IN_PROGRESS,
    "processing": ImageJobStatus.IN_PROGRESS,
    "pending": ImageJobStatus.SUBMITTED,
    "queued": ImageJobStatus.SUBMITTED,
}


class RenderNetClient(BaseImageClient):
    """RenderNet public API client.

    Args:
        api_key: RENDERNET_API_KEY; submission fails when empty.
        model: Default model when the job does not name one.
        url: Generations endpoint.
        timeout: Per-request timeout in seconds.
        client: Pre-built httpx client (tests inject a MockTransport one).
    """

    def __init__(
        self,
        api_key: str = "",
        model: str = DEFAULT_MODEL,
        url: str = DEFAULT_URL,
        timeout: float = 30.0,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self._api_key = api_key
        self._model = model
        self._url = url.rstrip("/")
        self._timeout = timeout
        self._client = client

    @property
    def provider_name(self) -> str:
        return "rendernet"

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self._timeout)
        return self._client

    def _headers(self) -> dict[str, str]:
        return {"X-API-KEY": self._api_key, "Content-Type": "application/json"}

    def build_payload(self, spec: ImageGenerationSpec) -> list[dict[str, Any]]:
        """Request body for one job (the API takes a list of generations)."""
        return [
            {
                "aspect_ratio": spec.aspect_ratio,
                "batch_size": spec.count,
                "cfg_scale": spec.guidance_scale or DEFAULT_CFG_SCALE,
                "model": spec.model or self._model,
                "prompt": {
                    "positive": spec.prompt,
                    "negative": spec.negative_prompt or DEFAULT_NEGATIVE_PROMPT,
                },
                "steps": spec.num_iterations or DEFAULT_STEPS,
                "quality": DEFAULT_QUALITY,
            }
        ]

    async def submit(self, spec: ImageGenerationSpec) -> str:
        if not self._api_key:
            raise ValueError("RENDERNET_API_KEY is not set")

        resp = await self._get_client().post(
            self._url, headers=self._headers(), json=self.build_payload(spec),
        )
        resp.raise_for_status()
        data = resp.json().get("data") or {}
        job_id = data.get("generation_id")
        if not job_id:
            raise ValueError("RenderNet response carries no generation_id")
        logger.info("Submitted RenderNet generation %s", job_id)
        return str(job_id)

    async def status(self, job_id: str) -> ImageJob:
        resp = await self._get_client().get(
            f"{self._url}/{job_id}", headers=self._headers(),
        )
        resp.raise_for_status()
        data = resp.json().get("data") or {}

        raw_status = str(data.get("result") or data.get("status") or "").lower()
        status = _STATUS_MAP.get(raw_status, ImageJobStatus.IN_PROGRESS)
        assets = [
            m["url"] for m in data.get("media") or []
            if m.get("type") == "image" and m.get("url")
        ]
        return ImageJob(
            id=job_id,
            status=status,
            assets=assets,
            error=str(data.get("error") or "failed") if status is ImageJobStatus.FAILED else None,
        )

    async def fetch_asset(self, url: str) -> bytes:
        resp = await self._get_client().get(url)
        resp.raise_for_status()
        return resp.content

    async def close(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None
