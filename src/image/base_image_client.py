# src/image/base_image_client.py - v1
"""Abstract asynchronous image provider interface."""

from __future__ import annotations

from abc import ABC, abstractmethod

from gendispatch.core.models import ImageGenerationSpec, ImageJob


class BaseImageClient(ABC):
    """Submit/poll/fetch contract of a text-to-image provider."""

    @abstractmethod
    async def submit(self, spec: ImageGenerationSpec) -> str:
        """Submit a job and return its identifier."""

    @abstractmethod
    async def status(self, job_id: str) -> ImageJob:
        """Return the current state of a submitted job."""

    @abstractmethod
    async def fetch_asset(self, url: str) -> bytes:
        """Download one produced asset."""

    @property
    @abstractmethod
    def provider_name(self) -> str:
        """Provider identifier (rendernet, ...)."""

    async def close(self) -> None:
        """Release network resources."""
