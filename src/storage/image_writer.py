# src/storage/image_writer.py - v1
"""Persist generated images to the local filesystem.

Assets arrive as data URLs (data:image/png;base64,...) or plain http(s)
URLs; both are written as scheduled_image_<epoch-ms>.png.
"""

from __future__ import annotations

import base64
import binascii
import logging
import re
from pathlib import Path

import httpx

logger = logging.getLogger(__name__)

_DATA_URL_RE = re.compile(r"^data:(?P<media_type>[\w/+.-]+);base64,(?P<payload>.*)$", re.DOTALL)


def decode_data_url(asset: str) -> tuple[bytes, str]:
    """Return (bytes, media_type) of a base64 data URL.

    Raises:
        ValueError: If the string is not a base64 data URL.
    """
    match = _DATA_URL_RE.match(asset)
    if not match:
        raise ValueError("Not a base64 data URL")
    try:
        data = base64.b64decode(match.group("payload"), validate=True)
    except binascii.Error as e:
        raise ValueError(f"Invalid base64 payload: {e}") from e
    return data, match.group("media_type")


class ImageWriter:
    """Write image assets under `output_dir`.

    Args:
        output_dir: Target directory, created on first write.
        client: Optional httpx client used for URL assets.
    """

    def __init__(
        self, output_dir: Path | str, client: httpx.AsyncClient | None = None,
    ) -> None:
        self._dir = Path(output_dir).expanduser()
        self._client = client

    @property
    def output_dir(self) -> Path:
        return self._dir

    @staticmethod
    def filename_for(timestamp_ms: int) -> str:
        return f"scheduled_image_{timestamp_ms}.png"

    async def load(self, asset: str) -> bytes:
        """Return the raw bytes of a data URL or http(s) URL asset."""
        if asset.startswith("data:"):
            return decode_data_url(asset)[0]
        if asset.startswith(("http://", "https://")):
            if self._client is not None:
                resp = await self._client.get(asset)
            else:
                async with httpx.AsyncClient(timeout=30.0) as client:
                    resp = await client.get(asset)
            resp.raise_for_status()
            return resp.content
        raise ValueError(f"Unsupported image asset: {asset[:32]!r}")

    async def write(self, asset: str, timestamp_ms: int) -> tuple[Path, bytes]:
        """Save one asset and return (path, bytes)."""
        data = await self.load(asset)
        self._dir.mkdir(parents=True, exist_ok=True)
        path = self._dir / self.filename_for(timestamp_ms)
        path.write_bytes(data)
        logger.info("Saved image to %s (%d bytes)", path, len(data))
        return path, data
