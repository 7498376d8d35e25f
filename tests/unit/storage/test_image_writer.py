# tests/unit/storage/test_image_writer.py - v1
"""Tests for storage/image_writer.py."""

from __future__ import annotations

import base64

import httpx
import pytest

from gendispatch.storage.image_writer import ImageWriter, decode_data_url

PNG = b"\x89PNG\r\n\x1a\nfake"
DATA_URL = "data:image/png;base64," + base64.b64encode(PNG).decode()


class TestDecodeDataUrl:
    def test_decodes(self):
        assert decode_data_url(DATA_URL) == (PNG, "image/png")

    @pytest.mark.parametrize("asset", ["https://cdn/x.png", "data:image/png;base64,@@@"])
    def test_rejects(self, asset):
        with pytest.raises(ValueError):
            decode_data_url(asset)


class TestImageWriter:
    @pytest.mark.asyncio
    async def test_writes_data_url(self, tmp_path):
        writer = ImageWriter(tmp_path / "images")
        path, data = await writer.write(DATA_URL, 1700000000123)

        assert path == tmp_path / "images" / "scheduled_image_1700000000123.png"
        assert path.read_bytes() == PNG
        assert data == PNG

    @pytest.mark.asyncio
    async def test_downloads_url(self, tmp_path):
        http = httpx.AsyncClient(transport=httpx.MockTransport(
            lambda r: httpx.Response(200, content=PNG)
        ))
        writer = ImageWriter(tmp_path, client=http)
        path, _ = await writer.write("https://cdn/x.png", 1)
        assert path.read_bytes() == PNG

    @pytest.mark.asyncio
    async def test_download_error(self, tmp_path):
        http = httpx.AsyncClient(transport=httpx.MockTransport(lambda r: httpx.Response(404)))
        writer = ImageWriter(tmp_path, client=http)
        with pytest.raises(httpx.HTTPStatusError):
            await writer.write("https://cdn/x.png", 1)

    @pytest.mark.asyncio
    async def test_unsupported_asset(self, tmp_path):
        with pytest.raises(ValueError):
            await ImageWriter(tmp_path).write("ftp://host/x.png", 1)
