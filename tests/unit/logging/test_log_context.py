# tests/unit/logging/test_log_context.py - v1
"""Tests for logging/context.py."""

from __future__ import annotations

import asyncio

import pytest

from gendispatch.logging.context import (
    clear_context,
    get_context,
    set_cycle_context,
    set_request_context,
    set_step,
)


class TestContext:
    def teardown_method(self):
        clear_context()

    def test_empty(self):
        clear_context()
        assert get_context().as_dict() == {}

    def test_request_and_cycle(self):
        set_request_context("r1", "groq")
        set_cycle_context("c1")
        set_step("publish")
        assert get_context().as_dict() == {
            "request_id": "r1", "provider": "groq", "cycle_id": "c1", "step": "publish",
        }

    def test_clear(self):
        set_request_context("r1")
        clear_context()
        assert get_context().request_id is None

    @pytest.mark.asyncio
    async def test_isolated_between_tasks(self):
        async def worker(request_id: str) -> str | None:
            set_request_context(request_id)
            await asyncio.sleep(0)
            return get_context().request_id

        results = await asyncio.gather(worker("a"), worker("b"))
        assert results == ["a", "b"]
