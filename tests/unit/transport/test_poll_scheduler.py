"""Unit tests for PollScheduler."""

from __future__ import annotations

import asyncio
from unittest.mock import MagicMock

import pytest

from ch_ac_controller.transport.poll_scheduler import PollScheduler
from tests.helpers.expectations import expect_exception

# Test constants
FAST_INTERVAL = 0.01
SLOW_INTERVAL = 60.0


class TestPollScheduler:
    """Tests for the periodic poll task."""

    @pytest.mark.asyncio
    async def test_first_tick_is_immediate(self):
        callback = MagicMock()
        scheduler = PollScheduler(SLOW_INTERVAL, callback)
        scheduler.start()
        await asyncio.sleep(0)
        try:
            callback.assert_called_once()
            assert scheduler.is_running
        finally:
            await scheduler.aclose()

    @pytest.mark.asyncio
    async def test_ticks_repeat(self):
        callback = MagicMock()
        scheduler = PollScheduler(FAST_INTERVAL, callback)
        scheduler.start()
        await asyncio.sleep(FAST_INTERVAL * 10)
        await scheduler.aclose()
        assert callback.call_count >= 3

    @pytest.mark.asyncio
    async def test_start_is_idempotent(self):
        """A second start never creates a second tick loop."""
        callback = MagicMock()
        scheduler = PollScheduler(SLOW_INTERVAL, callback)
        scheduler.start()
        scheduler.start()
        await asyncio.sleep(0)
        await scheduler.aclose()
        callback.assert_called_once()

    @pytest.mark.asyncio
    async def test_stop_cancels(self):
        callback = MagicMock()
        scheduler = PollScheduler(FAST_INTERVAL, callback)
        scheduler.start()
        await asyncio.sleep(0)
        await scheduler.aclose()
        calls = callback.call_count
        await asyncio.sleep(FAST_INTERVAL * 5)
        assert callback.call_count == calls
        assert not scheduler.is_running

    @pytest.mark.asyncio
    async def test_callback_exception_does_not_stop_loop(self):
        callback = MagicMock(side_effect=[RuntimeError("boom"), None, None, None, None, None, None, None])
        scheduler = PollScheduler(FAST_INTERVAL, callback)
        scheduler.start()
        await asyncio.sleep(FAST_INTERVAL * 5)
        await scheduler.aclose()
        assert callback.call_count >= 2

    @pytest.mark.asyncio
    async def test_stop_without_start(self):
        scheduler = PollScheduler(SLOW_INTERVAL, MagicMock())
        assert scheduler.stop() is None
        await scheduler.aclose()

    def test_non_positive_interval_rejected(self):
        expect_exception(PollScheduler, ValueError, 0, MagicMock())
