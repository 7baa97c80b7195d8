"""Tests for the async token bucket."""

from __future__ import annotations

from unittest.mock import AsyncMock, patch

import pytest

from mdbridge.api.rate_limit import AsyncTokenBucket


class TestAsyncTokenBucket:
    async def test_burst_is_free(self):
        bucket = AsyncTokenBucket(rate_rps=1.0, burst=3)
        for _ in range(3):
            assert await bucket.acquire() == 0.0

    async def test_waits_when_empty(self):
        bucket = AsyncTokenBucket(rate_rps=2.0, burst=1)
        await bucket.acquire()
        with patch("mdbridge.api.rate_limit.asyncio.sleep", new=AsyncMock()) as sleep:
            wait = await bucket.acquire()
        assert wait == pytest.approx(0.5, abs=0.05)
        sleep.assert_awaited_once()

    @pytest.mark.parametrize(("rate", "burst"), [(0, 1), (-1, 1), (1, 0)])
    def test_invalid_arguments(self, rate, burst):
        with pytest.raises(ValueError):
            AsyncTokenBucket(rate_rps=rate, burst=burst)
