"""Async token bucket used to pace outgoing API requests.

Tokens refill at a fixed *rate* (tokens per second) up to a *burst*
ceiling.  A caller that asks for more tokens than are available awaits the
deficit.  The bucket only delays requests; it never reorders them, so the
strictly sequential upload flows keep their ordering.
"""

from __future__ import annotations

import asyncio
import time


class AsyncTokenBucket:
    """Async-safe token bucket.

    Parameters
    ----------
    rate_rps:
        Sustained token-refill rate in tokens per second.
    burst:
        Maximum number of tokens the bucket can hold.
    """

    __slots__ = ("_lock", "burst", "last_refill", "rate", "tokens")

    def __init__(self, rate_rps: float, burst: int = 5) -> None:
        if rate_rps <= 0:
            raise ValueError(f"rate_rps must be > 0, got {rate_rps}")
        if burst < 1:
            raise ValueError(f"burst must be >= 1, got {burst}")

        self.rate: float = rate_rps
        self.burst: int = burst
        self.tokens: float = float(burst)
        self.last_refill: float = time.monotonic()
        self._lock = asyncio.Lock()

    async def acquire(self, tokens: int = 1) -> float:
        """Take *tokens*, awaiting if the bucket runs dry.

        Returns the number of seconds waited (``0.0`` when tokens were
        immediately available).
        """
        async with self._lock:
            now = time.monotonic()
            elapsed = now - self.last_refill
            self.tokens = min(self.burst, self.tokens + elapsed * self.rate)
            self.last_refill = now

            if self.tokens >= tokens:
                self.tokens -= tokens
                return 0.0

            wait = (tokens - self.tokens) / self.rate
            self.tokens = 0.0
            self.last_refill = now + wait
            # Sleep while holding the lock so waiters are served in order.
            await asyncio.sleep(wait)
            return wait
