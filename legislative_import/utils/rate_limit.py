"""
Rate limiting and retry for calls toward external origins.

RateLimiter bounds concurrency and spaces call *starts* toward a single
origin. with_retry wraps any awaitable factory with exponential backoff.
The two compose: adapters call

    await with_retry(lambda: limiter.with_limit(lambda: fetch(url)))

so every retry passes back through the limiter.
"""

import asyncio
import logging
import time
from typing import Awaitable, Callable, Optional, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


class RateLimiter:
    """
    Concurrency slots plus a minimum spacing between call starts.

    Waiters acquire slots in arrival order. The spacing clock is shared by
    every caller of this instance, so two different jurisdictions need two
    limiters.
    """

    def __init__(self, max_concurrent: int = 1, min_delay_ms: int = 1000):
        if max_concurrent < 1:
            raise ValueError("max_concurrent must be >= 1")
        self.max_concurrent = max_concurrent
        self.min_delay_ms = min_delay_ms
        self._slots = asyncio.Semaphore(max_concurrent)
        self._spacing = asyncio.Lock()
        self._last_call_start: Optional[float] = None
        self.calls_started = 0

    async def _wait_for_turn(self) -> None:
        async with self._spacing:
            if self._last_call_start is not None:
                elapsed = time.monotonic() - self._last_call_start
                remaining = self.min_delay_ms / 1000 - elapsed
                if remaining > 0:
                    await asyncio.sleep(remaining)
            self._last_call_start = time.monotonic()
            self.calls_started += 1

    async def with_limit(self, operation: Callable[[], Awaitable[T]]) -> T:
        """Run `operation` inside a slot, after the minimum spacing."""
        async with self._slots:
            await self._wait_for_turn()
            return await operation()


async def with_retry(
    operation: Callable[[], Awaitable[T]],
    max_retries: int = 3,
    base_delay_ms: int = 1000,
    should_retry: Optional[Callable[[Exception], bool]] = None,
) -> T:
    """
    Call `operation`, retrying up to `max_retries` extra times.

    Waits base_delay_ms * 2**attempt between attempts and re-raises the last
    error when attempts run out, or immediately when `should_retry` rejects
    the error.
    """
    attempt = 0
    while True:
        try:
            return await operation()
        except Exception as e:
            if attempt >= max_retries or (should_retry is not None and not should_retry(e)):
                raise
            delay_ms = base_delay_ms * 2 ** attempt
            logger.warning(
                f"[RETRY] Attempt {attempt + 1}/{max_retries + 1} failed: {e} "
                f"(retrying in {delay_ms}ms)"
            )
            await asyncio.sleep(delay_ms / 1000)
            attempt += 1
