from __future__ import annotations

import asyncio
import time
from collections import deque
from typing import Callable, Deque


class RateLimitError(RuntimeError):
    """No request slot is free and the caller asked not to wait."""


class AsyncSlidingWindowRateLimiter:
    """
    Request budget for the read gateway: at most `max_calls` requests start
    within any `per_seconds` window.

    Concurrent refreshes share one limiter per client. Blocking callers
    queue on an `asyncio.Lock`, so slots are handed out in arrival order
    and a burst of `select_plant` reads cannot starve a count refresh.
    """

    def __init__(
        self,
        max_calls: int,
        per_seconds: float,
        *,
        clock: Callable[[], float] = time.monotonic,
        poll_interval: float = 1.0,
    ) -> None:
        if max_calls <= 0:
            raise ValueError("max_calls must be > 0")
        if per_seconds <= 0:
            raise ValueError("per_seconds must be > 0")
        self.max_calls = max_calls
        self.per_seconds = per_seconds
        self._clock = clock
        self._poll = poll_interval
        self._started: Deque[float] = deque()
        self._queue = asyncio.Lock()

    def remaining(self) -> int:
        """Slots still free in the current window."""
        self._expire(self._clock())
        return self.max_calls - len(self._started)

    def _expire(self, now: float) -> None:
        horizon = now - self.per_seconds
        while self._started and self._started[0] <= horizon:
            self._started.popleft()

    def _try_take(self) -> float:
        """Take a slot and return 0.0, or return seconds until one frees up."""
        now = self._clock()
        self._expire(now)
        if len(self._started) < self.max_calls:
            self._started.append(now)
            return 0.0
        return max(self._started[0] + self.per_seconds - now, 0.0)

    async def acquire(self, *, blocking: bool = True) -> None:
        if not blocking:
            if self._queue.locked() or self._try_take() > 0.0:
                raise RateLimitError("gateway request budget exhausted")
            return
        async with self._queue:
            wait = self._try_take()
            while wait > 0.0:
                await asyncio.sleep(min(wait, self._poll))
                wait = self._try_take()


__all__ = ["AsyncSlidingWindowRateLimiter", "RateLimitError"]
