"""
Process-wide gate on concurrent provider runs.

Every scrape from every in-flight HTTP request goes through the same
limiter, so a burst of requests cannot open an unbounded number of browser
contexts. Waiters are admitted in arrival order.
"""
from __future__ import annotations
import asyncio
import logging
from collections import deque
from typing import Any, Awaitable, Callable, TypeVar

log = logging.getLogger("embedsniff.providers.limiter")

T = TypeVar("T")


class ConcurrencyLimiter:
    """
    Slots are handed directly from a finishing run to the oldest waiter, so a
    caller arriving while others queue always goes to the back of the line.
    """

    def __init__(self, max_concurrent: int):
        if max_concurrent < 1:
            raise ValueError("max_concurrent must be at least 1")
        self.max_concurrent = max_concurrent
        self._active = 0
        self._waiters: deque[asyncio.Future] = deque()

    @property
    def active(self) -> int:
        return self._active

    @property
    def waiting(self) -> int:
        return len(self._waiters)

    async def run(self, func: Callable[..., Awaitable[T]], *args: Any, **kwargs: Any) -> T:
        await self._acquire()
        log.debug("admitted (active=%d, waiting=%d)", self._active, self.waiting)
        try:
            return await func(*args, **kwargs)
        finally:
            self._release()

    async def _acquire(self):
        if self._active < self.max_concurrent and not self._waiters:
            self._active += 1
            return
        waiter = asyncio.get_running_loop().create_future()
        self._waiters.append(waiter)
        try:
            await waiter
        except asyncio.CancelledError:
            if waiter.done() and not waiter.cancelled():
                # Slot was handed over just as we were cancelled; pass it on
                self._release()
            elif waiter in self._waiters:
                self._waiters.remove(waiter)
            raise

    def _release(self):
        while self._waiters:
            waiter = self._waiters.popleft()
            if not waiter.done():
                # Slot moves to the waiter; active count unchanged
                waiter.set_result(None)
                return
        self._active -= 1

    def stats(self):
        return {"active": self._active, "waiting": self.waiting, "max": self.max_concurrent}
