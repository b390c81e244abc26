"""Caps the number of simultaneous outbound requests."""

import asyncio
from typing import Awaitable, Callable, TypeVar

from fund_tracker.config import MAX_CONCURRENT_REQUESTS

T = TypeVar("T")


class RequestLimiter:
    """Runs at most ``max_concurrent`` coroutines at once; the rest wait in line."""

    def __init__(self, max_concurrent: int = MAX_CONCURRENT_REQUESTS):
        self.max_concurrent = max_concurrent
        self._semaphore: asyncio.Semaphore | None = None
        self._loop: asyncio.AbstractEventLoop | None = None
        self._active = 0

    @property
    def active(self) -> int:
        return self._active

    def _get_semaphore(self) -> asyncio.Semaphore:
        # A semaphore belongs to one event loop
        loop = asyncio.get_running_loop()
        if self._semaphore is None or self._loop is not loop:
            self._semaphore = asyncio.Semaphore(self.max_concurrent)
            self._loop = loop
        return self._semaphore

    async def run(self, fn: Callable[[], Awaitable[T]]) -> T:
        async with self._get_semaphore():
            self._active += 1
            try:
                return await fn()
            finally:
                self._active -= 1
