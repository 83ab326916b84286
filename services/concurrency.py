from __future__ import annotations

import asyncio
from contextlib import asynccontextmanager
from typing import AsyncIterator

from services.errors import ConcurrencyTimeoutError


class IngestionLock:
    """Process-wide single-slot gate with a bounded wait; not a queue."""

    def __init__(self, timeout_seconds: float):
        self.timeout_seconds = timeout_seconds
        self._lock = asyncio.Lock()

    @property
    def locked(self) -> bool:
        return self._lock.locked()

    @asynccontextmanager
    async def hold(self) -> AsyncIterator[None]:
        try:
            await asyncio.wait_for(self._lock.acquire(), timeout=self.timeout_seconds)
        except asyncio.TimeoutError:
            raise ConcurrencyTimeoutError(
                f"lock not acquired within {self.timeout_seconds}s"
            ) from None
        try:
            yield
        finally:
            self._lock.release()
