"""Per-workspace advisory locks shared by queued builds and streaming compiles."""

from __future__ import annotations

import asyncio
import contextlib
from collections.abc import AsyncIterator


class WorkspaceLocks:
    """Lazily created ``asyncio.Lock`` per workspace key.

    With ``enabled=False`` :meth:`hold` is a pass-through, so builds and
    compiles on one workspace may overlap.
    """

    def __init__(self, enabled: bool = True):
        self.enabled = enabled
        self._locks: dict[str, asyncio.Lock] = {}
        self._guard = asyncio.Lock()

    async def get(self, key: str) -> asyncio.Lock:
        async with self._guard:
            lock = self._locks.get(key)
            if lock is None:
                lock = asyncio.Lock()
                self._locks[key] = lock
            return lock

    @contextlib.asynccontextmanager
    async def hold(self, key: str) -> AsyncIterator[None]:
        if not self.enabled:
            yield
            return
        lock = await self.get(key)
        async with lock:
            yield
