"""In-process cache backend.

The fallback store used when Redis is disabled or unreachable. Entries
live in a dict owned by the backend; expired entries are evicted lazily on
read and purged by a periodic sweep task.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
import re
import time
from typing import Callable

from otakuproxy.services.cache.models import CacheEntry
from otakuproxy.shared.constants import CacheBackendName, CacheKeyConfig, MemoryCacheConfig

logger = logging.getLogger(__name__)

# redis-cli convention for absent keys
TTL_MISSING = -2


def compile_glob(pattern: str) -> re.Pattern[str]:
    """Compile a glob where '*' matches any substring and nothing else is special."""
    parts = (re.escape(part) for part in pattern.split(CacheKeyConfig.WILDCARD))
    return re.compile("^" + ".*".join(parts) + "$", re.DOTALL)


class MemoryCacheBackend:
    """Dict-backed cache with per-entry expiry.

    All mutation happens on the event loop thread, so no lock is needed.

    Args:
        sweep_interval: Seconds between background purges of expired entries
        clock: Wall clock in seconds, injectable for tests
    """

    name = CacheBackendName.MEMORY

    def __init__(
        self,
        sweep_interval: float = MemoryCacheConfig.SWEEP_INTERVAL,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.sweep_interval = sweep_interval
        self._clock = clock
        self._entries: dict[str, CacheEntry] = {}
        self._sweeper: asyncio.Task[None] | None = None

    def _now_ms(self) -> int:
        return int(self._clock() * 1000)

    def _live_entry(self, key: str) -> CacheEntry | None:
        entry = self._entries.get(key)
        if entry is None:
            return None
        if entry.is_expired(self._now_ms()):
            del self._entries[key]
            return None
        return entry

    @property
    def size(self) -> int:
        """Number of stored entries, including expired ones not yet swept."""
        return len(self._entries)

    async def get(self, key: str) -> str | None:
        entry = self._live_entry(key)
        return entry.serialized_value if entry else None

    async def set(self, key: str, value: str, ttl_seconds: int) -> None:
        self._entries[key] = CacheEntry(
            key=key,
            serialized_value=value,
            expires_at_epoch_ms=self._now_ms() + int(ttl_seconds * 1000),
        )

    async def delete(self, key: str) -> None:
        self._entries.pop(key, None)

    async def keys(self, pattern: str) -> list[str]:
        matcher = compile_glob(pattern)
        now_ms = self._now_ms()
        return [
            key
            for key, entry in self._entries.items()
            if not entry.is_expired(now_ms) and matcher.match(key)
        ]

    async def ttl(self, key: str) -> int:
        entry = self._live_entry(key)
        if entry is None:
            return TTL_MISSING
        return entry.remaining_seconds(self._now_ms())

    async def ping(self) -> bool:
        return True

    def sweep(self) -> int:
        """Purge expired entries.

        Returns:
            Number of entries removed
        """
        now_ms = self._now_ms()
        expired = [key for key, entry in self._entries.items() if entry.is_expired(now_ms)]
        for key in expired:
            del self._entries[key]
        if expired:
            logger.debug("Swept %d expired cache entries", len(expired))
        return len(expired)

    async def _sweep_forever(self) -> None:
        while True:
            await asyncio.sleep(self.sweep_interval)
            self.sweep()

    def start_sweeper(self) -> None:
        """Start the periodic sweep task on the running loop (idempotent)."""
        if self._sweeper is None or self._sweeper.done():
            self._sweeper = asyncio.get_running_loop().create_task(
                self._sweep_forever(),
                name="otakuproxy-cache-sweeper",
            )

    async def stop_sweeper(self) -> None:
        if self._sweeper is None:
            return
        self._sweeper.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await self._sweeper
        self._sweeper = None

    @property
    def sweeper_running(self) -> bool:
        return self._sweeper is not None and not self._sweeper.done()

    async def close(self) -> None:
        await self.stop_sweeper()
