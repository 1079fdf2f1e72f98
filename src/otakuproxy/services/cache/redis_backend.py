"""Redis cache backend.

Thin adapter from the CacheBackend protocol onto ``redis.asyncio``. Errors
are not handled here; the cache store decides what a Redis failure means.
"""

from __future__ import annotations

import logging
import math
import re

from redis.asyncio import Redis

from otakuproxy.config.models.cache_settings import RedisSettings
from otakuproxy.shared.constants import CacheBackendName

logger = logging.getLogger(__name__)

_REDIS_GLOB_SPECIAL = re.compile(r"([\\?\[\]])")


def escape_glob(pattern: str) -> str:
    """Escape Redis glob syntax other than '*' so only '*' is a wildcard."""
    return _REDIS_GLOB_SPECIAL.sub(r"\\\1", pattern)


class RedisCacheBackend:
    """Preferred cache backend backed by a Redis server.

    Args:
        client: A ``redis.asyncio.Redis`` created with ``decode_responses=True``
    """

    name = CacheBackendName.REDIS

    def __init__(self, client: Redis) -> None:
        self._client = client

    @classmethod
    def from_settings(cls, settings: RedisSettings) -> RedisCacheBackend:
        client = Redis(
            host=settings.host,
            port=settings.port,
            db=settings.db,
            password=settings.password,
            socket_connect_timeout=settings.connect_timeout,
            socket_timeout=settings.socket_timeout,
            decode_responses=True,
        )
        logger.debug(
            "Redis client configured for %s:%d/%d",
            settings.host,
            settings.port,
            settings.db,
        )
        return cls(client)

    @property
    def client(self) -> Redis:
        return self._client

    async def get(self, key: str) -> str | None:
        return await self._client.get(key)

    async def set(self, key: str, value: str, ttl_seconds: int) -> None:
        # SET EX rejects non-positive expiries; such a write is already expired
        if ttl_seconds <= 0:
            await self._client.delete(key)
            return
        await self._client.set(key, value, ex=max(1, math.ceil(ttl_seconds)))

    async def delete(self, key: str) -> None:
        await self._client.delete(key)

    async def keys(self, pattern: str) -> list[str]:
        return [key async for key in self._client.scan_iter(match=escape_glob(pattern))]

    async def ttl(self, key: str) -> int:
        return int(await self._client.ttl(key))

    async def ping(self) -> bool:
        return bool(await self._client.ping())

    async def close(self) -> None:
        await self._client.aclose()
