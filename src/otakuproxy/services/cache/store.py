"""Cache store with a preferred backend and an in-process fallback.

The store never raises to its callers. The first failure of the preferred
backend is logged once at WARNING and every later call goes straight to
the fallback until a successful ``ping()`` restores the preferred backend.
On restore, deletes made in the meantime are replayed and entries written
to the fallback are moved across.
"""

from __future__ import annotations

import logging

from otakuproxy.config.models.cache_settings import CacheSettings
from otakuproxy.services.cache.memory_backend import MemoryCacheBackend
from otakuproxy.services.cache.redis_backend import RedisCacheBackend
from otakuproxy.shared.errors import ErrorCode, ErrorContext, InfrastructureError
from otakuproxy.shared.logging import log_operation_error
from otakuproxy.shared.protocols import CacheBackend

logger = logging.getLogger(__name__)


class CacheStore:
    """Key-value store over a preferred backend with graceful degradation.

    Args:
        fallback: In-process backend, always available
        preferred: Optional external backend tried first while healthy
    """

    def __init__(
        self,
        fallback: MemoryCacheBackend | None = None,
        preferred: CacheBackend | None = None,
    ) -> None:
        self._fallback = fallback or MemoryCacheBackend()
        self._preferred = preferred
        self._degraded = False
        # Deletes the preferred backend missed while degraded, replayed on restore
        self._pending_deletes: set[str] = set()

    @classmethod
    async def create(cls, settings: CacheSettings) -> CacheStore:
        """Build a store from settings, probing Redis once.

        An unreachable Redis is discarded and the store runs memory-only.
        """
        fallback = MemoryCacheBackend(sweep_interval=settings.sweep_interval)
        if not settings.redis.enabled:
            logger.info("Redis disabled, using in-process cache")
            return cls(fallback)

        preferred = RedisCacheBackend.from_settings(settings.redis)
        try:
            healthy = await preferred.ping()
            probe_error: Exception | None = None
        except Exception as e:  # noqa: BLE001
            healthy = False
            probe_error = e

        if not healthy:
            error = InfrastructureError(
                code=ErrorCode.CACHE_ERROR,
                message="Redis unreachable, using in-process cache",
                context=ErrorContext(
                    operation="cache_store_create",
                    additional_data={
                        "host": settings.redis.host,
                        "port": settings.redis.port,
                    },
                ),
                original_error=probe_error,
            )
            log_operation_error(logger, error, level=logging.WARNING)
            await cls._close_quietly(preferred)
            return cls(fallback)

        logger.info(
            "Connected to Redis at %s:%d",
            settings.redis.host,
            settings.redis.port,
        )
        return cls(fallback, preferred)

    @staticmethod
    async def _close_quietly(backend: CacheBackend) -> None:
        try:
            await backend.close()
        except Exception as e:  # noqa: BLE001
            logger.debug("Ignoring error while closing %s backend: %s", backend.name, e)

    @property
    def fallback(self) -> MemoryCacheBackend:
        return self._fallback

    @property
    def preferred(self) -> CacheBackend | None:
        return self._preferred

    @property
    def degraded(self) -> bool:
        return self._degraded

    def _active_preferred(self) -> CacheBackend | None:
        if self._preferred is None or self._degraded:
            return None
        return self._preferred

    @property
    def backend(self) -> str:
        """Name of the backend currently serving requests."""
        preferred = self._active_preferred()
        return preferred.name if preferred else self._fallback.name

    def _degrade(self, operation: str, key: str | None, error: Exception) -> None:
        if self._degraded or self._preferred is None:
            return
        self._degraded = True
        additional_data: dict[str, str] = {
            "backend": self._preferred.name,
            "error_type": type(error).__name__,
        }
        if key is not None:
            additional_data["key"] = key
        log_operation_error(
            logger,
            InfrastructureError(
                code=ErrorCode.CACHE_ERROR,
                message=f"{self._preferred.name} cache failed, switching to in-process cache: {error!s}",
                context=ErrorContext(operation=operation, additional_data=additional_data),
                original_error=error,
            ),
            level=logging.WARNING,
        )

    async def get(self, key: str) -> str | None:
        """Return the stored value, or None on miss or backend failure."""
        preferred = self._active_preferred()
        if preferred is not None:
            try:
                return await preferred.get(key)
            except Exception as e:  # noqa: BLE001
                self._degrade("cache_get", key, e)
        return await self._fallback.get(key)

    async def set(self, key: str, value: str, ttl_seconds: int) -> None:
        """Store value with a TTL; best effort."""
        preferred = self._active_preferred()
        if preferred is not None:
            try:
                await preferred.set(key, value, ttl_seconds)
                return
            except Exception as e:  # noqa: BLE001
                self._degrade("cache_set", key, e)
        await self._fallback.set(key, value, ttl_seconds)

    async def delete(self, key: str) -> None:
        """Remove key from every backend; idempotent."""
        preferred = self._active_preferred()
        if preferred is not None:
            try:
                await preferred.delete(key)
            except Exception as e:  # noqa: BLE001
                self._degrade("cache_delete", key, e)
        if self._degraded:
            self._pending_deletes.add(key)
        # Entries written while degraded live in the fallback
        await self._fallback.delete(key)

    async def keys(self, pattern: str) -> list[str]:
        preferred = self._active_preferred()
        if preferred is not None:
            try:
                return await preferred.keys(pattern)
            except Exception as e:  # noqa: BLE001
                self._degrade("cache_keys", None, e)
        return await self._fallback.keys(pattern)

    async def ttl(self, key: str) -> int:
        """Remaining lifetime in seconds on the active backend, negative when absent."""
        preferred = self._active_preferred()
        if preferred is not None:
            try:
                return await preferred.ttl(key)
            except Exception as e:  # noqa: BLE001
                self._degrade("cache_ttl", key, e)
        return await self._fallback.ttl(key)

    async def ping(self) -> bool:
        """Probe the preferred backend, restoring it after a degradation.

        A failed ping degrades the store; the answer then comes from the
        fallback, which is always healthy. On restore the preferred backend
        is first brought up to date with what happened while degraded.
        """
        if self._preferred is None:
            return await self._fallback.ping()

        try:
            healthy = await self._preferred.ping()
            if not healthy:
                raise ConnectionError("ping returned a falsy reply")
        except Exception as e:  # noqa: BLE001
            self._degrade("cache_ping", None, e)
            return await self._fallback.ping()

        if self._degraded:
            try:
                copied = await self._resync(self._preferred)
            except Exception as e:  # noqa: BLE001
                logger.debug(
                    "%s cache resync failed, staying in fallback mode: %s",
                    self._preferred.name,
                    e,
                )
                return await self._fallback.ping()
            self._degraded = False
            logger.info(
                "%s cache reachable again, leaving fallback mode (%d entries copied)",
                self._preferred.name,
                copied,
            )
        return True

    async def _resync(self, preferred: CacheBackend) -> int:
        """Replay missed deletes and move fallback entries to the preferred backend.

        Returns:
            Number of entries copied
        """
        for key in sorted(self._pending_deletes):
            await preferred.delete(key)
        self._pending_deletes.clear()

        copied = 0
        for key in await self._fallback.keys("*"):
            value = await self._fallback.get(key)
            ttl_seconds = await self._fallback.ttl(key)
            if value is not None and ttl_seconds > 0:
                await preferred.set(key, value, ttl_seconds)
                copied += 1
            await self._fallback.delete(key)
        return copied

    async def start(self) -> None:
        """Start background maintenance of the fallback."""
        self._fallback.start_sweeper()

    async def close(self) -> None:
        await self._fallback.close()
        if self._preferred is not None:
            await self._close_quietly(self._preferred)
