"""JSON cache service.

Typed facade over the cache store. Values are serialized with orjson; a
value that cannot be serialized is not cached and a stored value that
cannot be deserialized is treated as a miss. Neither ever reaches the
caller as an error.
"""

from __future__ import annotations

import logging
import time
from typing import Any, Awaitable, Callable, TypeVar

import orjson
from pydantic import BaseModel

from otakuproxy.services.cache.models import CacheMetadata, CacheResult
from otakuproxy.services.cache.store import CacheStore
from otakuproxy.shared.errors import (
    DomainError,
    ErrorCode,
    ErrorContext,
    InfrastructureError,
)
from otakuproxy.shared.logging import log_operation_error, log_operation_success

logger = logging.getLogger(__name__)

T = TypeVar("T")


def _default(obj: Any) -> Any:
    """orjson hook for types it does not serialize natively."""
    if isinstance(obj, BaseModel):
        return obj.model_dump(mode="json")
    if isinstance(obj, (set, frozenset)):
        return list(obj)
    raise TypeError(f"Type is not JSON serializable: {type(obj).__name__}")


def serialize(value: Any) -> str:
    """Serialize a value to JSON text.

    Raises:
        orjson.JSONEncodeError: If the value is not serializable
    """
    return orjson.dumps(value, default=_default).decode("utf-8")


def deserialize(raw: str) -> Any:
    """Parse JSON text produced by :func:`serialize`.

    Raises:
        orjson.JSONDecodeError: If the text is not valid JSON
    """
    return orjson.loads(raw)


class CacheService:
    """JSON-serializing cache over a :class:`CacheStore`.

    Example:
        >>> service = CacheService(store)
        >>> await service.set("otaku:anime:one-piece", {"title": "One Piece"}, 3600)
        >>> await service.get("otaku:anime:one-piece")
        {'title': 'One Piece'}
    """

    def __init__(self, store: CacheStore) -> None:
        self._store = store

    @property
    def store(self) -> CacheStore:
        return self._store

    @property
    def backend(self) -> str:
        return self._store.backend

    async def get(self, key: str) -> Any | None:
        """Return the cached value, or None on miss.

        A stored value that does not parse is logged, removed and reported
        as a miss.
        """
        raw = await self._store.get(key)
        if raw is None:
            logger.debug("Cache miss for '%s'", key)
            return None

        try:
            value = deserialize(raw)
        except orjson.JSONDecodeError as e:
            error = DomainError(
                code=ErrorCode.CACHE_SERIALIZATION_ERROR,
                message=f"Corrupted cache value for key '{key}', treating as miss",
                context=ErrorContext(operation="cache_get", additional_data={"key": key}),
                original_error=e,
            )
            log_operation_error(logger, error, level=logging.WARNING)
            await self._store.delete(key)
            return None

        logger.debug("Cache hit for '%s' (%s)", key, self._store.backend)
        return value

    async def set(self, key: str, value: Any, ttl_seconds: int) -> None:
        """Cache a value for ttl_seconds; failures are logged, never raised."""
        context = ErrorContext(
            operation="cache_set",
            additional_data={"key": key, "ttl_seconds": ttl_seconds},
        )
        try:
            raw = serialize(value)
        except (orjson.JSONEncodeError, TypeError) as e:
            error = DomainError(
                code=ErrorCode.CACHE_SERIALIZATION_ERROR,
                message=f"Failed to serialize cache data for key '{key}': {e!s}",
                context=context,
                original_error=e,
            )
            log_operation_error(logger, error, level=logging.WARNING)
            return

        try:
            await self._store.set(key, raw, ttl_seconds)
        except Exception as e:  # noqa: BLE001
            error = InfrastructureError(
                code=ErrorCode.CACHE_ERROR,
                message=f"Failed to write cache data for key '{key}': {e!s}",
                context=context,
                original_error=e,
            )
            log_operation_error(logger, error, level=logging.WARNING)

    async def delete(self, key: str) -> None:
        await self._store.delete(key)

    async def exists(self, key: str) -> bool:
        return await self._store.get(key) is not None

    async def get_ttl(self, key: str) -> int:
        """Remaining lifetime in seconds, negative when absent."""
        return await self._store.ttl(key)

    async def get_metadata(self, key: str) -> CacheMetadata:
        """Describe the cache state of key for response metadata."""
        ttl = await self._store.ttl(key)
        return CacheMetadata.from_ttl(ttl, self._store.backend)

    async def invalidate_pattern(self, pattern: str) -> int:
        """Delete every key matching a glob pattern.

        Returns:
            Number of keys deleted, 0 when the lookup fails
        """
        start = time.perf_counter()
        try:
            keys = await self._store.keys(pattern)
            for key in keys:
                await self._store.delete(key)
        except Exception as e:  # noqa: BLE001
            error = InfrastructureError(
                code=ErrorCode.CACHE_ERROR,
                message=f"Failed to invalidate cache pattern '{pattern}': {e!s}",
                context=ErrorContext(
                    operation="cache_invalidate",
                    additional_data={"pattern": pattern},
                ),
                original_error=e,
            )
            log_operation_error(logger, error, level=logging.WARNING)
            return 0

        log_operation_success(
            logger,
            operation="cache_invalidate",
            duration_ms=(time.perf_counter() - start) * 1000,
            result_info={"deleted": len(keys)},
            context={"pattern": pattern},
        )
        return len(keys)

    async def get_or_set(
        self,
        key: str,
        compute: Callable[[], Awaitable[T]],
        ttl_seconds: int,
    ) -> CacheResult[T]:
        """Return the cached value or compute, store and return a fresh one.

        ``compute`` runs exactly once on a miss. Concurrent misses for the
        same key each compute; last write wins.
        """
        cached = await self.get(key)
        if cached is not None:
            return CacheResult(data=cached, cached=True)

        value = await compute()
        await self.set(key, value, ttl_seconds)
        return CacheResult(data=value, cached=False)

    async def ping(self) -> bool:
        return await self._store.ping()
