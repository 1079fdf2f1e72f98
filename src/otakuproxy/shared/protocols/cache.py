"""Cache backend protocol.

The cache store talks to its backends only through this capability
interface, so the preferred (Redis) and fallback (in-process) backends
are interchangeable.
"""

from __future__ import annotations

from typing import Protocol, runtime_checkable


@runtime_checkable
class CacheBackend(Protocol):
    """Protocol for key-value backends with per-key expiry.

    Example:
        >>> from otakuproxy.services.cache import MemoryCacheBackend
        >>> backend: CacheBackend = MemoryCacheBackend()
        >>> await backend.set("otaku:home", "{}", 300)
    """

    name: str

    async def get(self, key: str) -> str | None:
        """Return the stored value, or None when absent or expired."""

    async def set(self, key: str, value: str, ttl_seconds: int) -> None:
        """Store value with an absolute expiry of now + ttl_seconds."""

    async def delete(self, key: str) -> None:
        """Remove key; no-op when absent."""

    async def keys(self, pattern: str) -> list[str]:
        """Return keys matching a glob pattern where '*' matches any substring."""

    async def ttl(self, key: str) -> int:
        """Return remaining lifetime in whole seconds, negative when absent."""

    async def ping(self) -> bool:
        """Health check."""

    async def close(self) -> None:
        """Release connections and background tasks."""
