"""Cache data models.

CacheEntry is the in-process fallback's record; CacheMetadata is what
callers attach to served data; CacheResult is returned by get_or_set.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Generic, TypeVar

from pydantic import BaseModel, Field

T = TypeVar("T")


@dataclass(frozen=True)
class CacheEntry:
    """A stored value with an absolute expiry.

    Attributes:
        key: Cache key
        serialized_value: Value as stored (JSON text from the cache service)
        expires_at_epoch_ms: Expiry as milliseconds since the Unix epoch
    """

    key: str
    serialized_value: str
    expires_at_epoch_ms: int

    def is_expired(self, now_ms: int) -> bool:
        return self.expires_at_epoch_ms <= now_ms

    def remaining_seconds(self, now_ms: int) -> int:
        """Seconds left before expiry, rounded up so a live entry never reports 0."""
        return max(0, math.ceil((self.expires_at_epoch_ms - now_ms) / 1000))


class CacheMetadata(BaseModel):
    """Cache status attached to served data.

    ``cached=True`` always comes with a future ``expires_at``;
    ``cached=False`` means the value was just computed.
    """

    cached: bool = Field(..., description="Whether the value was served from cache")
    expires_at: str | None = Field(
        default=None,
        description="ISO-8601 UTC expiry, None when not cached",
    )
    backend: str = Field(..., description="Active cache backend (redis or memory)")

    @classmethod
    def from_ttl(cls, ttl_seconds: int, backend: str) -> CacheMetadata:
        """Build metadata from a remaining TTL; non-positive means not cached."""
        if ttl_seconds <= 0:
            return cls.miss(backend)
        expires_at = datetime.now(timezone.utc) + timedelta(seconds=ttl_seconds)
        return cls(cached=True, expires_at=expires_at.isoformat(), backend=backend)

    @classmethod
    def miss(cls, backend: str) -> CacheMetadata:
        return cls(cached=False, expires_at=None, backend=backend)


@dataclass(frozen=True)
class CacheResult(Generic[T]):
    """Outcome of CacheService.get_or_set."""

    data: T
    cached: bool
