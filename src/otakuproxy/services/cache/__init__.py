"""Cache layer: backends, the degrading store and the JSON cache service."""

from __future__ import annotations

from .keys import CacheResource, generate_cache_key, get_ttl, resource_pattern
from .memory_backend import MemoryCacheBackend
from .models import CacheEntry, CacheMetadata, CacheResult
from .redis_backend import RedisCacheBackend
from .service import CacheService
from .store import CacheStore

__all__ = [
    "CacheEntry",
    "CacheMetadata",
    "CacheResource",
    "CacheResult",
    "CacheService",
    "CacheStore",
    "MemoryCacheBackend",
    "RedisCacheBackend",
    "generate_cache_key",
    "get_ttl",
    "resource_pattern",
]
