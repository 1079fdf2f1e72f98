"""Services module for otakuproxy.

This module contains the cache layer, the retry executor, request queues,
the scraper client and the components composed from them.
"""

from .cache import (
    CacheMetadata,
    CacheResource,
    CacheResult,
    CacheService,
    CacheStore,
    MemoryCacheBackend,
    RedisCacheBackend,
    generate_cache_key,
    get_ttl,
)
from .health import HealthCheck, HealthReport, check_health
from .request_queue import QueueTask, RequestQueue, TaskState
from .resource_loader import CachedResponse, ResourceLoader
from .retry import RetryExecutor, RetryPolicy
from .scraper import ScraperClient

__all__ = [
    "CacheMetadata",
    "CacheResource",
    "CacheResult",
    "CacheService",
    "CacheStore",
    "CachedResponse",
    "HealthCheck",
    "HealthReport",
    "MemoryCacheBackend",
    "QueueTask",
    "RedisCacheBackend",
    "RequestQueue",
    "ResourceLoader",
    "RetryExecutor",
    "RetryPolicy",
    "ScraperClient",
    "TaskState",
    "check_health",
    "generate_cache_key",
    "get_ttl",
]
