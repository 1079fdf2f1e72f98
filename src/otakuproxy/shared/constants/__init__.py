"""
otakuproxy Constants Module

This module provides centralized constants for otakuproxy. All magic
values and configuration defaults are defined here to ensure consistency
across the codebase.
"""

from .cache import (
    BASE_DAY,
    BASE_HOUR,
    BASE_MINUTE,
    BASE_SECOND,
    CacheBackendName,
    CacheKeyConfig,
    CacheTTL,
    MemoryCacheConfig,
    RedisDefaults,
)
from .http_codes import HTTPHeaders, HTTPStatusCodes
from .network import QueueConfig, RetryConfig, ScraperConfig

__all__ = [
    "BASE_DAY",
    "BASE_HOUR",
    "BASE_MINUTE",
    "BASE_SECOND",
    "CacheBackendName",
    "CacheKeyConfig",
    "CacheTTL",
    "HTTPHeaders",
    "HTTPStatusCodes",
    "MemoryCacheConfig",
    "QueueConfig",
    "RedisDefaults",
    "RetryConfig",
    "ScraperConfig",
]
