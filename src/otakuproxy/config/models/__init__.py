"""Configuration domain models."""

from __future__ import annotations

from .app_settings import AppSettings, LoggingSettings
from .cache_settings import CacheSettings, CacheTTLSettings, RedisSettings
from .queue_settings import QueueSettings, QueuesSettings
from .scraper_settings import RetrySettings, ScraperSettings
from .settings import Settings

__all__ = [
    "AppSettings",
    "CacheSettings",
    "CacheTTLSettings",
    "LoggingSettings",
    "QueueSettings",
    "QueuesSettings",
    "RedisSettings",
    "RetrySettings",
    "ScraperSettings",
    "Settings",
]
