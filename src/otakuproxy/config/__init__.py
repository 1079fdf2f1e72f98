"""otakuproxy Configuration Module

This module provides unified access to configuration models and settings
management:
- Settings: Main configuration facade
- Loader functions: get_config, load_settings, reload_config
- Domain models: App, Logging, Cache, Scraper and Queue settings
"""

from __future__ import annotations

from .loader import get_config, load_settings, reload_config
from .models import (
    AppSettings,
    CacheSettings,
    CacheTTLSettings,
    LoggingSettings,
    QueueSettings,
    QueuesSettings,
    RedisSettings,
    RetrySettings,
    ScraperSettings,
    Settings,
)

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
    "get_config",
    "load_settings",
    "reload_config",
]
