"""Cache key construction and per-resource TTL lookup.

Keys are ``otaku:<resource>`` optionally followed by the request
parameters in call order, all joined with ``:``::

    >>> generate_cache_key(CacheResource.ANIME, "one-piece")
    'otaku:anime:one-piece'
"""

from __future__ import annotations

from enum import Enum

from otakuproxy.config.models.cache_settings import CacheTTLSettings
from otakuproxy.shared.constants import CacheKeyConfig


class CacheResource(str, Enum):
    """Cached resource types; the value is the key segment and TTL field name."""

    HOME = "home"
    ANIME = "anime"
    EPISODES = "episodes"
    SERVERS = "servers"
    STREAM = "stream"
    SEARCH = "search"
    GENRES = "genres"
    SCHEDULE = "schedule"
    BROWSE = "browse"
    BATCH = "batch"
    SUGGEST = "suggest"

    @property
    def prefix(self) -> str:
        return f"{CacheKeyConfig.NAMESPACE}{CacheKeyConfig.DELIMITER}{self.value}"


def generate_cache_key(resource: CacheResource | str, *params: str | int) -> str:
    """Build the cache key for a resource and its request parameters.

    Args:
        resource: Resource type (enum member or its value)
        *params: Request parameters, appended in call order

    Returns:
        ``"<prefix>"`` without params, ``"<prefix>:<p1>:<p2>..."`` otherwise
    """
    base = CacheResource(resource).prefix
    if not params:
        return base
    return CacheKeyConfig.DELIMITER.join([base, *(str(p) for p in params)])


def resource_pattern(resource: CacheResource | str) -> str:
    """Glob pattern matching every key of a resource, for invalidation."""
    return f"{CacheResource(resource).prefix}{CacheKeyConfig.WILDCARD}"


def get_ttl(
    resource: CacheResource | str,
    ttl_settings: CacheTTLSettings | None = None,
) -> int:
    """Return the configured TTL in seconds for a resource."""
    settings = ttl_settings or CacheTTLSettings()
    return int(getattr(settings, CacheResource(resource).value))
