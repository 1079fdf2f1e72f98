"""Cache configuration models.

This module contains the cache configuration: the preferred Redis backend,
the in-process fallback sweep and the TTL for every cached resource.
"""

from __future__ import annotations

from pydantic import BaseModel, Field

from otakuproxy.shared.constants import CacheTTL, MemoryCacheConfig, RedisDefaults


class RedisSettings(BaseModel):
    """Connection parameters for the preferred cache backend.

    Security: password is hidden from repr.
    """

    enabled: bool = Field(default=True, description="Try Redis before falling back")
    host: str = Field(default=RedisDefaults.HOST, description="Redis host")
    port: int = Field(default=RedisDefaults.PORT, gt=0, description="Redis port")
    db: int = Field(default=RedisDefaults.DB, ge=0, description="Redis database index")
    password: str | None = Field(default=None, repr=False, description="Redis password")
    connect_timeout: float = Field(
        default=RedisDefaults.CONNECT_TIMEOUT,
        gt=0,
        description="Connect timeout in seconds",
    )
    socket_timeout: float = Field(
        default=RedisDefaults.SOCKET_TIMEOUT,
        gt=0,
        description="Socket timeout in seconds",
    )


class CacheTTLSettings(BaseModel):
    """TTL per resource type, in seconds."""

    home: int = Field(default=CacheTTL.HOME, ge=0)
    anime: int = Field(default=CacheTTL.ANIME, ge=0)
    episodes: int = Field(default=CacheTTL.EPISODES, ge=0)
    servers: int = Field(default=CacheTTL.SERVERS, ge=0)
    stream: int = Field(default=CacheTTL.STREAM, ge=0)
    search: int = Field(default=CacheTTL.SEARCH, ge=0)
    genres: int = Field(default=CacheTTL.GENRES, ge=0)
    schedule: int = Field(default=CacheTTL.SCHEDULE, ge=0)
    browse: int = Field(default=CacheTTL.BROWSE, ge=0)
    batch: int = Field(default=CacheTTL.BATCH, ge=0)
    suggest: int = Field(default=CacheTTL.SUGGEST, ge=0)


class CacheSettings(BaseModel):
    """Cache configuration."""

    redis: RedisSettings = Field(default_factory=RedisSettings)
    sweep_interval: float = Field(
        default=MemoryCacheConfig.SWEEP_INTERVAL,
        gt=0,
        description="Seconds between purges of expired fallback entries",
    )
    ttl: CacheTTLSettings = Field(default_factory=CacheTTLSettings)


__all__ = [
    "CacheSettings",
    "CacheTTLSettings",
    "RedisSettings",
]
