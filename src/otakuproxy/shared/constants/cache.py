"""
Cache Configuration Constants

Key layout and default TTLs for cached scrape results. TTLs follow the
volatility of the underlying page: genre lists barely change, stream
links expire quickly.
"""

# Base time units for TTL calculations
BASE_SECOND = 1
BASE_MINUTE = 60 * BASE_SECOND
BASE_HOUR = 60 * BASE_MINUTE
BASE_DAY = 24 * BASE_HOUR


class CacheKeyConfig:
    """Cache key layout."""

    NAMESPACE = "otaku"
    DELIMITER = ":"
    WILDCARD = "*"


class CacheTTL:
    """Default TTL per resource type, in seconds."""

    HOME = 5 * BASE_MINUTE
    ANIME = BASE_HOUR
    EPISODES = 30 * BASE_MINUTE
    SERVERS = 15 * BASE_MINUTE
    STREAM = 5 * BASE_MINUTE  # links expire
    SEARCH = 10 * BASE_MINUTE
    GENRES = BASE_DAY
    SCHEDULE = BASE_HOUR
    BROWSE = 30 * BASE_MINUTE
    BATCH = BASE_HOUR
    SUGGEST = 30 * BASE_MINUTE


class CacheBackendName:
    """Names reported in cache metadata."""

    REDIS = "redis"
    MEMORY = "memory"


class MemoryCacheConfig:
    """In-process fallback store settings."""

    SWEEP_INTERVAL = 60 * BASE_SECOND


class RedisDefaults:
    """Connection defaults for the preferred backend."""

    HOST = "localhost"
    PORT = 6379
    DB = 0
    CONNECT_TIMEOUT = 5.0
    SOCKET_TIMEOUT = 5.0
