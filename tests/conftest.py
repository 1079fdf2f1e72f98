"""
Pytest configuration and shared fixtures for otakuproxy tests.

This module provides common fixtures and configuration that can be used
across all test modules in the project.
"""

from __future__ import annotations

from collections.abc import AsyncGenerator

import fakeredis
import pytest

from otakuproxy.config import (
    CacheSettings,
    RedisSettings,
    RetrySettings,
    ScraperSettings,
    Settings,
)
from otakuproxy.services.cache import (
    CacheService,
    CacheStore,
    MemoryCacheBackend,
    RedisCacheBackend,
)


class RecordingSleep:
    """Awaitable sleep replacement that records requested delays."""

    def __init__(self) -> None:
        self.calls: list[float] = []

    async def __call__(self, delay: float) -> None:
        self.calls.append(delay)


class FakeClock:
    """Manually advanced clock returning seconds."""

    def __init__(self, start: float = 1_700_000_000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def recording_sleep() -> RecordingSleep:
    return RecordingSleep()


@pytest.fixture
def fake_clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def scraper_settings() -> ScraperSettings:
    """Scraper settings with pacing and backoff disabled."""
    return ScraperSettings(
        source_base_url="https://source.test",
        timeout=2.0,
        max_retries=3,
        delay_min=0.0,
        delay_max=0.0,
        retry=RetrySettings(initial_delay=0.0, max_delay=0.0, backoff_factor=2.0),
    )


@pytest.fixture
def settings(scraper_settings: ScraperSettings) -> Settings:
    """Full settings for tests: memory cache only, no pacing."""
    return Settings(
        cache=CacheSettings(redis=RedisSettings(enabled=False)),
        scraper=scraper_settings,
    )


@pytest.fixture
def memory_backend(fake_clock: FakeClock) -> MemoryCacheBackend:
    return MemoryCacheBackend(clock=fake_clock)


@pytest.fixture
def memory_store(memory_backend: MemoryCacheBackend) -> CacheStore:
    return CacheStore(fallback=memory_backend)


@pytest.fixture
def cache_service(memory_store: CacheStore) -> CacheService:
    return CacheService(memory_store)


@pytest.fixture
async def fake_redis() -> AsyncGenerator[fakeredis.FakeAsyncRedis, None]:
    """In-process Redis double speaking the redis.asyncio API."""
    client = fakeredis.FakeAsyncRedis(decode_responses=True)
    yield client
    await client.flushall()
    await client.aclose()


@pytest.fixture
def redis_backend(fake_redis: fakeredis.FakeAsyncRedis) -> RedisCacheBackend:
    return RedisCacheBackend(fake_redis)
