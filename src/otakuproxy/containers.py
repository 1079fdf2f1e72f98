"""Dependency Injection container for otakuproxy.

This module provides a centralized DI container using dependency-injector
to wire the proxy core together.

The container manages:
- Settings (Singleton)
- Cache store (async Resource, probes Redis on init) and cache service
- Retry executor and scraper client (async Resource, closes its HTTP client)
- The scraper and priority request queues
- The resource loader
"""

from __future__ import annotations

from typing import AsyncIterator

from dependency_injector import containers, providers

from otakuproxy.config.loader import load_settings
from otakuproxy.config.models.cache_settings import CacheSettings
from otakuproxy.config.models.scraper_settings import ScraperSettings
from otakuproxy.services import (
    CacheService,
    CacheStore,
    RequestQueue,
    ResourceLoader,
    RetryExecutor,
    RetryPolicy,
    ScraperClient,
)
from otakuproxy.shared.constants import QueueConfig
from otakuproxy.shared.logging import setup_structured_logger


async def init_cache_store(settings: CacheSettings) -> AsyncIterator[CacheStore]:
    """Create the cache store, start its sweeper and close it on shutdown."""
    store = await CacheStore.create(settings)
    await store.start()
    try:
        yield store
    finally:
        await store.close()


async def init_scraper(
    settings: ScraperSettings,
    executor: RetryExecutor,
) -> AsyncIterator[ScraperClient]:
    """Create the scraper client and close its HTTP client on shutdown."""
    scraper = ScraperClient(settings=settings, executor=executor)
    try:
        yield scraper
    finally:
        await scraper.close()


class Container(containers.DeclarativeContainer):
    """Dependency Injection container for otakuproxy services.

    Cache store and scraper are async resources, so every provider that
    depends on them returns an awaitable.

    Example:
        >>> container = Container()
        >>> loader = await container.resource_loader()
        >>> response = await loader.load("anime", ["one-piece"], "/anime/one-piece/", parse)
        >>> await container.shutdown_resources()
    """

    # Configuration
    config = providers.Singleton(load_settings)

    logger = providers.Resource(
        setup_structured_logger,
        name="otakuproxy",
        level=providers.Callable(lambda config: config.logging.level, config=config),
        log_file=providers.Callable(lambda config: config.logging.file, config=config),
        use_rich_console=providers.Callable(
            lambda config: config.logging.console_output,
            config=config,
        ),
    )

    # Cache
    cache_store = providers.Resource(
        init_cache_store,
        settings=providers.Callable(lambda config: config.cache, config=config),
    )

    cache_service = providers.Singleton(CacheService, store=cache_store)

    # Retry and scraping
    retry_policy = providers.Singleton(
        RetryPolicy.from_settings,
        settings=providers.Callable(lambda config: config.scraper, config=config),
    )

    retry_executor = providers.Singleton(
        RetryExecutor,
        policy=retry_policy,
        default_timeout=providers.Callable(
            lambda config: config.scraper.timeout,
            config=config,
        ),
    )

    scraper = providers.Resource(
        init_scraper,
        settings=providers.Callable(lambda config: config.scraper, config=config),
        executor=retry_executor,
    )

    # Request queues
    scraper_queue = providers.Singleton(
        RequestQueue,
        config=providers.Callable(lambda config: config.queues.scraper, config=config),
        name=QueueConfig.SCRAPER_QUEUE_NAME,
    )

    priority_queue = providers.Singleton(
        RequestQueue,
        config=providers.Callable(lambda config: config.queues.priority, config=config),
        name=QueueConfig.PRIORITY_QUEUE_NAME,
    )

    # Resource loading
    resource_loader = providers.Singleton(
        ResourceLoader,
        cache=cache_service,
        scraper=scraper,
        scraper_queue=scraper_queue,
        priority_queue=priority_queue,
        ttl_settings=providers.Callable(lambda config: config.cache.ttl, config=config),
    )
