"""Tests for the dependency injection container."""

from __future__ import annotations

import logging

import pytest
from dependency_injector import providers

from otakuproxy.containers import Container
from otakuproxy.services import (
    CacheService,
    CacheStore,
    RequestQueue,
    ResourceLoader,
    RetryExecutor,
    ScraperClient,
)


@pytest.fixture
def container(settings):
    container = Container()
    container.config.override(providers.Object(settings))
    yield container
    container.config.reset_override()


class TestContainer:
    """Wiring of the proxy core."""

    def test_queues_follow_settings(self, container, settings):
        scraper_queue = container.scraper_queue()
        priority_queue = container.priority_queue()

        assert isinstance(scraper_queue, RequestQueue)
        assert scraper_queue.name == "scraper"
        assert scraper_queue.config == settings.queues.scraper
        assert priority_queue.name == "priority"
        assert priority_queue.config.concurrency == 1
        assert container.scraper_queue() is scraper_queue

    def test_retry_executor_uses_scraper_settings(self, container, settings):
        executor = container.retry_executor()

        assert isinstance(executor, RetryExecutor)
        assert executor.policy.max_retries == settings.scraper.max_retries
        assert executor.default_timeout == settings.scraper.timeout

    @pytest.mark.asyncio
    async def test_cache_store_resource(self, container):
        store = await container.cache_store()

        assert isinstance(store, CacheStore)
        assert store.backend == "memory"
        assert store.fallback.sweeper_running

        await container.shutdown_resources()
        assert not store.fallback.sweeper_running

    @pytest.mark.asyncio
    async def test_resource_loader_graph(self, container):
        loader = await container.resource_loader()

        assert isinstance(loader, ResourceLoader)
        assert isinstance(loader.cache, CacheService)
        assert isinstance(loader.scraper, ScraperClient)
        assert loader.scraper_queue is container.scraper_queue()
        assert loader.priority_queue is container.priority_queue()

        await container.shutdown_resources()

    def test_logger_resource(self, container):
        logger = container.logger()
        try:
            assert logger.name == "otakuproxy"
            assert logger.level == logging.INFO
        finally:
            logger.handlers.clear()
            logger.propagate = True
