"""Unit tests for ResourceLoader."""

from __future__ import annotations

import pytest

from otakuproxy.config import QueueSettings
from otakuproxy.services.request_queue import RequestQueue
from otakuproxy.services.resource_loader import ResourceLoader
from otakuproxy.shared.errors import DomainError, ErrorCode, OtakuProxyError

QUEUE = QueueSettings(concurrency=2, interval=60.0, interval_cap=100, task_timeout=None)


def parse_title(html: str) -> dict:
    return {"title": html.removeprefix("<h1>").removesuffix("</h1>")}


@pytest.fixture
def scraper(mocker):
    scraper = mocker.Mock()
    scraper.fetch = mocker.AsyncMock(return_value="<h1>One Piece</h1>")
    return scraper


@pytest.fixture
def queues():
    return RequestQueue(QUEUE, name="scraper"), RequestQueue(QUEUE, name="priority")


@pytest.fixture
def loader(cache_service, scraper, queues) -> ResourceLoader:
    scraper_queue, priority_queue = queues
    return ResourceLoader(cache_service, scraper, scraper_queue, priority_queue)


class TestResourceLoader:
    """Cache-first loading."""

    @pytest.mark.asyncio
    async def test_miss_fetches_parses_and_stores(self, loader, scraper, cache_service):
        response = await loader.load("anime", ["one-piece"], "/anime/one-piece/", parse_title)

        assert response.data == {"title": "One Piece"}
        assert response.cache.cached is False
        assert response.cache.expires_at is None
        assert response.cache.backend == "memory"
        scraper.fetch.assert_awaited_once_with("/anime/one-piece/")
        assert await cache_service.get("otaku:anime:one-piece") == {"title": "One Piece"}
        assert 3590 < await cache_service.get_ttl("otaku:anime:one-piece") <= 3600

    @pytest.mark.asyncio
    async def test_hit_skips_fetch(self, loader, scraper):
        await loader.load("anime", ["one-piece"], "/anime/one-piece/", parse_title)
        response = await loader.load("anime", ["one-piece"], "/anime/one-piece/", parse_title)

        assert response.data == {"title": "One Piece"}
        assert response.cache.cached is True
        assert response.cache.expires_at is not None
        scraper.fetch.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_ttl_override(self, loader, cache_service):
        await loader.load("home", [], "/", parse_title, ttl_seconds=30)

        assert 0 < await cache_service.get_ttl("otaku:home") <= 30

    @pytest.mark.asyncio
    async def test_urgent_uses_priority_queue(self, loader, queues, mocker):
        scraper_queue, priority_queue = queues
        spy_priority = mocker.spy(priority_queue, "add")
        spy_scraper = mocker.spy(scraper_queue, "add")

        await loader.load("stream", ["ep-1"], "/episode/ep-1/", parse_title, urgent=True)

        assert spy_priority.call_count == 1
        assert spy_scraper.call_count == 0

    @pytest.mark.asyncio
    async def test_fetch_error_propagates_and_nothing_cached(
        self, loader, scraper, cache_service
    ):
        scraper.fetch.side_effect = DomainError(ErrorCode.NOT_FOUND, "Resource not found")

        with pytest.raises(DomainError):
            await loader.load("anime", ["missing"], "/anime/missing/", parse_title)

        assert await cache_service.exists("otaku:anime:missing") is False

    @pytest.mark.asyncio
    async def test_parse_failure_is_internal_error(self, loader):
        def broken(html: str) -> dict:
            raise KeyError("title")

        with pytest.raises(OtakuProxyError) as exc_info:
            await loader.load("anime", ["x"], "/anime/x/", broken)

        assert exc_info.value.code == ErrorCode.INTERNAL_ERROR

    @pytest.mark.asyncio
    async def test_to_dict(self, loader):
        response = await loader.load("genres", [], "/genre-list/", parse_title)

        assert response.to_dict() == {
            "data": {"title": "One Piece"},
            "cache": {"cached": False, "expires_at": None, "backend": "memory"},
        }
