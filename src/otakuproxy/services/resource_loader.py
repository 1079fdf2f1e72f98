"""Cache-first resource loading.

Composes the cache, the request queues and the scraper into the per-request
flow: look the resource up in the cache; on a miss fetch the page through a
queue, parse it, store the parsed value and return it with fresh metadata.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Any, Callable, Generic, Sequence, TypeVar

from otakuproxy.config.models.cache_settings import CacheTTLSettings
from otakuproxy.services.cache import (
    CacheMetadata,
    CacheResource,
    CacheService,
    generate_cache_key,
    get_ttl,
)
from otakuproxy.services.request_queue import RequestQueue
from otakuproxy.services.scraper import ScraperClient
from otakuproxy.shared.errors import OtakuProxyError, classify_exception
from otakuproxy.shared.logging import (
    log_operation_error,
    log_operation_start,
    log_operation_success,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass(frozen=True)
class CachedResponse(Generic[T]):
    """Loaded data and its cache status.

    On a hit ``data`` is the JSON-decoded cached value; on a miss it is
    whatever ``parse`` returned.
    """

    data: T
    cache: CacheMetadata

    def to_dict(self) -> dict[str, Any]:
        return {"data": self.data, "cache": self.cache.model_dump()}


class ResourceLoader:
    """Loads scraped resources through the cache.

    Args:
        cache: JSON cache service
        scraper: Client used to fetch pages on a miss
        scraper_queue: Queue for ordinary fetches
        priority_queue: Queue for urgent fetches
        ttl_settings: Per-resource TTLs; defaults apply when omitted
    """

    def __init__(
        self,
        cache: CacheService,
        scraper: ScraperClient,
        scraper_queue: RequestQueue,
        priority_queue: RequestQueue,
        ttl_settings: CacheTTLSettings | None = None,
    ) -> None:
        self.cache = cache
        self.scraper = scraper
        self.scraper_queue = scraper_queue
        self.priority_queue = priority_queue
        self.ttl_settings = ttl_settings or CacheTTLSettings()

    async def load(
        self,
        resource: CacheResource | str,
        params: Sequence[str | int],
        path: str,
        parse: Callable[[str], T],
        *,
        priority: int = 0,
        urgent: bool = False,
        ttl_seconds: int | None = None,
    ) -> CachedResponse[Any]:
        """Return a resource from cache, fetching and caching it on a miss.

        Args:
            resource: Resource type, selects key prefix and default TTL
            params: Request parameters that complete the cache key
            path: Source-site path to fetch on a miss
            parse: Turns fetched HTML into a JSON-serializable value
            priority: Queue priority of the fetch
            urgent: Use the priority queue instead of the scraper queue
            ttl_seconds: Overrides the resource's configured TTL

        Raises:
            OtakuProxyError: Fetch failures from the scraper, or INTERNAL_ERROR
                when parse fails
        """
        key = generate_cache_key(resource, *params)

        cached = await self.cache.get(key)
        if cached is not None:
            metadata = await self.cache.get_metadata(key)
            return CachedResponse(data=cached, cache=metadata)

        log_operation_start(logger, "resource_load", {"key": key, "path": path})
        queue = self.priority_queue if urgent else self.scraper_queue
        start = time.perf_counter()
        html = await queue.add(lambda: self.scraper.fetch(path), priority=priority)

        try:
            data = parse(html)
        except OtakuProxyError:
            raise
        except Exception as e:
            error = classify_exception(e, "resource_parse")
            log_operation_error(logger, error, additional_context={"key": key, "path": path})
            raise error from e

        ttl = ttl_seconds if ttl_seconds is not None else get_ttl(resource, self.ttl_settings)
        await self.cache.set(key, data, ttl)

        log_operation_success(
            logger,
            operation="resource_load",
            duration_ms=(time.perf_counter() - start) * 1000,
            result_info={"queue": queue.name, "ttl_seconds": ttl},
            context={"key": key},
        )
        return CachedResponse(data=data, cache=CacheMetadata.miss(self.cache.backend))
