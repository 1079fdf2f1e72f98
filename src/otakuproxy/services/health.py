"""Health checks for the proxy core.

Summarises cache state, request queue load and, when asked, upstream
reachability. A failing source site only degrades the report; a failing
cache makes it an error.
"""

from __future__ import annotations

import logging
import time
from datetime import datetime, timezone
from typing import Literal

from pydantic import BaseModel, Field

from otakuproxy.services.cache import CacheService
from otakuproxy.services.request_queue import RequestQueue
from otakuproxy.services.scraper import ScraperClient
from otakuproxy.shared.errors import classify_exception

logger = logging.getLogger(__name__)

HealthStatus = Literal["ok", "degraded", "error"]

_STARTED_AT = time.monotonic()


class HealthCheck(BaseModel):
    """Result of one named check."""

    status: HealthStatus
    message: str | None = None
    response_time_ms: float | None = Field(default=None, ge=0)


class HealthReport(BaseModel):
    """Aggregated health of the core."""

    status: HealthStatus
    timestamp: str
    uptime_seconds: float
    checks: dict[str, HealthCheck] = Field(default_factory=dict)


async def _check_cache(cache: CacheService) -> HealthCheck:
    start = time.perf_counter()
    try:
        healthy = await cache.ping()
    except Exception as e:  # noqa: BLE001
        return HealthCheck(status="error", message=f"Cache unavailable: {e!s}")
    elapsed = (time.perf_counter() - start) * 1000

    if not healthy:
        return HealthCheck(status="error", message="Cache unavailable", response_time_ms=elapsed)
    if cache.store.degraded:
        return HealthCheck(
            status="degraded",
            message=f"Serving from {cache.backend} fallback",
            response_time_ms=elapsed,
        )
    return HealthCheck(status="ok", message=f"Backend: {cache.backend}", response_time_ms=elapsed)


def _check_queues(queues: dict[str, RequestQueue]) -> HealthCheck:
    parts = []
    for name, queue in queues.items():
        stats = queue.get_stats()
        paused = " (paused)" if stats["is_paused"] else ""
        parts.append(f"{name}: {stats['size']} waiting, {stats['pending']} running{paused}")
    return HealthCheck(status="ok", message="; ".join(parts) or None)


async def _check_source(scraper: ScraperClient) -> HealthCheck:
    start = time.perf_counter()
    try:
        await scraper.fetch("/")
    except Exception as e:  # noqa: BLE001
        error = classify_exception(e, "health_source")
        logger.warning("Source site check failed: %s", error)
        return HealthCheck(status="error", message=error.message)
    return HealthCheck(status="ok", response_time_ms=(time.perf_counter() - start) * 1000)


def _aggregate(checks: dict[str, HealthCheck]) -> HealthStatus:
    if any(c.status == "error" for name, c in checks.items() if name != "source"):
        return "error"
    if all(c.status == "ok" for c in checks.values()):
        return "ok"
    return "degraded"


async def check_health(
    cache: CacheService,
    queues: dict[str, RequestQueue] | None = None,
    scraper: ScraperClient | None = None,
) -> HealthReport:
    """Run every applicable check and aggregate them.

    Args:
        cache: Cache service to ping
        queues: Named queues whose load is reported
        scraper: When given, the source site front page is fetched

    Returns:
        Report whose status is ``error`` when the cache fails, ``degraded``
        when only the source site fails or the cache runs on its fallback,
        and ``ok`` otherwise
    """
    checks: dict[str, HealthCheck] = {"cache": await _check_cache(cache)}
    if queues:
        checks["queues"] = _check_queues(queues)
    if scraper is not None:
        checks["source"] = await _check_source(scraper)

    return HealthReport(
        status=_aggregate(checks),
        timestamp=datetime.now(timezone.utc).isoformat(),
        uptime_seconds=round(time.monotonic() - _STARTED_AT, 3),
        checks=checks,
    )
