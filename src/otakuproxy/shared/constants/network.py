"""
Network Configuration Constants

This module contains constants for outbound scraping: source site,
request pacing, retry policy, request queues and header rotation pools.
"""

from typing import ClassVar

from .cache import BASE_SECOND


class ScraperConfig:
    """Outbound scraper defaults."""

    SOURCE_BASE_URL = "https://otakudesu.best"
    TIMEOUT = 10 * BASE_SECOND
    MAX_RETRIES = 3

    # Pacing between requests
    DELAY_MIN = 0.5 * BASE_SECOND
    DELAY_MAX = 2.0 * BASE_SECOND

    DEFAULT_HEADERS: ClassVar[dict[str, str]] = {
        "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,image/avif,image/webp,*/*;q=0.8",
        "Accept-Language": "en-US,en;q=0.9,id;q=0.8",
        "Accept-Encoding": "gzip, deflate",
        "Connection": "keep-alive",
        "Cache-Control": "max-age=0",
    }

    USER_AGENTS: ClassVar[tuple[str, ...]] = (
        "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36",
        "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36",
        "Mozilla/5.0 (Windows NT 10.0; Win64; x64; rv:121.0) Gecko/20100101 Firefox/121.0",
        "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/605.1.15 (KHTML, like Gecko) Version/17.2 Safari/605.1.15",
        "Mozilla/5.0 (X11; Linux x86_64) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36",
    )

    REFERERS: ClassVar[tuple[str, ...]] = (
        "https://www.google.com/",
        "https://www.bing.com/",
        "https://duckduckgo.com/",
        "https://www.yahoo.com/",
    )


class RetryConfig:
    """Exponential backoff defaults."""

    MAX_RETRIES = 3
    INITIAL_DELAY = 1.0 * BASE_SECOND
    MAX_DELAY = 10.0 * BASE_SECOND
    BACKOFF_FACTOR = 2.0


class QueueConfig:
    """Request queue defaults for the two provisioned queues."""

    # Ordinary scraping
    SCRAPER_CONCURRENCY = 2
    SCRAPER_INTERVAL = 1.0 * BASE_SECOND
    SCRAPER_INTERVAL_CAP = 3
    SCRAPER_TASK_TIMEOUT = 30.0 * BASE_SECOND

    # Latency-sensitive or fragile upstream pages
    PRIORITY_CONCURRENCY = 1
    PRIORITY_INTERVAL = 0.5 * BASE_SECOND
    PRIORITY_INTERVAL_CAP = 2
    PRIORITY_TASK_TIMEOUT = 15.0 * BASE_SECOND

    SCRAPER_QUEUE_NAME = "scraper"
    PRIORITY_QUEUE_NAME = "priority"
