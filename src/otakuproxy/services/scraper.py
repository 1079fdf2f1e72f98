"""Scraper client for the source catalog site.

Performs outbound HTML fetches with browser-like headers, rotating
User-Agent and Referer values and randomized pacing. Retry and timeout are
delegated to the RetryExecutor; every failure leaves this module already
classified into the error taxonomy.
"""

from __future__ import annotations

import asyncio
import logging
import random
import time
from types import TracebackType
from typing import Awaitable, Callable

import httpx

from otakuproxy.config.models.scraper_settings import ScraperSettings
from otakuproxy.services.retry import RetryExecutor, RetryPolicy
from otakuproxy.shared.constants import HTTPHeaders, HTTPStatusCodes, ScraperConfig
from otakuproxy.shared.errors import (
    ErrorCode,
    ErrorContext,
    InfrastructureError,
    OtakuProxyError,
    create_not_found_error,
    create_timeout_error,
    create_upstream_error,
)
from otakuproxy.shared.logging import log_api_call

logger = logging.getLogger(__name__)


class ScraperClient:
    """Async HTML fetcher bound to the source site.

    Args:
        settings: Base URL, timeout, retry and pacing configuration
        executor: Retry/timeout executor; built from settings when omitted
        client: Preconfigured httpx client (tests pass one with a MockTransport)
        sleep: Awaitable sleep used for pacing, injectable for tests
        rng: Random source for delays and header rotation
    """

    def __init__(
        self,
        settings: ScraperSettings | None = None,
        executor: RetryExecutor | None = None,
        client: httpx.AsyncClient | None = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
        rng: random.Random | None = None,
    ) -> None:
        self.settings = settings or ScraperSettings()
        self.executor = executor or RetryExecutor(
            policy=RetryPolicy.from_settings(self.settings),
            default_timeout=self.settings.timeout,
        )
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(
            base_url=self.settings.source_base_url,
            timeout=self.settings.timeout,
            headers=ScraperConfig.DEFAULT_HEADERS,
            follow_redirects=True,
        )
        self._sleep = sleep
        self._rng = rng or random.Random()

        self._spacing_lock = asyncio.Lock()
        self._last_request_at: float | None = None

    async def __aenter__(self) -> ScraperClient:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        await self.close()

    async def close(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    def _user_agent(self) -> str:
        return self._rng.choice(ScraperConfig.USER_AGENTS)

    def _referer(self) -> str:
        return self._rng.choice(ScraperConfig.REFERERS)

    async def _random_delay(self) -> None:
        delay = self._rng.uniform(self.settings.delay_min, self.settings.delay_max)
        if delay > 0:
            await self._sleep(delay)

    async def _enforce_spacing(self) -> None:
        """Keep request starts at least delay_min seconds apart."""
        async with self._spacing_lock:
            if self._last_request_at is not None:
                elapsed = time.monotonic() - self._last_request_at
                remaining = self.settings.delay_min - elapsed
                if remaining > 0:
                    await self._sleep(remaining)
            self._last_request_at = time.monotonic()

    async def fetch(self, path: str) -> str:
        """Fetch a page of the source site.

        Args:
            path: Path relative to the source base URL, e.g. ``/anime/one-piece/``

        Returns:
            Response body as text

        Raises:
            OtakuProxyError: NOT_FOUND, SERVICE_UNAVAILABLE, RATE_LIMIT_EXCEEDED,
                TIMEOUT or UPSTREAM_FETCH_ERROR after retries
        """
        await self._random_delay()
        await self._enforce_spacing()

        return await self.executor.with_retry_and_timeout(
            lambda: self._get(path, referer=self._referer(), operation="scraper_fetch"),
            max_retries=self.settings.max_retries,
            timeout=self.settings.timeout,
            operation_name="scraper_fetch",
        )

    async def fetch_external(self, url: str) -> str:
        """Fetch an absolute URL outside the source site, such as an embed page."""
        await self._random_delay()

        return await self.executor.with_retry_and_timeout(
            lambda: self._get(
                url,
                referer=self.settings.source_base_url,
                operation="scraper_fetch_external",
            ),
            max_retries=self.settings.max_retries,
            timeout=self.settings.timeout,
            operation_name="scraper_fetch_external",
        )

    async def _get(self, url: str, referer: str, operation: str) -> str:
        headers = {
            HTTPHeaders.USER_AGENT: self._user_agent(),
            HTTPHeaders.REFERER: referer,
        }
        start = time.perf_counter()
        try:
            response = await self._client.get(url, headers=headers)
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            log_api_call(
                logger,
                url,
                status_code=e.response.status_code,
                duration_ms=(time.perf_counter() - start) * 1000,
            )
            raise self._convert_status_error(e, url, operation) from e
        except httpx.TimeoutException as e:
            raise create_timeout_error(self.settings.timeout, operation, e) from e
        except httpx.HTTPError as e:
            raise create_upstream_error(
                f"Failed to fetch: {url} ({type(e).__name__})",
                operation=operation,
                url=url,
                original_error=e,
            ) from e

        log_api_call(
            logger,
            url,
            status_code=response.status_code,
            duration_ms=(time.perf_counter() - start) * 1000,
            context={"size": len(response.content)},
        )
        return response.text

    @staticmethod
    def _convert_status_error(
        error: httpx.HTTPStatusError,
        url: str,
        operation: str,
    ) -> OtakuProxyError:
        status_code = error.response.status_code
        context = ErrorContext(
            operation=operation,
            additional_data={"url": url, "status_code": status_code},
        )
        if status_code == HTTPStatusCodes.NOT_FOUND:
            return create_not_found_error(f"Resource {url}", operation, error)
        if status_code == HTTPStatusCodes.FORBIDDEN:
            return InfrastructureError(
                ErrorCode.SERVICE_UNAVAILABLE,
                "Access denied by source website",
                context,
                error,
            )
        if status_code == HTTPStatusCodes.TOO_MANY_REQUESTS:
            return InfrastructureError(
                ErrorCode.RATE_LIMIT_EXCEEDED,
                "Rate limited by source website",
                context,
                error,
            )
        return create_upstream_error(
            f"Failed to fetch: {url} (status {status_code})",
            operation=operation,
            url=url,
            status_code=status_code,
            original_error=error,
        )
