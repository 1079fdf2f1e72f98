"""Retry and timeout executor.

Wraps arbitrary async operations with a per-attempt timeout and bounded
exponential-backoff retries. Retryability follows the error taxonomy:
requests that are wrong in themselves (NOT_FOUND, INVALID_REQUEST,
VALIDATION_ERROR) are attempted once, everything else is retried.

The delay before retry ``n`` (1-based) is
``min(initial_delay * backoff_factor ** (n - 1), max_delay)``.
"""

from __future__ import annotations

import asyncio
import dataclasses
import logging
from dataclasses import dataclass
from typing import Awaitable, Callable, TypeVar

from tenacity import (
    AsyncRetrying,
    before_sleep_log,
    retry_if_exception,
    stop_after_attempt,
    wait_exponential,
)

from otakuproxy.config.models.scraper_settings import ScraperSettings
from otakuproxy.shared.constants import RetryConfig, ScraperConfig
from otakuproxy.shared.errors import (
    classify_exception,
    create_timeout_error,
    create_validation_error,
    is_retryable,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")

Operation = Callable[[], Awaitable[T]]
SleepFunc = Callable[[float], Awaitable[None]]


@dataclass(frozen=True)
class RetryPolicy:
    """Backoff parameters, durations in seconds.

    Attributes:
        max_retries: Retries after the first attempt (attempts = max_retries + 1)
        initial_delay: Delay before the first retry
        max_delay: Upper bound on any single delay
        backoff_factor: Multiplier applied per further retry
    """

    max_retries: int = RetryConfig.MAX_RETRIES
    initial_delay: float = RetryConfig.INITIAL_DELAY
    max_delay: float = RetryConfig.MAX_DELAY
    backoff_factor: float = RetryConfig.BACKOFF_FACTOR

    def __post_init__(self) -> None:
        if self.max_retries < 0:
            raise create_validation_error(
                f"max_retries must be >= 0, got: {self.max_retries}",
                field="max_retries",
                operation="retry_policy_init",
            )
        if self.initial_delay < 0 or self.max_delay < 0:
            raise create_validation_error(
                "Retry delays must be >= 0",
                field="initial_delay",
                operation="retry_policy_init",
            )

    @classmethod
    def from_settings(cls, settings: ScraperSettings) -> RetryPolicy:
        return cls(
            max_retries=settings.max_retries,
            initial_delay=settings.retry.initial_delay,
            max_delay=settings.retry.max_delay,
            backoff_factor=settings.retry.backoff_factor,
        )

    def delay_for(self, retry_number: int) -> float:
        """Delay before the given retry (1-based)."""
        return min(
            self.initial_delay * self.backoff_factor ** (retry_number - 1),
            self.max_delay,
        )

    def with_max_retries(self, max_retries: int | None) -> RetryPolicy:
        if max_retries is None:
            return self
        return dataclasses.replace(self, max_retries=max_retries)


class RetryExecutor:
    """Runs async operations with timeout and retry.

    Args:
        policy: Default backoff policy
        default_timeout: Per-attempt timeout used by with_retry_and_timeout
        sleep: Awaitable sleep used between attempts, injectable for tests
    """

    def __init__(
        self,
        policy: RetryPolicy | None = None,
        default_timeout: float = ScraperConfig.TIMEOUT,
        sleep: SleepFunc = asyncio.sleep,
    ) -> None:
        self.policy = policy or RetryPolicy()
        self.default_timeout = default_timeout
        self._sleep = sleep

    @staticmethod
    def is_retryable(error: BaseException) -> bool:
        return is_retryable(error)

    async def with_timeout(
        self,
        operation: Operation[T],
        timeout: float,
        operation_name: str | None = None,
    ) -> T:
        """Run operation, failing with TIMEOUT when it outlives timeout seconds.

        On expiry the operation is cancelled.

        Raises:
            InfrastructureError: TIMEOUT when the timer wins
        """
        try:
            return await asyncio.wait_for(operation(), timeout=timeout)
        except asyncio.TimeoutError as e:
            raise create_timeout_error(timeout, operation_name, e) from e

    async def with_retry(
        self,
        operation: Operation[T],
        max_retries: int | None = None,
        policy: RetryPolicy | None = None,
        operation_name: str | None = None,
    ) -> T:
        """Run operation until it succeeds, fails non-retryably or runs out of attempts.

        Raises:
            OtakuProxyError: The last failure, classified into the taxonomy
        """
        effective = (policy or self.policy).with_max_retries(max_retries)
        retrying = AsyncRetrying(
            stop=stop_after_attempt(effective.max_retries + 1),
            wait=wait_exponential(
                multiplier=effective.initial_delay,
                exp_base=effective.backoff_factor,
                max=effective.max_delay,
            ),
            retry=retry_if_exception(is_retryable),
            before_sleep=before_sleep_log(logger, logging.WARNING),
            sleep=self._sleep,
            reraise=True,
        )
        # CancelledError is not an Exception and passes through unchanged
        try:
            async for attempt in retrying:
                with attempt:
                    return await operation()
        except Exception as e:
            error = classify_exception(e, operation_name)
            if error is e:
                raise
            raise error from e
        # AsyncRetrying always returns or raises inside the loop
        raise AssertionError("unreachable")

    async def with_retry_and_timeout(
        self,
        operation: Operation[T],
        max_retries: int | None = None,
        timeout: float | None = None,
        operation_name: str | None = None,
    ) -> T:
        """Retry operation with every attempt bounded by timeout seconds."""
        attempt_timeout = self.default_timeout if timeout is None else timeout
        return await self.with_retry(
            lambda: self.with_timeout(operation, attempt_timeout, operation_name),
            max_retries=max_retries,
            operation_name=operation_name,
        )
