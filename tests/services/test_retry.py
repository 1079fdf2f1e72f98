"""Unit tests for RetryPolicy and RetryExecutor."""

from __future__ import annotations

import asyncio

import pytest

from otakuproxy.config import RetrySettings, ScraperSettings
from otakuproxy.services.retry import RetryExecutor, RetryPolicy
from otakuproxy.shared.errors import (
    DomainError,
    ErrorCode,
    InfrastructureError,
    OtakuProxyError,
)


class Flaky:
    """Operation failing with the given errors before succeeding."""

    def __init__(self, errors, result="ok"):
        self.errors = list(errors)
        self.result = result
        self.calls = 0

    async def __call__(self):
        self.calls += 1
        if self.errors:
            raise self.errors.pop(0)
        return self.result


@pytest.fixture
def executor(recording_sleep) -> RetryExecutor:
    return RetryExecutor(
        policy=RetryPolicy(max_retries=3, initial_delay=1.0, max_delay=10.0, backoff_factor=2.0),
        default_timeout=1.0,
        sleep=recording_sleep,
    )


class TestRetryPolicy:
    """Backoff arithmetic and validation."""

    def test_delay_sequence(self):
        policy = RetryPolicy(initial_delay=1.0, max_delay=10.0, backoff_factor=2.0)
        assert [policy.delay_for(n) for n in range(1, 6)] == [1.0, 2.0, 4.0, 8.0, 10.0]

    def test_rejects_negative_retries(self):
        with pytest.raises(DomainError):
            RetryPolicy(max_retries=-1)

    def test_from_settings(self):
        policy = RetryPolicy.from_settings(
            ScraperSettings(
                max_retries=5,
                retry=RetrySettings(initial_delay=0.5, max_delay=4.0, backoff_factor=3.0),
            )
        )
        assert policy == RetryPolicy(
            max_retries=5, initial_delay=0.5, max_delay=4.0, backoff_factor=3.0
        )

    def test_with_max_retries(self):
        policy = RetryPolicy(max_retries=3)
        assert policy.with_max_retries(None) is policy
        assert policy.with_max_retries(0).max_retries == 0


class TestWithRetry:
    """Retry behaviour."""

    @pytest.mark.asyncio
    async def test_succeeds_after_connection_resets(self, executor, recording_sleep):
        """Three connection resets then success with max_retries=3."""
        operation = Flaky([ConnectionResetError("reset")] * 3, result="<html>")

        assert await executor.with_retry(operation, max_retries=3) == "<html>"
        assert operation.calls == 4
        assert recording_sleep.calls == [1.0, 2.0, 4.0]

    @pytest.mark.asyncio
    async def test_not_found_attempted_once(self, executor, recording_sleep):
        operation = Flaky([DomainError(ErrorCode.NOT_FOUND, "missing")])

        with pytest.raises(DomainError) as exc_info:
            await executor.with_retry(operation, max_retries=3)

        assert exc_info.value.code == ErrorCode.NOT_FOUND
        assert operation.calls == 1
        assert recording_sleep.calls == []

    @pytest.mark.asyncio
    async def test_exhaustion_reraises_classified_last_error(self, executor):
        operation = Flaky([ConnectionResetError("reset")] * 10)

        with pytest.raises(InfrastructureError) as exc_info:
            await executor.with_retry(operation, max_retries=2, operation_name="scraper_fetch")

        assert operation.calls == 3
        assert exc_info.value.code == ErrorCode.UPSTREAM_FETCH_ERROR
        assert isinstance(exc_info.value.original_error, ConnectionResetError)
        assert exc_info.value.context.operation == "scraper_fetch"

    @pytest.mark.asyncio
    async def test_zero_retries_single_attempt(self, executor):
        operation = Flaky([InfrastructureError(ErrorCode.UPSTREAM_FETCH_ERROR, "502")])

        with pytest.raises(InfrastructureError):
            await executor.with_retry(operation, max_retries=0)

        assert operation.calls == 1

    @pytest.mark.asyncio
    async def test_delays_capped_by_max_delay(self, recording_sleep):
        executor = RetryExecutor(
            policy=RetryPolicy(max_retries=5, initial_delay=1.0, max_delay=3.0, backoff_factor=2.0),
            sleep=recording_sleep,
        )
        operation = Flaky([ConnectionResetError()] * 5)

        await executor.with_retry(operation)

        assert recording_sleep.calls == [1.0, 2.0, 3.0, 3.0, 3.0]

    @pytest.mark.asyncio
    async def test_policy_override(self, executor, recording_sleep):
        operation = Flaky([ConnectionResetError()])

        await executor.with_retry(
            operation,
            policy=RetryPolicy(max_retries=1, initial_delay=0.25, max_delay=1.0),
        )

        assert recording_sleep.calls == [0.25]

    def test_is_retryable(self):
        assert RetryExecutor.is_retryable(ConnectionResetError()) is True
        assert RetryExecutor.is_retryable(DomainError(ErrorCode.INVALID_REQUEST, "x")) is False


class TestWithTimeout:
    """Timeout behaviour."""

    @pytest.mark.asyncio
    async def test_completes_in_time(self, executor):
        async def fast():
            return 42

        assert await executor.with_timeout(fast, 1.0) == 42

    @pytest.mark.asyncio
    async def test_times_out(self, executor):
        async def slow():
            await asyncio.sleep(10)

        with pytest.raises(InfrastructureError) as exc_info:
            await executor.with_timeout(slow, 0.01, operation_name="scraper_fetch")

        assert exc_info.value.code == ErrorCode.TIMEOUT
        assert exc_info.value.status_code == 504

    @pytest.mark.asyncio
    async def test_operation_failure_propagates(self, executor):
        async def broken():
            raise DomainError(ErrorCode.NOT_FOUND, "missing")

        with pytest.raises(DomainError):
            await executor.with_timeout(broken, 1.0)


class TestWithRetryAndTimeout:
    """Combined behaviour."""

    @pytest.mark.asyncio
    async def test_timeouts_are_retried(self, executor, recording_sleep):
        calls = 0

        async def slow_then_fast():
            nonlocal calls
            calls += 1
            if calls < 3:
                await asyncio.sleep(10)
            return "done"

        result = await executor.with_retry_and_timeout(slow_then_fast, max_retries=3, timeout=0.01)

        assert result == "done"
        assert calls == 3
        assert recording_sleep.calls == [1.0, 2.0]

    @pytest.mark.asyncio
    async def test_final_timeout_surfaces_as_timeout(self, executor):
        async def always_slow():
            await asyncio.sleep(10)

        with pytest.raises(OtakuProxyError) as exc_info:
            await executor.with_retry_and_timeout(always_slow, max_retries=1, timeout=0.01)

        assert exc_info.value.code == ErrorCode.TIMEOUT


class TestCancellation:
    """Cancellation ends the retry loop instead of counting as a failure."""

    @pytest.mark.asyncio
    async def test_cancel_stops_with_retry(self, executor, recording_sleep):
        calls = 0
        started = asyncio.Event()

        async def slow():
            nonlocal calls
            calls += 1
            started.set()
            await asyncio.sleep(10)

        task = asyncio.ensure_future(executor.with_retry(slow))
        await started.wait()
        task.cancel()

        with pytest.raises(asyncio.CancelledError):
            await task
        assert calls == 1
        assert recording_sleep.calls == []

    @pytest.mark.asyncio
    async def test_outer_timeout_is_not_retried(self, executor):
        calls = 0

        async def slow():
            nonlocal calls
            calls += 1
            await asyncio.sleep(10)

        with pytest.raises(asyncio.TimeoutError):
            await asyncio.wait_for(executor.with_retry(slow), timeout=0.05)

        assert calls == 1
