"""Tests for retry mechanisms."""

import pytest

from thoughtpolice.foundation.retry import (
    RetryConfig, RetryStrategy, RetryError, RetryableOperation, HTTP_RETRY
)

from factories import RecordingSleep


class TransientError(Exception):
    pass


class PermanentError(Exception):
    pass


class TestRetryConfig:
    """Test RetryConfig functionality."""

    def test_fixed_delay_calculation(self):
        config = RetryConfig(base_delay=2.0, strategy=RetryStrategy.FIXED, jitter=False)

        assert config.calculate_delay(0) == 2.0
        assert config.calculate_delay(5) == 2.0

    def test_exponential_delay_calculation(self):
        config = RetryConfig(
            base_delay=0.2,
            strategy=RetryStrategy.EXPONENTIAL,
            backoff_factor=2.0,
            jitter=False
        )

        assert config.calculate_delay(0) == pytest.approx(0.2)
        assert config.calculate_delay(1) == pytest.approx(0.4)
        assert config.calculate_delay(2) == pytest.approx(0.8)

    def test_linear_delay_calculation(self):
        config = RetryConfig(base_delay=1.0, strategy=RetryStrategy.LINEAR, jitter=False)

        assert config.calculate_delay(0) == 1.0
        assert config.calculate_delay(2) == 3.0

    def test_max_delay_limit(self):
        config = RetryConfig(base_delay=1.0, max_delay=5.0, jitter=False)

        assert config.calculate_delay(10) == 5.0

    def test_jitter_stays_within_ten_percent(self):
        config = RetryConfig(base_delay=10.0, strategy=RetryStrategy.FIXED, jitter=True)

        delays = [config.calculate_delay(0) for _ in range(50)]

        assert len(set(delays)) > 1
        assert all(9.0 <= delay <= 11.0 for delay in delays)

    def test_retry_if_narrows_exceptions(self):
        config = RetryConfig(
            exceptions=(ValueError,),
            retry_if=lambda e: "transient" in str(e)
        )

        assert config.is_retryable(ValueError("transient glitch"))
        assert not config.is_retryable(ValueError("bad input"))
        assert not config.is_retryable(KeyError("transient"))

    def test_http_retry_allows_three_retries(self):
        assert HTTP_RETRY.max_attempts == 4
        assert HTTP_RETRY.strategy == RetryStrategy.EXPONENTIAL


class TestRetryableOperation:
    """Test RetryableOperation functionality."""

    @pytest.mark.asyncio
    async def test_success_on_first_attempt(self):
        sleep = RecordingSleep()
        operation = RetryableOperation(RetryConfig(), sleep=sleep)

        async def succeed(value):
            return value * 2

        assert await operation.aexecute(succeed, 21) == 42
        assert sleep.delays == []

    @pytest.mark.asyncio
    async def test_success_after_transient_failures(self):
        sleep = RecordingSleep()
        retries = []
        operation = RetryableOperation(
            RetryConfig(max_attempts=4, base_delay=0.2, jitter=False, exceptions=(TransientError,)),
            on_retry=lambda attempt, error, delay: retries.append(attempt),
            sleep=sleep
        )
        calls = {"count": 0}

        async def flaky():
            calls["count"] += 1
            if calls["count"] < 3:
                raise TransientError("try again")
            return "ok"

        assert await operation.aexecute(flaky) == "ok"
        assert calls["count"] == 3
        assert retries == [1, 2]
        assert sleep.delays == [pytest.approx(0.2), pytest.approx(0.4)]

    @pytest.mark.asyncio
    async def test_exhausted_attempts_raise_retry_error(self):
        sleep = RecordingSleep()
        operation = RetryableOperation(
            RetryConfig(max_attempts=4, jitter=False, exceptions=(TransientError,)),
            sleep=sleep
        )
        calls = {"count": 0}

        async def always_fails():
            calls["count"] += 1
            raise TransientError(f"failure {calls['count']}")

        with pytest.raises(RetryError) as exc_info:
            await operation.aexecute(always_fails)

        assert calls["count"] == 4
        assert exc_info.value.attempts == 4
        assert str(exc_info.value.last_exception) == "failure 4"
        assert len(sleep.delays) == 3

    @pytest.mark.asyncio
    async def test_non_retryable_exception_propagates_immediately(self):
        sleep = RecordingSleep()
        operation = RetryableOperation(
            RetryConfig(exceptions=(TransientError,)),
            sleep=sleep
        )
        calls = {"count": 0}

        async def broken():
            calls["count"] += 1
            raise PermanentError("nope")

        with pytest.raises(PermanentError):
            await operation.aexecute(broken)

        assert calls["count"] == 1
        assert sleep.delays == []

    @pytest.mark.asyncio
    async def test_predicate_rejection_propagates_original_error(self):
        operation = RetryableOperation(
            RetryConfig(exceptions=(ValueError,), retry_if=lambda e: False),
            sleep=RecordingSleep()
        )

        async def invalid():
            raise ValueError("not worth retrying")

        with pytest.raises(ValueError, match="not worth retrying"):
            await operation.aexecute(invalid)
