"""Tests for the error taxonomy and retry policy."""

import pytest

from sources.errors import (
    ConfigurationError,
    NetworkError,
    ProviderError,
    RateLimitError,
    RequestTimeoutError,
    RetriesExhaustedError,
    ValidationError,
    is_retryable,
)
from sources.retry import RetryPolicy, with_retry


class Flaky:
    """Operation that raises the given errors in turn, then returns "ok"."""

    def __init__(self, *errors):
        self.errors = list(errors)
        self.calls = 0

    async def __call__(self):
        self.calls += 1
        if self.errors:
            raise self.errors.pop(0)
        return "ok"


class TestIsRetryable:

    @pytest.mark.parametrize("error,expected", [
        (RateLimitError("slow down"), True),
        (RequestTimeoutError("timed out"), True),
        (NetworkError("dns"), True),
        (ProviderError("server", status=500), True),
        (ProviderError("gateway", status=503), True),
        (ProviderError("timeout", status=408), True),
        (ProviderError("bad request", status=400), False),
        (ProviderError("not found", status=404), False),
        (ProviderError("malformed"), False),
        (ValidationError("bad article"), False),
        (ConfigurationError("no key"), False),
        (ValueError("unrelated"), False),
    ])
    def test_classification(self, error, expected):
        assert is_retryable(error) is expected

    def test_rate_limit_is_429(self):
        error = RateLimitError("slow down", source="newsapi", retry_after=5)
        assert error.status == 429
        assert error.to_dict() == {
            "type": "RateLimitError", "message": "slow down", "source": "newsapi", "status": 429,
        }


NO_JITTER = RetryPolicy(jitter=0.0)


class TestBackoff:

    @pytest.mark.asyncio
    async def test_exponential_and_capped(self, sleep):
        """Delays double from the base delay and stop growing at max_delay."""
        operation = Flaky(*[NetworkError(f"fail {i}") for i in range(7)])
        policy = RetryPolicy(max_attempts=8, jitter=0.0)

        assert await with_retry(operation, policy, sleep=sleep) == "ok"
        assert sleep.delays == [1.0, 2.0, 4.0, 8.0, 16.0, 30.0, 30.0]

    @pytest.mark.asyncio
    async def test_jitter_bounded(self, sleep):
        operation = Flaky(NetworkError("reset"))
        await with_retry(operation, RetryPolicy(jitter=0.5), sleep=sleep)

        assert len(sleep.delays) == 1
        assert 1.0 <= sleep.delays[0] <= 1.5

    def test_invalid_policy(self):
        with pytest.raises(ValueError):
            RetryPolicy(max_attempts=0)


class TestWithRetry:

    @pytest.mark.asyncio
    async def test_succeeds_after_transient_failures(self, sleep):
        operation = Flaky(NetworkError("reset"), RequestTimeoutError("slow"))
        result = await with_retry(operation, NO_JITTER, sleep=sleep)

        assert result == "ok"
        assert operation.calls == 3
        assert sleep.delays == [1.0, 2.0]

    @pytest.mark.asyncio
    async def test_non_retryable_raised_immediately(self, sleep):
        operation = Flaky(ProviderError("not found", status=404))
        with pytest.raises(ProviderError):
            await with_retry(operation, RetryPolicy(), sleep=sleep)

        assert operation.calls == 1
        assert sleep.delays == []

    @pytest.mark.asyncio
    async def test_exhaustion(self, sleep):
        """No sleep after the final attempt; the last error is attached."""
        errors = [NetworkError(f"fail {i}") for i in range(3)]
        operation = Flaky(*errors)

        with pytest.raises(RetriesExhaustedError) as exc_info:
            await with_retry(operation, NO_JITTER, source="newsapi", sleep=sleep)

        assert exc_info.value.attempts == 3
        assert exc_info.value.last_error is errors[-1]
        assert exc_info.value.__cause__ is errors[-1]
        assert exc_info.value.source == "newsapi"
        assert operation.calls == 3
        assert len(sleep.delays) == 2

    @pytest.mark.asyncio
    async def test_retry_after_sets_minimum_delay(self, sleep):
        operation = Flaky(RateLimitError("slow down", retry_after=5))
        await with_retry(operation, NO_JITTER, sleep=sleep)
        assert sleep.delays == [5.0]

    @pytest.mark.asyncio
    async def test_backoff_wins_over_short_retry_after(self, sleep):
        operation = Flaky(NetworkError("reset"), RateLimitError("slow down", retry_after=0.5))
        await with_retry(operation, NO_JITTER, sleep=sleep)
        assert sleep.delays == [1.0, 2.0]

    @pytest.mark.asyncio
    async def test_single_attempt_policy(self, sleep):
        operation = Flaky(NetworkError("down"))
        with pytest.raises(RetriesExhaustedError):
            await with_retry(operation, RetryPolicy(max_attempts=1), sleep=sleep)
        assert sleep.delays == []
