"""Bounded retry with exponential backoff, built on tenacity.

Delay before retry ``n`` (1-based):

    min(base_delay * 2 ** (n - 1), max_delay) + uniform(0, jitter)

A RateLimitError with ``retry_after`` waits at least that long. Sleep is
injectable so tests run without wall-clock waits.
"""

import asyncio
import logging
from dataclasses import dataclass
from typing import Awaitable, Callable, TypeVar

from tenacity import (
    AsyncRetrying,
    RetryCallState,
    RetryError,
    retry_if_exception,
    stop_after_attempt,
    wait_exponential,
    wait_random,
)
from tenacity.wait import wait_base

from sources.errors import RateLimitError, RetriesExhaustedError, is_retryable

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass(frozen=True)
class RetryPolicy:
    max_attempts: int = 3
    base_delay: float = 1.0     # seconds
    max_delay: float = 30.0     # seconds
    jitter: float = 1.0         # seconds of uniform random jitter

    def __post_init__(self):
        if self.max_attempts < 1:
            raise ValueError(f"max_attempts must be >= 1, got {self.max_attempts}")


class wait_retry_after(wait_base):
    """Wrap a wait strategy so a RateLimitError's Retry-After is the floor."""

    def __init__(self, wait: wait_base):
        self.wait = wait

    def __call__(self, retry_state: RetryCallState) -> float:
        delay = self.wait(retry_state)
        error = retry_state.outcome.exception() if retry_state.outcome else None
        if isinstance(error, RateLimitError) and error.retry_after:
            delay = max(delay, float(error.retry_after))
        return delay


def backoff_wait(policy: RetryPolicy) -> wait_base:
    """Tenacity wait strategy for ``policy``."""
    backoff = wait_exponential(multiplier=policy.base_delay, max=policy.max_delay, min=0)
    return wait_retry_after(backoff + wait_random(0, policy.jitter))


async def with_retry(
    operation: Callable[[], Awaitable[T]],
    policy: RetryPolicy,
    source: str = "unknown",
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
) -> T:
    """Run ``operation`` until it succeeds or the attempt budget is spent.

    Non-retryable errors propagate immediately, unchanged.

    Raises:
        RetriesExhaustedError: Every attempt failed with a retryable error
    """

    def log_retry(retry_state: RetryCallState) -> None:
        logger.warning(
            "Retrying | source=%s attempt=%d/%d delay=%.2fs error=%s",
            source, retry_state.attempt_number, policy.max_attempts,
            retry_state.next_action.sleep, retry_state.outcome.exception(),
        )

    retrying = AsyncRetrying(
        retry=retry_if_exception(is_retryable),
        stop=stop_after_attempt(policy.max_attempts),
        wait=backoff_wait(policy),
        sleep=sleep,
        before_sleep=log_retry,
    )
    try:
        return await retrying(operation)
    except RetryError as e:
        last_error = e.last_attempt.exception()
        logger.error("Retries exhausted | source=%s attempts=%d error=%s", source, policy.max_attempts, last_error)
        raise RetriesExhaustedError(source, policy.max_attempts, last_error) from last_error
