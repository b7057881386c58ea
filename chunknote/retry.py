"""Retry helpers for fallible async calls.

Built on tenacity. `attempt` below always means the 0-based index of the
attempt that just failed, so the first backoff sleeps `base_delay` in both the
exponential and the linear variant.
"""

import asyncio
from typing import Any, Awaitable, Callable, Optional, TypeVar

from loguru import logger
from tenacity import (
    AsyncRetrying,
    RetryCallState,
    retry_base,
    stop_after_attempt,
    wait_exponential,
    wait_incrementing,
)

from chunknote.exceptions import QueueClearedError
from chunknote.llm.exceptions import LLMError

T = TypeVar("T")

ShouldRetry = Callable[[BaseException, int], bool]
Sleep = Callable[[float], Awaitable[Any]]

RETRYABLE_STATUS_CODES = frozenset({408, 429, 500, 502, 503, 504})
NON_RETRYABLE_STATUS_CODES = frozenset({400, 401, 403, 404})


def is_retryable_error(error: BaseException, attempt: int = 0) -> bool:
    """Decide whether a failed text-generation call is worth repeating.

    Rate limits, server errors, timeouts and network failures are retried.
    Authentication and not-found errors are not. Errors that cannot be
    classified are retried.

    Args:
        error: The exception raised by the call.
        attempt: 0-based index of the failed attempt (unused, kept for the
            should_retry signature).

    Returns:
        True if the call should be attempted again.
    """
    if isinstance(error, QueueClearedError):
        return False

    if isinstance(error, LLMError) and error.retryable is not None:
        return error.retryable

    if isinstance(error, (asyncio.TimeoutError, ConnectionError, OSError)):
        return True

    status_code = getattr(error, "status_code", None)
    if isinstance(status_code, int):
        if status_code in RETRYABLE_STATUS_CODES:
            return True
        if status_code in NON_RETRYABLE_STATUS_CODES:
            return False

    return True


class retry_if_should_retry(retry_base):
    """Tenacity retry strategy delegating to a `should_retry(error, attempt)` callable."""

    def __init__(self, should_retry: Optional[ShouldRetry] = None):
        self.should_retry = should_retry

    def __call__(self, retry_state: RetryCallState) -> bool:
        outcome = retry_state.outcome
        if outcome is None or not outcome.failed:
            return False

        error = outcome.exception()
        # Never retry cancellation or interpreter exit
        if not isinstance(error, Exception):
            return False
        if self.should_retry is None:
            return True
        return self.should_retry(error, retry_state.attempt_number - 1)


def _log_retry(retry_state: RetryCallState) -> None:
    error = retry_state.outcome.exception() if retry_state.outcome else None
    delay = retry_state.next_action.sleep if retry_state.next_action else 0.0
    logger.warning(
        f"Attempt {retry_state.attempt_number} failed ({error}), retrying in {delay:.2f}s"
    )


async def _run(
    operation: Callable[[], Awaitable[T]],
    max_attempts: int,
    wait: Any,
    should_retry: Optional[ShouldRetry],
    sleep: Sleep,
) -> T:
    if max_attempts < 1:
        raise ValueError(f"max_attempts must be at least 1, got {max_attempts}")

    retrying = AsyncRetrying(
        stop=stop_after_attempt(max_attempts),
        wait=wait,
        retry=retry_if_should_retry(should_retry),
        before_sleep=_log_retry,
        reraise=True,
        sleep=sleep,
    )
    return await retrying(operation)


async def retry_with_backoff(
    operation: Callable[[], Awaitable[T]],
    max_attempts: int = 3,
    base_delay: float = 1.0,
    should_retry: Optional[ShouldRetry] = None,
    sleep: Sleep = asyncio.sleep,
) -> T:
    """Run an async operation, retrying with exponential backoff.

    Sleeps `base_delay * 2**attempt` between attempts. Only the calling task
    is suspended while sleeping.

    Args:
        operation: Zero-argument coroutine function to call.
        max_attempts: Total number of attempts (at least 1).
        base_delay: Backoff base in seconds.
        should_retry: Predicate `(error, attempt) -> bool`; retries everything
            when omitted.
        sleep: Awaitable sleep function (replaceable in tests).

    Returns:
        The operation's result.

    Raises:
        ValueError: If max_attempts is less than 1.
        Exception: The last error, unchanged, once attempts are exhausted or
            should_retry declines.
    """
    wait = wait_exponential(multiplier=base_delay, exp_base=2)
    return await _run(operation, max_attempts, wait, should_retry, sleep)


async def retry_with_linear_backoff(
    operation: Callable[[], Awaitable[T]],
    max_attempts: int = 3,
    base_delay: float = 1.0,
    should_retry: Optional[ShouldRetry] = None,
    sleep: Sleep = asyncio.sleep,
) -> T:
    """Run an async operation, retrying with linear backoff.

    Same contract as retry_with_backoff, but sleeps `base_delay * (attempt + 1)`.
    """
    wait = wait_incrementing(start=base_delay, increment=base_delay)
    return await _run(operation, max_attempts, wait, should_retry, sleep)
