"""Bounded retry with fixed backoff.

A synchronous retry combinator shared by the storage attachment manager and
individual artifact fetches.

Example:
    from fsxmodels.retry import retry_call

    # 1 initial attempt + 3 retries, 5 seconds apart
    retry_call(mount_once, max_retries=3, delay=5.0, on=MountFailedError)
"""

from __future__ import annotations

import time
from collections.abc import Callable
from typing import TypeVar

from loguru import logger
from tenacity import (
    RetryCallState,
    RetryError,
    Retrying,
    retry_if_exception,
    stop_after_attempt,
    wait_fixed,
)

T = TypeVar("T")

type RetryPredicate = Callable[[BaseException], bool]
type Sleeper = Callable[[float], None]


class RetryExhausted(Exception):
    """Raised when every attempt failed with a retryable error."""

    def __init__(self, attempts: int, last: BaseException) -> None:
        self.attempts = attempts
        self.last = last
        super().__init__(f"Gave up after {attempts} attempts: {last}")


def _predicate(on: type[BaseException] | tuple[type[BaseException], ...] | RetryPredicate) -> RetryPredicate:
    if isinstance(on, type) and issubclass(on, BaseException):
        return lambda e: isinstance(e, on)
    if isinstance(on, tuple):
        return lambda e: isinstance(e, on)
    return on


def retry_call(
    operation: Callable[[int], T],
    *,
    max_retries: int,
    delay: float,
    on: type[BaseException] | tuple[type[BaseException], ...] | RetryPredicate = Exception,
    sleep: Sleeper = time.sleep,
    label: str = "operation",
) -> T:
    """Call ``operation`` until it succeeds or ``max_retries`` retries are spent.

    Args:
        operation: Callable receiving the 1-indexed attempt number.
        max_retries: Retries after the first attempt; total attempts are
            ``max_retries + 1``.
        delay: Seconds slept between attempts. No sleep follows the last one.
        on: Exception type(s) or predicate selecting retryable errors. Other
            errors propagate immediately.
        sleep: Sleep function, replaceable in tests.
        label: Name used in log lines.

    Returns:
        The value returned by the first successful attempt.

    Raises:
        RetryExhausted: If every attempt raised a retryable error.
    """
    if max_retries < 0:
        raise ValueError(f"max_retries must be >= 0, got {max_retries}")
    if delay < 0:
        raise ValueError(f"delay must be >= 0, got {delay}")

    total = max_retries + 1

    def _before_sleep(state: RetryCallState) -> None:
        exc = state.outcome.exception() if state.outcome else None
        logger.warning(
            f"{label} attempt {state.attempt_number}/{total} failed "
            f"({type(exc).__name__}: {exc}), waiting {delay:g}s before retry"
        )

    retrying = Retrying(
        stop=stop_after_attempt(total),
        wait=wait_fixed(delay),
        retry=retry_if_exception(_predicate(on)),
        sleep=sleep,
        before_sleep=_before_sleep,
        reraise=False,
    )

    try:
        for attempt in retrying:
            with attempt:
                number = attempt.retry_state.attempt_number
                logger.info(f"{label} attempt {number}/{total}...")
                return operation(number)
    except RetryError as e:
        last = e.last_attempt.exception()
        assert last is not None
        raise RetryExhausted(e.last_attempt.attempt_number, last) from last

    # Retrying always yields at least one attempt
    raise AssertionError("unreachable")
