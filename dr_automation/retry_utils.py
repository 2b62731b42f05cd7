"""
Retry utilities with incremental backoff for recovery step attempts
"""

import asyncio
from typing import Any, Awaitable, Callable

from tenacity import (
    AsyncRetrying,
    RetryCallState,
    retry_if_not_exception_type,
    stop_after_attempt,
    wait_incrementing,
)

from .config import RecoveryStep
from .core.exceptions import UnknownStepType

# Attempt n (1-based) waits BACKOFF_BASE_SECONDS * n before the next attempt
BACKOFF_BASE_SECONDS = 2.0


class StepAttemptAborted(Exception):
    """Raised inside an attempt when the owning execution was cancelled"""
    pass


def build_step_retrying(
    step: RecoveryStep,
    sleep: Callable[[float], Awaitable[Any]],
    before_sleep: Callable[[RetryCallState], Any],
) -> AsyncRetrying:
    """
    Retry policy for one step: ``step.retries`` retries after the first
    attempt, waiting 2s, 4s, 6s, ... between attempts.

    Args:
        step: Step definition supplying the retry count
        sleep: Delay primitive; may return early when the execution is cancelled
        before_sleep: Hook invoked after a failed attempt, before waiting

    Unknown step types, aborted attempts and task cancellation are never retried; the final
    exception is re-raised to the caller.
    """
    return AsyncRetrying(
        stop=stop_after_attempt(step.retries + 1),
        wait=wait_incrementing(start=BACKOFF_BASE_SECONDS, increment=BACKOFF_BASE_SECONDS),
        retry=retry_if_not_exception_type((UnknownStepType, StepAttemptAborted, asyncio.CancelledError)),
        sleep=sleep,
        before_sleep=before_sleep,
        reraise=True,
    )
