from __future__ import annotations
import inspect
import logging
import random
from dataclasses import dataclass
from typing import Any, Optional, Union

from .classify import is_retryable as default_is_retryable
from .timing import sleep_ms
from .types import BackoffFn, OnRetry, Operation, RetryClassifier, SleepFn

log = logging.getLogger(__name__)

DEFAULT_BASE_DELAY_MS = 2000
DEFAULT_MAX_DELAY_MS = 8000


def default_backoff(attempt: int) -> float:
    """Exponential backoff in milliseconds: 2000, 4000, then capped at 8000."""
    return min(DEFAULT_BASE_DELAY_MS * 2**attempt, DEFAULT_MAX_DELAY_MS)


@dataclass
class RetryPolicy:
    max_retries: int = 0
    base_delay_ms: float = DEFAULT_BASE_DELAY_MS
    max_delay_ms: float = DEFAULT_MAX_DELAY_MS
    multiplier: float = 2.0
    jitter: float = 0.0

    def backoff(self, attempt: int) -> float:
        try:
            d = min(self.max_delay_ms, self.base_delay_ms * self.multiplier**attempt)
        except OverflowError:
            d = self.max_delay_ms
        if self.jitter:
            j = d * self.jitter
            d += random.uniform(-j, j)
        return max(0.0, min(self.max_delay_ms, d))


def _accepts_attempt(op: Operation) -> bool:
    try:
        sig = inspect.signature(op)
    except (TypeError, ValueError):
        return True
    try:
        sig.bind(0)
    except TypeError:
        return False
    return True


async def with_retry(
    operation: Operation,
    *,
    max_retries: int = 0,
    is_retryable: RetryClassifier = default_is_retryable,
    backoff: BackoffFn = default_backoff,
    policy: Optional[RetryPolicy] = None,
    sleep: SleepFn = sleep_ms,
    logger: Union[logging.Logger, logging.LoggerAdapter, None] = None,
    on_retry: Optional[OnRetry] = None,
) -> Any:
    """Run ``operation`` and retry transient failures with backoff.

    The operation receives the current attempt index (0-based) when it
    accepts a positional argument. Attempts are strictly sequential. After
    ``max_retries`` retries, or on the first failure ``is_retryable`` rejects,
    the most recent failure is re-raised unchanged. ``policy`` overrides
    ``max_retries`` and ``backoff``.
    """
    if policy is not None:
        max_retries = policy.max_retries
        backoff = policy.backoff
    log_ = logger or log
    pass_attempt = _accepts_attempt(operation)

    attempt = 0
    while True:
        try:
            res = operation(attempt) if pass_attempt else operation()
            return await res if inspect.isawaitable(res) else res
        except Exception as exc:
            if attempt >= max_retries or not is_retryable(exc):
                if attempt:
                    log_.error("giving up after %d attempt(s): %r", attempt + 1, exc)
                else:
                    log_.debug("not retrying: %r", exc)
                raise
            delay = backoff(attempt)
            log_.warning(
                "attempt %d/%d failed: %r; retrying in %sms",
                attempt + 1,
                max_retries + 1,
                exc,
                delay,
            )
            if on_retry:
                on_retry(exc, attempt, delay)
        await sleep(delay)
        attempt += 1
