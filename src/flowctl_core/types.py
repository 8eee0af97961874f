from __future__ import annotations
from typing import Any, Awaitable, Callable, Protocol, Union


# A unit of work. May take the current attempt index; may return an awaitable.
Operation = Callable[..., Union[Awaitable[Any], Any]]

# Attempt number -> delay in milliseconds before the next attempt
BackoffFn = Callable[[int], float]

# Decide if a failure is transient (should retry)
RetryClassifier = Callable[[Any], bool]

# Delay primitive used between attempts (milliseconds)
SleepFn = Callable[[float], Awaitable[None]]


class OnRetry(Protocol):
    def __call__(self, failure: BaseException, attempt: int, delay_ms: float) -> None: ...
