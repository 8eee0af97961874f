from __future__ import annotations

import asyncio
import inspect
import logging
from typing import Any, Awaitable, Callable, Optional, Union

from .errors import OperationTimeoutError
from .timing import clamp_delay_ms

logger = logging.getLogger(__name__)


def _no_limit(timeout_ms: Optional[float]) -> bool:
    if not timeout_ms:
        return True
    return timeout_ms != timeout_ms or timeout_ms <= 0  # NaN or negative


def _discard_outcome(task: asyncio.Future) -> None:
    # Retrieve the late result so asyncio does not report it as unhandled.
    if task.cancelled():
        return
    exc = task.exception()
    if exc is not None:
        logger.debug("discarding failure of timed-out operation: %r", exc)


async def with_timeout(
    operation: Union[Awaitable[Any], Callable[[], Any]],
    timeout_ms: Optional[float] = None,
    message: Optional[str] = None,
    *,
    cancel_on_timeout: bool = False,
) -> Any:
    """Await ``operation`` but give up after ``timeout_ms`` milliseconds.

    ``operation`` is an awaitable, or a callable producing one. A falsy,
    negative or NaN ``timeout_ms`` disables the deadline entirely. The
    deadline is clamped to :data:`~flowctl_core.timing.MAX_DELAY_MS`.

    On expiry :class:`OperationTimeoutError` is raised (``code ==
    "ETIMEDOUT"``). The underlying operation is *not* stopped: it keeps
    running in the background and its outcome is discarded. Pass
    ``cancel_on_timeout=True`` to also cancel it, which only helps for
    awaitables that honour cancellation.
    """
    pending = operation() if callable(operation) else operation
    if not inspect.isawaitable(pending):
        return pending

    if _no_limit(timeout_ms):
        return await pending

    delay_ms = clamp_delay_ms(timeout_ms)
    task = asyncio.ensure_future(pending)
    try:
        return await asyncio.wait_for(
            task if cancel_on_timeout else asyncio.shield(task), delay_ms / 1000
        )
    except asyncio.TimeoutError as exc:
        # The operation itself may have raised a TimeoutError before the deadline.
        if task.done() and not task.cancelled() and task.exception() is exc:
            raise
        raise OperationTimeoutError(message, timeout_ms=delay_ms) from None
    finally:
        if not task.done():
            task.add_done_callback(_discard_outcome)
