from __future__ import annotations

import asyncio
import errno
import math
from collections.abc import Mapping
from typing import Any

RETRYABLE_CODES = frozenset({"ECONNRESET", "ETIMEDOUT"})
RETRYABLE_ERRNOS = frozenset({errno.ECONNRESET, errno.ETIMEDOUT})
ABORT_NAME = "AbortError"

_TRANSIENT_TYPES = (ConnectionResetError, TimeoutError, asyncio.TimeoutError)


def _field(failure: Any, name: str) -> Any:
    if isinstance(failure, Mapping):
        return failure.get(name)
    return getattr(failure, name, None)


def _is_int(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def _is_number(value: Any) -> bool:
    # Arbitrarily large ints are finite; only floats need the check.
    if _is_int(value):
        return True
    return isinstance(value, float) and math.isfinite(value)


def is_retryable(failure: Any) -> bool:
    """Decide whether retrying after ``failure`` makes sense.

    Accepts exceptions, plain objects and mappings. Only ``status`` /
    ``status_code``, ``name``, ``code`` and ``errno`` are read, and any of
    them may be missing.
    """
    if failure is None:
        return False

    # ---- HTTP-ish status: rate limiting and server errors ----
    for key in ("status", "status_code"):
        status = _field(failure, key)
        if _is_number(status) and (status == 429 or 500 <= status < 600):
            return True

    # ---- Aborted by a deadline / abort signal ----
    name = _field(failure, "name")
    if isinstance(name, str) and name == ABORT_NAME:
        return True
    if isinstance(failure, BaseException) and type(failure).__name__ == ABORT_NAME:
        return True

    # ---- Connection reset / timed out ----
    code = _field(failure, "code")
    if isinstance(code, str) and code in RETRYABLE_CODES:
        return True
    err = _field(failure, "errno")
    if _is_int(err) and err in RETRYABLE_ERRNOS:
        return True
    if isinstance(failure, _TRANSIENT_TYPES):
        return True

    return False
