"""Errors synthesized by flowctl-core.

Failures raised by wrapped operations are never converted to these types;
they propagate untouched.
"""

from __future__ import annotations

from typing import Any, List, Optional, Tuple

TIMEOUT_CODE = "ETIMEDOUT"
DEFAULT_TIMEOUT_MESSAGE = "Operation timed out"


class FlowControlError(Exception):
    """Base class for errors raised by this package itself."""


class OperationTimeoutError(FlowControlError, TimeoutError):
    """The deadline of :func:`flowctl_core.timeout.with_timeout` expired first."""

    code = TIMEOUT_CODE

    def __init__(self, message: Optional[str] = None, *, timeout_ms: Optional[float] = None):
        self.message = message or DEFAULT_TIMEOUT_MESSAGE
        self.timeout_ms = timeout_ms
        super().__init__(self.message)

    def __str__(self) -> str:
        return self.message


class InvalidEnvError(FlowControlError, ValueError):
    """One or more required environment variables are missing or malformed."""

    def __init__(self, invalid: List[Tuple[str, Any]]):
        self.invalid = invalid
        names = ", ".join(name for name, _ in invalid)
        super().__init__(f"invalid env: {names}")
