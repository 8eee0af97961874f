from .classify import is_retryable
from .core import RetryPolicy, default_backoff, with_retry
from .errors import FlowControlError, InvalidEnvError, OperationTimeoutError
from .otel_runtime import with_retry_traced_optional
from .timeout import with_timeout

__all__ = [
    "FlowControlError",
    "InvalidEnvError",
    "OperationTimeoutError",
    "RetryPolicy",
    "default_backoff",
    "is_retryable",
    "with_retry",
    "with_retry_traced_optional",
    "with_timeout",
]

__version__ = "1.0.0"
