from __future__ import annotations

import logging
import time
from typing import Any, Dict, Optional, Union

from opentelemetry import metrics as _otel_metrics
from opentelemetry import trace
from opentelemetry.trace import SpanKind, Status, StatusCode

from .classify import is_retryable as default_is_retryable
from .core import RetryPolicy, _accepts_attempt, default_backoff, with_retry
from .env import env_flag
from .timeout import with_timeout
from .timing import sleep_ms
from .types import BackoffFn, Operation, RetryClassifier, SleepFn

OTEL_ENABLED_ENV = "FLOWCTL_OTEL_ENABLED"
OTEL_METRICS_ENABLED_ENV = "FLOWCTL_OTEL_METRICS_ENABLED"


# --- Helpers for env flags ----------------------------------------------------


def _otel_enabled(explicit: Optional[bool]) -> bool:
    if explicit is not None:
        return explicit
    return env_flag(OTEL_ENABLED_ENV)


def _metrics_enabled() -> bool:
    return env_flag(OTEL_METRICS_ENABLED_ENV)


# --- Metrics plumbing (lazy) --------------------------------------------------

_ops_counter = None
_attempts_counter = None
_duration_histogram = None
_metrics_instruments_ready = False


def _ensure_metrics() -> None:
    """
    Lazily create metric instruments if metrics are enabled.
    Safe to call multiple times.
    """
    global _ops_counter, _attempts_counter, _duration_histogram, _metrics_instruments_ready

    if _metrics_instruments_ready or not _metrics_enabled():
        return

    meter = _otel_metrics.get_meter(__name__)

    _ops_counter = meter.create_counter(
        "flowctl_operations_total",
        description="Total number of flowctl-core operations.",
    )
    _attempts_counter = meter.create_counter(
        "flowctl_attempts_total",
        description="Total number of flowctl-core attempts (including retries).",
    )
    _duration_histogram = meter.create_histogram(
        "flowctl_operation_duration_seconds",
        description="Latency of flowctl-core operations.",
        unit="s",
    )

    _metrics_instruments_ready = True


def _timed(operation: Operation, attempt_timeout_ms: Optional[float], message: Optional[str]):
    pass_attempt = _accepts_attempt(operation)

    async def attempt_op(attempt: int) -> Any:
        return await with_timeout(
            lambda: operation(attempt) if pass_attempt else operation(),
            attempt_timeout_ms,
            message,
        )

    return attempt_op


# --- Traced execution ---------------------------------------------------------


async def with_retry_traced_optional(
    operation: Operation,
    *,
    max_retries: int = 0,
    is_retryable: RetryClassifier = default_is_retryable,
    backoff: BackoffFn = default_backoff,
    policy: Optional[RetryPolicy] = None,
    sleep: SleepFn = sleep_ms,
    logger: Union[logging.Logger, logging.LoggerAdapter, None] = None,
    attempt_timeout_ms: Optional[float] = None,
    timeout_message: Optional[str] = None,
    # tracing knobs (all optional)
    otel_enabled: Optional[bool] = None,  # None -> read env FLOWCTL_OTEL_ENABLED
    span_name: str = "flowctl.operation",
    base_attrs: Optional[Dict[str, Any]] = None,
    tracer_provider: Optional[trace.TracerProvider] = None,
) -> Any:
    """
    :func:`with_retry` with each attempt bounded by ``attempt_timeout_ms``
    (via :func:`with_timeout`), traced when OpenTelemetry is enabled.

    When FLOWCTL_OTEL_METRICS_ENABLED=1 this also emits:
      - flowctl_operations_total
      - flowctl_attempts_total
      - flowctl_operation_duration_seconds
    """
    if policy is not None:
        max_retries = policy.max_retries
        backoff = policy.backoff
    attempt_op = _timed(operation, attempt_timeout_ms, timeout_message)

    # Fast path: OTEL disabled entirely -> no tracing, no metrics
    if not _otel_enabled(otel_enabled):
        return await with_retry(
            attempt_op,
            max_retries=max_retries,
            is_retryable=is_retryable,
            backoff=backoff,
            sleep=sleep,
            logger=logger,
        )

    tracer = trace.get_tracer(__name__, tracer_provider=tracer_provider)

    _ensure_metrics()
    metrics_active = _metrics_instruments_ready and _metrics_enabled()

    attrs = {
        "flowctl.max_retries": max_retries,
        "flowctl.attempt_timeout_ms": attempt_timeout_ms,
    }
    if base_attrs:
        attrs.update(base_attrs)
    attrs = {k: v for k, v in attrs.items() if v is not None}
    metric_attrs_base = {"flowctl.span_name": span_name}

    start = time.perf_counter()

    with tracer.start_as_current_span(
        span_name,
        kind=SpanKind.CLIENT,
        record_exception=False,
        set_status_on_exception=False,
    ) as root:
        root.set_attributes(attrs)

        async def traced_attempt(attempt: int) -> Any:
            if metrics_active and _attempts_counter is not None:
                _attempts_counter.add(1, attributes=metric_attrs_base)
            with tracer.start_as_current_span(
                f"{span_name}.attempt",
                kind=SpanKind.CLIENT,
                record_exception=False,
                set_status_on_exception=False,
            ) as s:
                s.set_attribute("flowctl.attempt.number", attempt)
                try:
                    result = await attempt_op(attempt)
                except Exception as exc:
                    s.record_exception(exc)
                    s.set_attribute("flowctl.attempt.outcome", "error")
                    s.set_status(Status(StatusCode.ERROR))
                    raise
                s.set_attribute("flowctl.attempt.outcome", "success")
                return result

        def on_retry(exc: BaseException, attempt: int, delay_ms: float) -> None:
            root.add_event(
                "flowctl.retry",
                {
                    "flowctl.attempt.number": attempt,
                    "flowctl.retry.delay_ms": float(delay_ms),
                    "exception.type": type(exc).__name__,
                },
            )

        outcome = "success"
        try:
            result = await with_retry(
                traced_attempt,
                max_retries=max_retries,
                is_retryable=is_retryable,
                backoff=backoff,
                sleep=sleep,
                logger=logger,
                on_retry=on_retry,
            )
            root.set_attribute("flowctl.outcome", outcome)
            return result
        except BaseException as exc:
            outcome = "error"
            root.record_exception(exc)
            root.set_attribute("flowctl.outcome", outcome)
            root.set_status(Status(StatusCode.ERROR))
            raise
        finally:
            if metrics_active and _ops_counter is not None and _duration_histogram is not None:
                metric_attrs = {**metric_attrs_base, "flowctl.outcome": outcome}
                _ops_counter.add(1, attributes=metric_attrs)
                _duration_histogram.record(time.perf_counter() - start, attributes=metric_attrs)
