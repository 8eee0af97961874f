from __future__ import annotations
import itertools

import pytest
from flowctl_core.core import RetryPolicy, with_retry


class Transient(RuntimeError):
    def __init__(self, msg="temporary"):
        super().__init__(msg)
        self.code = "ETIMEDOUT"


async def no_sleep(ms):
    return None


@pytest.mark.asyncio
async def test_retries_then_succeeds():
    calls = itertools.count()

    async def sometimes():
        i = next(calls)
        if i < 2:
            raise Transient()
        return "ok"

    out = await with_retry(sometimes, max_retries=3, backoff=lambda a: 0)
    assert out == "ok"
    assert next(calls) == 3


@pytest.mark.asyncio
async def test_zero_retries_attempts_exactly_once():
    attempts = []

    async def op():
        attempts.append(1)
        raise Transient()

    with pytest.raises(Transient):
        await with_retry(op, is_retryable=lambda e: True, sleep=no_sleep)
    assert len(attempts) == 1


@pytest.mark.asyncio
@pytest.mark.parametrize("max_retries,failures,expected_calls", [(3, 0, 1), (3, 1, 2), (3, 3, 4), (2, 5, 3)])
async def test_call_count_is_bounded_by_max_retries(max_retries, failures, expected_calls):
    calls = []

    async def op():
        calls.append(1)
        if len(calls) <= failures:
            raise Transient()
        return "done"

    if failures > max_retries:
        with pytest.raises(Transient):
            await with_retry(op, max_retries=max_retries, sleep=no_sleep)
    else:
        assert await with_retry(op, max_retries=max_retries, sleep=no_sleep) == "done"
    assert len(calls) == expected_calls


@pytest.mark.asyncio
async def test_reraises_last_failure_not_first():
    errors = [Transient(f"failure {i}") for i in range(3)]

    async def op(attempt):
        raise errors[attempt]

    with pytest.raises(Transient) as ei:
        await with_retry(op, max_retries=2, sleep=no_sleep)
    assert ei.value is errors[-1]


@pytest.mark.asyncio
async def test_always_retryable_still_terminates():
    calls = []

    async def op():
        calls.append(1)
        raise RuntimeError("forever")

    with pytest.raises(RuntimeError):
        await with_retry(op, max_retries=4, is_retryable=lambda e: True, sleep=no_sleep)
    assert len(calls) == 5


@pytest.mark.asyncio
async def test_attempt_index_is_passed_through():
    seen = []

    async def op(attempt):
        seen.append(attempt)
        if attempt < 2:
            raise Transient()
        return f"attempt-{attempt}"

    assert await with_retry(op, max_retries=5, sleep=no_sleep) == "attempt-2"
    assert seen == [0, 1, 2]


@pytest.mark.asyncio
async def test_backoff_receives_attempt_and_drives_sleep():
    slept = []

    async def record(ms):
        slept.append(ms)

    async def op():
        raise Transient()

    with pytest.raises(Transient):
        await with_retry(op, max_retries=3, sleep=record)
    assert slept == [2000, 4000, 8000]

    slept.clear()
    with pytest.raises(Transient):
        await with_retry(op, max_retries=2, backoff=lambda a: a * 10, sleep=record)
    assert slept == [0, 10]


@pytest.mark.asyncio
async def test_policy_overrides_max_retries_and_backoff():
    slept = []

    async def record(ms):
        slept.append(ms)

    async def op():
        raise Transient()

    policy = RetryPolicy(max_retries=2, base_delay_ms=5, max_delay_ms=8)
    with pytest.raises(Transient):
        await with_retry(op, max_retries=10, policy=policy, sleep=record)
    assert slept == [5, 8]


@pytest.mark.asyncio
async def test_sync_operation_is_supported():
    calls = itertools.count()

    def op():
        if next(calls) == 0:
            raise Transient()
        return 42

    assert await with_retry(op, max_retries=1, sleep=no_sleep) == 42


@pytest.mark.asyncio
async def test_on_retry_called_before_each_sleep():
    events = []

    async def op(attempt):
        if attempt < 2:
            raise Transient()
        return "ok"

    def on_retry(exc, attempt, delay):
        events.append((type(exc).__name__, attempt, delay))

    out = await with_retry(op, max_retries=3, backoff=lambda a: 1, sleep=no_sleep, on_retry=on_retry)
    assert out == "ok"
    assert events == [("Transient", 0, 1), ("Transient", 1, 1)]
