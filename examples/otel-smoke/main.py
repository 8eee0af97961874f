import asyncio
import os
import random

from flowctl_core.core import RetryPolicy
from flowctl_core.otel_setup import init_tracer, init_metrics
from flowctl_core.otel_runtime import with_retry_traced_optional

# Enable tracing / metrics via env (can still be disabled by user)
os.environ.setdefault("FLOWCTL_OTEL_ENABLED", "1")
os.environ.setdefault("FLOWCTL_OTEL_METRICS_ENABLED", "1")

# Defaults for local collector
os.environ.setdefault("OTEL_EXPORTER_OTLP_ENDPOINT", "http://127.0.0.1:4318")


class Unavailable(RuntimeError):
    status = 503


async def flaky_op(ctx: dict) -> str:
    """
    Simple demo op:
    - fails randomly with a 503-shaped error (to trigger retries)
    - sometimes hangs past the per-attempt deadline
    """
    roll = random.random()
    if roll < ctx["fail_prob"]:
        raise Unavailable("transient boom in flowctl-core smoke demo")
    if roll < ctx["fail_prob"] + ctx["hang_prob"]:
        await asyncio.sleep(1)

    await asyncio.sleep(random.uniform(0.02, 0.15))
    return "ok"


async def main() -> None:
    # FLOWCTL_OTEL_EXPORTER=http (default) | grpc | console
    exporter = os.getenv("FLOWCTL_OTEL_EXPORTER", "http").lower()
    if exporter not in ("http", "grpc", "console"):
        print(f"[flowctl-core] Unknown FLOWCTL_OTEL_EXPORTER={exporter!r}, falling back to 'http'")
        exporter = "http"

    service_name = "flowctl-core-otel-smoke"

    init_tracer(service_name=service_name, exporter=exporter)
    init_metrics(service_name=service_name, exporter=exporter)

    n_ops = int(os.getenv("FLOWCTL_SMOKE_OPS", "50"))
    fail_prob = float(os.getenv("FLOWCTL_SMOKE_FAIL_PROB", "0.4"))
    hang_prob = float(os.getenv("FLOWCTL_SMOKE_HANG_PROB", "0.1"))

    print(f"[flowctl-core] running smoke: n_ops={n_ops}, fail_prob={fail_prob}, exporter={exporter}")

    policy = RetryPolicy(max_retries=2, base_delay_ms=50, max_delay_ms=100)

    for i in range(n_ops):
        ctx = {"fail_prob": fail_prob, "hang_prob": hang_prob}

        try:
            result = await with_retry_traced_optional(
                lambda: flaky_op(ctx),
                policy=policy,
                attempt_timeout_ms=300,
                span_name="flowctl.smoke",
                base_attrs={"flowctl.demo_op_index": i},
            )
            print(f"[flowctl-core] op #{i} -> {result}")
        except Exception as exc:
            # If all retries fail, we still record spans + metrics
            print(f"[flowctl-core] op #{i} failed after retries: {exc!r}")

    print("[flowctl-core] smoke run complete")


if __name__ == "__main__":
    asyncio.run(main())
