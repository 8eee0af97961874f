"""A serverless-style handler calling a flaky upstream with a deadline and retries.

Run with ``python examples/flaky-handler/main.py``; set FLOWCTL_LOG_LEVEL=DEBUG
to see every decision the retry driver makes.
"""

import asyncio
import random

from flowctl_core import OperationTimeoutError, with_retry, with_timeout
from flowctl_core.env import EnvVar, read_env
from flowctl_core.log import configure_logging, get_logger


class UpstreamError(Exception):
    def __init__(self, status: int):
        super().__init__(f"upstream answered {status}")
        self.status = status


async def call_upstream(order_id: str) -> dict:
    await asyncio.sleep(random.uniform(0.01, 0.3))
    status = random.choice([200, 200, 429, 503, 404])
    if status != 200:
        raise UpstreamError(status)
    return {"order_id": order_id, "state": "shipped"}


async def handler(event: dict) -> dict:
    settings = read_env(
        {
            "MAX_RETRIES": EnvVar(int, default=3),
            "TIMEOUT_MS": EnvVar(int, default=200),
        }
    )
    log = get_logger(request_id=event.get("request_id"))

    async def attempt(n: int) -> dict:
        log.bind(attempt=n).info("calling upstream")
        return await with_timeout(call_upstream(event["order_id"]), settings["TIMEOUT_MS"])

    try:
        data = await with_retry(
            attempt,
            max_retries=settings["MAX_RETRIES"],
            backoff=lambda a: 50 * (a + 1),
            logger=log,
        )
    except OperationTimeoutError as exc:
        return {"success": False, "error": {"code": exc.code, "message": exc.message}}
    except UpstreamError as exc:
        return {"success": False, "error": {"code": exc.status, "message": str(exc)}}
    return {"success": True, "data": data}


if __name__ == "__main__":
    configure_logging()
    print(asyncio.run(handler({"request_id": "req-1", "order_id": "o-42"})))
