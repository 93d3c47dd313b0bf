import time
from collections.abc import Awaitable, Callable
from functools import wraps

from prometheus_client import Counter, Histogram


TRANSFERS_TOTAL = Counter(
    "transfers_total",
    "Total number of send-money requests by outcome",
    ["status", "error_code"],
)

TRANSFER_AMOUNT_CENTS = Histogram(
    "transfer_amount_cents",
    "Amount of completed transfers in minor units",
    buckets=[1_000, 10_000, 50_000, 100_000, 500_000, 1_000_000, 5_000_000, 10_000_000],
)

TRANSFER_DURATION_SECONDS = Histogram(
    "transfer_duration_seconds",
    "Send-money processing duration",
    buckets=[0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0],
)

RECIPIENT_LOOKUPS_TOTAL = Counter(
    "recipient_lookups_total",
    "Recipient resolution attempts",
    ["kind", "result"],
)

RATE_LIMIT_EXCEEDED_TOTAL = Counter(
    "rate_limit_exceeded_total",
    "Total number of rate limited requests",
    ["endpoint"],
)

HTTP_REQUEST_DURATION = Histogram(
    "http_request_duration_seconds",
    "HTTP request duration",
    ["method", "route", "status_code"],
    buckets=[0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0],
)

HTTP_REQUESTS_TOTAL = Counter(
    "http_requests_total",
    "Total number of HTTP requests",
    ["method", "route", "status_code"],
)


def track_transfer_duration[**P, R](
    func: Callable[P, Awaitable[R]],
) -> Callable[P, Awaitable[R]]:
    @wraps(func)
    async def wrapper(*args: P.args, **kwargs: P.kwargs) -> R:
        start = time.perf_counter()
        try:
            return await func(*args, **kwargs)
        finally:
            duration = time.perf_counter() - start
            TRANSFER_DURATION_SECONDS.observe(duration)

    return wrapper
