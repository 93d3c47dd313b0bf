from dataclasses import dataclass
from datetime import UTC, datetime
from typing import TYPE_CHECKING, Any

import structlog
from ulid import ULID


if TYPE_CHECKING:
    import redis.asyncio as redis

logger = structlog.get_logger()


@dataclass(frozen=True)
class RateLimitDecision:
    allowed: bool
    remaining: int
    retry_after_seconds: int


class SlidingWindowRateLimiter:
    """
    Sliding window rate limiter using Redis sorted sets.

    Allows `max_requests` per `window_seconds` for each identifier. Every
    request is recorded and counted atomically, and a rejected request is
    removed again, so a client that backs off recovers as soon as old
    requests age out.
    """

    def __init__(
        self,
        redis_client: "redis.Redis[bytes]",
        max_requests: int = 30,
        window_seconds: int = 60,
        key_prefix: str = "ratelimit:",
    ) -> None:
        self._redis = redis_client
        self._max_requests = max_requests
        self._window_seconds = window_seconds
        self._key_prefix = key_prefix

    @property
    def window_seconds(self) -> int:
        return self._window_seconds

    @property
    def max_requests(self) -> int:
        return self._max_requests

    async def check(self, identifier: str) -> RateLimitDecision:
        key = f"{self._key_prefix}{identifier}"
        now = datetime.now(UTC).timestamp()
        window_start = now - self._window_seconds
        # Unique member so two requests in the same instant both count
        member = f"{now}:{ULID()}"

        # Trim, record and count in one MULTI so concurrent checks see each other
        pipe = self._redis.pipeline(transaction=True)
        pipe.zremrangebyscore(key, 0, window_start)
        pipe.zadd(key, {member: now})
        pipe.zcard(key)
        pipe.zrange(key, 0, 0, withscores=True)
        pipe.expire(key, self._window_seconds)
        results: list[Any] = await pipe.execute()

        current_count = int(results[2])
        if current_count > self._max_requests:
            await self._redis.zrem(key, member)
            oldest = results[3]
            oldest_score = float(oldest[0][1]) if oldest else now
            retry_after = max(1, int(oldest_score + self._window_seconds - now) + 1)
            logger.warning(
                "rate_limit_exceeded",
                identifier=identifier,
                current_count=current_count - 1,
                max_requests=self._max_requests,
            )
            return RateLimitDecision(allowed=False, remaining=0, retry_after_seconds=retry_after)

        return RateLimitDecision(
            allowed=True,
            remaining=self._max_requests - current_count,
            retry_after_seconds=0,
        )
