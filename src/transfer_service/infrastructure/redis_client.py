from urllib.parse import urlsplit, urlunsplit

import redis.asyncio as redis
import structlog

from transfer_service.config import settings


logger = structlog.get_logger()


def redact_url(url: str) -> str:
    """Drop the password from a Redis URL before it is logged."""
    parts = urlsplit(url)
    if parts.password is None:
        return url
    netloc = f"{parts.username or ''}:***@{parts.hostname}"
    if parts.port:
        netloc += f":{parts.port}"
    return urlunsplit(parts._replace(netloc=netloc))


class RedisClient:
    """Redis connection backing the per-account rate limiter.

    Rate limit checks sit in front of every transfer, so commands use a short
    socket timeout and callers treat Redis errors as "not limited".
    """

    def __init__(self, url: str | None = None, socket_timeout: float | None = None) -> None:
        self._url = url or settings.redis_url
        self._socket_timeout = socket_timeout if socket_timeout is not None else settings.redis_socket_timeout_seconds
        self._client: redis.Redis[bytes] | None = None

    @property
    def client(self) -> "redis.Redis[bytes]":
        """Get the Redis client. Raises if not connected."""
        if self._client is None:
            raise RuntimeError("Redis client not connected. Call connect() first.")
        return self._client

    @property
    def is_connected(self) -> bool:
        return self._client is not None

    async def connect(self) -> None:
        client = redis.from_url(
            self._url,
            decode_responses=False,
            socket_timeout=self._socket_timeout,
            socket_connect_timeout=self._socket_timeout,
        )
        try:
            await client.ping()
        except redis.RedisError:
            await client.aclose()
            raise
        self._client = client
        logger.info("redis_connected", url=redact_url(self._url))

    async def try_connect(self) -> bool:
        """Connect, or log and carry on without rate limiting."""
        try:
            await self.connect()
        except redis.RedisError:
            logger.warning("redis_unavailable_rate_limiting_disabled", url=redact_url(self._url), exc_info=True)
            return False
        return True

    async def close(self) -> None:
        if self._client:
            await self._client.aclose()
            self._client = None
            logger.info("redis_disconnected")

    async def health_check(self) -> bool:
        if self._client is None:
            return False
        try:
            await self._client.ping()
        except redis.RedisError:
            logger.warning("redis_health_check_failed", exc_info=True)
            return False
        return True
