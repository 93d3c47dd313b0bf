from collections.abc import AsyncGenerator, Awaitable, Callable
from datetime import timedelta

import redis.asyncio as redis
import structlog
from fastapi import Depends, Request, Response

from transfer_service.api.auth import get_current_account_id
from transfer_service.api.errors import RateLimitExceededError
from transfer_service.application.services import PaymentService
from transfer_service.application.unit_of_work import UnitOfWork
from transfer_service.infrastructure.database import Database
from transfer_service.infrastructure.metrics import RATE_LIMIT_EXCEEDED_TOTAL
from transfer_service.infrastructure.rate_limiter import SlidingWindowRateLimiter


logger = structlog.get_logger()


async def get_payment_service(request: Request) -> AsyncGenerator[PaymentService, None]:
    """One session, and so one unit of work, per request."""
    database: Database = request.app.state.database
    settings = request.app.state.settings
    async with database.session() as session:
        yield PaymentService(
            UnitOfWork(session),
            country_code=settings.phone_country_code,
            idempotency_ttl=timedelta(hours=settings.idempotency_ttl_hours),
        )


def rate_limit(endpoint: str) -> Callable[..., Awaitable[None]]:
    """Per-account sliding window limit for ``endpoint``; no-op when disabled."""

    async def dependency(
        request: Request,
        response: Response,
        account_id: str = Depends(get_current_account_id),
    ) -> None:
        limiter: SlidingWindowRateLimiter | None = request.app.state.rate_limiter
        if limiter is None:
            return

        try:
            decision = await limiter.check(f"{endpoint}:account:{account_id}")
        except redis.RedisError:
            # Redis outage must not block payments
            logger.warning("rate_limiter_unavailable", endpoint=endpoint, exc_info=True)
            return

        if not decision.allowed:
            RATE_LIMIT_EXCEEDED_TOTAL.labels(endpoint=endpoint).inc()
            raise RateLimitExceededError(decision.retry_after_seconds)

        response.headers["X-RateLimit-Limit"] = str(limiter.max_requests)
        response.headers["X-RateLimit-Remaining"] = str(decision.remaining)

    return dependency
