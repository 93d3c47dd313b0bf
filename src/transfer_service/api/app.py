import structlog
from fastapi import FastAPI

from transfer_service import __version__
from transfer_service.api.errors import register_error_handlers
from transfer_service.api.middleware import observe_requests
from transfer_service.api.routes import health, payments, transactions
from transfer_service.config import Settings, settings
from transfer_service.infrastructure.database import Database
from transfer_service.infrastructure.rate_limiter import SlidingWindowRateLimiter
from transfer_service.infrastructure.redis_client import RedisClient


logger = structlog.get_logger()


def create_app(
    database: Database,
    redis_client: RedisClient | None = None,
    app_settings: Settings | None = None,
) -> FastAPI:
    """Build the HTTP application around already-opened infrastructure.

    The caller owns ``database`` and ``redis_client`` and closes them on
    shutdown.
    """
    app_settings = app_settings or settings

    app = FastAPI(title="Chama Transfer Service", version=__version__)
    app.state.settings = app_settings
    app.state.database = database
    app.state.redis_client = redis_client
    app.state.rate_limiter = None

    if app_settings.rate_limit_enabled and redis_client is not None and redis_client.is_connected:
        app.state.rate_limiter = SlidingWindowRateLimiter(
            redis_client=redis_client.client,
            max_requests=app_settings.rate_limit_max_requests,
            window_seconds=app_settings.rate_limit_window_seconds,
        )
        logger.info(
            "rate_limiting_enabled",
            max_requests=app_settings.rate_limit_max_requests,
            window_seconds=app_settings.rate_limit_window_seconds,
        )

    register_error_handlers(app)
    app.middleware("http")(observe_requests)

    app.include_router(payments.router)
    app.include_router(transactions.router)
    app.include_router(health.router)
    if app_settings.metrics_enabled:
        app.include_router(health.metrics_router)

    return app
