import asyncio

import structlog
import uvicorn

from transfer_service.api.app import create_app
from transfer_service.config import settings
from transfer_service.infrastructure.database import Database
from transfer_service.infrastructure.redis_client import RedisClient
from transfer_service.logging import configure_logging


logger = structlog.get_logger()


async def main() -> None:
    configure_logging(
        level=settings.log_level,
        log_format=settings.log_format,
    )

    logger.info(
        "starting_transfer_service",
        http_port=settings.http_port,
        log_level=settings.log_level,
        rate_limit_enabled=settings.rate_limit_enabled,
        metrics_enabled=settings.metrics_enabled,
    )

    database = Database(
        settings.database_url,
        pool_size=settings.database_pool_size,
        max_overflow=settings.database_max_overflow,
    )

    redis_client: RedisClient | None = None
    if settings.rate_limit_enabled:
        redis_client = RedisClient(settings.redis_url, socket_timeout=settings.redis_socket_timeout_seconds)
        await redis_client.try_connect()

    app = create_app(database=database, redis_client=redis_client)

    # uvicorn handles SIGINT/SIGTERM and returns from serve() once drained
    server = uvicorn.Server(
        uvicorn.Config(
            app,
            host=settings.http_host,
            port=settings.http_port,
            log_config=None,
            access_log=False,
        )
    )

    try:
        await server.serve()
    finally:
        logger.info("shutting_down")
        if redis_client:
            await redis_client.close()
        await database.close()


def run() -> None:
    asyncio.run(main())


if __name__ == "__main__":
    run()
