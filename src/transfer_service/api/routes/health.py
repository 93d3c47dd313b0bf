from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse, PlainTextResponse
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest


router = APIRouter(tags=["operations"])
metrics_router = APIRouter(tags=["operations"])


@router.get("/health")
async def health(request: Request) -> JSONResponse:
    """Liveness plus dependency checks; 503 when the database is unreachable."""
    database_ok = await request.app.state.database.health_check()
    body = {
        "status": "healthy" if database_ok else "unhealthy",
        "database": "up" if database_ok else "down",
    }

    redis_client = request.app.state.redis_client
    if redis_client is not None:
        # Rate limiting fails open, so Redis being down is reported but not fatal
        body["redis"] = "up" if await redis_client.health_check() else "down"

    return JSONResponse(body, status_code=200 if database_ok else 503)


@metrics_router.get("/metrics", response_class=PlainTextResponse, include_in_schema=False)
async def metrics() -> PlainTextResponse:
    """Prometheus metrics endpoint."""
    return PlainTextResponse(
        content=generate_latest(),
        media_type=CONTENT_TYPE_LATEST,
    )
