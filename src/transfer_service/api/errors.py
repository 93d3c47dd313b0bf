from typing import Any

import structlog
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError

from transfer_service.domain.exceptions import DomainError, ErrorCode, ValidationFailedError


logger = structlog.get_logger()


STATUS_BY_CODE = {
    ErrorCode.UNAUTHENTICATED: 401,
    ErrorCode.VALIDATION_ERROR: 400,
    ErrorCode.INSUFFICIENT_FUNDS: 400,
    ErrorCode.INVALID_RECIPIENT: 400,
    ErrorCode.RECIPIENT_NOT_FOUND: 404,
    ErrorCode.ACCOUNT_NOT_FOUND: 404,
    ErrorCode.TRANSACTION_NOT_FOUND: 404,
    ErrorCode.DUPLICATE_REQUEST: 409,
    ErrorCode.IDEMPOTENCY_KEY_REUSED: 422,
    ErrorCode.RATE_LIMITED: 429,
    ErrorCode.PERSISTENCE_FAILURE: 500,
    ErrorCode.INTERNAL_ERROR: 500,
}

INTERNAL_ERROR_MESSAGE = "Internal server error"


class RateLimitExceededError(Exception):
    """Raised by the rate limit dependency; rendered as 429."""

    code = ErrorCode.RATE_LIMITED

    def __init__(self, retry_after_seconds: int) -> None:
        self.retry_after_seconds = retry_after_seconds
        super().__init__(f"Rate limit exceeded. Retry after {retry_after_seconds}s")


def error_body(code: ErrorCode, message: str, **extra: Any) -> dict[str, Any]:
    return {"code": code.value, "message": message, **extra}


def status_for(code: ErrorCode) -> int:
    return STATUS_BY_CODE.get(code, 500)


async def domain_error_handler(request: Request, exc: DomainError) -> JSONResponse:
    status_code = status_for(exc.code)

    if status_code >= 500:
        logger.error("request_failed", error_code=exc.code.value, exc_info=exc)
        return JSONResponse(error_body(exc.code, INTERNAL_ERROR_MESSAGE), status_code=status_code)

    extra: dict[str, Any] = {}
    if isinstance(exc, ValidationFailedError):
        extra["issues"] = [{"field": issue.field, "message": issue.message} for issue in exc.issues]

    headers = {"WWW-Authenticate": "Bearer"} if status_code == 401 else None
    return JSONResponse(error_body(exc.code, str(exc), **extra), status_code=status_code, headers=headers)


async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    issues = [
        {
            "field": ".".join(str(part) for part in error["loc"] if part != "body") or "body",
            "message": error["msg"],
        }
        for error in exc.errors()
    ]
    return JSONResponse(
        error_body(ErrorCode.VALIDATION_ERROR, "Validation failed", issues=issues),
        status_code=400,
    )


async def rate_limit_handler(request: Request, exc: RateLimitExceededError) -> JSONResponse:
    return JSONResponse(
        error_body(exc.code, str(exc)),
        status_code=429,
        headers={"Retry-After": str(exc.retry_after_seconds)},
    )


async def persistence_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.error("persistence_failure", exc_info=exc)
    return JSONResponse(
        error_body(ErrorCode.PERSISTENCE_FAILURE, INTERNAL_ERROR_MESSAGE),
        status_code=500,
    )


async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.error("unhandled_error", exc_info=exc)
    return JSONResponse(
        error_body(ErrorCode.INTERNAL_ERROR, INTERNAL_ERROR_MESSAGE),
        status_code=500,
    )


def register_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(DomainError, domain_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)
    app.add_exception_handler(RateLimitExceededError, rate_limit_handler)
    app.add_exception_handler(SQLAlchemyError, persistence_error_handler)
    app.add_exception_handler(Exception, unhandled_error_handler)
