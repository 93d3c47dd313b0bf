"""Session token verification.

Login and token issuance belong to the auth service. Here we only turn the
session cookie (or a bearer token) into the caller's account id.
"""

from datetime import UTC, datetime, timedelta

import jwt
import structlog
from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from transfer_service.domain.exceptions import UnauthenticatedError


bearer_scheme = HTTPBearer(auto_error=False)

DEFAULT_TOKEN_TTL = timedelta(days=7)


def create_access_token(
    account_id: str,
    secret: str,
    algorithm: str = "HS256",
    expires_in: timedelta = DEFAULT_TOKEN_TTL,
) -> str:
    payload = {
        "userId": account_id,
        "sub": account_id,
        "exp": datetime.now(UTC) + expires_in,
    }
    return jwt.encode(payload, secret, algorithm=algorithm)


def decode_session_token(token: str, secret: str, algorithm: str = "HS256") -> str:
    """Return the account id carried by ``token``."""
    try:
        payload = jwt.decode(token, secret, algorithms=[algorithm])
    except jwt.ExpiredSignatureError as exc:
        raise UnauthenticatedError("Session expired - please login again") from exc
    except jwt.PyJWTError as exc:
        raise UnauthenticatedError("Invalid session token") from exc

    account_id = payload.get("userId") or payload.get("sub")
    if not account_id:
        raise UnauthenticatedError("Invalid session token")
    return str(account_id)


async def get_current_account_id(
    request: Request,
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
) -> str:
    settings = request.app.state.settings
    token = credentials.credentials if credentials else request.cookies.get(settings.auth_cookie_name)
    if not token:
        raise UnauthenticatedError()

    account_id = decode_session_token(token, settings.jwt_secret, settings.jwt_algorithm)
    structlog.contextvars.bind_contextvars(account_id=account_id)
    return account_id
