# app/middleware/authentication.py
import re
from typing import Awaitable, Callable, Optional, Set

from fastapi import Request, status
from fastapi.responses import JSONResponse
from fastapi.security.utils import get_authorization_scheme_param
from jose import JWTError
from loguru import logger
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import Response
from starlette.types import ASGIApp

from app.core.security import decode_subject

# Paths that never require a token
PUBLIC_PATHS: Set[str] = {
    "/",
    "/docs",
    "/openapi.json",
    "/redoc",
    "/health",
    "/health/db",
}
PUBLIC_PREFIXES = ("/docs", "/redoc", "/health", "/api/v1/auth/")

# Catalogue browsing is open to anonymous readers, GET only
PUBLIC_READ_PATTERN = re.compile(r"^/api/v1/books(/[^/]+)?/?$")


def is_public_path(method: str, path: str) -> bool:
    if path in PUBLIC_PATHS:
        return True
    if path.startswith(PUBLIC_PREFIXES):
        return True
    if method.upper() in ("GET", "HEAD") and PUBLIC_READ_PATTERN.match(path):
        return True
    return False


def _unauthorized(detail: str) -> JSONResponse:
    return JSONResponse(
        status_code=status.HTTP_401_UNAUTHORIZED,
        content={"detail": detail},
        headers={"WWW-Authenticate": "Bearer"},
    )


class AuthMiddleware(BaseHTTPMiddleware):
    def __init__(self, app: ASGIApp):
        super().__init__(app)

    async def dispatch(
        self, request: Request, call_next: Callable[[Request], Awaitable[Response]]
    ) -> Response:
        path = request.url.path
        request_id = getattr(request.state, "request_id", "N/A")

        if request.method == "OPTIONS" or is_public_path(request.method, path):
            logger.debug(f"RID:{request_id} Public path accessed: {request.method} {path}. Skipping auth.")
            return await call_next(request)

        authorization: Optional[str] = request.headers.get("Authorization")
        scheme, token = get_authorization_scheme_param(authorization or "")
        if not authorization or scheme.lower() != "bearer" or not token:
            logger.warning(f"RID:{request_id} Auth failed: No valid Bearer token for protected path {path}.")
            return _unauthorized("Not authenticated")

        try:
            user_id = decode_subject(token)
        except JWTError as e:
            logger.warning(f"RID:{request_id} Auth failed: Invalid token for path {path}. Error: {e}")
            return _unauthorized(f"Invalid token: {e}")
        if not user_id:
            logger.warning(f"RID:{request_id} Auth failed: 'sub' claim missing in token for path {path}.")
            return _unauthorized("Invalid token: subject missing")

        # Picked up by get_current_user
        request.state.user_id = user_id
        logger.debug(f"RID:{request_id} Auth successful for user {user_id} accessing {path}.")
        return await call_next(request)
