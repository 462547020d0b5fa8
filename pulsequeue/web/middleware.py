"""
Webhook Token Guard
===================

Optional JWT bearer-token check for the webhook and status API.
Disabled when no webhook secret is configured.

Author: PulseQueue Project
License: MIT
"""

from datetime import datetime, timedelta, timezone
from typing import Optional

import jwt
from fastapi import Request, status
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware

from ..utils.logger import get_logger

logger = get_logger(__name__)

ALGORITHM = "HS256"


class TokenAuthMiddleware(BaseHTTPMiddleware):
    """
    Rejects API requests without a valid token.

    Tokens are read from the Authorization header (``Bearer <token>``)
    and must be signed with the configured webhook secret.
    """

    PUBLIC_PATHS = [
        "/health",
        "/api/docs",
        "/api/redoc",
        "/openapi.json"
    ]

    def __init__(self, app, secret: str):
        super().__init__(app)
        self.secret = secret

    async def dispatch(self, request: Request, call_next):
        if any(request.url.path.startswith(path) for path in self.PUBLIC_PATHS):
            return await call_next(request)

        token = self._bearer_token(request)
        if not token:
            return self._reject("Authentication required")

        subject = verify_token(token, self.secret)
        if subject is None:
            logger.warning(f"Invalid token for {request.url.path} from {self._client_ip(request)}")
            return self._reject("Invalid token")

        request.state.caller = subject
        return await call_next(request)

    @staticmethod
    def _reject(detail: str) -> JSONResponse:
        return JSONResponse(
            status_code=status.HTTP_401_UNAUTHORIZED,
            content={"detail": detail},
            headers={"WWW-Authenticate": "Bearer"}
        )

    def _client_ip(self, request: Request) -> str:
        """X-Forwarded-For first (behind a proxy), then the direct peer."""
        forwarded_for = request.headers.get("X-Forwarded-For", "")
        if forwarded_for:
            return forwarded_for.split(",", 1)[0].strip()
        return request.client.host if request.client else "unknown"

    def _bearer_token(self, request: Request) -> Optional[str]:
        scheme, _, token = request.headers.get("Authorization", "").partition(" ")
        if scheme.lower() != "bearer" or not token:
            return None
        return token.strip()


def create_token(caller: str, secret: str, expires_hours: int = 24) -> str:
    """
    Create a token for a webhook caller.

    Args:
        caller: Caller identity stored as the token subject
        secret: Webhook secret used for signing
        expires_hours: Token lifetime in hours

    Returns:
        Encoded JWT
    """
    now = datetime.now(timezone.utc)
    payload = {
        "sub": caller,
        "iat": now,
        "exp": now + timedelta(hours=expires_hours)
    }
    return jwt.encode(payload, secret, algorithm=ALGORITHM)


def verify_token(token: str, secret: str) -> Optional[str]:
    """Return the token subject, or None if the token is invalid or expired."""
    try:
        payload = jwt.decode(token, secret, algorithms=[ALGORITHM])
    except jwt.InvalidTokenError:
        return None
    return payload.get("sub")
