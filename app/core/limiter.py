import logging
import math
from uuid import UUID

from fastapi import Request
from fastapi.responses import JSONResponse
from slowapi import Limiter
from slowapi.errors import RateLimitExceeded
from slowapi.util import get_remote_address

from app.core.config import settings
from app.core.exceptions import AuthenticationFailed
from app.core.security import decode_access_token

logger = logging.getLogger(__name__)


def rate_limit_key(request: Request) -> str:
    """
    Bucket signed-in callers by user so a shared NAT address does not throttle
    everyone behind it. Anonymous or badly signed requests fall back to the IP.
    """
    scheme, _, credentials = request.headers.get("Authorization", "").partition(" ")
    if scheme.lower() == "bearer" and credentials:
        try:
            user_id: UUID = decode_access_token(credentials)
        except AuthenticationFailed:
            pass
        else:
            return f"user:{user_id}"
    return f"ip:{get_remote_address(request)}"


# Counters live in Redis so every API replica shares them
limiter = Limiter(
    key_func=rate_limit_key,
    storage_uri="memory://" if settings.is_testing else settings.redis_url,
    strategy="fixed-window",
    headers_enabled=False,
    enabled=not settings.is_testing,
)


def init_limiter_error_handlers(app):
    """Answer throttled requests with JSON and a Retry-After hint."""

    @app.exception_handler(RateLimitExceeded)
    async def _rate_limit_exceeded_handler(request: Request, exc: RateLimitExceeded):
        key = rate_limit_key(request)
        logger.warning(f"Rate limit '{exc.detail}' exceeded by {key} on {request.url.path}")

        retry_after = 60
        limit = getattr(exc, "limit", None)
        if limit is not None:
            retry_after = math.ceil(limit.limit.get_expiry())

        return JSONResponse(
            status_code=429,
            content={"detail": f"Too many requests ({exc.detail}). Please slow down."},
            headers={"Retry-After": str(retry_after)},
        )
