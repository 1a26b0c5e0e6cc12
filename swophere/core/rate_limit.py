"""Shared slowapi limiter, keyed by client address."""

from fastapi import Request
from fastapi.responses import JSONResponse
from slowapi import Limiter
from slowapi.errors import RateLimitExceeded
from slowapi.util import get_remote_address

from swophere.core.config import settings

limiter = Limiter(key_func=get_remote_address, enabled=settings.RATE_LIMIT_ENABLED)


def rate_limit_exceeded_handler(request: Request, exc: RateLimitExceeded) -> JSONResponse:
    """Render rate limit rejections in the standard error envelope."""
    return JSONResponse(
        status_code=429,
        content={"success": False, "message": "Rate limit exceeded. Please slow down."},
    )
