"""
Rate Limiting for the Model Export API
======================================
Implements rate limiting using slowapi.

Every route shares the default per-client limit (RATE_LIMIT_PER_MINUTE).
Storage is in-process by default; point RATE_LIMIT_STORAGE_URI at a shared
backend (e.g. redis://) when running several workers.
"""

from slowapi import Limiter
from slowapi.util import get_remote_address
from slowapi.errors import RateLimitExceeded
from fastapi import Request
from fastapi.responses import JSONResponse

from app.core.config import settings
from app.core.exceptions import error_body
from app.core.logging_config import logger


RATE_LIMIT_ERROR_CODE = 4291


def get_client_identifier(request: Request) -> str:
    """Rate limit key: forwarded client address, falling back to the peer address"""
    forwarded = request.headers.get("X-Forwarded-For")
    if forwarded:
        return f"ip:{forwarded.split(',')[0].strip()}"
    return f"ip:{get_remote_address(request)}"


limiter = Limiter(
    key_func=get_client_identifier,
    default_limits=[f"{settings.RATE_LIMIT_PER_MINUTE}/minute"],
    storage_uri=settings.RATE_LIMIT_STORAGE_URI,
    strategy="fixed-window",
    enabled=settings.RATE_LIMIT_ENABLED,
)


def rate_limit_exceeded_handler(request: Request, exc: RateLimitExceeded) -> JSONResponse:
    """
    Handler for rate limit exceeded errors.

    Plain (sync) function: SlowAPIMiddleware calls it without awaiting.
    """
    logger.warning(
        f"[RateLimit] Exceeded for {get_client_identifier(request)}: {exc.detail}"
    )

    return JSONResponse(
        status_code=429,
        content=error_body(
            RATE_LIMIT_ERROR_CODE,
            "Too many requests. Please slow down."
        ),
        headers={
            "Retry-After": "60",
            "X-RateLimit-Limit": str(settings.RATE_LIMIT_PER_MINUTE),
        }
    )
