"""
Rate limiting for API endpoints.

Uses slowapi with an in-memory store, or Redis when REDIS_URL is set (needed
once more than one worker serves the API). Signed-in requests are limited
per user, anonymous ones per IP.
"""
from slowapi import Limiter
from slowapi.util import get_remote_address
from slowapi.errors import RateLimitExceeded
from fastapi import Request
from starlette.responses import JSONResponse

from coursebuddy.config import settings


def get_identifier(request: Request) -> str:
    """User id when get_current_user has run for the request, IP otherwise."""
    user_id = getattr(request.state, "user_id", None)
    if user_id:
        return f"user:{user_id}"
    return get_remote_address(request)


def get_storage_uri() -> str:
    return settings.redis_url or "memory://"


limiter = Limiter(
    key_func=get_identifier,
    storage_uri=get_storage_uri(),
    default_limits=["200/minute"],
)


def rate_limit_exceeded_handler(request: Request, exc: RateLimitExceeded) -> JSONResponse:
    return JSONResponse(
        status_code=429,
        content={
            "error": "Rate limit exceeded. Please slow down.",
            "retry_after": exc.detail,
        },
        headers={"Retry-After": str(getattr(exc, "retry_after", 60))},
    )


# Usage: @chat_limit below the route decorator

def chat_limit(func):
    """Assistant calls, each one a paid model request."""
    return limiter.limit("20/minute")(limiter.limit("100/hour")(func))


def refresh_limit(func):
    """Catalog loads; a refresh re-pulls subjects from the registration source."""
    return limiter.limit("10/minute")(func)


def write_limit(func):
    return limiter.limit("30/minute")(func)


def auth_limit(func):
    return limiter.limit("10/minute")(limiter.limit("50/hour")(func))
