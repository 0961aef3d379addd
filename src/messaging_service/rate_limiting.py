from fastapi import FastAPI, Request
from slowapi import Limiter
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware
from slowapi.util import get_remote_address
from starlette.responses import JSONResponse

from .config import settings
from .logging_config import logger

CONVERSATION_CREATE_LIMIT = settings.CONVERSATION_CREATE_RATE_LIMIT
MESSAGE_SEND_LIMIT = settings.MESSAGE_SEND_RATE_LIMIT


def get_limiter_key(request: Request) -> str:
    # Authenticated callers are limited per token, anonymous ones per client IP
    auth = request.headers.get("authorization")
    if auth:
        return auth
    return get_remote_address(request)


limiter = Limiter(
    key_func=get_limiter_key,
    default_limits=[settings.GENERAL_RATE_LIMIT],
    strategy="fixed-window",
    enabled=settings.RATE_LIMIT_ENABLED,
)


async def rate_limit_exceeded_handler(request: Request, exc: RateLimitExceeded) -> JSONResponse:
    """Custom handler for rate limit exceeded exceptions"""
    logger.warning(f"Rate limit exceeded for {request.url.path}: {exc.detail}")
    return JSONResponse(
        status_code=429,
        content={"detail": "Rate limit exceeded", "code": "rate_limited"},
    )


def setup_rate_limiting(app: FastAPI) -> None:
    """Configure rate limiting for the FastAPI application"""
    app.state.limiter = limiter

    if settings.RATE_LIMIT_ENABLED:
        logger.info(
            f"Rate limiting enabled: general={settings.GENERAL_RATE_LIMIT}, "
            f"conversation_create={CONVERSATION_CREATE_LIMIT}, message_send={MESSAGE_SEND_LIMIT}"
        )
    else:
        logger.info("Rate limiting is disabled")

    app.add_middleware(SlowAPIMiddleware)
    app.add_exception_handler(RateLimitExceeded, rate_limit_exceeded_handler)
