"""Rate limiting for the public endpoints, built on SlowAPI."""
import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from slowapi import Limiter
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware
from slowapi.util import get_remote_address

from .auth import TokenCodec
from .config import get_settings
from .errors import UnauthorizedError
from .schemas import ErrorResponse

logger = logging.getLogger(__name__)

settings = get_settings()
_tokens = TokenCodec.from_settings(settings)


def client_key(request: Request) -> str:
    """Bucket callers with a valid token by user id, everyone else by address."""

    scheme, _, token = request.headers.get("Authorization", "").partition(" ")
    if scheme.lower() == "bearer" and token:
        try:
            return f"user:{_tokens.decode(token).user_id}"
        except UnauthorizedError:
            pass
    return get_remote_address(request)


limiter = Limiter(
    key_func=client_key,
    default_limits=[settings.default_rate_limit],
    enabled=settings.rate_limiting_enabled,
)


def rate_limit_handler(request: Request, exc: RateLimitExceeded) -> JSONResponse:
    logger.warning("Rate limit %s hit on %s %s by %s", exc.detail, request.method, request.url.path, client_key(request))
    body = ErrorResponse(error=f"Rate limit exceeded: {exc.detail}", code="RATE_LIMITED")
    return JSONResponse(status_code=429, content=body.model_dump())


def apply_rate_limiter(app: FastAPI) -> None:
    """Attach the limiter middleware and exception handler to an app."""

    app.state.limiter = limiter
    app.add_middleware(SlowAPIMiddleware)
    app.add_exception_handler(RateLimitExceeded, rate_limit_handler)
