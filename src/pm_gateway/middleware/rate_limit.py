"""Rate limiting middleware — Redis fixed-window counter.

Key pattern: "ratelimit:{caller}:{epoch_minute}", where caller is the token
principal when a valid Bearer token is present, else the client IP
(X-Forwarded-For aware). Over RATE_LIMIT_PER_MINUTE the request is answered
with a 429 envelope and a Retry-After header, without reaching the handler.
If Redis is unreachable the request is let through and a warning is logged.
"""

import logging
import time

from fastapi.responses import JSONResponse
from redis.exceptions import RedisError
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

from config.settings import settings
from src.pm_common.errors import InvalidCredentialsError, RateLimitError
from src.pm_common.redis_client import get_redis
from src.pm_common.response import error_response
from src.pm_gateway.auth.jwt_handler import decode_principal

logger = logging.getLogger(__name__)

_WINDOW_SECONDS = 60
_EXEMPT_PATHS = frozenset({"/health", "/docs", "/openapi.json"})


def caller_key(request: Request) -> str:
    auth = request.headers.get("authorization", "")
    if auth.lower().startswith("bearer "):
        try:
            return f"principal:{decode_principal(auth[7:].strip())}"
        except InvalidCredentialsError:
            pass  # unauthenticated callers are limited per IP
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        return f"ip:{forwarded.split(',')[0].strip()}"
    host = request.client.host if request.client else "unknown"
    return f"ip:{host}"


class RateLimitMiddleware(BaseHTTPMiddleware):
    def __init__(self, app, limit_per_minute: int | None = None) -> None:  # type: ignore[no-untyped-def]
        super().__init__(app)
        self._limit = limit_per_minute or settings.RATE_LIMIT_PER_MINUTE

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        if not settings.RATE_LIMIT_ENABLED or request.url.path in _EXEMPT_PATHS:
            return await call_next(request)

        now = int(time.time())
        window = now // _WINDOW_SECONDS
        key = f"ratelimit:{caller_key(request)}:{window}"

        try:
            redis = await get_redis()
            count = await redis.incr(key)
            if count == 1:
                await redis.expire(key, _WINDOW_SECONDS)
        except RedisError:
            # Fail open when Redis is unreachable
            logger.warning("Rate limiter unavailable, not counting %s", key, exc_info=True)
            return await call_next(request)

        if count > self._limit:
            retry_after = _WINDOW_SECONDS - (now % _WINDOW_SECONDS)
            err = RateLimitError(retry_after)
            logger.warning("Rate limit exceeded: %s (%d requests)", key, count)
            return JSONResponse(
                status_code=err.http_status,
                content=error_response(err.code, err.message).model_dump(),
                headers={"Retry-After": str(retry_after)},
            )
        return await call_next(request)
