"""Redis-backed rate limiting for chat message routes."""

from __future__ import annotations

import hashlib
import logging
from typing import Callable

from fastapi import Request, status
from redis.exceptions import RedisError
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import JSONResponse, Response

from supportbot.core.config import settings
from supportbot.core.database import database_manager
from supportbot.core.exceptions import UnauthorizedError
from supportbot.core.security import verify_access_token

logger = logging.getLogger(__name__)

LIMITED_PREFIX = "/api/chat/conversations/"
LIMITED_SUFFIXES = ("/messages", "/stream")


class RateLimitMiddleware(BaseHTTPMiddleware):
    """Fixed-window limit on chat turns per user (or client IP when anonymous).

    Disabled when no Redis connection is configured.
    """

    def __init__(self, app, *, requests: int | None = None, window_seconds: int = 60) -> None:
        super().__init__(app)
        self.requests = requests or settings.RATE_LIMIT_PER_MINUTE
        self.window_seconds = window_seconds

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        redis = database_manager.redis
        if redis is None or self.requests <= 0 or not self._is_limited(request):
            return await call_next(request)

        bucket = f"ratelimit:chat:{self._derive_identifier(request)}"
        try:
            count = await redis.incr(bucket)
            if count == 1:
                await redis.expire(bucket, self.window_seconds)
            ttl = await redis.ttl(bucket)
        except RedisError as exc:
            logger.warning("Rate limiter unavailable, allowing request: %s", exc)
            return await call_next(request)

        if count > self.requests:
            retry_after = ttl if ttl > 0 else self.window_seconds
            return JSONResponse(
                status_code=status.HTTP_429_TOO_MANY_REQUESTS,
                content={"detail": "Too many messages, please slow down.", "code": "rate_limited"},
                headers={"Retry-After": str(retry_after)},
            )

        response = await call_next(request)
        response.headers["X-RateLimit-Limit"] = str(self.requests)
        response.headers["X-RateLimit-Remaining"] = str(max(self.requests - count, 0))
        return response

    @staticmethod
    def _is_limited(request: Request) -> bool:
        path = request.url.path
        return request.method == "POST" and path.startswith(LIMITED_PREFIX) and path.endswith(LIMITED_SUFFIXES)

    @staticmethod
    def _derive_identifier(request: Request) -> str:
        auth_header = request.headers.get("Authorization")
        if auth_header and auth_header.startswith("Bearer "):
            token = auth_header.split(" ", 1)[1]
            try:
                payload = verify_access_token(token)
                return f"user:{payload.get('sub', 'anonymous')}"
            except UnauthorizedError:
                return f"token:{hashlib.sha256(token.encode()).hexdigest()[:16]}"

        client_ip = request.client.host if request.client else "anonymous"
        return f"ip:{client_ip}"
