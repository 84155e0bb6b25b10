"""Request logging middleware."""

from __future__ import annotations

import logging
import time
from typing import Callable

from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import Response

from supportbot.utils.monitoring import observe_request

logger = logging.getLogger("supportbot.api")


class LoggingMiddleware(BaseHTTPMiddleware):
    """Log one line per request and feed the HTTP request metrics."""

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        started = time.perf_counter()
        status_code = 500
        try:
            response = await call_next(request)
            status_code = response.status_code
            return response
        finally:
            duration = time.perf_counter() - started
            route = request.scope.get("route")
            # Label by route template so ids do not explode metric cardinality.
            path = getattr(route, "path", request.url.path)
            observe_request(request.method, path, status_code, duration)
            logger.info(
                "request.completed",
                extra={
                    "path": request.url.path,
                    "method": request.method,
                    "status": status_code,
                    "duration_ms": round(duration * 1000, 2),
                    "client": request.client.host if request.client else None,
                },
            )
