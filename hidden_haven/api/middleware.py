"""API middleware for request processing."""

import logging
import time
from collections import defaultdict
from typing import Callable

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import JSONResponse

logger = logging.getLogger(__name__)

_STALE_CLIENT_THRESHOLD = 300  # seconds before a silent client's entry is evicted


def _client_key(request: Request) -> str:
    """Rate-limit key: the caller's user id when sent, else the client address."""
    user_id = request.headers.get("X-User-ID")
    if user_id:
        return f"user:{user_id}"
    return f"ip:{request.client.host if request.client else 'unknown'}"


class LoggingMiddleware(BaseHTTPMiddleware):
    """Middleware for logging requests and responses."""

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        """Process request and log details."""
        start_time = time.monotonic()
        user_id = request.headers.get("X-User-ID", "anonymous")

        logger.info(
            "Request: %s %s",
            request.method,
            request.url.path,
            extra={
                "method": request.method,
                "path": request.url.path,
                "user_id": user_id,
                "client": request.client.host if request.client else "unknown",
            },
        )

        try:
            response = await call_next(request)
        except Exception as e:
            process_time = time.monotonic() - start_time
            logger.error(
                "Request %s %s failed after %.3fs: %s",
                request.method,
                request.url.path,
                process_time,
                e,
                extra={"process_time_s": round(process_time, 3), "user_id": user_id},
            )
            raise

        process_time = time.monotonic() - start_time
        log = logger.warning if response.status_code >= 500 else logger.info
        log(
            "Response: %s %s -> %s in %.3fs",
            request.method,
            request.url.path,
            response.status_code,
            process_time,
            extra={
                "status_code": response.status_code,
                "process_time_s": round(process_time, 3),
                "user_id": user_id,
            },
        )

        response.headers["X-Process-Time"] = f"{process_time:.3f}"
        return response


class RateLimitMiddleware(BaseHTTPMiddleware):
    """Sliding-window rate limiting per user (or per address for anonymous calls).

    Evicts stale client entries periodically to prevent unbounded memory growth.
    """

    def __init__(self, app, max_requests: int = 120, period_seconds: int = 60) -> None:
        super().__init__(app)
        self.max_requests = max_requests
        self.period_seconds = period_seconds
        self._request_times: dict[str, list[float]] = defaultdict(list)
        self._last_cleanup = time.monotonic()

    def _cleanup_stale_clients(self, now: float) -> None:
        """Remove entries for clients that have not sent requests recently."""
        if now - self._last_cleanup < _STALE_CLIENT_THRESHOLD:
            return
        cutoff = now - max(_STALE_CLIENT_THRESHOLD, self.period_seconds)
        stale = [key for key, ts in self._request_times.items() if not ts or ts[-1] < cutoff]
        for key in stale:
            del self._request_times[key]
        self._last_cleanup = now

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        """Check rate limits and process request."""
        key = _client_key(request)
        now = time.monotonic()
        window_start = now - self.period_seconds

        self._cleanup_stale_clients(now)

        recent = [t for t in self._request_times[key] if t > window_start]
        self._request_times[key] = recent

        if len(recent) >= self.max_requests:
            retry_after = max(int(recent[0] - window_start) + 1, 1)
            logger.warning("Rate limit exceeded for %s", key)
            return JSONResponse(
                status_code=429,
                content={"error": "rate_limited", "detail": "Too many requests", "retry_after": retry_after},
                headers={"Retry-After": str(retry_after)},
            )

        recent.append(now)
        return await call_next(request)
