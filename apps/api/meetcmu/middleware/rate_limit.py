from __future__ import annotations

import time

import structlog
from fastapi import Request
from redis.exceptions import RedisError
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import JSONResponse, Response

from meetcmu.core.config import settings
from meetcmu.redis_client import get_redis

logger = structlog.get_logger(__name__)

READ_METHODS = {"GET", "HEAD"}


def _parse_rate(rate: str) -> tuple[int, int]:
    """
    Parse formats like:
      - "60/minute"
      - "120/hour"
      - "10/second"
    Returns: (limit, window_seconds)
    """
    raw = rate.strip().lower()
    if "/" not in raw:
        raise ValueError(f"Invalid rate format: {rate}")

    limit_str, window_str = raw.split("/", 1)
    limit = int(limit_str)

    window_str = window_str.strip()
    if window_str in {"sec", "second", "seconds"}:
        return limit, 1
    if window_str in {"min", "minute", "minutes"}:
        return limit, 60
    if window_str in {"hour", "hours"}:
        return limit, 3600
    if window_str in {"day", "days"}:
        return limit, 86400

    raise ValueError(f"Invalid rate window: {window_str}")


def _budget_for(method: str) -> tuple[str, str]:
    """Writes (interest toggles, chat posts, edits) get the stricter budget."""
    if method in READ_METHODS:
        return "read", settings.rate_limit_default
    return "write", settings.rate_limit_write


class RateLimitMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next) -> Response:
        if not settings.rate_limit_enabled:
            return await call_next(request)

        # CORS preflight is never limited.
        if request.method == "OPTIONS":
            return await call_next(request)

        path = request.url.path
        if path in set(settings.rate_limit_exempt_paths):
            return await call_next(request)

        client_ip = request.client.host if request.client else "unknown"
        budget, rate = _budget_for(request.method)

        try:
            limit, window_seconds = _parse_rate(rate)
        except ValueError:
            logger.warning("rate_limit_misconfigured", budget=budget, rate=rate)
            return await call_next(request)

        now = int(time.time())
        bucket = now // window_seconds
        key = f"rl:{client_ip}:{budget}:{path}:{window_seconds}:{bucket}"

        try:
            r = get_redis()
            count = r.incr(key)
            if count == 1:
                r.expire(key, window_seconds)
        except RedisError:
            # Redis down: serve the request unlimited.
            logger.warning("rate_limit_unavailable", path=path)
            return await call_next(request)

        remaining = max(0, limit - int(count))
        reset = (bucket + 1) * window_seconds

        if count > limit:
            logger.info("rate_limited", client_ip=client_ip, budget=budget, path=path)
            headers = {
                "X-RateLimit-Limit": str(limit),
                "X-RateLimit-Remaining": "0",
                "X-RateLimit-Reset": str(reset),
                "Retry-After": str(max(0, reset - now)),
            }
            return JSONResponse(
                status_code=429,
                content={"detail": "rate limit exceeded"},
                headers=headers,
            )

        response = await call_next(request)
        response.headers.setdefault("X-RateLimit-Limit", str(limit))
        response.headers.setdefault("X-RateLimit-Remaining", str(remaining))
        response.headers.setdefault("X-RateLimit-Reset", str(reset))
        return response
