"""
Per-client request limits, counted in a one-minute sliding window kept in a
Redis sorted set per (tier, client) bucket.

  weather   GET /weather/current, guards the OpenWeatherMap quota
  auth      any other request carrying X-User-Id
  anon      everything else, bucketed by client IP

Without Redis every request passes.
"""

import time
from typing import Callable, NamedTuple

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import JSONResponse

from services.weatherdesk.config import settings
from services.weatherdesk.middleware.request_auth import USER_ID_HEADER
from services.weatherdesk.routers._envelope import error_body

WINDOW_S = 60
WEATHER_LOOKUP_PATH = "/weather/current"
EXEMPT_PATHS = frozenset({"/health"})


class Tier(NamedTuple):
    name: str
    per_minute: int


def tier_for(path: str, has_identity: bool) -> Tier:
    if path == WEATHER_LOOKUP_PATH:
        return Tier("weather", settings.rate_limit_weather_per_min)
    if has_identity:
        return Tier("auth", settings.rate_limit_auth_per_min)
    return Tier("anon", settings.rate_limit_anon_per_min)


def client_bucket(request: Request) -> tuple[str, bool]:
    """
    (bucket id, has_identity). The X-User-Id header is not verified here;
    it only picks the bucket. Routes verify the signature themselves.
    """
    user_id = request.headers.get(USER_ID_HEADER)
    if user_id:
        return f"user:{user_id}", True
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        return f"ip:{forwarded.split(',')[0].strip()}", False
    return f"ip:{request.client.host if request.client else 'unknown'}", False


class RateLimitMiddleware(BaseHTTPMiddleware):
    def __init__(self, app, redis_client=None):
        super().__init__(app)
        self.redis = redis_client

    async def _record_hit(self, key: str, member: str, now: float) -> int:
        """Drop hits older than the window, add this one, return the prior count."""
        pipe = self.redis.pipeline()
        pipe.zremrangebyscore(key, 0, now - WINDOW_S)
        pipe.zcard(key)
        pipe.zadd(key, {member: now})
        pipe.expire(key, WINDOW_S * 2)
        _, prior, _, _ = await pipe.execute()
        return prior

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        if self.redis is None or request.url.path in EXEMPT_PATHS:
            return await call_next(request)

        bucket, has_identity = client_bucket(request)
        tier = tier_for(request.url.path, has_identity)
        now = time.time()
        seen = await self._record_hit(
            f"ratelimit:{tier.name}:{bucket}", f"{now}:{id(request)}", now
        )

        headers = {
            "X-RateLimit-Limit": str(tier.per_minute),
            "X-RateLimit-Remaining": str(max(0, tier.per_minute - seen - 1)),
            "X-RateLimit-Reset": str(int(now + WINDOW_S)),
        }
        if seen >= tier.per_minute:
            headers["Retry-After"] = str(WINDOW_S)
            return JSONResponse(
                status_code=429,
                content=error_body(
                    request,
                    "RATE_LIMITED",
                    f"Rate limit exceeded: {tier.per_minute} requests per minute ({tier.name}).",
                ),
                headers=headers,
            )

        response = await call_next(request)
        response.headers.update(headers)
        return response
