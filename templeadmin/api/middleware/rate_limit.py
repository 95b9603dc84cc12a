"""Per-caller request quotas backed by Redis.

Each quota is a fixed window counter: the first hit in a window creates
``ratelimit:<scope>:<subject>:<window index>`` and later hits increment it.
Login attempts are counted per client address; everything else per user
once authenticated and per address before that. If Redis cannot be
reached the request goes through, and the connection is retried after
``RECONNECT_DELAY`` seconds.
"""

import hashlib
import logging
import time
from dataclasses import dataclass
from typing import Optional, Tuple

import redis.asyncio as redis
from fastapi import Request, Response, status
from fastapi.responses import JSONResponse
from redis.exceptions import RedisError
from starlette.middleware.base import BaseHTTPMiddleware

from templeadmin.api.middleware.audit import get_client_ip
from templeadmin.core.config import get_settings
from templeadmin.core.security import TokenClaims

logger = logging.getLogger(__name__)

UNLIMITED_PATHS = frozenset({"/health", "/health/live", "/health/ready"})
LOGIN_PATHS = frozenset({"/api/login"})

# Seconds to wait before trying an unreachable Redis again
RECONNECT_DELAY = 30


@dataclass(frozen=True)
class Quota:
    scope: str
    limit: int
    window: int


@dataclass(frozen=True)
class Verdict:
    allowed: bool
    limit: int
    remaining: int
    reset_at: int

    def headers(self) -> dict:
        return {
            "X-RateLimit-Limit": str(self.limit),
            "X-RateLimit-Remaining": str(self.remaining),
            "X-RateLimit-Reset": str(self.reset_at),
        }


class RateLimiter:
    """Counts hits per (quota, subject) and decides whether to serve."""

    def __init__(self, settings=None, client: Optional[redis.Redis] = None):
        settings = settings or get_settings()
        self.redis_url = settings.redis_url
        self._client = client
        self._retry_at = 0.0
        window = settings.rate_limit_window
        self.anonymous = Quota("anon", settings.rate_limit_default, window)
        self.authenticated = Quota("user", settings.rate_limit_auth, window)
        self.login = Quota("login", settings.rate_limit_login, window)

    def quota_for(self, request: Request) -> Tuple[Quota, str]:
        """Pick the quota that applies and the subject it is counted against."""
        if request.url.path in LOGIN_PATHS:
            return self.login, get_client_ip(request)
        claims: Optional[TokenClaims] = getattr(request.state, "user", None)
        if claims is not None:
            return self.authenticated, f"user:{claims.id}"
        return self.anonymous, get_client_ip(request)

    async def _redis(self) -> Optional[redis.Redis]:
        if self._client is not None:
            return self._client
        if time.monotonic() < self._retry_at:
            return None

        client = redis.from_url(
            self.redis_url,
            decode_responses=True,
            socket_connect_timeout=2,
            socket_timeout=2,
        )
        try:
            await client.ping()
        except (RedisError, OSError) as exc:
            await client.close()
            if not self._retry_at:
                logger.warning("Redis unavailable, requests are not being limited: %s", exc)
            self._retry_at = time.monotonic() + RECONNECT_DELAY
            return None

        if self._retry_at:
            logger.info("Redis reachable again, rate limiting resumed")
        self._retry_at = 0.0
        self._client = client
        return client

    async def hit(self, quota: Quota, subject: str, now: Optional[float] = None) -> Verdict:
        """Record one request and report whether it fits in the quota."""
        now = time.time() if now is None else now
        index = int(now // quota.window)
        reset_at = (index + 1) * quota.window
        digest = hashlib.sha256(subject.encode()).hexdigest()[:16]
        key = f"ratelimit:{quota.scope}:{digest}:{index}"

        client = await self._redis()
        if client is None:
            return Verdict(True, quota.limit, quota.limit, reset_at)
        try:
            count = await client.incr(key)
            if count == 1:
                await client.expire(key, quota.window)
        except (RedisError, OSError) as exc:
            logger.warning("Rate limit lookup failed for %s: %s", quota.scope, exc)
            return Verdict(True, quota.limit, quota.limit, reset_at)

        return Verdict(count <= quota.limit, quota.limit, max(0, quota.limit - count), reset_at)

    async def close(self):
        if self._client is not None:
            await self._client.close()
            self._client = None


class RateLimitMiddleware(BaseHTTPMiddleware):
    """Rejects over-quota callers with 429 and reports quota headers."""

    def __init__(self, app, limiter: Optional[RateLimiter] = None):
        super().__init__(app)
        self.limiter = limiter or RateLimiter()

    async def dispatch(self, request: Request, call_next) -> Response:
        if request.url.path in UNLIMITED_PATHS:
            return await call_next(request)

        quota, subject = self.limiter.quota_for(request)
        verdict = await self.limiter.hit(quota, subject)

        if not verdict.allowed:
            logger.warning("Quota %s exhausted on %s", quota.scope, request.url.path)
            retry_after = max(1, verdict.reset_at - int(time.time()))
            return JSONResponse(
                status_code=status.HTTP_429_TOO_MANY_REQUESTS,
                content={"error": "Too many requests, try again later"},
                headers={"Retry-After": str(retry_after), **verdict.headers()},
            )

        response = await call_next(request)
        response.headers.update(verdict.headers())
        return response
