"""Request middleware and rate limiting.

Both the global middleware limiter and the per-endpoint limiters use a
one-minute sliding window kept in a Redis sorted set. When Redis cannot be
reached the request is let through.
"""

import logging
import time
import uuid

import redis.asyncio as redis
from fastapi import Request, Response
from fastapi.responses import JSONResponse
from jose import JWTError, jwt
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint

from app.config import settings
from app.core.exceptions import RateLimitExceeded

logger = logging.getLogger(__name__)

WINDOW_SECONDS = 60
UNLIMITED_PATHS = ("/health", "/docs", "/redoc", "/openapi.json")

_redis: redis.Redis | None = None


def get_redis() -> redis.Redis:
    """Shared Redis client for the limiters."""
    global _redis
    if _redis is None:
        _redis = redis.from_url(settings.redis_url, encoding="utf-8", decode_responses=True)
    return _redis


async def hits_in_window(key: str) -> int:
    """Record one hit for ``key`` and return the hits already in the window."""
    now = time.time()
    async with get_redis().pipeline(transaction=True) as pipe:
        await pipe.zremrangebyscore(key, 0, now - WINDOW_SECONDS)
        await pipe.zcard(key)
        await pipe.zadd(key, {uuid.uuid4().hex: now})
        await pipe.expire(key, WINDOW_SECONDS)
        results = await pipe.execute()
    return results[1]


def client_ip(request: Request) -> str:
    """Client address, honouring the load balancer's forwarding headers."""
    forwarded = request.headers.get("X-Forwarded-For")
    if forwarded:
        return forwarded.split(",")[0].strip()
    return request.headers.get("X-Real-IP") or (request.client.host if request.client else "unknown")


def caller_id(request: Request) -> str:
    """Token subject of the caller, else the client address.

    The signature is checked but expiry is not; authentication proper
    happens in the route dependencies.
    """
    auth = request.headers.get("Authorization", "")
    if auth.lower().startswith("bearer "):
        try:
            claims = jwt.decode(
                auth[7:],
                settings.jwt_secret_key,
                algorithms=[settings.jwt_algorithm],
                options={"verify_exp": False},
            )
        except JWTError:
            claims = {}
        if claims.get("sub"):
            return f"user:{claims['sub']}"
    return f"ip:{client_ip(request)}"


class RateLimitMiddleware(BaseHTTPMiddleware):
    """Global per-IP request limit."""

    def __init__(self, app, requests_per_minute: int = 100):
        super().__init__(app)
        self.requests_per_minute = requests_per_minute

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        if request.url.path in UNLIMITED_PATHS or settings.debug:
            return await call_next(request)

        try:
            count = await hits_in_window(f"rate_limit:{client_ip(request)}")
        except redis.RedisError as e:
            logger.warning("Rate limiter unavailable: %s", e)
            return await call_next(request)

        if count >= self.requests_per_minute:
            return JSONResponse(
                status_code=429,
                content={"error": "Too many requests. Please try again later."},
                headers={
                    "Retry-After": str(WINDOW_SECONDS),
                    "X-RateLimit-Limit": str(self.requests_per_minute),
                    "X-RateLimit-Remaining": "0",
                },
            )

        response = await call_next(request)
        response.headers["X-RateLimit-Limit"] = str(self.requests_per_minute)
        response.headers["X-RateLimit-Remaining"] = str(max(0, self.requests_per_minute - count - 1))
        return response


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Tags each request with an ID and logs its outcome and timing."""

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        start = time.perf_counter()
        request_id = request.headers.get("X-Request-ID") or uuid.uuid4().hex
        request.state.request_id = request_id

        response = await call_next(request)

        duration = time.perf_counter() - start
        response.headers["X-Request-ID"] = request_id
        response.headers["X-Response-Time"] = f"{duration:.3f}s"

        if duration > 1.0:
            logger.warning(
                "Slow request %s: %s %s -> %d in %.3fs",
                request_id,
                request.method,
                request.url.path,
                response.status_code,
                duration,
            )
        else:
            logger.debug(
                "%s %s %s -> %d in %.3fs",
                request_id,
                request.method,
                request.url.path,
                response.status_code,
                duration,
            )
        return response


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    """Adds security headers to every response."""

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        response = await call_next(request)
        response.headers["X-Content-Type-Options"] = "nosniff"
        response.headers["X-Frame-Options"] = "DENY"
        response.headers["Referrer-Policy"] = "strict-origin-when-cross-origin"
        response.headers["Cache-Control"] = "no-store"
        if not settings.debug:
            response.headers["Strict-Transport-Security"] = "max-age=31536000; includeSubDomains"
        return response


class RateLimiter:
    """Per-caller limit for expensive endpoints, used as a route dependency.

    Classification and document verification each call the model provider,
    so they are limited per authenticated caller rather than per IP.
    """

    def __init__(self, requests_per_minute: int, key_prefix: str):
        self.requests_per_minute = requests_per_minute
        self.key_prefix = key_prefix

    async def __call__(self, request: Request) -> None:
        """Count the call against the caller's window.

        Raises:
            RateLimitExceeded: The caller used up the window
        """
        try:
            count = await hits_in_window(f"rate:{self.key_prefix}:{caller_id(request)}")
        except redis.RedisError as e:
            logger.warning("Rate limiter %s unavailable: %s", self.key_prefix, e)
            return

        if count >= self.requests_per_minute:
            logger.info("Rate limit hit on %s for %s", self.key_prefix, caller_id(request))
            raise RateLimitExceeded()


classification_limiter = RateLimiter(settings.classification_rate_per_minute, "classification")
verification_limiter = RateLimiter(settings.verification_rate_per_minute, "verification")
