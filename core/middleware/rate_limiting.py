"""
Redis-based rate limiting for the credential endpoints.
Implements a per-client sliding window using Redis sorted sets.
"""

import hashlib
import logging
import time
from typing import Any, Callable, Dict, Optional, Sequence

import redis.asyncio as redis
from fastapi import Request, Response, status
from fastapi.responses import JSONResponse
from redis.asyncio import Redis
from redis.exceptions import RedisError
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.types import ASGIApp

logger = logging.getLogger(__name__)

DEFAULT_LIMITED_PATHS = ("/api/v1/auth/login", "/api/v1/auth/register")


class SlidingWindowRateLimiter:
    """
    Sliding window limiter backed by one Redis sorted set per key.

    Each admitted request is stored with its timestamp as score; entries older
    than the window are trimmed before counting.
    """

    def __init__(self, redis_client: Redis):
        self.redis = redis_client

    async def is_allowed(
        self,
        key: str,
        max_requests: int,
        window_seconds: int,
    ) -> tuple[bool, Dict[str, Any]]:
        """
        Check and record a request against the limit for key.

        Returns:
            Tuple of (is_allowed, metadata) where metadata carries
            limit, remaining, reset and retry_after
        """
        now = time.time()
        window_start = now - window_seconds
        member = f"{now}:{hashlib.md5(str(now).encode()).hexdigest()[:8]}"

        try:
            pipe = self.redis.pipeline()
            pipe.zremrangebyscore(key, 0, window_start)
            pipe.zcard(key)
            pipe.zadd(key, {member: now})
            pipe.expire(key, window_seconds + 60)
            results = await pipe.execute()

            current_count = results[1]
            allowed = current_count < max_requests
            retry_after = 0

            if not allowed:
                oldest = await self.redis.zrange(key, 0, 0, withscores=True)
                if oldest:
                    retry_after = int(oldest[0][1] + window_seconds - now)
                else:
                    retry_after = window_seconds
                # Rejected requests do not consume the window
                await self.redis.zrem(key, member)

            return allowed, {
                'limit': max_requests,
                'remaining': max(0, max_requests - current_count - 1),
                'reset': int(now + window_seconds),
                'retry_after': max(0, retry_after),
            }

        except RedisError as e:
            # Fail open: a limiter outage must not lock users out
            logger.error(f"Redis error in rate limiter: {e}")
            return True, {
                'limit': max_requests,
                'remaining': max_requests,
                'reset': int(now + window_seconds),
                'retry_after': 0,
                'error': 'redis_unavailable',
            }

    async def close(self) -> None:
        await self.redis.aclose()
        logger.info("Rate limiter closed")

    async def reset(self, key: str) -> bool:
        try:
            await self.redis.delete(key)
            return True
        except RedisError as e:
            logger.error(f"Failed to reset rate limit for {key}: {e}")
            return False


def create_rate_limiter(redis_url: str) -> SlidingWindowRateLimiter:
    """Limiter on a lazily-connecting Redis client; the app closes it on shutdown."""
    client = redis.from_url(
        redis_url,
        encoding="utf-8",
        decode_responses=True,
        socket_connect_timeout=5,
    )
    return SlidingWindowRateLimiter(client)


def client_key(request: Request) -> str:
    """Client address used as the rate limit identity."""
    forwarded_for = request.headers.get('x-forwarded-for')
    if forwarded_for:
        return forwarded_for.split(',')[0].strip()
    return request.client.host if request.client else 'unknown'


class RateLimitMiddleware(BaseHTTPMiddleware):
    """
    Per-IP limit on the listed paths; every other path passes through.

    The limiter is owned by the application, which closes its Redis client
    on shutdown. Without a limiter every request passes through.
    """

    def __init__(
        self,
        app: ASGIApp,
        max_requests: int = 10,
        window_seconds: int = 60,
        paths: Sequence[str] = DEFAULT_LIMITED_PATHS,
        key_prefix: str = "ratelimit",
        limiter: Optional[SlidingWindowRateLimiter] = None,
    ):
        super().__init__(app)
        self.max_requests = max_requests
        self.window_seconds = window_seconds
        self.paths = tuple(paths)
        self.key_prefix = key_prefix
        self.limiter = limiter

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        if request.method != "POST" or not request.url.path.startswith(self.paths):
            return await call_next(request)

        if self.limiter is None:
            return await call_next(request)

        key = f"{self.key_prefix}:{request.url.path}:{client_key(request)}"
        allowed, metadata = await self.limiter.is_allowed(
            key=key,
            max_requests=self.max_requests,
            window_seconds=self.window_seconds,
        )

        if not allowed:
            response = JSONResponse(
                status_code=status.HTTP_429_TOO_MANY_REQUESTS,
                content={
                    'error': {
                        'code': 'RATE_LIMIT_EXCEEDED',
                        'message': 'Too many requests. Please try again later.',
                        'retry_after': metadata['retry_after'],
                    }
                },
            )
            response.headers['Retry-After'] = str(metadata['retry_after'])
        else:
            response = await call_next(request)

        response.headers['X-RateLimit-Limit'] = str(metadata['limit'])
        response.headers['X-RateLimit-Remaining'] = str(metadata['remaining'])
        response.headers['X-RateLimit-Reset'] = str(metadata['reset'])
        return response
