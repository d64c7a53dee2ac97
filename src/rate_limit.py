"""Rate limiting for the login and registration endpoints.

Sliding-window counters keyed by client IP. When ``REDIS_URL`` is configured
the counters live in Redis and are shared by every instance; otherwise each
process keeps its own, which multiplies the effective limit by the number of
workers.

A threading.Lock guards the in-memory state; the critical section is a few
dict operations and never awaits.
"""

import time
from collections import defaultdict
from dataclasses import dataclass, field
from threading import Lock

import redis

from src.config import settings
from src.logger import get_logger

logger = get_logger(__name__)


@dataclass
class RateLimitConfig:
    """Rate limit configuration."""

    name: str = "default"  # Redis key namespace
    max_requests: int = 5  # Maximum requests in window
    window_seconds: int = 60  # Time window in seconds
    block_seconds: int = 300  # Block duration after exceeding limit
    enabled: bool = True


@dataclass
class RateLimitState:
    """State for a single key (in-memory backend)."""

    requests: list[float] = field(default_factory=list)
    blocked_until: float = 0.0


class RateLimiter:
    """Sliding-window rate limiter, Redis-backed when available."""

    def __init__(self, config: RateLimitConfig | None = None, redis_url: str | None = None) -> None:
        self.config = config or RateLimitConfig()
        self._local_state: dict[str, RateLimitState] = defaultdict(RateLimitState)
        self._lock = Lock()
        self._redis: redis.Redis | None = None

        if redis_url:
            try:
                client = redis.from_url(redis_url, decode_responses=True)
                client.ping()
            except redis.RedisError as exc:
                logger.warning(
                    "Redis unavailable, using in-memory rate limiting",
                    limiter=self.config.name,
                    error=str(exc),
                )
            else:
                self._redis = client

    def _keys(self, key: str) -> tuple[str, str]:
        prefix = f"rl:{self.config.name}"
        return f"{prefix}:{key}", f"{prefix}:block:{key}"

    def is_allowed(self, key: str) -> tuple[bool, int]:
        """Record a request for ``key``.

        Returns:
            ``(allowed, retry_after_seconds)``; retry_after is 0 when allowed.
        """
        if not self.config.enabled:
            return True, 0
        if self._redis is not None:
            return self._is_allowed_redis(key)
        return self._is_allowed_local(key)

    def _is_allowed_redis(self, key: str) -> tuple[bool, int]:
        now = time.time()
        window_key, block_key = self._keys(key)

        try:
            blocked_until = self._redis.get(block_key)
            if blocked_until:
                remaining = int(float(blocked_until) - now)
                if remaining > 0:
                    return False, remaining

            pipe = self._redis.pipeline()
            pipe.zremrangebyscore(window_key, 0, now - self.config.window_seconds)
            pipe.zcard(window_key)
            pipe.zadd(window_key, {str(now): now})
            pipe.expire(window_key, self.config.window_seconds * 2)
            results = pipe.execute()
        except redis.RedisError as exc:
            logger.warning("Redis error during rate limiting, using local state", error=str(exc))
            return self._is_allowed_local(key)

        if results[1] >= self.config.max_requests:
            block_val = str(now + self.config.block_seconds)
            try:
                self._redis.setex(block_key, self.config.block_seconds, block_val)
            except redis.RedisError as exc:
                logger.warning("Redis error while blocking key", error=str(exc))
            return False, self.config.block_seconds
        return True, 0

    def _is_allowed_local(self, key: str) -> tuple[bool, int]:
        now = time.time()
        with self._lock:
            state = self._local_state[key]
            if state.blocked_until > now:
                return False, max(1, int(state.blocked_until - now))

            window_start = now - self.config.window_seconds
            state.requests = [ts for ts in state.requests if ts >= window_start]

            if len(state.requests) >= self.config.max_requests:
                state.blocked_until = now + self.config.block_seconds
                return False, self.config.block_seconds

            state.requests.append(now)
            return True, 0

    def reset(self, key: str) -> None:
        """Forget the history of ``key`` (called after a successful attempt)."""
        if self._redis is not None:
            try:
                self._redis.delete(*self._keys(key))
            except redis.RedisError as exc:
                logger.warning("Redis error during reset", error=str(exc))

        with self._lock:
            self._local_state.pop(key, None)

    def clear(self) -> None:
        """Drop all in-memory state."""
        with self._lock:
            self._local_state.clear()

    def close(self) -> None:
        """Close the Redis connection, if any."""
        if self._redis is not None:
            self._redis.close()
            self._redis = None


login_rate_limiter = RateLimiter(
    RateLimitConfig(
        name="login",
        max_requests=settings.login_rate_limit,  # attempts
        window_seconds=60,  # per minute
        block_seconds=300,  # 5 minute block
        enabled=settings.rate_limit_enabled,
    ),
    redis_url=settings.redis_url,
)

register_rate_limiter = RateLimiter(
    RateLimitConfig(
        name="register",
        max_requests=settings.register_rate_limit,  # registrations
        window_seconds=3600,  # per hour
        block_seconds=3600,  # 1 hour block
        enabled=settings.rate_limit_enabled,
    ),
    redis_url=settings.redis_url,
)
