"""Rate limit storage backends.

Both backends implement the same fixed-window counter: the first request
of a window creates the counter, later requests increment it until the
quota is reached, and denied requests leave it untouched.
"""

import threading
from abc import ABC, abstractmethod
from typing import Any, Optional

import redis
import redis.asyncio as aioredis

from charityhub.app.core.config import settings
from charityhub.app.core.logging import get_logger
from charityhub.app.core.utils import Clock, now_ms
from charityhub.app.middleware.rate_limit.models import RateLimitEntry, RateLimitResult

logger = get_logger(__name__)


class RateLimitBackend(ABC):
    """Abstract base class for rate limit backends."""

    @abstractmethod
    async def check(
        self,
        key: str,
        max_requests: int = 10,
        window_ms: int = 60_000,
    ) -> RateLimitResult:
        """Count one request for ``key`` and decide whether it is allowed.

        Args:
            key: Storage key (identifier, optionally partitioned by preset)
            max_requests: Requests allowed per window
            window_ms: Window length in milliseconds

        Returns:
            RateLimitResult with allowed status and quota metadata
        """
        pass

    @abstractmethod
    async def cleanup(self) -> int:
        """Delete entries whose window has elapsed. Returns the number removed."""
        pass

    @abstractmethod
    async def reset(self) -> None:
        """Clear all rate limit state."""
        pass

    async def close(self) -> None:
        """Release backend resources."""
        pass


class InMemoryRateLimiter(RateLimitBackend):
    """In-memory fixed-window rate limiter.

    One counter map per process: limits are best-effort when the app runs
    as several processes or instances. Use ``RedisRateLimiter`` there.

    Check-and-increment runs under a ``threading.Lock`` with no await in
    between, so it stays atomic for sync routes served from the threadpool.
    """

    def __init__(self, clock: Clock = now_ms):
        self._clock = clock
        self._storage: dict[str, RateLimitEntry] = {}
        self._lock = threading.Lock()

    def __len__(self) -> int:
        return len(self._storage)

    def get_entry(self, key: str) -> Optional[RateLimitEntry]:
        """Return the live entry for ``key`` (introspection for tests and health)."""
        return self._storage.get(key)

    def keys(self) -> list[str]:
        return list(self._storage)

    async def check(
        self,
        key: str,
        max_requests: int = 10,
        window_ms: int = 60_000,
    ) -> RateLimitResult:
        with self._lock:
            now = self._clock()
            entry = self._storage.get(key)

            # No entry or expired window - start a new one
            if entry is None or entry.is_expired(now):
                entry = RateLimitEntry(count=1, reset_at=now + window_ms)
                self._storage[key] = entry
                return RateLimitResult(
                    allowed=True,
                    remaining=max_requests - 1,
                    reset_at=entry.reset_at,
                    limit=max_requests,
                    checked_at=now,
                )

            if entry.count < max_requests:
                entry.count += 1
                return RateLimitResult(
                    allowed=True,
                    remaining=max_requests - entry.count,
                    reset_at=entry.reset_at,
                    limit=max_requests,
                    checked_at=now,
                )

            return RateLimitResult(
                allowed=False,
                remaining=0,
                reset_at=entry.reset_at,
                limit=max_requests,
                checked_at=now,
            )

    async def cleanup(self) -> int:
        with self._lock:
            now = self._clock()
            expired = [
                key for key, entry in self._storage.items()
                if entry.is_expired(now)
            ]
            for key in expired:
                del self._storage[key]
        return len(expired)

    async def reset(self) -> None:
        with self._lock:
            self._storage.clear()


# Fixed window in one round trip. Denied requests do not increment.
# Returns {allowed, count, ttl_ms}.
FIXED_WINDOW_SCRIPT = """
    local key = KEYS[1]
    local max_requests = tonumber(ARGV[1])
    local window_ms = tonumber(ARGV[2])

    local current = tonumber(redis.call('GET', key) or '0')
    if current >= max_requests then
        local ttl = redis.call('PTTL', key)
        if ttl < 0 then
            redis.call('PEXPIRE', key, window_ms)
            ttl = window_ms
        end
        return {0, current, ttl}
    end

    current = redis.call('INCR', key)
    if current == 1 then
        redis.call('PEXPIRE', key, window_ms)
    end
    local ttl = redis.call('PTTL', key)
    if ttl < 0 then
        redis.call('PEXPIRE', key, window_ms)
        ttl = window_ms
    end
    return {1, current, ttl}
"""


class RedisRateLimiter(RateLimitBackend):
    """Redis-based fixed-window rate limiter shared by all instances.

    Counters expire on their own (PEXPIRE), so ``cleanup`` has nothing to do.
    """

    def __init__(
        self,
        redis_client: Optional[Any] = None,
        redis_url: Optional[str] = None,
        key_prefix: Optional[str] = None,
        clock: Clock = now_ms,
    ):
        self._redis_url = redis_url or settings.redis_url
        self._redis = redis_client
        prefix = key_prefix if key_prefix is not None else settings.redis_key_prefix
        self._key_prefix = f"{prefix}:ratelimit" if prefix else "ratelimit"
        self._clock = clock

    async def _get_redis(self) -> Any:
        if self._redis is None:
            self._redis = aioredis.from_url(self._redis_url)
        return self._redis

    def _key(self, key: str) -> str:
        return f"{self._key_prefix}:{key}"

    async def check(
        self,
        key: str,
        max_requests: int = 10,
        window_ms: int = 60_000,
    ) -> RateLimitResult:
        now = self._clock()
        try:
            client = await self._get_redis()
            allowed, count, ttl = await client.eval(
                FIXED_WINDOW_SCRIPT, 1, self._key(key), max_requests, window_ms
            )
        except redis.ConnectionError as e:
            logger.error(f"Redis connection failed: {e}")
            return self._handle_redis_failure("connection_error", max_requests, window_ms, now)
        except redis.TimeoutError as e:
            logger.warning(f"Redis timeout: {e}")
            return self._handle_redis_failure("timeout", max_requests, window_ms, now)
        except redis.RedisError as e:
            logger.error(f"Redis error: {e}")
            return self._handle_redis_failure("redis_error", max_requests, window_ms, now)
        except Exception as e:
            logger.exception(f"Unexpected rate limit error: {e}")
            return self._handle_redis_failure("unexpected", max_requests, window_ms, now)

        reset_at = now + int(ttl)
        if not int(allowed):
            return RateLimitResult(
                allowed=False,
                remaining=0,
                reset_at=reset_at,
                limit=max_requests,
                checked_at=now,
            )
        return RateLimitResult(
            allowed=True,
            remaining=max(0, max_requests - int(count)),
            reset_at=reset_at,
            limit=max_requests,
            checked_at=now,
        )

    def _handle_redis_failure(
        self, error_type: str, max_requests: int, window_ms: int, now: int
    ) -> RateLimitResult:
        """Apply the configured fail-open/fail-closed policy."""
        if settings.rate_limit_fail_closed:
            logger.warning(
                f"Rate limiting fail-closed triggered due to {error_type}. "
                "Request denied."
            )
            return RateLimitResult(
                allowed=False,
                remaining=0,
                reset_at=now + window_ms,
                limit=max_requests,
                checked_at=now,
            )

        logger.warning(
            f"Rate limiting fail-open triggered due to {error_type}. "
            "Request allowed without rate limit check."
        )
        return RateLimitResult(
            allowed=True,
            remaining=max_requests - 1,
            reset_at=now + window_ms,
            limit=max_requests,
            checked_at=now,
        )

    async def cleanup(self) -> int:
        return 0

    async def reset(self) -> None:
        client = await self._get_redis()
        keys = [key async for key in client.scan_iter(match=f"{self._key_prefix}:*")]
        if keys:
            await client.delete(*keys)

    async def close(self) -> None:
        if self._redis is not None:
            await self._redis.aclose()
            self._redis = None
