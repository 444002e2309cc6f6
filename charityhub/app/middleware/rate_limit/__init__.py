"""Rate limiting for the CharityHub API.

This module provides fixed-window rate limiting with named presets to
prevent spam and abuse of API endpoints. Supports both in-memory and
Redis backends.
"""

from typing import Any, Optional

from fastapi import Request, Response
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint

from charityhub.app.core.config import settings
from charityhub.app.core.logging import get_log_context, get_logger
from charityhub.app.core.utils import Clock, now_ms
from charityhub.app.exceptions import RateLimitExceededError

# Re-export models
from charityhub.app.middleware.rate_limit.models import (
    RateLimitEntry,
    RateLimitPreset,
    RateLimitResult,
)
from charityhub.app.middleware.rate_limit.presets import (
    PresetLike,
    RateLimitPresets,
    resolve_preset,
)

# Re-export backends
from charityhub.app.middleware.rate_limit.backends import (
    InMemoryRateLimiter,
    RateLimitBackend,
    RedisRateLimiter,
)
from charityhub.app.middleware.rate_limit.sweeper import RateLimitSweeper

logger = get_logger(__name__)

__all__ = [
    # Models
    "RateLimitEntry",
    "RateLimitPreset",
    "RateLimitResult",
    "RateLimitPresets",
    "resolve_preset",
    # Backends
    "RateLimitBackend",
    "InMemoryRateLimiter",
    "RedisRateLimiter",
    "RateLimitSweeper",
    # Main classes
    "RateLimiter",
    "RateLimitGuard",
    "RateLimitMiddleware",
    "get_client_identifier",
]


def get_client_identifier(request: Any) -> str:
    """Derive the rate limit identifier from request metadata.

    Order: first X-Forwarded-For entry, X-Real-IP, socket peer address,
    then the literal "unknown".
    """
    headers = request.headers
    forwarded = headers.get("x-forwarded-for") or headers.get("X-Forwarded-For")
    if forwarded:
        first = forwarded.split(",")[0].strip()
        if first:
            return first

    real_ip = headers.get("x-real-ip") or headers.get("X-Real-IP")
    if real_ip:
        return real_ip.strip()

    client = getattr(request, "client", None)
    host = getattr(client, "host", None) if client is not None else None
    return host or "unknown"


class RateLimiter:
    """Process-wide rate limiter built once at application start.

    Selects the Redis backend when Redis is enabled in settings, otherwise
    keeps counters in memory. Owns the background sweeper.
    """

    def __init__(
        self,
        backend: Optional[RateLimitBackend] = None,
        partition_by_preset: Optional[bool] = None,
        cleanup_interval: Optional[float] = None,
        use_redis: Optional[bool] = None,
        clock: Clock = now_ms,
    ):
        """Initialize rate limiter with appropriate backend.

        Args:
            backend: Explicit backend (overrides use_redis)
            partition_by_preset: Key counters by (preset, identifier) instead
                of identifier alone (None = settings)
            cleanup_interval: Seconds between expired-entry sweeps (None = settings)
            use_redis: Force Redis usage (None = auto-detect from settings)
            clock: Millisecond time source
        """
        if backend is None:
            should_use_redis = use_redis if use_redis is not None else settings.redis_enabled
            if should_use_redis:
                backend = RedisRateLimiter(clock=clock)
                logger.info("Using Redis rate limiter backend")
            else:
                backend = InMemoryRateLimiter(clock=clock)
                logger.debug("Using in-memory rate limiter backend")
        self._backend = backend
        self.partition_by_preset = (
            partition_by_preset
            if partition_by_preset is not None
            else settings.rate_limit_partition_by_preset
        )
        self._sweeper = RateLimitSweeper(
            backend,
            interval=cleanup_interval or settings.rate_limit_cleanup_interval_seconds,
        )

    @property
    def backend(self) -> RateLimitBackend:
        return self._backend

    @property
    def sweeper(self) -> RateLimitSweeper:
        return self._sweeper

    def storage_key(self, identifier: str, preset_name: str) -> str:
        if self.partition_by_preset:
            return f"{preset_name}:{identifier}"
        return identifier

    async def check(
        self,
        identifier: str,
        max_requests: int = 10,
        window_ms: int = 60_000,
    ) -> RateLimitResult:
        """Fixed-window check against an unpartitioned identifier."""
        return await self._backend.check(identifier, max_requests, window_ms)

    async def rate_limit(
        self, identifier: str, preset: PresetLike = "STANDARD"
    ) -> RateLimitResult:
        """Check ``identifier`` against a named preset or inline config.

        Raises:
            ValueError: If ``preset`` names no known preset.
        """
        name, config = resolve_preset(preset)
        return await self._backend.check(
            self.storage_key(identifier, name), config.max_requests, config.window_ms
        )

    async def check_request(
        self, request: Request, preset: PresetLike = "STANDARD"
    ) -> RateLimitResult:
        """Rate limit a request by its client identifier.

        The result's ``headers`` carry X-RateLimit-Limit/Remaining/Reset.
        """
        identifier = get_client_identifier(request)
        result = await self.rate_limit(identifier, preset)
        if not result.allowed:
            logger.warning(
                "Rate limit exceeded",
                extra=get_log_context(
                    client_id=identifier,
                    preset=resolve_preset(preset)[0],
                    path=request.url.path,
                ),
            )
        return result

    async def cleanup(self) -> int:
        return await self._sweeper.sweep()

    async def reset(self) -> None:
        await self._backend.reset()

    async def start(self) -> None:
        await self._sweeper.start()

    async def stop(self) -> None:
        await self._sweeper.stop()

    async def destroy(self) -> None:
        """Stop the sweeper and drop all counters (test teardown / shutdown)."""
        await self._sweeper.stop()
        await self._backend.reset()
        await self._backend.close()


class RateLimitGuard:
    """Route dependency enforcing a preset on one endpoint.

    Usage:
        @router.post("/contact", dependencies=[Depends(RateLimitGuard("CONTACT"))])
    """

    def __init__(self, preset: PresetLike = "STANDARD"):
        # Unknown preset names raise here, at route definition
        self.preset_name, self.config = resolve_preset(preset)
        self.preset = preset

    async def __call__(self, request: Request, response: Response) -> RateLimitResult:
        limiter: RateLimiter = request.app.state.rate_limiter
        result = await limiter.check_request(request, self.preset)
        if not result.allowed:
            raise RateLimitExceededError(result, preset=self.preset_name)
        response.headers.update(result.headers)
        return result


class RateLimitMiddleware(BaseHTTPMiddleware):
    """App-wide rate limit applied to every request outside ``exempt_paths``."""

    def __init__(
        self,
        app,
        limiter: RateLimiter,
        preset: PresetLike = "LENIENT",
        exempt_paths: tuple[str, ...] = ("/health",),
    ):
        super().__init__(app)
        self.limiter = limiter
        self.preset_name, _ = resolve_preset(preset)
        self.preset = preset
        self.exempt_paths = exempt_paths

    async def dispatch(
        self,
        request: Request,
        call_next: RequestResponseEndpoint
    ) -> Response:
        if request.url.path in self.exempt_paths:
            return await call_next(request)

        result = await self.limiter.check_request(request, self.preset)
        if not result.allowed:
            exc = RateLimitExceededError(result, preset=self.preset_name)
            return JSONResponse(
                status_code=exc.status_code,
                content=exc.to_response(),
                headers=exc.headers,
            )

        response = await call_next(request)

        # Route-level guards set their own (stricter) headers
        for name, value in result.headers.items():
            response.headers.setdefault(name, value)
        return response
