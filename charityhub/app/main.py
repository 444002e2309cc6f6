from contextlib import asynccontextmanager
from typing import Any, AsyncGenerator, Optional

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from charityhub.app.api.contact import router as contact_router
from charityhub.app.api.events import router as events_router
from charityhub.app.api.notifications import router as notifications_router
from charityhub.app.core.config import settings
from charityhub.app.core.logging import get_logger, setup_logging
from charityhub.app.core.scheduler import AsyncioScheduler, Scheduler
from charityhub.app.core.storage import KeyValueStore, get_store
from charityhub.app.exceptions import CharityHubException, RateLimitExceededError
from charityhub.app.middleware.rate_limit import RateLimiter, RateLimitMiddleware
from charityhub.app.middleware.request_id import RequestIdMiddleware
from charityhub.app.services.events import EventBus, NotificationEventBridge
from charityhub.app.services.notifications import (
    NotificationCenter,
    NotificationRepository,
)


def create_app(
    store: Optional[KeyValueStore] = None,
    rate_limiter: Optional[RateLimiter] = None,
    scheduler: Optional[Scheduler] = None,
) -> FastAPI:
    """Create and configure the FastAPI application.

    Services are built once here and shared through ``app.state``.

    Args:
        store: Key-value store (None = configured backend)
        rate_limiter: Rate limiter (None = configured backend)
        scheduler: Timer scheduler for notifications (None = event loop timers)

    Returns:
        Configured FastAPI application instance
    """
    setup_logging()
    logger = get_logger(__name__)

    store = store or get_store()
    rate_limiter = rate_limiter or RateLimiter()
    scheduler = scheduler or AsyncioScheduler()
    center = NotificationCenter(
        repository=NotificationRepository(store),
        scheduler=scheduler,
    )
    bus = EventBus()
    bridge = NotificationEventBridge(bus, center)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
        """Load notification history and start the rate limit sweeper."""
        loaded = await center.load()
        bridge.attach()
        await rate_limiter.start()

        logger.info(
            "Application startup complete",
            extra={
                "notifications_loaded": loaded,
                "rate_limit_backend": type(rate_limiter.backend).__name__,
                "debug_mode": settings.debug,
            },
        )

        yield

        await rate_limiter.stop()
        cancelled = center.shutdown()
        bridge.detach()
        await rate_limiter.backend.close()
        await store.close()

        logger.info(f"Application shutdown complete ({cancelled} timers cancelled)")

    app = FastAPI(
        title="CharityHub API",
        description="Donation notifications, signal events and rate-limited public forms",
        version="1.0.0",
        lifespan=lifespan,
    )

    app.state.store = store
    app.state.rate_limiter = rate_limiter
    app.state.scheduler = scheduler
    app.state.notification_center = center
    app.state.event_bus = bus
    app.state.event_bridge = bridge

    # Add middleware (last added = outermost)
    if settings.rate_limit_global_preset:
        app.add_middleware(
            RateLimitMiddleware,
            limiter=rate_limiter,
            preset=settings.rate_limit_global_preset,
        )

    app.add_middleware(RequestIdMiddleware)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["GET", "POST", "DELETE", "OPTIONS"],
        allow_headers=["*"],
        expose_headers=[
            "X-Request-ID",
            "X-RateLimit-Limit",
            "X-RateLimit-Remaining",
            "X-RateLimit-Reset",
            "Retry-After",
        ],
        max_age=600,
    )

    app.include_router(notifications_router)
    app.include_router(events_router)
    app.include_router(contact_router)

    @app.get("/health")
    async def health() -> dict[str, Any]:
        """Health check with store and rate limiter status."""
        health_status: dict[str, Any] = {"status": "ok", "components": {}}

        store_ok = await store.ping()
        health_status["components"]["store"] = {
            "status": "ok" if store_ok else "error",
            "type": type(store).__name__,
        }
        if not store_ok:
            health_status["status"] = "degraded"

        health_status["components"]["rate_limiter"] = {
            "status": "ok",
            "backend": type(rate_limiter.backend).__name__,
            "sweeper_running": rate_limiter.sweeper.running,
        }
        health_status["components"]["notifications"] = {
            "status": "ok",
            "count": len(center),
            "unread": center.unread_count,
        }
        return health_status

    @app.exception_handler(CharityHubException)
    async def charityhub_exception_handler(
        request: Request, exc: CharityHubException
    ) -> JSONResponse:
        """Map application exceptions to their HTTP status."""
        headers = exc.headers if isinstance(exc, RateLimitExceededError) else None
        return JSONResponse(
            status_code=exc.status_code,
            content=exc.to_response(),
            headers=headers,
        )

    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
        """Global handler for unhandled exceptions.

        Never returns a traceback to the client; debug mode adds the
        exception message and type.
        """
        request_id = getattr(request.state, "request_id", "unknown")
        logger.exception(
            f"Unhandled exception [request_id={request_id}]",
            extra={
                "request_id": request_id,
                "path": request.url.path,
                "method": request.method,
            },
        )

        content = {
            "error": "internal_error",
            "message": "Internal server error",
            "request_id": request_id,
        }
        if settings.debug:
            content["message"] = str(exc)
            content["exception_type"] = type(exc).__name__
        return JSONResponse(status_code=500, content=content)

    return app


# Create the application instance
app = create_app()
