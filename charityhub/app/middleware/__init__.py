"""Middleware package for CharityHub."""

from charityhub.app.middleware.rate_limit import (
    RateLimiter,
    RateLimitGuard,
    RateLimitMiddleware,
)
from charityhub.app.middleware.request_id import RequestIdMiddleware, get_request_id

__all__ = [
    "RateLimiter",
    "RateLimitGuard",
    "RateLimitMiddleware",
    "RequestIdMiddleware",
    "get_request_id",
]
