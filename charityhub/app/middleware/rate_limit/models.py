"""Rate limiting data models.

This module contains dataclasses for rate limit configuration, state and results.
"""

import math
from dataclasses import dataclass, field
from typing import Optional

from charityhub.app.core.utils import now_ms, to_iso8601


@dataclass(frozen=True)
class RateLimitPreset:
    """Immutable fixed-window quota: ``max_requests`` per ``window_ms``."""
    max_requests: int
    window_ms: int

    def __post_init__(self) -> None:
        if self.max_requests < 1:
            raise ValueError("max_requests must be at least 1")
        if self.window_ms < 1:
            raise ValueError("window_ms must be at least 1")

    @property
    def window_seconds(self) -> float:
        return self.window_ms / 1000


@dataclass
class RateLimitEntry:
    """Counter for one identifier inside the current fixed window."""
    count: int = 0
    reset_at: int = field(default_factory=now_ms)

    def is_expired(self, now: int) -> bool:
        """The window is over once its reset instant is in the past."""
        return now > self.reset_at


@dataclass
class RateLimitResult:
    """Result of a rate limit check."""
    allowed: bool
    remaining: int
    reset_at: int  # epoch milliseconds
    limit: int
    checked_at: Optional[int] = None

    @property
    def reset_at_iso(self) -> str:
        return to_iso8601(self.reset_at)

    @property
    def retry_after(self) -> int:
        """Whole seconds until the window resets (at least 1 when denied)."""
        now = self.checked_at if self.checked_at is not None else now_ms()
        seconds = math.ceil(max(0, self.reset_at - now) / 1000)
        return max(1, seconds) if not self.allowed else seconds

    @property
    def headers(self) -> dict[str, str]:
        """Standard rate limit response headers."""
        return {
            "X-RateLimit-Limit": str(self.limit),
            "X-RateLimit-Remaining": str(self.remaining),
            "X-RateLimit-Reset": self.reset_at_iso,
        }
