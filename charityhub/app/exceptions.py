"""Custom exceptions for the CharityHub application."""

from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from charityhub.app.middleware.rate_limit.models import RateLimitResult


class CharityHubException(Exception):
    """Base class for application exceptions with HTTP status code.

    All custom exceptions should inherit from this class and define
    their specific status_code and error code for consistent HTTP
    response handling.
    """
    status_code: int = 500
    error: str = "internal_error"

    def __init__(self, message: str = "Internal server error"):
        self.message = message
        super().__init__(message)

    def to_response(self) -> dict[str, Any]:
        return {"error": self.error, "message": self.message}


class RateLimitExceededError(CharityHubException):
    """Raised when a client has used up the quota of a rate limit preset.

    Maps to HTTP 429 Too Many Requests.
    """
    status_code = 429
    error = "rate_limit_exceeded"

    def __init__(self, result: "RateLimitResult", preset: str | None = None):
        self.result = result
        self.preset = preset
        super().__init__("Too many requests. Please try again later.")

    @property
    def headers(self) -> dict[str, str]:
        headers = dict(self.result.headers)
        headers["Retry-After"] = str(self.result.retry_after)
        return headers

    def to_response(self) -> dict[str, Any]:
        return {
            "error": self.error,
            "message": self.message,
            "retry_after": self.result.retry_after,
            "reset_at": self.result.headers["X-RateLimit-Reset"],
        }


class NotificationNotFoundError(CharityHubException):
    """Raised when a notification id is not in the live history.

    Maps to HTTP 404 Not Found.
    """
    status_code = 404
    error = "notification_not_found"

    def __init__(self, notification_id: str):
        self.notification_id = notification_id
        super().__init__(f"Notification '{notification_id}' not found")


class UnknownSignalError(CharityHubException):
    """Raised when a signal name is not part of the event catalog.

    Maps to HTTP 404 Not Found.
    """
    status_code = 404
    error = "unknown_signal"

    def __init__(self, signal: str):
        self.signal = signal
        super().__init__(f"Unknown signal '{signal}'")


class InvalidSignalPayloadError(CharityHubException):
    """Raised when a signal payload does not match its schema.

    Maps to HTTP 422 Unprocessable Entity.
    """
    status_code = 422
    error = "invalid_signal_payload"

    def __init__(self, signal: str, errors: list[dict[str, Any]] | None = None):
        self.signal = signal
        self.errors = errors or []
        super().__init__(f"Invalid payload for signal '{signal}'")

    def to_response(self) -> dict[str, Any]:
        return {"error": self.error, "message": self.message, "details": self.errors}


class SubscriptionConflictError(CharityHubException):
    """Raised when an email is already an active newsletter subscriber.

    Maps to HTTP 409 Conflict.
    """
    status_code = 409
    error = "already_subscribed"

    def __init__(self, email: str):
        self.email = email
        super().__init__("This email is already subscribed to our newsletter.")
