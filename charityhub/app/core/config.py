import json
import re
from typing import Annotated, Any

from pydantic import field_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict


def _parse_cors_origins(raw: Any) -> list[str]:
    if raw is None:
        return []
    if isinstance(raw, list):
        items = [str(v).strip() for v in raw]
        return [v for v in items if v]

    raw = str(raw).strip()
    if not raw or raw == "[]":
        return []
    if raw == "*":
        return ["*"]

    # JSON is the documented format; comma/space separated lists are tolerated.
    if raw.startswith("["):
        try:
            parsed = json.loads(raw)
        except json.JSONDecodeError:
            parsed = None
        if isinstance(parsed, list):
            items = [str(v).strip() for v in parsed]
            return [v for v in items if v]

    origins: list[str] = []
    for part in re.split(r"[,\s]+", raw):
        if not part:
            continue
        if part == "*":
            return ["*"]
        if part not in origins:
            origins.append(part)
    return origins


class Settings(BaseSettings):
    """Application settings loaded from environment variables.

    All settings can be configured via environment variables or .env file.
    """

    # Debug mode - enables detailed error responses and demo endpoints
    debug: bool = False

    # Logging settings
    log_level: str = "INFO"
    log_format: str = "text"  # text | structured | json

    # Rate limiting settings
    rate_limit_cleanup_interval_seconds: float = 60.0
    rate_limit_partition_by_preset: bool = True  # key counters by (preset, identifier)
    rate_limit_global_preset: str = "LENIENT"  # empty string disables the app-wide guard
    rate_limit_fail_closed: bool = (
        False  # If True, deny requests when Redis is unavailable
    )

    # Redis settings (optional)
    redis_enabled: bool = False
    redis_url: str = "redis://localhost:6379/0"
    redis_key_prefix: str = "charityhub"

    # Key-value store backing notification history and newsletter signups
    store_backend: str = "memory"  # memory | file | redis
    store_file_path: str = "var/charityhub-store.json"

    # Notification settings
    notification_max_items: int = 50
    notification_storage_key: str = "saintlammy-notifications"
    notification_default_duration_ms: int = 5000
    notification_toast_limit: int = 5
    notification_toast_tick_ms: int = 50

    # CORS settings
    cors_origins: Annotated[list[str], NoDecode] = ["*"]

    @field_validator("cors_origins", mode="before")
    @classmethod
    def decode_cors_origins(cls, v: Any) -> list[str]:
        return _parse_cors_origins(v)

    @field_validator(
        "notification_max_items",
        "notification_toast_limit",
        "notification_toast_tick_ms",
    )
    @classmethod
    def validate_positive(cls, v: int) -> int:
        """Validate notification limits are positive."""
        if v < 1:
            raise ValueError("Notification limits must be at least 1")
        return v

    @field_validator("notification_default_duration_ms")
    @classmethod
    def validate_default_duration(cls, v: int) -> int:
        if v < 0:
            raise ValueError("notification_default_duration_ms must not be negative")
        return v

    @field_validator("rate_limit_cleanup_interval_seconds")
    @classmethod
    def validate_cleanup_interval(cls, v: float) -> float:
        """Validate the sweep interval is positive."""
        if v <= 0:
            raise ValueError("rate_limit_cleanup_interval_seconds must be positive")
        return v

    @field_validator("store_backend")
    @classmethod
    def validate_store_backend(cls, v: str) -> str:
        v = v.strip().lower()
        if v not in ("memory", "file", "redis"):
            raise ValueError("store_backend must be one of: memory, file, redis")
        return v

    @field_validator("rate_limit_global_preset")
    @classmethod
    def normalize_global_preset(cls, v: str) -> str:
        return v.strip().upper()

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")


# Global settings instance
settings = Settings()
