"""Named rate limit presets.

Single source of truth for the quotas applied to API endpoints. Each
preset is a fixed window: ``max_requests`` per ``window_ms``.
"""

from typing import Any, Mapping, Tuple, Union

from charityhub.app.middleware.rate_limit.models import RateLimitPreset

PresetLike = Union[str, RateLimitPreset, Mapping[str, Any]]


class RateLimitPresets:
    """Fixed named presets."""

    # Sensitive operations
    STRICT = RateLimitPreset(max_requests=5, window_ms=60_000)

    # Regular API calls
    STANDARD = RateLimitPreset(max_requests=30, window_ms=60_000)

    # Read-only operations
    LENIENT = RateLimitPreset(max_requests=100, window_ms=60_000)

    # Authentication attempts: 3 per 5 minutes
    AUTH = RateLimitPreset(max_requests=3, window_ms=300_000)

    # Crypto payment requests: 5 per 5 minutes
    CRYPTO_PAYMENT = RateLimitPreset(max_requests=5, window_ms=300_000)

    # Newsletter signups: 2 per hour
    NEWSLETTER = RateLimitPreset(max_requests=2, window_ms=3_600_000)

    # Contact form: 3 messages per 10 minutes
    CONTACT = RateLimitPreset(max_requests=3, window_ms=600_000)

    @classmethod
    def names(cls) -> list[str]:
        return [
            name for name, value in vars(cls).items()
            if isinstance(value, RateLimitPreset)
        ]

    @classmethod
    def get(cls, name: str) -> RateLimitPreset:
        """Look up a preset by name.

        Raises:
            ValueError: If no preset has that name.
        """
        preset = getattr(cls, name.upper(), None) if name else None
        if not isinstance(preset, RateLimitPreset):
            raise ValueError(
                f"Unknown rate limit preset '{name}'. "
                f"Expected one of: {', '.join(cls.names())}"
            )
        return preset


def resolve_preset(preset: PresetLike) -> Tuple[str, RateLimitPreset]:
    """Resolve a preset name or inline config to ``(name, preset)``.

    Inline configs are named ``custom:<max>/<window_ms>`` so that two
    routes sharing the same custom quota also share counters.
    """
    if isinstance(preset, str):
        return preset.upper(), RateLimitPresets.get(preset)
    if isinstance(preset, RateLimitPreset):
        config = preset
    else:
        config = RateLimitPreset(
            max_requests=int(preset["max_requests"]),
            window_ms=int(preset["window_ms"]),
        )
    return f"custom:{config.max_requests}/{config.window_ms}", config
