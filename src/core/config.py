"""Core configuration dataclasses.

We keep config parsing outside the core, but these dataclasses define the
shape the core expects so adapters and app layers can build safely.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Tuple


@dataclass(frozen=True)
class FilterConfig:
    """Appointment filter criteria.

    Country and city values are matched case-insensitively. Empty city and
    sub-category tuples disable those checks; an empty mission tuple matches
    nothing.
    """

    target_country: str
    mission_countries: Tuple[str, ...]
    target_cities: Tuple[str, ...] = ()
    target_sub_categories: Tuple[str, ...] = ()
    debug: bool = False


@dataclass(frozen=True)
class CacheConfig:
    """Deduplication cache bounds. Durations are in seconds."""

    max_size: int
    cleanup_interval: float
    retention: float


@dataclass(frozen=True)
class RateLimitConfig:
    """Outgoing message limits for the notification client."""

    messages_per_minute: int
    window_seconds: float = 60.0
    # 0 keeps retrying for as long as the channel keeps throttling.
    max_throttle_retries: int = 5
