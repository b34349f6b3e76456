"""Validation helpers for configuration values.

Invalid configuration is fatal at startup, so everything here raises
ConfigError with a message meant for the operator.
"""

from __future__ import annotations

import math
import re
from typing import Any, Iterable, Mapping, Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from apscheduler.triggers.cron import CronTrigger

from core.config import CacheConfig, FilterConfig, RateLimitConfig

_CHAT_ID_PATTERN = re.compile(r"^-?\d+$")


class ConfigError(ValueError):
    """Raised for missing or invalid configuration."""


def require_values(values: Mapping[str, Optional[str]]) -> None:
    missing = [name for name, value in values.items() if not value]
    if missing:
        raise ConfigError(f"Missing required environment variables: {', '.join(missing)}")


def validate_chat_id(chat_id: Optional[str]) -> str:
    if not chat_id or not _CHAT_ID_PATTERN.match(chat_id.strip()):
        raise ConfigError("Invalid TELEGRAM_CHAT_ID format")
    return chat_id.strip()


def validate_cron(expression: str, timezone: Optional[str] = None) -> str:
    try:
        CronTrigger.from_crontab(expression, timezone=timezone)
    except (ValueError, TypeError) as e:
        raise ConfigError(f"Invalid cron expression {expression!r}: {e}") from e
    return expression


def validate_timezone(name: str) -> str:
    try:
        ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError, TypeError) as e:
        raise ConfigError(f"Unknown timezone {name!r}") from e
    return name


def parse_comma_separated(value: Any) -> tuple[str, ...]:
    """Accept a list or a comma-separated string and return trimmed items."""

    if not value:
        return ()
    items: Iterable[Any] = value.split(",") if isinstance(value, str) else value
    return tuple(str(item).strip() for item in items if str(item).strip())


def parse_number(value: Any, default: float) -> float:
    """Parse a number, falling back to the default for blank or garbage input.

    NaN and infinity parse as floats but are never a usable limit.
    """

    if value is None or value == "":
        return default
    try:
        number = float(value)
    except (TypeError, ValueError):
        return default
    if not math.isfinite(number):
        raise ConfigError(f"{value!r} is not a finite number")
    return number


def parse_bool(value: Any) -> bool:
    if isinstance(value, str):
        return value.strip().lower() == "true"
    return bool(value)


def _positive(name: str, value: float) -> float:
    if value <= 0:
        raise ConfigError(f"{name} must be greater than zero")
    return value


def _positive_int(name: str, value: float) -> int:
    # Truncate first so 0.5 is rejected instead of becoming a zero limit.
    return int(_positive(name, int(value)))


def build_filter_config(raw: Mapping[str, Any], default_missions: Iterable[str] = ("nld",)) -> FilterConfig:
    missions = parse_comma_separated(raw.get("mission_countries"))
    if not missions:
        missions = tuple(default_missions)
    return FilterConfig(
        target_country=str(raw.get("target_country") or "tur").lower(),
        mission_countries=tuple(code.lower() for code in missions),
        target_cities=parse_comma_separated(raw.get("cities")),
        target_sub_categories=parse_comma_separated(raw.get("sub_categories")),
        debug=parse_bool(raw.get("debug", False)),
    )


def build_cache_config(raw: Mapping[str, Any]) -> CacheConfig:
    cleanup_interval = parse_number(raw.get("cleanup_interval"), 24 * 60 * 60)
    return CacheConfig(
        max_size=_positive_int("cache.max_size", parse_number(raw.get("max_size"), 1000)),
        cleanup_interval=_positive("cache.cleanup_interval", cleanup_interval),
        # Retention defaults to the sweep cadence.
        retention=_positive("cache.retention", parse_number(raw.get("retention"), cleanup_interval)),
    )


def build_rate_limit_config(raw: Mapping[str, Any]) -> RateLimitConfig:
    retries = int(parse_number(raw.get("max_throttle_retries"), 5))
    if retries < 0:
        raise ConfigError("notifications.max_throttle_retries must not be negative")
    return RateLimitConfig(
        messages_per_minute=_positive_int("notifications.rate_limit", parse_number(raw.get("rate_limit"), 15)),
        max_throttle_retries=retries,
    )
