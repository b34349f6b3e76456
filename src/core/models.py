"""Core domain models.

These dataclasses are shared across the core and adapters to avoid tight
coupling to the upstream API payload or any delivery-specific types.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

# Only these statuses mean a slot can actually be booked or queued for.
ACTIONABLE_STATUSES = frozenset({"open", "waitlist_open"})


@dataclass(frozen=True)
class Appointment:
    """One visa appointment record as observed upstream."""

    id: int
    tracking_count: int
    country_code: str
    mission_code: str
    visa_category: str
    visa_type: str
    center: str
    status: str
    last_checked_at: str
    last_open_at: Optional[str] = None
    last_available_date: Optional[str] = None


@dataclass
class CheckSummary:
    """Counters for a single checker run, used for logging."""

    fetched: int = 0
    matched: int = 0
    skipped_cached: int = 0
    sent: int = 0
    failed: int = 0
