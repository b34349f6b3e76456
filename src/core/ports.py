"""Ports (interfaces) used by the core pipeline.

Ports define the minimal contracts for the upstream appointment source and
the delivery channel so that the core can be reused with different backends.
"""

from __future__ import annotations

from typing import List, Protocol

from core.models import Appointment


class DeliveryError(Exception):
    """Delivery failed and should not be retried in this run."""


class DeliveryThrottled(DeliveryError):
    """The channel asked us to wait before sending again."""

    def __init__(self, retry_after: float, message: str = "") -> None:
        super().__init__(message or f"Throttled, retry after {retry_after}s")
        self.retry_after = retry_after


class AppointmentSourcePort(Protocol):
    """Upstream appointment listing.

    Implementations return an empty list on any failure instead of raising.
    """

    async def fetch_appointments(self) -> List[Appointment]:
        ...


class DeliveryPort(Protocol):
    """Raw message delivery to the configured channel."""

    # Markup dialect the delivered text is written in ("markdownv2" or "html").
    parse_mode: str

    async def deliver(self, text: str) -> None:
        ...
