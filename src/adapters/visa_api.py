"""Upstream visa appointment API adapter.

Fetches the appointment listing over HTTP and maps raw records to core
Appointment objects. Any failure ends in an empty list so the checker
treats it like a quiet poll.
"""

from __future__ import annotations

import asyncio
import json
import logging
import time
import urllib.error
import urllib.request
from typing import Any, Callable, List, Optional

from core.models import Appointment

LOGGER = logging.getLogger(__name__)

DEFAULT_API_URL = "https://api.visasbot.com/api/visa/list"


def _optional_str(value: Any) -> Optional[str]:
    if value is None or value == "":
        return None
    return str(value)


def appointment_from_payload(payload: dict) -> Appointment:
    """Build a core Appointment from one upstream JSON record.

    Raises KeyError/TypeError/ValueError for records missing required fields.
    """

    return Appointment(
        id=int(payload["id"]),
        tracking_count=int(payload.get("tracking_count") or 0),
        country_code=str(payload["country_code"]),
        mission_code=str(payload["mission_code"]),
        visa_category=str(payload.get("visa_category") or ""),
        visa_type=str(payload.get("visa_type") or ""),
        center=str(payload.get("center") or ""),
        status=str(payload["status"]),
        last_checked_at=str(payload.get("last_checked_at") or ""),
        last_open_at=_optional_str(payload.get("last_open_at")),
        last_available_date=_optional_str(payload.get("last_available_date")),
    )


def parse_appointments(records: Any) -> List[Appointment]:
    """Map a decoded response body to appointments, skipping bad records."""

    if not isinstance(records, list):
        LOGGER.warning("Unexpected API response type: %s", type(records).__name__)
        return []

    appointments: List[Appointment] = []
    for record in records:
        if not isinstance(record, dict):
            LOGGER.warning("Skipping non-object appointment record")
            continue
        try:
            appointments.append(appointment_from_payload(record))
        except (KeyError, TypeError, ValueError) as e:
            LOGGER.warning("Skipping malformed appointment record %s: %r", record.get("id"), e)
    return appointments


class VisaApiSource:
    """AppointmentSourcePort implementation backed by the public visa API."""

    def __init__(
        self,
        url: str = DEFAULT_API_URL,
        max_retries: int = 3,
        retry_delay_base: float = 1.0,
        timeout: float = 15,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self._url = url
        self._max_retries = max_retries
        self._retry_delay_base = retry_delay_base
        self._timeout = timeout
        self._sleep = sleep

    def _get_json(self) -> Any:
        request = urllib.request.Request(self._url, method="GET")
        request.add_header("Accept", "application/json")
        with urllib.request.urlopen(request, timeout=self._timeout) as response:
            return json.loads(response.read().decode("utf-8"))

    def _fetch_blocking(self) -> List[Appointment]:
        attempts = self._max_retries + 1
        for attempt in range(attempts):
            try:
                return parse_appointments(self._get_json())
            except (urllib.error.URLError, OSError, ValueError) as e:
                if attempt == attempts - 1:
                    LOGGER.error("Fetching appointments failed after %s attempts: %s", attempts, e)
                    return []
                # Exponential backoff: base, 2*base, 4*base, ...
                delay = self._retry_delay_base * (2 ** attempt)
                LOGGER.warning(
                    "Fetching appointments failed (attempt %s/%s): %s. Retrying in %.1fs",
                    attempt + 1,
                    attempts,
                    e,
                    delay,
                )
                self._sleep(delay)
        return []

    async def fetch_appointments(self) -> List[Appointment]:
        """Return current appointments, or an empty list on any failure."""

        return await asyncio.to_thread(self._fetch_blocking)
