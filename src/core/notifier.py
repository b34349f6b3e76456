"""Rate-limited notification client (core domain).

The client owns the one-minute send window and the retry policy for
throttled deliveries. Formatting and transport live in adapters; the client
only sees a formatter callable and a DeliveryPort.
"""

from __future__ import annotations

import asyncio
import logging
import time
from typing import Awaitable, Callable, Optional

from core.config import RateLimitConfig
from core.models import Appointment
from core.ports import DeliveryPort, DeliveryThrottled

LOGGER = logging.getLogger(__name__)


class NotificationClient:
    """Formats appointments and sends them within the configured rate limit."""

    def __init__(
        self,
        delivery: DeliveryPort,
        formatter: Callable[[Appointment], str],
        rate_limit: RateLimitConfig,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        self._delivery = delivery
        self._rate_limit = rate_limit
        self._formatter = formatter
        self._clock = clock
        self._sleep = sleep
        self._message_count = 0
        self._window_started = clock()
        self._reset_task: Optional[asyncio.Task] = None

    @property
    def message_count(self) -> int:
        return self._message_count

    def format_message(self, appointment: Appointment) -> str:
        return self._formatter(appointment)

    def _reset_window(self) -> None:
        self._message_count = 0
        self._window_started = self._clock()

    def start(self) -> None:
        """Start the fixed window reset timer on the running loop."""

        if self._reset_task is not None and not self._reset_task.done():
            return
        self._reset_task = asyncio.get_running_loop().create_task(self._reset_loop())

    async def _reset_loop(self) -> None:
        while True:
            await asyncio.sleep(self._rate_limit.window_seconds)
            if self._message_count > 0:
                LOGGER.info("Rate limit window reset. Previous message count: %s", self._message_count)
            self._reset_window()

    async def close(self) -> None:
        task, self._reset_task = self._reset_task, None
        if task is None:
            return
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass

    async def _wait_for_window(self) -> None:
        if self._message_count < self._rate_limit.messages_per_minute:
            return

        elapsed = self._clock() - self._window_started
        remaining = self._rate_limit.window_seconds - elapsed
        if remaining > 0:
            LOGGER.info("Rate limit reached. Waiting %.0f seconds...", remaining)
            await self._sleep(remaining)
        self._reset_window()

    async def send_notification(self, appointment: Appointment) -> bool:
        """Send one appointment notification, returning True on delivery."""

        text = self.format_message(appointment)
        max_retries = self._rate_limit.max_throttle_retries
        attempt = 0
        while True:
            try:
                await self._wait_for_window()
                await self._delivery.deliver(text)
            except DeliveryThrottled as exc:
                attempt += 1
                if max_retries and attempt > max_retries:
                    LOGGER.error(
                        "Giving up on appointment %s after %s throttled attempts",
                        appointment.id,
                        max_retries,
                    )
                    return False
                LOGGER.warning("Channel throttled us. Waiting %s seconds...", exc.retry_after)
                await self._sleep(exc.retry_after)
                continue
            except Exception:
                LOGGER.exception("Failed to send notification for appointment %s", appointment.id)
                return False

            self._message_count += 1
            return True
