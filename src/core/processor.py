"""Core appointment checking pipeline.

This module is integration-agnostic. It only relies on ports for the
upstream source and on the core cache and notification client, enabling
other sources or channels without changes here.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Iterable

from core.config import FilterConfig
from core.dedup import DedupCache
from core.filters import is_appointment_valid
from core.models import Appointment, CheckSummary
from core.notifier import NotificationClient
from core.ports import AppointmentSourcePort

LOGGER = logging.getLogger(__name__)


class AppointmentChecker:
    """Orchestrates fetching, filtering, dedup, and notifications."""

    def __init__(
        self,
        source: AppointmentSourcePort,
        filter_config: FilterConfig,
        cache: DedupCache,
        notifier: NotificationClient,
    ) -> None:
        self._source = source
        self._filter_config = filter_config
        self._cache = cache
        self._notifier = notifier
        # Serializes overlapping runs when a check outlives the schedule interval.
        self._run_lock = asyncio.Lock()

    def start(self) -> None:
        """Start background timers owned by the cache and notifier."""

        self._cache.start_cleanup_interval()
        self._notifier.start()

    async def close(self) -> None:
        await self._cache.stop()
        await self._notifier.close()

    async def check_appointments(self) -> CheckSummary:
        """Run one fetch/filter/notify cycle."""

        async with self._run_lock:
            try:
                appointments = await self._source.fetch_appointments()
            except Exception:
                LOGGER.exception("Error during appointment check")
                return CheckSummary()
            if not appointments:
                LOGGER.info("No appointments found or an error occurred")
                return CheckSummary()

            summary = await self.process_appointments(appointments)
            LOGGER.info(
                "Check complete: fetched=%s, matched=%s, cached=%s, sent=%s, failed=%s",
                summary.fetched,
                summary.matched,
                summary.skipped_cached,
                summary.sent,
                summary.failed,
            )
            return summary

    async def process_appointments(self, appointments: Iterable[Appointment]) -> CheckSummary:
        summary = CheckSummary()
        for appointment in appointments:
            summary.fetched += 1
            try:
                await self._handle(appointment, summary)
            except Exception:
                # One broken record must not stop the rest of the run.
                LOGGER.exception("Error while processing appointment %s", appointment.id)
                summary.failed += 1
        return summary

    async def _handle(self, appointment: Appointment, summary: CheckSummary) -> None:
        if not is_appointment_valid(appointment, self._filter_config):
            return
        summary.matched += 1

        key = self._cache.create_key(appointment)
        debug = self._filter_config.debug
        if debug:
            LOGGER.debug(
                "Valid appointment found (ID: %s): %s, status: %s, last checked: %s",
                appointment.id,
                appointment.center,
                appointment.status,
                appointment.last_checked_at,
            )

        if self._cache.has(key):
            if debug:
                LOGGER.debug("Appointment %s already in cache. Skipping.", appointment.id)
            summary.skipped_cached += 1
            return

        # Cache before sending so an interrupted run never notifies twice.
        self._cache.set(key)
        LOGGER.info("Sending new appointment notification: ID %s - %s", appointment.id, appointment.center)

        try:
            sent = await self._notifier.send_notification(appointment)
        except Exception:
            self._cache.delete(key)
            raise

        if sent:
            LOGGER.info("Notification sent successfully: ID %s", appointment.id)
            summary.sent += 1
            return

        LOGGER.error("Failed to send notification: ID %s. Removing from cache.", appointment.id)
        # Dropping the key lets the next scheduled run retry this appointment.
        self._cache.delete(key)
        summary.failed += 1
