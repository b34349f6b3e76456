"""Cron scheduling for appointment checks.

APScheduler-based async scheduler that triggers the checker on a crontab
expression. Runs never overlap: a run still in progress when the next tick
fires causes that tick to be skipped.
"""

from __future__ import annotations

import logging
from typing import Awaitable, Callable, Optional

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.cron import CronTrigger

logger = logging.getLogger(__name__)

JOB_ID = "check_appointments"


class CheckScheduler:
    """Runs an async job on a cron schedule."""

    def __init__(
        self,
        job: Callable[[], Awaitable[object]],
        cron: str,
        timezone_name: Optional[str] = None,
        run_on_start: bool = True,
    ) -> None:
        self._job = job
        self._trigger = CronTrigger.from_crontab(cron, timezone=timezone_name)
        self._cron = cron
        self._run_on_start = run_on_start
        self._scheduler: Optional[AsyncIOScheduler] = None

    @property
    def running(self) -> bool:
        return self._scheduler is not None

    async def _run_job(self) -> None:
        try:
            await self._job()
        except Exception:
            logger.exception("Error during scheduled appointment check")

    def start(self) -> None:
        """Start the scheduler on the running event loop."""

        if self._scheduler is not None:
            logger.warning("CheckScheduler already running")
            return

        scheduler = AsyncIOScheduler()
        scheduler.add_job(
            self._run_job,
            self._trigger,
            id=JOB_ID,
            name="Visa appointment check",
            replace_existing=True,
            max_instances=1,
            coalesce=True,
        )
        scheduler.start()
        self._scheduler = scheduler
        logger.info("Scheduler started (cron=%s)", self._cron)

        if self._run_on_start:
            # One-off job without a trigger runs immediately; the checker's
            # run lock keeps it from overlapping the first cron tick.
            scheduler.add_job(self._run_job, id=f"{JOB_ID}_initial", name="Initial appointment check")

    def stop(self) -> None:
        """Stop the scheduler without waiting for a running check."""

        if self._scheduler is None:
            return
        self._scheduler.shutdown(wait=False)
        self._scheduler = None
        logger.info("Scheduler stopped")
