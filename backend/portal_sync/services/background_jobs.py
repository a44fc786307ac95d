"""
services/background_jobs.py

Periodic sync driver for a portal instance.

One APScheduler interval job (default every 30 seconds) runs the instance's
sync cycle:
  1. perform_sync: stamp last sync, refresh counters, prune notifications
  2. auto-distribute pending processes
  3. refresh activity of online users

A tick that comes due while the previous one is still running is skipped
(``max_instances=1``); late ticks are coalesced into one.

    driver = SyncScheduler(system.run_sync_cycle, interval_seconds=30)
    driver.start()     # idle → active, or restart when already active
    driver.stop()      # active → idle
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Callable, Optional

from apscheduler.events import EVENT_JOB_MAX_INSTANCES, JobSubmissionEvent
from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.interval import IntervalTrigger

logger = logging.getLogger(__name__)

SYNC_JOB_ID = "portal_real_time_sync"


class SyncScheduler:
    def __init__(self, tick: Callable[[], None], interval_seconds: int = 30) -> None:
        self.tick = tick
        self.interval_seconds = interval_seconds
        self.skipped_ticks = 0
        self._scheduler: Optional[BackgroundScheduler] = None

    @property
    def is_active(self) -> bool:
        return (
            self._scheduler is not None
            and self._scheduler.running
            and self._scheduler.get_job(SYNC_JOB_ID) is not None
        )

    @property
    def next_run_time(self) -> Optional[datetime]:
        if not self.is_active:
            return None
        return self._scheduler.get_job(SYNC_JOB_ID).next_run_time

    def start(self) -> None:
        """
        Installs the sync job, replacing any job already installed.
        Calling it on an active driver restarts the interval.
        """
        if self._scheduler is None or not self._scheduler.running:
            self._scheduler = BackgroundScheduler(timezone=timezone.utc)
            self._scheduler.add_listener(self._on_max_instances, EVENT_JOB_MAX_INSTANCES)
            self._scheduler.start()

        self._scheduler.add_job(
            self._run_tick,
            trigger=IntervalTrigger(seconds=self.interval_seconds, timezone=timezone.utc),
            id=SYNC_JOB_ID,
            name="Portal real-time sync",
            replace_existing=True,
            max_instances=1,          # never run two ticks at once
            coalesce=True,
            misfire_grace_time=self.interval_seconds,
        )
        logger.info("Real-time sync started (%ss)", self.interval_seconds)

    def stop(self) -> None:
        """Removes the job and shuts the scheduler down without waiting."""
        if self._scheduler is not None and self._scheduler.running:
            self._scheduler.shutdown(wait=False)
            logger.info("Real-time sync stopped")
        self._scheduler = None

    def _run_tick(self) -> None:
        try:
            self.tick()
        except Exception as e:
            logger.exception("Sync tick failed: %s", e)

    def _on_max_instances(self, event: JobSubmissionEvent) -> None:
        if event.job_id == SYNC_JOB_ID:
            self.skipped_ticks += 1
            logger.warning("Sync tick skipped: previous tick still running")
