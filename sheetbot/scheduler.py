"""
APScheduler 定时刷新触发词表。
"""
from __future__ import annotations

import logging

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger

from sheetbot.core.dispatcher import DispatchHandler

logger = logging.getLogger(__name__)

REFRESH_JOB_ID = "trigger_table_refresh"


class RefreshScheduler:
    """Periodic trigger table refresh."""

    def __init__(self, dispatcher: DispatchHandler, *, interval_s: int) -> None:
        self._dispatcher = dispatcher
        self._interval_s = interval_s
        self.scheduler = AsyncIOScheduler()

    def start(self) -> None:
        self.scheduler.add_job(
            self._dispatcher.handle_scheduled_tick,
            trigger=IntervalTrigger(seconds=self._interval_s),
            id=REFRESH_JOB_ID,
            replace_existing=True,
            max_instances=1,
            coalesce=True,
        )
        self.scheduler.start()
        logger.info("Refresh scheduler started, interval=%ss", self._interval_s)

    def stop(self) -> None:
        if self.scheduler.running:
            self.scheduler.shutdown(wait=False)
        logger.info("Refresh scheduler stopped")
