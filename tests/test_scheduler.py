import unittest
from unittest.mock import AsyncMock, Mock

from apscheduler.triggers.interval import IntervalTrigger

from sheetbot.scheduler import REFRESH_JOB_ID, RefreshScheduler


class TestRefreshScheduler(unittest.IsolatedAsyncioTestCase):
    async def test_registers_interval_job(self) -> None:
        dispatcher = Mock()
        dispatcher.handle_scheduled_tick = AsyncMock()
        refresher = RefreshScheduler(dispatcher, interval_s=300)

        refresher.start()
        try:
            job = refresher.scheduler.get_job(REFRESH_JOB_ID)
            self.assertIsNotNone(job)
            self.assertIsInstance(job.trigger, IntervalTrigger)
            self.assertEqual(job.trigger.interval.total_seconds(), 300)
            self.assertEqual(job.max_instances, 1)
        finally:
            refresher.stop()

        self.assertFalse(refresher.scheduler.running)

    async def test_stop_before_start_is_safe(self) -> None:
        RefreshScheduler(Mock(), interval_s=60).stop()


if __name__ == "__main__":
    unittest.main()
