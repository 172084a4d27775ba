"""
APScheduler v4 integration for TenderWatch.

Watch mode: one interval schedule that runs a full sync, first at start-up
(unless disabled) and then every ``interval_hours``.
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

from apscheduler import AsyncScheduler, ConflictPolicy
from apscheduler.triggers.interval import IntervalTrigger

from tenderwatch.core.config.models import AppConfig
from tenderwatch.core.logging import get_logger
from tenderwatch.core.orchestrator.runner import TenderSync, build_sync

logger = get_logger("scheduler")

SYNC_SCHEDULE_ID = "tender-sync"


async def execute_scheduled_sync(sync: TenderSync) -> None:
    """Run one scheduled sync; failures are logged, never raised into the scheduler."""
    try:
        results = await sync.run_sync()
    except Exception:
        logger.exception("Scheduled sync failed")
        return

    for result in results:
        logger.info(
            "Scheduled sync %s: fetched=%d added=%d updated=%d errors=%d",
            result.source,
            result.fetched,
            result.added,
            result.updated,
            result.errors,
            extra={"source": result.source},
        )


class SchedulerService:
    """Runs tender syncs on a fixed interval."""

    def __init__(
        self,
        config: AppConfig,
        *,
        interval_hours: float | None = None,
        sync_on_startup: bool | None = None,
        sync: TenderSync | None = None,
    ) -> None:
        self.config = config
        self.interval_hours = interval_hours or config.sync.interval_hours
        self.sync_on_startup = (
            config.sync.sync_on_startup if sync_on_startup is None else sync_on_startup
        )
        self.sync = sync or build_sync(config)
        self._scheduler: AsyncScheduler | None = None

    def build_trigger(self, now: datetime | None = None) -> IntervalTrigger:
        """Interval trigger; fires immediately when a start-up sync is wanted."""
        now = now or datetime.now(timezone.utc)
        interval = timedelta(hours=self.interval_hours)
        start_time = now if self.sync_on_startup else now + interval
        return IntervalTrigger(hours=self.interval_hours, start_time=start_time)

    async def start(self) -> None:
        """Start scheduler in foreground mode (blocking)."""
        try:
            async with AsyncScheduler() as scheduler:
                self._scheduler = scheduler
                await scheduler.add_schedule(
                    execute_scheduled_sync,
                    self.build_trigger(),
                    id=SYNC_SCHEDULE_ID,
                    args=[self.sync],
                    conflict_policy=ConflictPolicy.replace,
                )
                logger.info(
                    "Watching %d sources every %.1f hours",
                    len(self.sync.sources),
                    self.interval_hours,
                )
                await scheduler.run_until_stopped()
        finally:
            self._scheduler = None
            await self.sync.wait_for_enrichment()
            await self.sync.close()

    async def stop(self) -> None:
        if self._scheduler is not None:
            await self._scheduler.stop()
