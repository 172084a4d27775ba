"""Scheduler service - APScheduler integration."""

from .service import SYNC_SCHEDULE_ID, SchedulerService, execute_scheduled_sync

__all__ = [
    "SYNC_SCHEDULE_ID",
    "SchedulerService",
    "execute_scheduled_sync",
]
