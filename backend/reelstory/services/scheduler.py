"""APScheduler setup for the optional periodic storage sync."""
from __future__ import annotations
import logging
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger
from reelstory.config import get_settings

logger = logging.getLogger(__name__)
settings = get_settings()

_scheduler: AsyncIOScheduler | None = None


def get_scheduler() -> AsyncIOScheduler:
    global _scheduler
    if _scheduler is None:
        _scheduler = AsyncIOScheduler()
    return _scheduler


async def scheduled_storage_sync():
    """Import new storage videos using the configured drama defaults."""
    from reelstory.database import AsyncSessionLocal
    from reelstory.errors import ReelStoryError
    from reelstory.services.storage import get_storage
    from reelstory.services.sync import sync_storage

    logger.info("Starting scheduled storage sync")
    async with AsyncSessionLocal() as db:
        try:
            report = await sync_storage(db, get_storage())
        except ReelStoryError as e:
            logger.error(f"Scheduled storage sync failed: {e.message}")
            return
        except Exception as e:
            logger.error(f"Scheduled storage sync failed: {e}")
            return
    if report.errors:
        for err in report.errors:
            logger.warning(f"Sync error for {err['fileName']}: {err['error']}")


def start_scheduler():
    if settings.sync_interval_hours <= 0:
        logger.info("Scheduled storage sync disabled")
        return
    scheduler = get_scheduler()
    scheduler.add_job(
        scheduled_storage_sync,
        trigger=IntervalTrigger(hours=settings.sync_interval_hours),
        id="sync_storage",
        replace_existing=True,
        max_instances=1,
    )
    scheduler.start()
    logger.info(f"Scheduler started (storage sync every {settings.sync_interval_hours}h)")


def stop_scheduler():
    scheduler = get_scheduler()
    if scheduler.running:
        scheduler.shutdown(wait=False)
