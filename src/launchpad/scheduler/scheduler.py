"""APScheduler lifecycle helpers.

One AsyncIOScheduler is created per process by the service container and
shared by every recurring job (market cap cycle, SOL price refresh).

Usage:
    scheduler = create_scheduler()
    await start_scheduler(scheduler)   # app startup
    await shutdown_scheduler(scheduler)  # app shutdown
"""

import asyncio

import structlog
from apscheduler.schedulers.asyncio import AsyncIOScheduler

log = structlog.get_logger(__name__)


def create_scheduler() -> AsyncIOScheduler:
    """Create a scheduler; it is not started."""
    scheduler = AsyncIOScheduler(timezone="UTC")
    log.debug("scheduler_created")
    return scheduler


async def start_scheduler(scheduler: AsyncIOScheduler) -> None:
    """Start the scheduler. Safe to call when already running."""
    if not scheduler.running:
        scheduler.start()
        log.info("scheduler_started")


async def shutdown_scheduler(scheduler: AsyncIOScheduler) -> None:
    """Shut the scheduler down without waiting for running jobs.

    Safe to call when the scheduler is not running. On return the
    scheduler reports `running is False`.
    """
    if scheduler.running:
        scheduler.shutdown(wait=False)
        # Newer AsyncIOScheduler releases defer shutdown onto the loop
        await asyncio.sleep(0)
        log.info("scheduler_shutdown")
