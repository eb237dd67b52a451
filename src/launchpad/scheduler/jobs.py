"""Recurring jobs registered on the shared APScheduler instance.

- Market cap update: runs MarketCapScheduler's cycle every N minutes
- SOL price refresh: keeps the oracle's cached price warm

Usage:
    schedule_sol_price_refresh(scheduler, oracle, interval_minutes=5)
"""

from collections.abc import Awaitable, Callable
from datetime import UTC, datetime

import structlog
from apscheduler.schedulers.base import BaseScheduler
from apscheduler.triggers.interval import IntervalTrigger

from launchpad.services.pricing.price_oracle import SolPriceOracle

log = structlog.get_logger(__name__)

# Job ID constants
JOB_ID_MARKET_CAP = "market_cap_update"
JOB_ID_SOL_PRICE = "sol_price_refresh"


def schedule_market_cap_job(
    scheduler: BaseScheduler,
    func: Callable[[], Awaitable[None]],
    interval_minutes: float,
) -> None:
    """Schedule or reschedule the market cap cycle.

    The first run happens one interval from now; the caller runs the
    immediate cycle itself. A tick that would overlap the previous one is
    dropped by APScheduler (max_instances=1).

    Raises:
        ValueError: If interval_minutes is not positive.
    """
    if interval_minutes <= 0:
        raise ValueError(f"Invalid interval: {interval_minutes}. Must be positive")

    if scheduler.get_job(JOB_ID_MARKET_CAP):
        scheduler.remove_job(JOB_ID_MARKET_CAP)
        log.info("market_cap_job_removed", job_id=JOB_ID_MARKET_CAP)

    scheduler.add_job(
        func,
        trigger=IntervalTrigger(seconds=interval_minutes * 60),
        id=JOB_ID_MARKET_CAP,
        name="Market Cap Update",
        replace_existing=True,
        max_instances=1,
        coalesce=True,
    )

    log.info(
        "market_cap_job_scheduled",
        job_id=JOB_ID_MARKET_CAP,
        interval_minutes=interval_minutes,
        interval_seconds=interval_minutes * 60,
    )


def unschedule_market_cap_job(scheduler: BaseScheduler) -> None:
    """Remove the market cap job. Safe when not scheduled."""
    if scheduler.get_job(JOB_ID_MARKET_CAP):
        scheduler.remove_job(JOB_ID_MARKET_CAP)
        log.info("market_cap_job_unscheduled", job_id=JOB_ID_MARKET_CAP)


async def refresh_sol_price_job(oracle: SolPriceOracle) -> None:
    """Scheduled job forcing a SOL price refresh.

    Handles all errors internally so the job keeps firing.
    """
    try:
        await oracle.get_price(force_refresh=True)
    except Exception as e:
        log.error("sol_price_refresh_job_failed", error=str(e))


def schedule_sol_price_refresh(
    scheduler: BaseScheduler,
    oracle: SolPriceOracle,
    interval_minutes: float = 5.0,
) -> None:
    """Refresh the SOL price now and then every `interval_minutes`."""
    if scheduler.get_job(JOB_ID_SOL_PRICE):
        log.warning("sol_price_refresh_already_scheduled")
        return

    scheduler.add_job(
        refresh_sol_price_job,
        trigger=IntervalTrigger(seconds=interval_minutes * 60),
        args=[oracle],
        id=JOB_ID_SOL_PRICE,
        name="SOL Price Refresh",
        replace_existing=True,
        max_instances=1,
        coalesce=True,
        next_run_time=datetime.now(UTC),
    )
    oracle.set_auto_updating(True)
    log.info("sol_price_refresh_scheduled", interval_minutes=interval_minutes)


def unschedule_sol_price_refresh(scheduler: BaseScheduler, oracle: SolPriceOracle) -> None:
    if scheduler.get_job(JOB_ID_SOL_PRICE):
        scheduler.remove_job(JOB_ID_SOL_PRICE)
        log.info("sol_price_refresh_unscheduled")
    oracle.set_auto_updating(False)


def get_next_run_time(scheduler: BaseScheduler, job_id: str = JOB_ID_MARKET_CAP) -> str | None:
    """Next run of a job as ISO string, or None if not scheduled."""
    job = scheduler.get_job(job_id)
    next_run = getattr(job, "next_run_time", None) if job else None
    return next_run.isoformat() if next_run else None
