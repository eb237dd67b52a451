"""Market cap update scheduler.

Drives the periodic update cycle:

    1. Load non-test tokens whose market cap is missing or stale
    2. Subscribe their mints on the trade stream
    3. Wait a settling delay so trades can land in the valuation cache
    4. Reconcile each token, one at a time

Cycles never overlap. A timer tick arriving while a cycle is in flight is
skipped; a manual trigger waits for the in-flight cycle and then runs.
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable
from datetime import UTC, datetime, timedelta
from typing import TYPE_CHECKING, Any

import structlog

from launchpad.scheduler.jobs import (
    JOB_ID_MARKET_CAP,
    get_next_run_time,
    schedule_market_cap_job,
    unschedule_market_cap_job,
)
from launchpad.scheduler.models import JobState, JobStatus, TokenUpdateError

if TYPE_CHECKING:
    from apscheduler.schedulers.base import BaseScheduler

    from launchpad.data.supabase.repositories.token_repo import CreatedTokenRepository
    from launchpad.services.market_cap.reconciler import ReconciliationEngine
    from launchpad.services.pumpportal.stream import TradeEventStream

log = structlog.get_logger(__name__)


class MarketCapScheduler:
    """Periodic market cap updates for created tokens.

    Owns the job status record and the interval; the timer itself lives on
    the shared APScheduler instance under `JOB_ID_MARKET_CAP`.
    """

    def __init__(
        self,
        scheduler: BaseScheduler,
        repository: CreatedTokenRepository,
        stream: TradeEventStream,
        engine: ReconciliationEngine,
        staleness_minutes: float = 15.0,
        settling_seconds: float = 5.0,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ) -> None:
        self._scheduler = scheduler
        self._repository = repository
        self._stream = stream
        self._engine = engine
        self._staleness = timedelta(minutes=staleness_minutes)
        self._settling_seconds = settling_seconds
        self._sleep = sleep

        self._running = False
        self._interval_minutes: float | None = None
        self._last_job_status: JobStatus | None = None
        self._cycle_lock = asyncio.Lock()

    @property
    def is_running(self) -> bool:
        return self._running

    @property
    def is_cycle_in_flight(self) -> bool:
        return self._cycle_lock.locked()

    async def start(self, interval_minutes: float) -> None:
        """Run one cycle now, then every `interval_minutes`.

        A failure in the first cycle is logged like a timer failure and
        does not prevent the timer from being armed. Calling start while
        already running only logs a warning.

        Raises:
            ValueError: If interval_minutes is not positive.
        """
        if self._running:
            log.warning(
                "market_cap_scheduler_already_running",
                interval_minutes=self._interval_minutes,
            )
            return

        if interval_minutes <= 0:
            raise ValueError(f"Invalid interval: {interval_minutes}. Must be positive")

        self._running = True
        self._interval_minutes = interval_minutes
        log.info(
            "market_cap_scheduler_starting",
            interval_minutes=interval_minutes,
            interval_seconds=interval_minutes * 60,
        )

        await self._scheduled_update()

        # stop() may have been called while the first cycle ran
        if self._running:
            schedule_market_cap_job(self._scheduler, self._scheduled_update, interval_minutes)

    def stop(self) -> None:
        """Cancel the timer. A cycle already in flight runs to completion."""
        unschedule_market_cap_job(self._scheduler)
        was_running = self._running
        self._running = False
        if was_running:
            log.info("market_cap_scheduler_stopped")

    async def trigger_update(self) -> JobStatus:
        """Run a cycle on demand.

        Unlike timer ticks, failures propagate to the caller.
        """
        log.info("market_cap_manual_update_triggered")
        return await self.perform_update()

    async def perform_update(self) -> JobStatus:
        """Run one full update cycle, waiting for any in-flight cycle first.

        Returns:
            The completed job status.

        Raises:
            Exception: Whatever aborted the cycle; the job status is marked
                failed before it propagates.
        """
        async with self._cycle_lock:
            return await self._run_cycle()

    async def _scheduled_update(self) -> None:
        """Timer entry point. Never raises."""
        if self._cycle_lock.locked():
            log.info("market_cap_cycle_skipped", reason="cycle_in_flight")
            return

        try:
            await self.perform_update()
        except Exception as e:
            log.error("market_cap_scheduled_update_failed", error=str(e))

    async def _run_cycle(self) -> JobStatus:
        job = JobStatus()
        self._last_job_status = job
        processed = 0
        updated = 0
        errors: list[TokenUpdateError] = []

        try:
            tokens = await self._repository.get_tokens_needing_update(self._staleness)

            if not tokens:
                log.debug("market_cap_no_tokens_need_update")
                self._last_job_status = job.model_copy(
                    update={"status": JobState.COMPLETED, "end_time": datetime.now(UTC)}
                )
                return self._last_job_status

            log.info("market_cap_cycle_started", job_id=str(job.id), tokens=len(tokens))

            await self._stream.subscribe([token.mint_address for token in tokens])
            await self._sleep(self._settling_seconds)

            for token in tokens:
                processed += 1
                result = await self._engine.reconcile(token)
                if result.updated:
                    updated += 1
                elif result.error:
                    errors.append(
                        TokenUpdateError(token_address=token.mint_address, error=result.error)
                    )

        except Exception as e:
            log.error("market_cap_cycle_failed", job_id=str(job.id), error=str(e))
            self._last_job_status = job.model_copy(
                update={
                    "status": JobState.FAILED,
                    "end_time": datetime.now(UTC),
                    "tokens_processed": processed,
                    "tokens_updated": updated,
                    "errors": errors,
                    "error": str(e),
                }
            )
            raise

        self._last_job_status = job.model_copy(
            update={
                "status": JobState.COMPLETED,
                "end_time": datetime.now(UTC),
                "tokens_processed": processed,
                "tokens_updated": updated,
                "errors": errors,
            }
        )

        if updated or errors:
            log.info(
                "market_cap_cycle_completed",
                job_id=str(job.id),
                processed=processed,
                updated=updated,
                errors=len(errors),
            )
        return self._last_job_status

    def get_last_job_status(self) -> JobStatus | None:
        return self._last_job_status

    def get_update_interval(self) -> float | None:
        """Current interval in minutes; None if never started."""
        return self._interval_minutes

    def get_status(self) -> dict[str, Any]:
        return {
            "is_running": self._running,
            "interval_minutes": self._interval_minutes,
            "cycle_in_flight": self._cycle_lock.locked(),
            "next_run": get_next_run_time(self._scheduler, JOB_ID_MARKET_CAP),
            "last_job": self._last_job_status,
        }
