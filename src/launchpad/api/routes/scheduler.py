"""Market cap scheduler control endpoints."""

from typing import Any

import structlog
from fastapi import APIRouter, HTTPException, status
from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from launchpad.api.dependencies import MarketCapSchedulerDep, TradeStreamDep
from launchpad.scheduler.models import JobStatus

log = structlog.get_logger(__name__)

router = APIRouter(prefix="/scheduler", tags=["scheduler"])

_CAMEL = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class StartSchedulerRequest(BaseModel):
    """Request to start the scheduler."""

    model_config = _CAMEL

    interval_minutes: float = Field(default=0.25, gt=0)


class StartSchedulerResponse(BaseModel):
    model_config = _CAMEL

    message: str
    interval_minutes: float


class MessageResponse(BaseModel):
    message: str


class SchedulerStatusResponse(BaseModel):
    """Scheduler state, last job and trade stream status."""

    model_config = _CAMEL

    is_running: bool
    interval_minutes: float | None = None
    cycle_in_flight: bool = False
    next_run: str | None = None
    last_job: JobStatus | None = None
    stream: dict[str, Any]


@router.post(
    "/start",
    response_model=StartSchedulerResponse,
    response_model_by_alias=True,
)
async def start_scheduler(
    scheduler: MarketCapSchedulerDep,
    body: StartSchedulerRequest | None = None,
) -> StartSchedulerResponse:
    """
    Start periodic market cap updates.

    Runs one cycle before returning. Starting an already running
    scheduler keeps the current interval.
    """
    interval = (body or StartSchedulerRequest()).interval_minutes
    await scheduler.start(interval)
    current = scheduler.get_update_interval() or interval
    return StartSchedulerResponse(
        message=f"Market cap scheduler started with {current} minute interval",
        interval_minutes=current,
    )


@router.post("/stop", response_model=MessageResponse)
async def stop_scheduler(scheduler: MarketCapSchedulerDep) -> MessageResponse:
    scheduler.stop()
    return MessageResponse(message="Market cap scheduler stopped")


@router.get(
    "/status",
    response_model=SchedulerStatusResponse,
    response_model_by_alias=True,
)
async def get_scheduler_status(
    scheduler: MarketCapSchedulerDep,
    stream: TradeStreamDep,
) -> SchedulerStatusResponse:
    return SchedulerStatusResponse(**scheduler.get_status(), stream=stream.get_status())


@router.post(
    "/trigger-update",
    response_model=JobStatus,
    response_model_by_alias=True,
)
async def trigger_update(scheduler: MarketCapSchedulerDep) -> JobStatus:
    """
    Run one update cycle now and return its status.

    Raises:
        HTTPException: 500 with the failure message when the cycle fails.
    """
    try:
        return await scheduler.trigger_update()
    except Exception as e:
        log.error("manual_market_cap_update_failed", error=str(e))
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=str(e),
        ) from e
