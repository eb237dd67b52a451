"""Dependency injection setup for services.

Provides a ServiceContainer that builds every long-lived service from
Settings and owns their startup and shutdown order. One container is
created per application in the FastAPI lifespan and kept on app.state;
tests build their own with fakes.
"""

from __future__ import annotations

import asyncio
import contextlib
from dataclasses import dataclass, field
from typing import Any

import structlog
from apscheduler.schedulers.asyncio import AsyncIOScheduler

from launchpad.config.settings import Settings
from launchpad.core.exceptions import DatabaseConnectionError
from launchpad.data.supabase.client import SupabaseClient
from launchpad.data.supabase.repositories.token_repo import CreatedTokenRepository
from launchpad.scheduler.jobs import schedule_sol_price_refresh, unschedule_sol_price_refresh
from launchpad.scheduler.market_cap_scheduler import MarketCapScheduler
from launchpad.scheduler.scheduler import create_scheduler, shutdown_scheduler, start_scheduler
from launchpad.services.jupiter.client import JupiterClient
from launchpad.services.market_cap.cache import ValuationCache
from launchpad.services.market_cap.reconciler import ReconciliationEngine
from launchpad.services.pricing.price_oracle import SolPriceOracle
from launchpad.services.pumpportal.stream import TradeEventStream, websocket_connector

logger = structlog.get_logger(__name__)


@dataclass
class ServiceContainer:
    """Container for the market cap pipeline services.

    Usage:
        container = ServiceContainer.from_settings(get_settings())
        await container.start()
        ...
        await container.shutdown()
    """

    settings: Settings
    supabase: SupabaseClient
    repository: CreatedTokenRepository
    jupiter: JupiterClient
    oracle: SolPriceOracle
    cache: ValuationCache
    stream: TradeEventStream
    engine: ReconciliationEngine
    apscheduler: AsyncIOScheduler
    market_cap_scheduler: MarketCapScheduler
    _started: bool = field(default=False, init=False)
    _autostart_task: asyncio.Task[None] | None = field(default=None, init=False)

    @classmethod
    def from_settings(cls, settings: Settings) -> ServiceContainer:
        """Wire every service; nothing connects until start()."""
        supabase = SupabaseClient(
            url=settings.supabase_url,
            key=settings.supabase_key,
            schema=settings.postgres_schema,
        )
        repository = CreatedTokenRepository(supabase)
        jupiter = JupiterClient(
            base_url=settings.jupiter_quote_url,
            timeout=settings.jupiter_timeout_seconds,
            circuit_breaker_threshold=settings.circuit_breaker_threshold,
            circuit_breaker_cooldown=settings.circuit_breaker_cooldown,
        )
        oracle = SolPriceOracle(jupiter, ttl_seconds=settings.sol_price_ttl_seconds)
        cache = ValuationCache()
        stream = TradeEventStream(
            cache,
            settings.pumpportal_ws_url,
            max_reconnect_attempts=settings.stream_max_reconnect_attempts,
            reconnect_base_seconds=settings.stream_reconnect_base_seconds,
            reconnect_max_seconds=settings.stream_reconnect_max_seconds,
            connector=websocket_connector(settings.stream_open_timeout_seconds),
        )
        engine = ReconciliationEngine(cache, oracle, repository)
        apscheduler = create_scheduler()
        market_cap_scheduler = MarketCapScheduler(
            apscheduler,
            repository,
            stream,
            engine,
            staleness_minutes=settings.market_cap_staleness_minutes,
            settling_seconds=settings.market_cap_settling_seconds,
        )

        return cls(
            settings=settings,
            supabase=supabase,
            repository=repository,
            jupiter=jupiter,
            oracle=oracle,
            cache=cache,
            stream=stream,
            engine=engine,
            apscheduler=apscheduler,
            market_cap_scheduler=market_cap_scheduler,
        )

    async def start(self) -> None:
        """Connect the store, open the trade stream and arm recurring jobs.

        A store connection failure is logged and startup continues; the
        first cycle will then fail and be recorded in the job status.
        """
        if self._started:
            return

        try:
            await self.supabase.connect()
        except DatabaseConnectionError as e:
            logger.warning("startup_supabase_failed", error=str(e))

        self.stream.connect()

        await start_scheduler(self.apscheduler)
        schedule_sol_price_refresh(
            self.apscheduler,
            self.oracle,
            interval_minutes=self.settings.sol_price_refresh_minutes,
        )

        if self.settings.market_cap_scheduler_autostart:
            # First cycle runs off the startup path; shutdown() cancels it
            self._autostart_task = asyncio.create_task(
                self.market_cap_scheduler.start(self.settings.market_cap_interval_minutes),
                name="market_cap_autostart",
            )

        self._started = True
        logger.info("service_container_started")

    async def shutdown(self) -> None:
        """Stop everything in reverse start order."""
        self.market_cap_scheduler.stop()
        if self._autostart_task is not None:
            if not self._autostart_task.done():
                self._autostart_task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await self._autostart_task
            self._autostart_task = None
        unschedule_sol_price_refresh(self.apscheduler, self.oracle)
        await shutdown_scheduler(self.apscheduler)
        await self.stream.close()
        await self.jupiter.close()
        await self.supabase.disconnect()
        self._started = False
        logger.info("service_container_stopped")

    async def health(self) -> dict[str, Any]:
        """Component health for the health endpoint."""
        database = await self.supabase.health_check()
        stream = self.stream.get_status()
        return {
            "database": database,
            "stream": stream,
            "sol_price": self.oracle.get_status(),
            "scheduler": {
                "is_running": self.market_cap_scheduler.is_running,
                "interval_minutes": self.market_cap_scheduler.get_update_interval(),
            },
            "healthy": bool(database.get("healthy")) and not self.stream.has_given_up,
        }
