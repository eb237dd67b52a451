"""FastAPI application factory."""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from launchpad.api.routes import health, scheduler, tokens
from launchpad.config.logging import configure_logging
from launchpad.config.settings import get_settings
from launchpad.core.dependencies import ServiceContainer

log = structlog.get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Build the service container, start it, and tear it down on exit.

    On startup: Connect to Supabase (failure is logged, not fatal), open the
    trade stream, arm the SOL price refresh and, when configured, start the
    market cap scheduler.
    On shutdown: Stop everything in reverse order.
    """
    configure_logging()
    log.info("application_starting")

    container = ServiceContainer.from_settings(get_settings())
    app.state.container = container
    await container.start()

    log.info("application_started")

    yield

    log.info("application_stopping")
    await container.shutdown()
    app.state.container = None
    log.info("application_stopped")


def create_app() -> FastAPI:
    """
    Create and configure the FastAPI application.

    Returns:
        Configured FastAPI application instance.
    """
    settings = get_settings()

    application = FastAPI(
        title=settings.app_name,
        description="Market cap ingestion for launched Solana tokens",
        version=settings.app_version,
        debug=settings.debug,
        lifespan=lifespan,
    )

    application.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Routes
    application.include_router(health.router)
    application.include_router(scheduler.router, prefix="/api")
    application.include_router(tokens.router, prefix="/api")

    return application
