"""FastAPI dependencies for dependency injection.

Services live on the ServiceContainer stored in `app.state.container` by
the lifespan. Tests override these functions through
`app.dependency_overrides`.
"""

from typing import Annotated

from fastapi import Depends, HTTPException, Request, status

from launchpad.core.dependencies import ServiceContainer
from launchpad.data.supabase.repositories.token_repo import CreatedTokenRepository
from launchpad.scheduler.market_cap_scheduler import MarketCapScheduler
from launchpad.services.pricing.price_oracle import SolPriceOracle
from launchpad.services.pumpportal.stream import TradeEventStream


def get_container(request: Request) -> ServiceContainer:
    """Service container built by the application lifespan."""
    container: ServiceContainer | None = getattr(request.app.state, "container", None)
    if container is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Services not initialized",
        )
    return container


ContainerDep = Annotated[ServiceContainer, Depends(get_container)]


def get_market_cap_scheduler(container: ContainerDep) -> MarketCapScheduler:
    return container.market_cap_scheduler


def get_token_repo(container: ContainerDep) -> CreatedTokenRepository:
    return container.repository


def get_price_oracle(container: ContainerDep) -> SolPriceOracle:
    return container.oracle


def get_trade_stream(container: ContainerDep) -> TradeEventStream:
    return container.stream


MarketCapSchedulerDep = Annotated[MarketCapScheduler, Depends(get_market_cap_scheduler)]
TokenRepoDep = Annotated[CreatedTokenRepository, Depends(get_token_repo)]
PriceOracleDep = Annotated[SolPriceOracle, Depends(get_price_oracle)]
TradeStreamDep = Annotated[TradeEventStream, Depends(get_trade_stream)]
