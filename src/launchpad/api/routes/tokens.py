"""Created-token market data endpoints."""

from datetime import datetime, timedelta
from typing import Any

import structlog
from fastapi import APIRouter, HTTPException, Query, status
from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from launchpad.api.dependencies import ContainerDep, PriceOracleDep, TokenRepoDep
from launchpad.core.exceptions import LaunchpadError, PriceUnavailableError
from launchpad.data.models.token import CreatedToken

log = structlog.get_logger(__name__)

router = APIRouter(tags=["tokens"])

_CAMEL = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class TokensNeedingUpdateResponse(BaseModel):
    tokens: list[CreatedToken]
    count: int


class MarketCapResponse(BaseModel):
    """Stored market cap of one token."""

    model_config = _CAMEL

    mint: str
    market_cap: float | None = None
    last_updated: datetime | None = None


class MarketDataUpdateRequest(BaseModel):
    """Manual override; at least one field is required."""

    model_config = _CAMEL

    market_cap: float | None = Field(default=None, ge=0)
    price: float | None = Field(default=None, ge=0)
    volume_24h: float | None = Field(default=None, ge=0, alias="volume24h")


class MarketDataUpdateResponse(BaseModel):
    model_config = _CAMEL

    message: str
    mint: str
    market_cap: float | None = None
    price: float | None = None
    volume_24h: float | None = Field(default=None, alias="volume24h")
    last_updated: datetime | None = None


class MarketCapStatsResponse(BaseModel):
    model_config = _CAMEL

    total_market_cap: float
    tokens_with_market_cap: int
    average_market_cap: float
    last_update: datetime | None = None


class CreatedTokensResponse(BaseModel):
    tokens: list[CreatedToken]


def _store_unavailable(e: LaunchpadError) -> HTTPException:
    return HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=str(e))


@router.get("/tokens/needing-update", response_model=TokensNeedingUpdateResponse)
async def get_tokens_needing_update(container: ContainerDep) -> TokensNeedingUpdateResponse:
    """Non-test tokens whose market cap is missing or stale."""
    staleness = timedelta(minutes=container.settings.market_cap_staleness_minutes)
    try:
        tokens = await container.repository.get_tokens_needing_update(staleness)
    except LaunchpadError as e:
        raise _store_unavailable(e) from e
    return TokensNeedingUpdateResponse(tokens=tokens, count=len(tokens))


@router.get(
    "/token/{mint}/market-cap",
    response_model=MarketCapResponse,
    response_model_by_alias=True,
)
async def get_token_market_cap(mint: str, repo: TokenRepoDep) -> MarketCapResponse:
    """
    Stored market cap for one token.

    Raises:
        HTTPException: 404 if no token has this mint.
    """
    try:
        token = await repo.get_by_mint(mint)
    except LaunchpadError as e:
        raise _store_unavailable(e) from e

    if token is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Token not found")

    return MarketCapResponse(
        mint=token.mint_address,
        market_cap=token.market_cap,
        last_updated=token.last_market_cap_update,
    )


@router.post(
    "/token/{mint}/market-cap",
    response_model=MarketDataUpdateResponse,
    response_model_by_alias=True,
)
async def update_token_market_cap(
    mint: str,
    repo: TokenRepoDep,
    body: MarketDataUpdateRequest | None = None,
) -> MarketDataUpdateResponse:
    """
    Manually override market data for one token.

    Raises:
        HTTPException: 400 if no field is provided, 404 if no token has
            this mint.
    """
    if body is None or (
        body.market_cap is None and body.price is None and body.volume_24h is None
    ):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="At least one of marketCap, price, volume24h is required",
        )

    try:
        token = await repo.update_market_data(
            mint,
            market_cap=body.market_cap,
            price=body.price,
            volume_24h=body.volume_24h,
        )
    except LaunchpadError as e:
        raise _store_unavailable(e) from e

    if token is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Token not found")

    log.info("market_data_manual_override", mint=mint[:8])
    return MarketDataUpdateResponse(
        message="Market data updated",
        mint=token.mint_address,
        market_cap=token.market_cap,
        price=token.price,
        volume_24h=token.volume_24h,
        last_updated=token.last_market_cap_update,
    )


@router.get(
    "/market-cap/stats",
    response_model=MarketCapStatsResponse,
    response_model_by_alias=True,
)
async def get_market_cap_stats(repo: TokenRepoDep) -> MarketCapStatsResponse:
    try:
        stats = await repo.get_market_cap_stats()
    except LaunchpadError as e:
        raise _store_unavailable(e) from e
    return MarketCapStatsResponse.model_validate(stats.model_dump())


@router.get("/sol-price")
async def get_sol_price(
    oracle: PriceOracleDep,
    refresh: bool = Query(default=False, description="Force a quote request"),
) -> dict[str, Any]:
    """
    Current SOL/USD price and oracle state.

    Raises:
        HTTPException: 503 if no price has ever been obtained.
    """
    try:
        await oracle.get_price(force_refresh=refresh)
    except PriceUnavailableError as e:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=str(e)
        ) from e
    return oracle.get_status()


@router.get("/created-tokens", response_model=CreatedTokensResponse)
async def list_created_tokens(repo: TokenRepoDep) -> CreatedTokensResponse:
    """All created tokens, newest first."""
    try:
        tokens = await repo.list_all()
    except LaunchpadError as e:
        raise _store_unavailable(e) from e
    return CreatedTokensResponse(tokens=tokens)
