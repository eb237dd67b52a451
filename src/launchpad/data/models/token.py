"""Created-token Pydantic models.

These map the `created_tokens` table written by the launch flow. The market
cap pipeline only ever writes `market_cap` and `last_market_cap_update`.
"""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field


class CreatedToken(BaseModel):
    """Row of the created_tokens table.

    Attributes:
        id: Primary key (UUID or integer depending on the deployment).
        mint_address: Solana token mint address (unique, immutable).
        token_name: Display name chosen at launch.
        token_symbol: Ticker chosen at launch.
        market_cap: Market capitalization in USD.
        last_market_cap_update: Set exactly when market_cap is written;
            None means the pipeline never wrote it.
        price: Manually supplied token price in USD.
        volume_24h: Manually supplied 24h volume in USD.
        is_test: Test launches are excluded from market cap updates.
        created_at: Launch timestamp.

    Example:
        token = CreatedToken(
            id="4f0c...",
            mint_address="7GCihgDB8fe6KNjn2MYtkzZcRjQy3t9GHdC8uHYmW2hr",
            token_name="Example",
            market_cap=7500.0,
        )
    """

    model_config = ConfigDict(extra="ignore")

    id: str | int = Field(description="Primary key")
    mint_address: str = Field(description="Solana token mint address")
    token_name: str | None = Field(default=None, description="Token name")
    token_symbol: str | None = Field(default=None, description="Token symbol")
    market_cap: float | None = Field(default=None, description="Market cap in USD")
    last_market_cap_update: datetime | None = Field(
        default=None, description="When market_cap was last written"
    )
    price: float | None = Field(default=None, description="Token price in USD")
    volume_24h: float | None = Field(default=None, description="24-hour volume in USD")
    is_test: bool = Field(default=False, description="Excluded from the pipeline")
    created_at: datetime | None = Field(default=None, description="Creation timestamp")


class MarketCapStats(BaseModel):
    """Aggregate over all non-test tokens with a stored market cap."""

    total_market_cap: float = Field(default=0.0, description="Sum of market caps in USD")
    tokens_with_market_cap: int = Field(default=0, description="Tokens with a market cap")
    average_market_cap: float = Field(default=0.0, description="Mean market cap in USD")
    last_update: datetime | None = Field(
        default=None, description="Most recent last_market_cap_update"
    )
