"""Pydantic models for Jupiter quote API responses.

API Documentation: https://station.jup.ag/docs/apis/swap-api
"""

from pydantic import BaseModel, ConfigDict, Field

# Well-known Solana mints
SOL_MINT = "So11111111111111111111111111111111111111112"
USDC_MINT = "EPjFWdd5AufqSSqeM2qN1xzybapC8G4wEGGkZwyTDt1v"

SOL_DECIMALS = 9
USDC_DECIMALS = 6
LAMPORTS_PER_SOL = 10**SOL_DECIMALS


class JupiterQuote(BaseModel):
    """Swap quote returned by GET /quote.

    Amounts are integers in the smallest unit of each mint; Jupiter sends
    them as strings and pydantic coerces them. Only `outAmount` is required;
    the echoed request fields are optional.

    Attributes:
        input_mint: Mint being sold.
        output_mint: Mint being bought.
        in_amount: Input amount in smallest units.
        out_amount: Expected output amount in smallest units.
        price_impact_pct: Estimated price impact as a decimal string.
        swap_usd_value: USD value of the swap when Jupiter reports it.
    """

    model_config = ConfigDict(populate_by_name=True)

    input_mint: str | None = Field(default=None, alias="inputMint")
    output_mint: str | None = Field(default=None, alias="outputMint")
    in_amount: int | None = Field(default=None, alias="inAmount")
    out_amount: int = Field(alias="outAmount")
    slippage_bps: int | None = Field(default=None, alias="slippageBps")
    price_impact_pct: str | None = Field(default=None, alias="priceImpactPct")
    swap_usd_value: str | None = Field(default=None, alias="swapUsdValue")
