"""Jupiter quote API client.

Only the quote endpoint is used: the SOL price oracle prices 1 SOL in USDC
through it. Swap execution belongs to the trade flow and is not wrapped
here.
"""

import structlog
from pydantic import ValidationError as PydanticValidationError

from launchpad.core.exceptions import ExternalServiceError
from launchpad.services.base import BaseAPIClient
from launchpad.services.jupiter.models import JupiterQuote

log = structlog.get_logger(__name__)


class JupiterClient(BaseAPIClient):
    """Jupiter quote API client.

    Inherits retry and circuit breaker behaviour from BaseAPIClient.

    Example:
        client = JupiterClient(base_url="https://quote-api.jup.ag/v6")
        try:
            quote = await client.get_quote(SOL_MINT, USDC_MINT, 1_000_000_000)
        finally:
            await client.close()
    """

    DEFAULT_BASE_URL = "https://quote-api.jup.ag/v6"
    DEFAULT_TIMEOUT = 10.0
    DEFAULT_SLIPPAGE_BPS = 50

    def __init__(
        self,
        base_url: str = DEFAULT_BASE_URL,
        timeout: float = DEFAULT_TIMEOUT,
        circuit_breaker_threshold: int = 5,
        circuit_breaker_cooldown: int = 30,
    ) -> None:
        super().__init__(
            base_url=base_url,
            timeout=timeout,
            circuit_breaker_threshold=circuit_breaker_threshold,
            circuit_breaker_cooldown=circuit_breaker_cooldown,
        )

    async def get_quote(
        self,
        input_mint: str,
        output_mint: str,
        amount: int,
        slippage_bps: int = DEFAULT_SLIPPAGE_BPS,
    ) -> JupiterQuote:
        """Request a swap quote.

        Args:
            input_mint: Mint to sell.
            output_mint: Mint to buy.
            amount: Input amount in the smallest unit of input_mint.
            slippage_bps: Allowed slippage in basis points.

        Returns:
            Parsed JupiterQuote.

        Raises:
            ExternalServiceError: If the request fails or the response has no outAmount.
        """
        params = {
            "inputMint": input_mint,
            "outputMint": output_mint,
            "amount": str(amount),
            "slippageBps": str(slippage_bps),
            "onlyDirectRoutes": "false",
            "asLegacyTransaction": "false",
        }
        response = await self.get("/quote", params=params)

        try:
            data = response.json()
            quote = JupiterQuote.model_validate(data)
        except (ValueError, PydanticValidationError) as e:
            log.warning("jupiter_quote_invalid_response", error=str(e))
            raise ExternalServiceError(
                service="jupiter",
                message="Invalid response format - missing outAmount",
            ) from e

        log.debug(
            "jupiter_quote_fetched",
            input_mint=input_mint[:8],
            output_mint=output_mint[:8],
            out_amount=quote.out_amount,
        )
        return quote
