"""Tests for JupiterClient quote requests."""

from unittest.mock import AsyncMock

import httpx
import pytest

from launchpad.core.exceptions import ExternalServiceError
from launchpad.services.jupiter.client import JupiterClient
from launchpad.services.jupiter.models import SOL_MINT, USDC_MINT
from launchpad.services.pricing.price_oracle import SolPriceOracle

QUOTE_BODY = {
    "inputMint": SOL_MINT,
    "outputMint": USDC_MINT,
    "inAmount": "1000000000",
    "outAmount": "150250000",
    "slippageBps": 50,
    "priceImpactPct": "0",
}


def _response(json: object) -> httpx.Response:
    return httpx.Response(
        200, json=json, request=httpx.Request("GET", "https://quote-api.jup.ag/v6/quote")
    )


@pytest.fixture
def client() -> JupiterClient:
    jupiter = JupiterClient()
    jupiter.get = AsyncMock(return_value=_response(QUOTE_BODY))  # type: ignore[method-assign]
    return jupiter


class TestJupiterClient:
    def test_defaults(self) -> None:
        jupiter = JupiterClient()

        assert jupiter.base_url == "https://quote-api.jup.ag/v6"
        assert jupiter.timeout == 10.0

    async def test_get_quote_parses_amounts(self, client: JupiterClient) -> None:
        """
        Given: Jupiter returns amounts as integer strings
        When: get_quote() is called
        Then: Amounts are parsed to int
        """
        quote = await client.get_quote(SOL_MINT, USDC_MINT, 1_000_000_000)

        assert quote.in_amount == 1_000_000_000
        assert quote.out_amount == 150_250_000
        assert quote.input_mint == SOL_MINT

    async def test_get_quote_sends_expected_params(self, client: JupiterClient) -> None:
        await client.get_quote(SOL_MINT, USDC_MINT, 1_000_000_000)

        client.get.assert_awaited_once()  # type: ignore[attr-defined]
        path = client.get.call_args.args[0]  # type: ignore[attr-defined]
        params = client.get.call_args.kwargs["params"]  # type: ignore[attr-defined]
        assert path == "/quote"
        assert params["inputMint"] == SOL_MINT
        assert params["outputMint"] == USDC_MINT
        assert params["amount"] == "1000000000"
        assert params["slippageBps"] == "50"

    async def test_out_amount_only_body_is_accepted(self, client: JupiterClient) -> None:
        """
        Given: A quote body carrying only outAmount
        When: get_quote() is called
        Then: The quote parses and the echoed request fields are None
        """
        client.get = AsyncMock(  # type: ignore[method-assign]
            return_value=_response({"outAmount": "150000000"})
        )

        quote = await client.get_quote(SOL_MINT, USDC_MINT, 1_000_000_000)

        assert quote.out_amount == 150_000_000
        assert quote.input_mint is None
        assert quote.in_amount is None

    async def test_out_amount_only_body_prices_sol(self, client: JupiterClient) -> None:
        client.get = AsyncMock(  # type: ignore[method-assign]
            return_value=_response({"outAmount": "150000000"})
        )
        oracle = SolPriceOracle(client)

        price = await oracle.get_price()

        assert price.price_usd == pytest.approx(150.0)
        assert oracle.convert(50) == pytest.approx(7500.0)

    async def test_missing_out_amount_raises(self, client: JupiterClient) -> None:
        body = {k: v for k, v in QUOTE_BODY.items() if k != "outAmount"}
        client.get = AsyncMock(return_value=_response(body))  # type: ignore[method-assign]

        with pytest.raises(ExternalServiceError, match="missing outAmount"):
            await client.get_quote(SOL_MINT, USDC_MINT, 1_000_000_000)

    async def test_upstream_error_propagates(self, client: JupiterClient) -> None:
        client.get = AsyncMock(  # type: ignore[method-assign]
            side_effect=ExternalServiceError("jupiter", "Max retries (3) exceeded")
        )

        with pytest.raises(ExternalServiceError):
            await client.get_quote(SOL_MINT, USDC_MINT, 1_000_000_000)
