"""SOL/USD price oracle backed by Jupiter quotes.

The price of 1 SOL is derived from a Jupiter quote for swapping 1 SOL into
USDC. Prices are cached for a short TTL; a failed refresh falls back to the
last known price so conversion keeps working through short Jupiter outages.
"""

from __future__ import annotations

import asyncio
import time
from collections.abc import Callable
from dataclasses import dataclass
from datetime import UTC, datetime
from typing import TYPE_CHECKING, Any

import structlog
from cachetools import TTLCache

from launchpad.core.exceptions import (
    ExternalServiceError,
    LaunchpadError,
    PriceUnavailableError,
)
from launchpad.services.jupiter.models import (
    LAMPORTS_PER_SOL,
    SOL_MINT,
    USDC_DECIMALS,
    USDC_MINT,
)

if TYPE_CHECKING:
    from launchpad.services.jupiter.client import JupiterClient

logger = structlog.get_logger(__name__)

DEFAULT_TTL_SECONDS = 300


@dataclass(frozen=True)
class SolPrice:
    """Unit price of SOL in USD at a point in time."""

    price_usd: float
    observed_at: datetime

    @property
    def age_seconds(self) -> float:
        return (datetime.now(UTC) - self.observed_at).total_seconds()


class SolPriceOracle:
    """SOL price with TTL cache, stale fallback and a shared in-flight refresh.

    Only one quote request is ever in flight. While it runs, callers that
    already have a (possibly stale) price get that price back immediately;
    callers with nothing cached wait on the same request.

    Example:
        oracle = SolPriceOracle(JupiterClient())
        price = await oracle.get_price()
        usd = oracle.convert(42.0)
    """

    CACHE_KEY = "SOL"
    # Quote notional in SOL
    NOTIONAL_SOL = 1

    def __init__(
        self,
        client: JupiterClient,
        ttl_seconds: int = DEFAULT_TTL_SECONDS,
        timer: Callable[[], float] = time.monotonic,
    ) -> None:
        """
        Initialize SolPriceOracle.

        Args:
            client: Jupiter client used for quote requests
            ttl_seconds: How long a fetched price counts as fresh
            timer: Clock used by the TTL cache (monotonic seconds)
        """
        self._client = client
        self.ttl_seconds = ttl_seconds
        self._fresh: TTLCache[str, SolPrice] = TTLCache(
            maxsize=1, ttl=ttl_seconds, timer=timer
        )
        self._last_price: SolPrice | None = None
        self._refresh_task: asyncio.Task[SolPrice] | None = None
        self._auto_updating = False

    @property
    def is_updating(self) -> bool:
        return self._refresh_task is not None and not self._refresh_task.done()

    @property
    def is_auto_updating(self) -> bool:
        return self._auto_updating

    def set_auto_updating(self, enabled: bool) -> None:
        self._auto_updating = enabled

    async def get_price(self, force_refresh: bool = False) -> SolPrice:
        """
        Get the current SOL price.

        Args:
            force_refresh: Skip the cache and request a new quote

        Returns:
            SolPrice, possibly stale if the refresh failed

        Raises:
            PriceUnavailableError: If no price was ever obtained and the quote failed
        """
        if not force_refresh:
            cached = self._fresh.get(self.CACHE_KEY)
            if cached is not None:
                return cached

        return await self.refresh()

    async def refresh(self) -> SolPrice:
        """Request a new quote unless one is already in flight."""
        if self._refresh_task is not None and not self._refresh_task.done():
            if self._last_price is not None:
                logger.debug("sol_price_update_in_progress")
                return self._last_price
            return await asyncio.shield(self._refresh_task)

        # Task is created before the first await so concurrent callers see it
        self._refresh_task = asyncio.create_task(self._update())
        return await asyncio.shield(self._refresh_task)

    async def _update(self) -> SolPrice:
        try:
            price_usd = await self._fetch_price_usd()
        except LaunchpadError as e:
            if self._last_price is not None:
                logger.warning(
                    "sol_price_refresh_failed_using_stale",
                    stale_price=round(self._last_price.price_usd, 2),
                    stale_age_seconds=round(self._last_price.age_seconds, 1),
                    error=str(e),
                )
                return self._last_price
            logger.error("sol_price_unavailable", error=str(e))
            raise PriceUnavailableError(f"SOL price not available: {e}") from e

        price = SolPrice(price_usd=price_usd, observed_at=datetime.now(UTC))
        self._last_price = price
        self._fresh[self.CACHE_KEY] = price
        logger.info("sol_price_updated", price_usd=round(price_usd, 2))
        return price

    async def _fetch_price_usd(self) -> float:
        quote = await self._client.get_quote(
            input_mint=SOL_MINT,
            output_mint=USDC_MINT,
            amount=self.NOTIONAL_SOL * LAMPORTS_PER_SOL,
        )
        price_usd = quote.out_amount / 10**USDC_DECIMALS / self.NOTIONAL_SOL
        if price_usd <= 0:
            raise ExternalServiceError(
                service="jupiter",
                message=f"Non-positive SOL quote: outAmount={quote.out_amount}",
            )
        return price_usd

    def convert(self, amount_sol: float) -> float:
        """Convert a SOL amount to USD at the last known price.

        Raises:
            PriceUnavailableError: If no price has ever been fetched
        """
        if self._last_price is None:
            raise PriceUnavailableError("SOL price not available")
        return amount_sol * self._last_price.price_usd

    def convert_usd_to_sol(self, amount_usd: float) -> float:
        """Convert a USD amount to SOL at the last known price.

        Raises:
            PriceUnavailableError: If no price has ever been fetched
        """
        if self._last_price is None:
            raise PriceUnavailableError("SOL price not available")
        return amount_usd / self._last_price.price_usd

    def get_status(self) -> dict[str, Any]:
        last = self._last_price
        return {
            "sol_price": last.price_usd if last else None,
            "last_update": last.observed_at.isoformat() if last else None,
            "is_fresh": self.CACHE_KEY in self._fresh,
            "is_updating": self.is_updating,
            "is_auto_updating": self._auto_updating,
            "ttl_seconds": self.ttl_seconds,
        }
