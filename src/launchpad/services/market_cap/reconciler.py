"""Per-token market cap reconciliation.

Decides where a token's valuation comes from and whether it is worth
writing back:

    live                    cached trade, market_cap_sol > 0   -> always written
    derived-from-persisted  stored USD market cap > 0          -> never rewritten
    none                    no signal at all                   -> zero written once

Persisted values are converted to SOL and back so every result carries
both denominations, but writing them again would only bump the timestamp.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import TYPE_CHECKING

import structlog

from launchpad.core.exceptions import LaunchpadError

if TYPE_CHECKING:
    from launchpad.data.models.token import CreatedToken
    from launchpad.data.supabase.repositories.token_repo import CreatedTokenRepository
    from launchpad.services.market_cap.cache import ValuationCache
    from launchpad.services.pricing.price_oracle import SolPriceOracle

logger = structlog.get_logger(__name__)


class MarketCapSource(str, Enum):
    """Where a reconciled valuation came from."""

    LIVE = "live"
    PERSISTED = "derived-from-persisted"
    NONE = "none"


@dataclass
class ReconcileResult:
    """Outcome of reconciling one token."""

    updated: bool
    source: MarketCapSource
    market_cap_usd: float | None = None
    market_cap_sol: float | None = None
    updated_at: datetime | None = None
    error: str | None = None


class ReconciliationEngine:
    """Chooses a valuation source per token and writes back when it matters."""

    def __init__(
        self,
        cache: ValuationCache,
        oracle: SolPriceOracle,
        repository: CreatedTokenRepository,
    ) -> None:
        self._cache = cache
        self._oracle = oracle
        self._repository = repository
        # Mints this process already wrote an explicit zero for
        self._zero_committed: set[str] = set()

    async def reconcile(self, token: CreatedToken) -> ReconcileResult:
        """Reconcile one token.

        Oracle and store failures do not raise: they come back as
        `updated=False` with `error` set, and the token waits for the next
        cycle.
        """
        log = logger.bind(mint=token.mint_address[:8])
        persisted = token.market_cap

        entry = self._cache.get(token.mint_address)
        if entry is not None and entry.market_cap_sol > 0:
            source = MarketCapSource.LIVE
        elif persisted is not None and persisted > 0:
            source = MarketCapSource.PERSISTED
        else:
            source = MarketCapSource.NONE

        try:
            if source is MarketCapSource.LIVE:
                market_cap_sol = entry.market_cap_sol  # type: ignore[union-attr]
                await self._oracle.get_price()
                market_cap_usd = self._oracle.convert(market_cap_sol)
            elif source is MarketCapSource.PERSISTED:
                await self._oracle.get_price()
                market_cap_sol = self._oracle.convert_usd_to_sol(persisted)  # type: ignore[arg-type]
                market_cap_usd = self._oracle.convert(market_cap_sol)
            else:
                # Zero needs no price
                market_cap_sol = 0.0
                market_cap_usd = 0.0
        except LaunchpadError as e:
            log.warning("market_cap_conversion_failed", source=source.value, error=str(e))
            return ReconcileResult(updated=False, source=source, error=str(e))

        if not self._should_write(token, source):
            log.debug(
                "market_cap_unchanged",
                source=source.value,
                market_cap_usd=round(market_cap_usd, 2),
            )
            return ReconcileResult(
                updated=False,
                source=source,
                market_cap_usd=market_cap_usd,
                market_cap_sol=market_cap_sol,
            )

        try:
            updated_at = await self._repository.update_market_cap(token.id, market_cap_usd)
        except LaunchpadError as e:
            log.warning("market_cap_write_failed", source=source.value, error=str(e))
            return ReconcileResult(
                updated=False,
                source=source,
                market_cap_usd=market_cap_usd,
                market_cap_sol=market_cap_sol,
                error=str(e),
            )

        if source is MarketCapSource.NONE:
            self._zero_committed.add(token.mint_address)

        log.info(
            "market_cap_updated",
            source=source.value,
            market_cap_sol=market_cap_sol,
            market_cap_usd=round(market_cap_usd, 2),
        )
        return ReconcileResult(
            updated=True,
            source=source,
            market_cap_usd=market_cap_usd,
            market_cap_sol=market_cap_sol,
            updated_at=updated_at,
        )

    def _should_write(self, token: CreatedToken, source: MarketCapSource) -> bool:
        if source is MarketCapSource.LIVE:
            return True
        if source is MarketCapSource.NONE:
            return (
                token.last_market_cap_update is None
                and token.mint_address not in self._zero_committed
            )
        return False
