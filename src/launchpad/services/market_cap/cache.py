"""In-memory cache of the latest live valuation per token."""

import threading
from dataclasses import dataclass
from datetime import datetime

import structlog

from launchpad.services.pumpportal.models import TradeEvent

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class ValuationCacheEntry:
    """Latest trade-derived valuation of one token."""

    mint: str
    market_cap_sol: float
    tx_type: str | None
    sol_amount: float | None
    token_amount: float | None
    observed_at: datetime

    @classmethod
    def from_trade(cls, event: TradeEvent) -> "ValuationCacheEntry":
        return cls(
            mint=event.mint,
            market_cap_sol=event.market_cap_sol,
            tx_type=event.tx_type,
            sol_amount=event.sol_amount,
            token_amount=event.token_amount,
            observed_at=event.observed_at,
        )


class ValuationCache:
    """Mint -> latest ValuationCacheEntry.

    Last write wins regardless of observed_at; the feed delivers trades for
    one connection in order. Entries live for the whole process and there is
    no TTL: readers decide what counts as fresh.
    """

    def __init__(self) -> None:
        self._entries: dict[str, ValuationCacheEntry] = {}
        self._lock = threading.Lock()

    def upsert(self, entry: ValuationCacheEntry) -> None:
        with self._lock:
            self._entries[entry.mint] = entry
        logger.debug(
            "valuation_cached",
            mint=entry.mint[:8],
            market_cap_sol=entry.market_cap_sol,
            tx_type=entry.tx_type,
        )

    def get(self, mint: str) -> ValuationCacheEntry | None:
        return self._entries.get(mint)

    def snapshot(self) -> dict[str, ValuationCacheEntry]:
        """Copy of all entries, for status reporting."""
        with self._lock:
            return dict(self._entries)

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, mint: object) -> bool:
        return mint in self._entries
