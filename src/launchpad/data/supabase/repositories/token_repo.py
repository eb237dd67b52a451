"""Created-token repository for Supabase.

Table schema expected:
    created_tokens (
        id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
        mint_address TEXT UNIQUE NOT NULL,
        token_name TEXT,
        token_symbol TEXT,
        market_cap NUMERIC,
        last_market_cap_update TIMESTAMPTZ,
        price NUMERIC,
        volume_24h NUMERIC,
        is_test BOOLEAN DEFAULT FALSE,
        created_at TIMESTAMPTZ DEFAULT NOW()
    )
"""

from datetime import UTC, datetime, timedelta
from typing import Any

import structlog

from launchpad.core.exceptions import DatabaseOperationError
from launchpad.data.models.token import CreatedToken, MarketCapStats
from launchpad.data.supabase.client import SupabaseClient

log = structlog.get_logger(__name__)

_PIPELINE_COLUMNS = (
    "id, mint_address, token_name, token_symbol, market_cap, "
    "last_market_cap_update, is_test"
)


def _to_postgrest_timestamp(value: datetime) -> str:
    return value.astimezone(UTC).isoformat().replace("+00:00", "Z")


def _parse_timestamp(value: Any) -> datetime | None:
    if value is None or isinstance(value, datetime):
        return value
    return datetime.fromisoformat(str(value).replace("Z", "+00:00"))


class CreatedTokenRepository:
    """Repository for the created_tokens table.

    Reads are scoped to what the market cap pipeline and the token
    endpoints need; writes touch only market data columns.

    Example:
        repo = CreatedTokenRepository(supabase)
        stale = await repo.get_tokens_needing_update(timedelta(minutes=15))
        await repo.update_market_cap(stale[0].id, 7500.0)
    """

    TABLE_NAME = "created_tokens"

    def __init__(self, client: SupabaseClient) -> None:
        self._client = client

    def _table(self) -> Any:
        return self._client.client.table(self.TABLE_NAME)

    async def get_tokens_needing_update(
        self,
        staleness: timedelta,
        now: datetime | None = None,
    ) -> list[CreatedToken]:
        """Non-test tokens never updated or last updated before now - staleness.

        Ordered oldest update first, never-updated tokens leading.

        Raises:
            DatabaseOperationError: If the query fails.
        """
        cutoff = _to_postgrest_timestamp((now or datetime.now(UTC)) - staleness)

        try:
            result = await (
                self._table()
                .select(_PIPELINE_COLUMNS)
                .or_(f"last_market_cap_update.is.null,last_market_cap_update.lt.{cutoff}")
                .eq("is_test", False)
                .order("last_market_cap_update", desc=False, nullsfirst=True)
                .execute()
            )
        except Exception as e:
            log.error("tokens_needing_update_query_failed", cutoff=cutoff, error=str(e))
            raise DatabaseOperationError(self.TABLE_NAME, str(e)) from e

        tokens = [CreatedToken.model_validate(row) for row in result.data or []]
        log.debug("tokens_needing_update_fetched", cutoff=cutoff, count=len(tokens))
        return tokens

    async def get_by_mint(self, mint: str) -> CreatedToken | None:
        """Token by mint address, or None if unknown.

        Raises:
            DatabaseOperationError: If the query fails.
        """
        try:
            result = await (
                self._table().select("*").eq("mint_address", mint).limit(1).execute()
            )
        except Exception as e:
            log.warning("token_get_by_mint_failed", mint=mint[:8], error=str(e))
            raise DatabaseOperationError(self.TABLE_NAME, str(e)) from e

        if not result.data:
            return None
        return CreatedToken.model_validate(result.data[0])

    async def update_market_cap(
        self,
        token_id: str | int,
        market_cap_usd: float,
        updated_at: datetime | None = None,
    ) -> datetime:
        """Write market_cap together with its update timestamp.

        Returns:
            The timestamp written to last_market_cap_update.

        Raises:
            DatabaseOperationError: If the update fails.
        """
        updated_at = updated_at or datetime.now(UTC)

        try:
            await (
                self._table()
                .update(
                    {
                        "market_cap": market_cap_usd,
                        "last_market_cap_update": updated_at.isoformat(),
                    }
                )
                .eq("id", token_id)
                .execute()
            )
        except Exception as e:
            log.error("market_cap_update_failed", token_id=str(token_id), error=str(e))
            raise DatabaseOperationError(self.TABLE_NAME, str(e)) from e

        return updated_at

    async def update_market_data(
        self,
        mint: str,
        market_cap: float | None = None,
        price: float | None = None,
        volume_24h: float | None = None,
    ) -> CreatedToken | None:
        """Manual override of market data for one token.

        Only the provided fields are written. Writing market_cap also stamps
        last_market_cap_update.

        Returns:
            The updated token, or None if no token has this mint.

        Raises:
            ValueError: If no field is provided.
            DatabaseOperationError: If the update fails.
        """
        update_data: dict[str, Any] = {}
        if market_cap is not None:
            update_data["market_cap"] = market_cap
            update_data["last_market_cap_update"] = datetime.now(UTC).isoformat()
        if price is not None:
            update_data["price"] = price
        if volume_24h is not None:
            update_data["volume_24h"] = volume_24h

        if not update_data:
            raise ValueError("At least one of market_cap, price, volume_24h is required")

        try:
            result = await (
                self._table().update(update_data).eq("mint_address", mint).execute()
            )
        except Exception as e:
            log.error("market_data_override_failed", mint=mint[:8], error=str(e))
            raise DatabaseOperationError(self.TABLE_NAME, str(e)) from e

        if not result.data:
            return None

        log.info("market_data_overridden", mint=mint[:8], fields=sorted(update_data))
        return CreatedToken.model_validate(result.data[0])

    async def get_market_cap_stats(self) -> MarketCapStats:
        """Totals over non-test tokens that have a market cap.

        Raises:
            DatabaseOperationError: If the query fails.
        """
        try:
            result = await (
                self._table()
                .select("market_cap, last_market_cap_update")
                .eq("is_test", False)
                .not_.is_("market_cap", "null")
                .execute()
            )
        except Exception as e:
            log.error("market_cap_stats_failed", error=str(e))
            raise DatabaseOperationError(self.TABLE_NAME, str(e)) from e

        rows = result.data or []
        total = sum(float(row.get("market_cap") or 0) for row in rows)
        timestamps = [
            ts
            for ts in (_parse_timestamp(row.get("last_market_cap_update")) for row in rows)
            if ts is not None
        ]

        return MarketCapStats(
            total_market_cap=total,
            tokens_with_market_cap=len(rows),
            average_market_cap=total / len(rows) if rows else 0.0,
            last_update=max(timestamps) if timestamps else None,
        )

    async def list_all(self, limit: int = 1000) -> list[CreatedToken]:
        """All created tokens, newest first.

        Raises:
            DatabaseOperationError: If the query fails.
        """
        try:
            result = await (
                self._table()
                .select("*")
                .order("created_at", desc=True)
                .limit(limit)
                .execute()
            )
        except Exception as e:
            log.warning("created_tokens_list_failed", error=str(e))
            raise DatabaseOperationError(self.TABLE_NAME, str(e)) from e

        return [CreatedToken.model_validate(row) for row in result.data or []]
