"""Unit tests for CreatedTokenRepository.

Tests cover:
- Stale-token query (filters, ordering, cutoff)
- Lookup by mint
- Market cap write-back and manual overrides
- Market cap statistics
- Error handling for database operations
"""

from datetime import UTC, datetime, timedelta
from unittest.mock import AsyncMock, MagicMock

import pytest

from launchpad.core.exceptions import DatabaseOperationError
from launchpad.data.supabase.repositories.token_repo import CreatedTokenRepository

MINT = "7GCihgDB8fe6KNjn2MYtkzZcRjQy3t9GHdC8uHYmW2hr"
NOW = datetime(2025, 1, 1, 12, 0, tzinfo=UTC)


def _row(**overrides):
    row = {
        "id": "4f0c5f0e-0000-0000-0000-000000000001",
        "mint_address": MINT,
        "token_name": "Example",
        "token_symbol": "EXM",
        "market_cap": None,
        "last_market_cap_update": None,
        "is_test": False,
    }
    row.update(overrides)
    return row


@pytest.fixture
def table(mock_supabase_client: MagicMock) -> MagicMock:
    return mock_supabase_client.client.table.return_value


@pytest.fixture
def repo(mock_supabase_client: MagicMock) -> CreatedTokenRepository:
    return CreatedTokenRepository(mock_supabase_client)


class TestGetTokensNeedingUpdate:
    async def test_builds_stale_query(self, repo, table, mock_supabase_client) -> None:
        """Should select never-updated or stale non-test tokens, nulls first."""
        chain = table.select.return_value.or_.return_value.eq.return_value.order.return_value
        chain.execute = AsyncMock(return_value=MagicMock(data=[_row()]))

        tokens = await repo.get_tokens_needing_update(timedelta(minutes=15), now=NOW)

        assert len(tokens) == 1
        assert tokens[0].mint_address == MINT
        mock_supabase_client.client.table.assert_called_with("created_tokens")
        table.select.return_value.or_.assert_called_once_with(
            "last_market_cap_update.is.null,"
            "last_market_cap_update.lt.2025-01-01T11:45:00Z"
        )
        table.select.return_value.or_.return_value.eq.assert_called_once_with("is_test", False)
        table.select.return_value.or_.return_value.eq.return_value.order.assert_called_once_with(
            "last_market_cap_update", desc=False, nullsfirst=True
        )

    async def test_empty_result(self, repo, table) -> None:
        chain = table.select.return_value.or_.return_value.eq.return_value.order.return_value
        chain.execute = AsyncMock(return_value=MagicMock(data=[]))

        assert await repo.get_tokens_needing_update(timedelta(minutes=15)) == []

    async def test_query_error_raises(self, repo, table) -> None:
        chain = table.select.return_value.or_.return_value.eq.return_value.order.return_value
        chain.execute = AsyncMock(side_effect=Exception("connection reset"))

        with pytest.raises(DatabaseOperationError) as exc_info:
            await repo.get_tokens_needing_update(timedelta(minutes=15))

        assert exc_info.value.table == "created_tokens"


class TestGetByMint:
    async def test_found(self, repo, table) -> None:
        table.select.return_value.eq.return_value.limit.return_value.execute = AsyncMock(
            return_value=MagicMock(
                data=[_row(market_cap=7500.0, last_market_cap_update="2025-01-01T11:00:00Z")]
            )
        )

        token = await repo.get_by_mint(MINT)

        assert token is not None
        assert token.market_cap == 7500.0
        assert token.last_market_cap_update == datetime(2025, 1, 1, 11, 0, tzinfo=UTC)
        table.select.return_value.eq.assert_called_once_with("mint_address", MINT)

    async def test_not_found(self, repo, table) -> None:
        table.select.return_value.eq.return_value.limit.return_value.execute = AsyncMock(
            return_value=MagicMock(data=[])
        )

        assert await repo.get_by_mint(MINT) is None


class TestUpdateMarketCap:
    async def test_writes_value_and_timestamp(self, repo, table) -> None:
        table.update.return_value.eq.return_value.execute = AsyncMock(
            return_value=MagicMock(data=[_row()])
        )

        written_at = await repo.update_market_cap("token-1", 7500.0, updated_at=NOW)

        assert written_at == NOW
        table.update.assert_called_once_with(
            {"market_cap": 7500.0, "last_market_cap_update": NOW.isoformat()}
        )
        table.update.return_value.eq.assert_called_once_with("id", "token-1")

    async def test_error_raises(self, repo, table) -> None:
        table.update.return_value.eq.return_value.execute = AsyncMock(
            side_effect=Exception("timeout")
        )

        with pytest.raises(DatabaseOperationError):
            await repo.update_market_cap("token-1", 0.0)


class TestUpdateMarketData:
    async def test_only_given_fields_are_written(self, repo, table) -> None:
        table.update.return_value.eq.return_value.execute = AsyncMock(
            return_value=MagicMock(data=[_row(price=0.0001)])
        )

        token = await repo.update_market_data(MINT, price=0.0001)

        assert token is not None
        table.update.assert_called_once_with({"price": 0.0001})
        table.update.return_value.eq.assert_called_once_with("mint_address", MINT)

    async def test_market_cap_stamps_timestamp(self, repo, table) -> None:
        table.update.return_value.eq.return_value.execute = AsyncMock(
            return_value=MagicMock(data=[_row(market_cap=500.0)])
        )

        await repo.update_market_data(MINT, market_cap=500.0, volume_24h=12.0)

        update = table.update.call_args.args[0]
        assert update["market_cap"] == 500.0
        assert update["volume_24h"] == 12.0
        assert "last_market_cap_update" in update

    async def test_unknown_mint_returns_none(self, repo, table) -> None:
        table.update.return_value.eq.return_value.execute = AsyncMock(
            return_value=MagicMock(data=[])
        )

        assert await repo.update_market_data(MINT, market_cap=1.0) is None

    async def test_no_fields_raises(self, repo, table) -> None:
        with pytest.raises(ValueError):
            await repo.update_market_data(MINT)

        table.update.assert_not_called()


class TestMarketCapStats:
    async def test_aggregates(self, repo, table) -> None:
        chain = table.select.return_value.eq.return_value.not_.is_.return_value
        chain.execute = AsyncMock(
            return_value=MagicMock(
                data=[
                    {"market_cap": 1000.0, "last_market_cap_update": "2025-01-01T10:00:00Z"},
                    {"market_cap": 3000.0, "last_market_cap_update": "2025-01-01T11:00:00Z"},
                    {"market_cap": 2000.0, "last_market_cap_update": None},
                ]
            )
        )

        stats = await repo.get_market_cap_stats()

        assert stats.total_market_cap == 6000.0
        assert stats.tokens_with_market_cap == 3
        assert stats.average_market_cap == 2000.0
        assert stats.last_update == datetime(2025, 1, 1, 11, 0, tzinfo=UTC)

    async def test_empty(self, repo, table) -> None:
        chain = table.select.return_value.eq.return_value.not_.is_.return_value
        chain.execute = AsyncMock(return_value=MagicMock(data=[]))

        stats = await repo.get_market_cap_stats()

        assert stats.tokens_with_market_cap == 0
        assert stats.average_market_cap == 0.0
        assert stats.last_update is None


class TestListAll:
    async def test_newest_first(self, repo, table) -> None:
        chain = table.select.return_value.order.return_value.limit.return_value
        chain.execute = AsyncMock(return_value=MagicMock(data=[_row(), _row(id=2)]))

        tokens = await repo.list_all()

        assert len(tokens) == 2
        table.select.return_value.order.assert_called_once_with("created_at", desc=True)
