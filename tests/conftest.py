"""Shared pytest fixtures for Launchpad tests.

This module provides fixtures for:
- Environment defaults so Settings can be built without a .env file
- Mocked Supabase client and fake collaborators for the market cap pipeline
- Created-token factories

Usage:
    @pytest.mark.unit
    def test_something(token_factory):
        token = token_factory(market_cap=1000.0)
        assert token.market_cap == 1000.0
"""

import os
from collections.abc import Callable, Generator
from datetime import UTC, datetime
from typing import Any
from unittest.mock import AsyncMock, MagicMock

import pytest

# =============================================================================
# Environment Configuration
# =============================================================================


@pytest.fixture(scope="session", autouse=True)
def setup_test_environment() -> Generator[None, None, None]:
    """Set up test environment variables.

    Loads .env file first, then sets defaults for any missing variables.
    """
    from dotenv import load_dotenv

    original_env = os.environ.copy()

    # Load .env file if it exists (won't override existing env vars)
    load_dotenv()

    os.environ.setdefault("SUPABASE_URL", "http://localhost:54321")
    os.environ.setdefault("SUPABASE_KEY", "test-key")

    yield

    # Restore original environment
    os.environ.clear()
    os.environ.update(original_env)


@pytest.fixture(autouse=True)
def clear_settings_cache() -> Generator[None, None, None]:
    """Drop cached Settings so env changes in one test don't leak."""
    from launchpad.config.settings import get_settings

    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


# =============================================================================
# Factory Fixtures
# =============================================================================


@pytest.fixture
def token_factory() -> Callable[..., Any]:
    """Build CreatedToken rows with sensible defaults."""
    from launchpad.data.models.token import CreatedToken

    counter = {"n": 0}

    def _make(**overrides: Any) -> CreatedToken:
        counter["n"] += 1
        data: dict[str, Any] = {
            "id": f"token-{counter['n']}",
            "mint_address": f"Mint{counter['n']:04d}pump1111111111111111111111111111",
            "token_name": f"Token {counter['n']}",
            "token_symbol": f"TK{counter['n']}",
            "market_cap": None,
            "last_market_cap_update": None,
            "is_test": False,
            "created_at": datetime(2025, 1, 1, tzinfo=UTC),
        }
        data.update(overrides)
        return CreatedToken(**data)

    return _make


# =============================================================================
# Database Fixtures (Mocked for Unit Tests)
# =============================================================================


@pytest.fixture
def mock_supabase_client() -> MagicMock:
    """Mock SupabaseClient wrapper.

    Query builders are plain MagicMocks; set
    `...execute = AsyncMock(return_value=MagicMock(data=[...]))` on the
    chain under test.
    """
    client = MagicMock()
    client.client = MagicMock()
    client.health_check = AsyncMock(return_value={"status": "connected", "healthy": True})
    return client


@pytest.fixture
def mock_token_repo() -> MagicMock:
    """Mock CreatedTokenRepository with empty results."""
    repo = MagicMock()
    repo.get_tokens_needing_update = AsyncMock(return_value=[])
    repo.get_by_mint = AsyncMock(return_value=None)
    repo.update_market_cap = AsyncMock(return_value=datetime(2025, 1, 1, 12, tzinfo=UTC))
    repo.update_market_data = AsyncMock(return_value=None)
    repo.get_market_cap_stats = AsyncMock()
    repo.list_all = AsyncMock(return_value=[])
    return repo
