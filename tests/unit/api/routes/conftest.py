"""Fixtures shared by route tests."""

from unittest.mock import AsyncMock, MagicMock

import pytest


@pytest.fixture
def container(mock_token_repo: MagicMock) -> MagicMock:
    """ServiceContainer stand-in handed to routes via dependency override."""
    mock = MagicMock()
    mock.settings.market_cap_staleness_minutes = 15.0
    mock.settings.app_version = "1.0.0"
    mock.repository = mock_token_repo

    mock.market_cap_scheduler.start = AsyncMock()
    mock.market_cap_scheduler.trigger_update = AsyncMock()
    mock.market_cap_scheduler.get_update_interval = MagicMock(return_value=None)
    mock.market_cap_scheduler.get_status = MagicMock(
        return_value={
            "is_running": False,
            "interval_minutes": None,
            "cycle_in_flight": False,
            "next_run": None,
            "last_job": None,
        }
    )

    mock.oracle.get_price = AsyncMock()
    mock.oracle.get_status = MagicMock(return_value={"sol_price": 150.0})

    mock.stream.get_status = MagicMock(return_value={"state": "connected"})
    return mock
