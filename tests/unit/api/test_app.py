"""Tests for the FastAPI application factory."""

from unittest.mock import AsyncMock, MagicMock

from fastapi.testclient import TestClient

from launchpad.api.app import create_app


def test_routes_are_registered() -> None:
    app = create_app()
    paths = set(app.openapi()["paths"])

    assert {
        "/health",
        "/api/scheduler/start",
        "/api/scheduler/stop",
        "/api/scheduler/status",
        "/api/scheduler/trigger-update",
        "/api/tokens/needing-update",
        "/api/token/{mint}/market-cap",
        "/api/market-cap/stats",
        "/api/sol-price",
        "/api/created-tokens",
    } <= paths


def test_lifespan_starts_and_stops_container(mocker) -> None:
    """
    Given: The application factory
    When: The app starts and stops
    Then: The service container is started, stored on app.state and shut down
    """
    container = MagicMock(start=AsyncMock(), shutdown=AsyncMock())
    mocker.patch(
        "launchpad.api.app.ServiceContainer.from_settings", return_value=container
    )
    mocker.patch("launchpad.api.app.configure_logging")

    app = create_app()
    with TestClient(app):
        assert app.state.container is container
        container.start.assert_awaited_once()

    container.shutdown.assert_awaited_once()
    assert app.state.container is None
