"""Tests for BaseAPIClient and CircuitBreaker."""

from datetime import UTC, datetime, timedelta
from unittest.mock import AsyncMock

import httpx
import pytest
from tenacity import wait_none

from launchpad.core.exceptions import CircuitBreakerOpenError, ExternalServiceError
from launchpad.services.base import BaseAPIClient, CircuitBreaker, CircuitState

BASE_URL = "https://api.example.com"


def _response(status_code: int, json: object | None = None) -> httpx.Response:
    return httpx.Response(
        status_code,
        json=json if json is not None else {},
        request=httpx.Request("GET", f"{BASE_URL}/quote"),
    )


@pytest.fixture
def client() -> BaseAPIClient:
    api = BaseAPIClient(base_url=BASE_URL, circuit_breaker_threshold=3)
    api._retry_wait = wait_none()
    api._client = AsyncMock()
    return api


class TestBaseAPIClientInit:
    """Tests for BaseAPIClient initialization."""

    def test_defaults(self) -> None:
        """
        Given: BaseAPIClient without explicit options
        When: Created
        Then: Uses 30s timeout, no headers, lazy httpx client
        """
        api = BaseAPIClient(base_url=BASE_URL)

        assert api.base_url == BASE_URL
        assert api.timeout == 30.0
        assert api.headers == {}
        assert api._client is None

    async def test_close_cleans_up_client(self) -> None:
        """
        Given: BaseAPIClient with active httpx client
        When: close() is called
        Then: Client is closed and set to None
        """
        api = BaseAPIClient(base_url=BASE_URL)
        inner = AsyncMock()
        api._client = inner

        await api.close()

        inner.aclose.assert_awaited_once()
        assert api._client is None


class TestBaseAPIClientRequests:
    """Retry and error mapping."""

    async def test_success_returns_response(self, client: BaseAPIClient) -> None:
        client._client.request = AsyncMock(return_value=_response(200, {"ok": True}))

        response = await client.get("/quote", params={"a": "1"})

        assert response.json() == {"ok": True}
        client._client.request.assert_awaited_once_with("GET", "/quote", params={"a": "1"})

    async def test_server_error_is_retried(self, client: BaseAPIClient) -> None:
        """
        Given: Upstream answers 503 then 200
        When: get() is called
        Then: Second attempt succeeds
        """
        client._client.request = AsyncMock(side_effect=[_response(503), _response(200)])

        response = await client.get("/quote")

        assert response.status_code == 200
        assert client._client.request.await_count == 2
        assert client.circuit_breaker.failure_count == 0

    async def test_client_error_is_not_retried(self, client: BaseAPIClient) -> None:
        client._client.request = AsyncMock(return_value=_response(400))

        with pytest.raises(ExternalServiceError) as exc_info:
            await client.get("/quote")

        assert exc_info.value.status_code == 400
        assert client._client.request.await_count == 1
        assert client.circuit_breaker.failure_count == 0

    async def test_rate_limit_is_retried(self, client: BaseAPIClient) -> None:
        client._client.request = AsyncMock(side_effect=[_response(429), _response(200)])

        response = await client.get("/quote")

        assert response.status_code == 200

    async def test_max_retries_exceeded(self, client: BaseAPIClient) -> None:
        """
        Given: Upstream keeps timing out
        When: get() is called
        Then: ExternalServiceError after max_retries attempts
        """
        client._client.request = AsyncMock(side_effect=httpx.ConnectTimeout("timeout"))

        with pytest.raises(ExternalServiceError) as exc_info:
            await client.get("/quote")

        assert "Max retries (3) exceeded" in str(exc_info.value)
        assert client._client.request.await_count == 3

    async def test_open_circuit_blocks_requests(self, client: BaseAPIClient) -> None:
        client._client.request = AsyncMock(side_effect=httpx.ConnectError("refused"))

        with pytest.raises(ExternalServiceError):
            await client.get("/quote")
        assert client.circuit_breaker.state == CircuitState.OPEN

        with pytest.raises(CircuitBreakerOpenError):
            await client.get("/quote")
        assert client._client.request.await_count == 3


class TestCircuitBreaker:
    def test_opens_after_threshold(self) -> None:
        breaker = CircuitBreaker(failure_threshold=2, cooldown_seconds=30)

        breaker.record_failure()
        assert breaker.state == CircuitState.CLOSED
        breaker.record_failure()

        assert breaker.state == CircuitState.OPEN
        assert breaker.can_execute() is False

    def test_half_open_after_cooldown(self) -> None:
        breaker = CircuitBreaker(failure_threshold=1, cooldown_seconds=30)
        breaker.record_failure()
        breaker.last_failure_time = datetime.now(UTC) - timedelta(seconds=31)

        assert breaker.can_execute() is True
        assert breaker.state == CircuitState.HALF_OPEN

    def test_failed_half_open_request_reopens(self) -> None:
        breaker = CircuitBreaker(failure_threshold=5, cooldown_seconds=30)
        breaker.state = CircuitState.HALF_OPEN

        breaker.record_failure()

        assert breaker.state == CircuitState.OPEN

    def test_success_closes_and_resets(self) -> None:
        breaker = CircuitBreaker(failure_threshold=1, cooldown_seconds=30)
        breaker.record_failure()

        breaker.record_success()

        assert breaker.state == CircuitState.CLOSED
        assert breaker.failure_count == 0

    def test_raise_if_open(self) -> None:
        breaker = CircuitBreaker(failure_threshold=1, cooldown_seconds=30)
        breaker.record_failure()

        with pytest.raises(CircuitBreakerOpenError, match="Next retry in"):
            breaker.raise_if_open()
