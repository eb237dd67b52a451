"""Base HTTP client with circuit breaker and retry logic.

Every outbound REST call (Jupiter quotes today) goes through
BaseAPIClient so timeouts, retries and failure isolation behave the same
everywhere.
"""

from dataclasses import dataclass, field
from datetime import UTC, datetime, timedelta
from enum import Enum
from typing import Any

import httpx
import structlog
from tenacity import (
    AsyncRetrying,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from launchpad.core.exceptions import CircuitBreakerOpenError, ExternalServiceError

log = structlog.get_logger(__name__)


class CircuitState(Enum):
    """Circuit breaker states."""

    CLOSED = "closed"
    OPEN = "open"
    HALF_OPEN = "half_open"


@dataclass
class CircuitBreaker:
    """Opens after `failure_threshold` consecutive failures.

    Once `cooldown_seconds` have passed since the last failure a single
    trial request is let through (half-open); its outcome closes or
    reopens the circuit.
    """

    failure_threshold: int = 5
    cooldown_seconds: int = 30
    failure_count: int = field(default=0, init=False)
    last_failure_time: datetime | None = field(default=None, init=False)
    state: CircuitState = field(default=CircuitState.CLOSED, init=False)

    def record_success(self) -> None:
        if self.state != CircuitState.CLOSED:
            log.info("circuit_breaker_closed", previous_state=self.state.value)
        self.failure_count = 0
        self.state = CircuitState.CLOSED

    def record_failure(self) -> None:
        self.failure_count += 1
        self.last_failure_time = datetime.now(UTC)

        if self.state == CircuitState.HALF_OPEN or self.failure_count >= self.failure_threshold:
            if self.state != CircuitState.OPEN:
                log.warning(
                    "circuit_breaker_opened",
                    failure_count=self.failure_count,
                    threshold=self.failure_threshold,
                )
            self.state = CircuitState.OPEN

    def can_execute(self) -> bool:
        """Whether a request may be sent now.

        Moves OPEN to HALF_OPEN once the cooldown has elapsed.
        """
        if self.state != CircuitState.OPEN:
            return True

        if self.last_failure_time is None:
            return False

        elapsed = datetime.now(UTC) - self.last_failure_time
        if elapsed > timedelta(seconds=self.cooldown_seconds):
            self.state = CircuitState.HALF_OPEN
            log.info("circuit_breaker_half_open", cooldown_elapsed=elapsed.total_seconds())
            return True
        return False

    def raise_if_open(self) -> None:
        """Raise CircuitBreakerOpenError if requests are currently blocked."""
        if not self.can_execute():
            raise CircuitBreakerOpenError(
                f"Circuit breaker is open. Next retry in "
                f"{self.seconds_until_half_open():.1f} seconds."
            )

    def seconds_until_half_open(self) -> float:
        if self.last_failure_time is None:
            return 0.0
        elapsed = (datetime.now(UTC) - self.last_failure_time).total_seconds()
        return max(0.0, self.cooldown_seconds - elapsed)


class _TransientHTTPError(Exception):
    """Internal marker for failures worth retrying (timeouts, 429, 5xx)."""

    def __init__(self, cause: Exception) -> None:
        super().__init__(str(cause))
        self.cause = cause


class BaseAPIClient:
    """Async HTTP client with retry and circuit breaker support.

    The underlying httpx.AsyncClient is created lazily on the first request
    and released by close().

    Attributes:
        base_url: Base URL for all requests.
        timeout: Default request timeout in seconds.
        headers: Default headers for all requests.

    Example:
        client = BaseAPIClient(base_url="https://quote-api.jup.ag/v6")
        response = await client.get("/quote", params={...})
        await client.close()
    """

    def __init__(
        self,
        base_url: str,
        timeout: float = 30.0,
        headers: dict[str, str] | None = None,
        circuit_breaker_threshold: int = 5,
        circuit_breaker_cooldown: int = 30,
    ) -> None:
        self.base_url = base_url
        self.timeout = timeout
        self.headers = headers or {}
        self._client: httpx.AsyncClient | None = None
        self._circuit_breaker = CircuitBreaker(
            failure_threshold=circuit_breaker_threshold,
            cooldown_seconds=circuit_breaker_cooldown,
        )
        # Exponential backoff between retries: 1s, 2s, 4s (capped)
        self._retry_wait: Any = wait_exponential(multiplier=1, min=1, max=4)

    @property
    def circuit_breaker(self) -> CircuitBreaker:
        return self._circuit_breaker

    async def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(
                base_url=self.base_url,
                timeout=self.timeout,
                headers=self.headers,
            )
            log.debug("httpx_client_created", base_url=self.base_url)
        return self._client

    async def close(self) -> None:
        """Close the httpx client and release resources."""
        if self._client is not None:
            await self._client.aclose()
            self._client = None
            log.debug("httpx_client_closed", base_url=self.base_url)

    async def _send_once(
        self,
        client: httpx.AsyncClient,
        method: str,
        path: str,
        **kwargs: Any,
    ) -> httpx.Response:
        try:
            response = await client.request(method, path, **kwargs)
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            status_code = e.response.status_code
            if 400 <= status_code < 500 and status_code != 429:
                # Client errors are not retried and do not trip the breaker
                log.warning(
                    "request_client_error",
                    method=method,
                    path=path,
                    status_code=status_code,
                )
                raise ExternalServiceError(
                    service=self.base_url,
                    message=str(e),
                    status_code=status_code,
                ) from e
            self._circuit_breaker.record_failure()
            log.warning("request_server_error", method=method, path=path, status_code=status_code)
            raise _TransientHTTPError(e) from e
        except httpx.RequestError as e:
            self._circuit_breaker.record_failure()
            log.warning(
                "request_connection_error",
                method=method,
                path=path,
                error_type=type(e).__name__,
                error=str(e),
            )
            raise _TransientHTTPError(e) from e

        self._circuit_breaker.record_success()
        return response

    async def _request(
        self,
        method: str,
        path: str,
        max_retries: int = 3,
        **kwargs: Any,
    ) -> httpx.Response:
        """Send a request, retrying transient failures.

        Raises:
            CircuitBreakerOpenError: If the circuit breaker is open.
            ExternalServiceError: On a 4xx response or once retries are exhausted.
        """
        self._circuit_breaker.raise_if_open()
        client = await self._get_client()

        try:
            async for attempt in AsyncRetrying(
                stop=stop_after_attempt(max_retries),
                wait=self._retry_wait,
                retry=retry_if_exception_type(_TransientHTTPError),
                reraise=True,
            ):
                with attempt:
                    return await self._send_once(client, method, path, **kwargs)
        except _TransientHTTPError as e:
            log.error(
                "request_max_retries_exceeded",
                method=method,
                path=path,
                max_retries=max_retries,
            )
            status_code = (
                e.cause.response.status_code
                if isinstance(e.cause, httpx.HTTPStatusError)
                else None
            )
            raise ExternalServiceError(
                service=self.base_url,
                message=f"Max retries ({max_retries}) exceeded: {e.cause}",
                status_code=status_code,
            ) from e.cause

        raise AssertionError("unreachable")  # pragma: no cover

    async def get(self, path: str, **kwargs: Any) -> httpx.Response:
        return await self._request("GET", path, **kwargs)

    async def post(self, path: str, **kwargs: Any) -> httpx.Response:
        return await self._request("POST", path, **kwargs)
