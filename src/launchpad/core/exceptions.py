"""Launchpad exception hierarchy.

Every error raised on purpose by the application derives from
LaunchpadError so callers can tell expected failures (skip a token, return
a 4xx) apart from programming errors.
"""


class LaunchpadError(Exception):
    """Base exception for all Launchpad errors."""

    pass


class DatabaseConnectionError(LaunchpadError):
    """Raised when the Supabase connection cannot be established.

    Example:
        raise DatabaseConnectionError("Supabase: Client not connected")
    """

    pass


class DatabaseOperationError(LaunchpadError):
    """Raised when a query or update against the store fails.

    Attributes:
        table: Table the operation targeted.
    """

    def __init__(self, table: str, message: str) -> None:
        self.table = table
        super().__init__(f"{table}: {message}")


class ExternalServiceError(LaunchpadError):
    """Raised when an external service call fails.

    Use this for HTTP errors from Jupiter or any other upstream API.

    Attributes:
        service: Name or base URL of the external service that failed.
        status_code: HTTP status code if available, None otherwise.

    Example:
        raise ExternalServiceError(service="jupiter", message="Rate limited", status_code=429)
    """

    def __init__(
        self,
        service: str,
        message: str,
        status_code: int | None = None,
    ) -> None:
        self.service = service
        self.status_code = status_code
        super().__init__(f"{service}: {message}")


class CircuitBreakerOpenError(LaunchpadError):
    """Raised when an API client's circuit breaker is open."""

    pass


class PriceUnavailableError(LaunchpadError):
    """Raised when no SOL price has ever been obtained.

    A stale price is still a price; this is only raised when the oracle has
    nothing cached and the quote request failed.
    """

    pass


class StreamError(LaunchpadError):
    """Raised for trade feed protocol problems (malformed trade payloads)."""

    pass
