"""Supabase async client with connection management."""

from typing import Any

import structlog
from pydantic import SecretStr
from supabase._async.client import AsyncClient
from supabase._async.client import create_client as create_async_client
from supabase.lib.client_options import AsyncClientOptions
from tenacity import (
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from launchpad.core.exceptions import DatabaseConnectionError

log = structlog.get_logger(__name__)


class SupabaseClient:
    """Async Supabase client wrapper.

    Owns the connection to the PostgREST API. One instance is built per
    process by the service container and shared by the repositories.
    """

    def __init__(self, url: str, key: SecretStr, schema: str = "public") -> None:
        self._url = url
        self._key = key
        self._schema = schema
        self._client: AsyncClient | None = None

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=1, max=4),
        retry=retry_if_exception_type(DatabaseConnectionError),
        reraise=True,
    )
    async def connect(self) -> None:
        """Establish connection to Supabase.

        Raises:
            DatabaseConnectionError: If connection fails after retries.
        """
        if self._client is not None:
            return

        try:
            options = AsyncClientOptions(schema=self._schema)
            self._client = await create_async_client(
                self._url,
                self._key.get_secret_value(),
                options=options,
            )
        except Exception as e:
            log.error("supabase_connection_failed", error=str(e))
            raise DatabaseConnectionError(f"Supabase: {e}") from e

        log.info("supabase_connected", url=self._url, schema=self._schema)

    async def disconnect(self) -> None:
        if self._client is not None:
            self._client = None
            log.info("supabase_disconnected")

    @property
    def is_connected(self) -> bool:
        return self._client is not None

    @property
    def client(self) -> AsyncClient:
        """Underlying supabase-py client.

        Raises:
            DatabaseConnectionError: If not connected.
        """
        if self._client is None:
            raise DatabaseConnectionError("Supabase: Client not connected")
        return self._client

    async def health_check(self) -> dict[str, Any]:
        """Report connection health without raising."""
        if self._client is None:
            return {"status": "disconnected", "healthy": False}

        try:
            await self._client.auth.get_session()
            return {"status": "connected", "healthy": True}
        except Exception as e:
            log.error("supabase_health_check_failed", error=str(e))
            return {"status": "error", "healthy": False, "error": str(e)}
