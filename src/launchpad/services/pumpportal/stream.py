"""PumpPortal trade feed over a single persistent WebSocket.

The stream remembers the last requested set of mints and replays it every
time a connection opens, so subscriptions survive reconnects. Trades are
written straight into the ValuationCache; nothing else is kept.
"""

from __future__ import annotations

import asyncio
import contextlib
import json
from collections.abc import Awaitable, Callable
from contextlib import AbstractAsyncContextManager
from datetime import UTC, datetime
from enum import Enum
from typing import Any

import structlog
import websockets

from launchpad.core.exceptions import StreamError
from launchpad.services.market_cap.cache import ValuationCache, ValuationCacheEntry
from launchpad.services.pumpportal.models import (
    SubscriptionAck,
    TradeEvent,
    build_subscribe_payload,
    parse_message,
)

logger = structlog.get_logger(__name__)

Connector = Callable[[str], AbstractAsyncContextManager[Any]]
Sleeper = Callable[[float], Awaitable[None]]


class StreamState(str, Enum):
    """Connection lifecycle of the trade feed."""

    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    CONNECTED = "connected"


def websocket_connector(open_timeout: float = 30.0) -> Connector:
    """Connector that opens a real websockets client connection."""

    def connect(url: str) -> AbstractAsyncContextManager[Any]:
        return websockets.connect(
            url,
            open_timeout=open_timeout,
            ping_interval=20,
            ping_timeout=20,
            close_timeout=5,
        )

    return connect


class TradeEventStream:
    """Persistent PumpPortal subscription feeding a ValuationCache.

    Reconnects after every disconnect with delays of
    min(max_delay, base_delay * 2**attempt). The attempt counter only resets
    once a connection is open again; after `max_reconnect_attempts`
    consecutive failures the stream stops and `has_given_up` turns True.

    Example:
        stream = TradeEventStream(cache, "wss://pumpportal.fun/api/data")
        await stream.subscribe(["Mint1...", "Mint2..."])
        ...
        await stream.close()
    """

    def __init__(
        self,
        cache: ValuationCache,
        url: str,
        max_reconnect_attempts: int = 20,
        reconnect_base_seconds: float = 5.0,
        reconnect_max_seconds: float = 30.0,
        connector: Connector | None = None,
        sleep: Sleeper = asyncio.sleep,
    ) -> None:
        self._cache = cache
        self._url = url
        self._max_reconnect_attempts = max_reconnect_attempts
        self._reconnect_base_seconds = reconnect_base_seconds
        self._reconnect_max_seconds = reconnect_max_seconds
        self._connector = connector or websocket_connector()
        self._sleep = sleep

        self._state = StreamState.DISCONNECTED
        self._ws: Any | None = None
        self._task: asyncio.Task[None] | None = None
        self._subscribed: list[str] = []
        self._reconnect_attempts = 0
        self._given_up = False
        self._trades_received = 0
        self._last_trade_at: datetime | None = None

    @property
    def state(self) -> StreamState:
        return self._state

    @property
    def is_connected(self) -> bool:
        return self._state is StreamState.CONNECTED

    @property
    def has_given_up(self) -> bool:
        """True once the reconnect ceiling was hit and retrying stopped."""
        return self._given_up

    @property
    def reconnect_attempts(self) -> int:
        return self._reconnect_attempts

    @property
    def subscribed_mints(self) -> list[str]:
        return list(self._subscribed)

    def reconnect_delay(self, attempt: int) -> float:
        """Backoff before reconnect number `attempt` (0-based)."""
        return min(self._reconnect_max_seconds, self._reconnect_base_seconds * 2**attempt)

    def connect(self) -> asyncio.Task[None]:
        """Start the connection loop, or return the one already running.

        Calling this after the stream gave up starts a fresh sequence of
        attempts.
        """
        if self._task is not None and not self._task.done():
            return self._task

        self._given_up = False
        self._reconnect_attempts = 0
        self._task = asyncio.create_task(self._run(), name="pumpportal-stream")
        return self._task

    async def subscribe(self, mints: list[str]) -> bool:
        """Replace the subscription set.

        Sends the request right away when connected; otherwise starts
        connecting and the request goes out once the connection opens.

        Returns:
            True if the request was sent now, False if it was deferred.
        """
        self._subscribed = list(mints)
        ws = self._ws
        if self._state is not StreamState.CONNECTED or ws is None:
            logger.warning(
                "pumpportal_not_connected_subscription_deferred",
                tokens=len(self._subscribed),
            )
            self.connect()
            return False

        return await self._send_subscription(ws)

    async def close(self) -> None:
        """Stop the connection loop and drop the connection."""
        task, self._task = self._task, None
        if task is not None and not task.done():
            task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await task
        self._ws = None
        self._state = StreamState.DISCONNECTED
        logger.info("pumpportal_stream_closed")

    async def _run(self) -> None:
        while True:
            try:
                await self._connect_and_stream()
                logger.warning("pumpportal_connection_closed")
            except asyncio.CancelledError:
                raise
            except Exception as e:
                logger.error(
                    "pumpportal_connection_error",
                    error_type=type(e).__name__,
                    error=str(e),
                )
            finally:
                self._ws = None
                self._state = StreamState.DISCONNECTED

            if self._reconnect_attempts >= self._max_reconnect_attempts:
                self._given_up = True
                logger.error(
                    "pumpportal_reconnect_gave_up",
                    attempts=self._reconnect_attempts,
                    max_attempts=self._max_reconnect_attempts,
                )
                return

            delay = self.reconnect_delay(self._reconnect_attempts)
            logger.warning(
                "pumpportal_reconnect_scheduled",
                delay_seconds=delay,
                attempt=self._reconnect_attempts + 1,
                max_attempts=self._max_reconnect_attempts,
            )
            await self._sleep(delay)
            self._reconnect_attempts += 1

    async def _connect_and_stream(self) -> None:
        self._state = StreamState.CONNECTING
        logger.info("pumpportal_connecting", url=self._url)

        async with self._connector(self._url) as ws:
            self._ws = ws
            self._state = StreamState.CONNECTED
            self._reconnect_attempts = 0
            logger.info("pumpportal_connected", resubscribe_tokens=len(self._subscribed))

            if self._subscribed:
                await self._send_subscription(ws)

            async for frame in ws:
                self._handle_frame(frame)

    async def _send_subscription(self, ws: Any) -> bool:
        payload = build_subscribe_payload(self._subscribed)
        try:
            await ws.send(json.dumps(payload))
        except (websockets.exceptions.WebSocketException, OSError) as e:
            # The receive loop sees the same failure and reconnects, which replays the set
            logger.warning("pumpportal_subscribe_send_failed", error=str(e))
            return False

        logger.info("pumpportal_subscribed", tokens=len(self._subscribed))
        return True

    def _handle_frame(self, frame: str | bytes) -> None:
        if isinstance(frame, bytes):
            frame = frame.decode("utf-8", errors="replace")

        try:
            data = json.loads(frame)
        except json.JSONDecodeError:
            logger.warning("pumpportal_non_json_frame", size=len(frame))
            return

        try:
            message = parse_message(data)
        except StreamError as e:
            logger.warning("pumpportal_trade_malformed", error=str(e))
            return

        if isinstance(message, TradeEvent):
            self._cache.upsert(ValuationCacheEntry.from_trade(message))
            self._trades_received += 1
            self._last_trade_at = message.observed_at
        elif isinstance(message, SubscriptionAck):
            logger.info("pumpportal_subscription_acknowledged")
        else:
            logger.debug("pumpportal_unknown_message", keys=sorted(message.payload)[:10])

    def get_status(self) -> dict[str, Any]:
        return {
            "state": self._state.value,
            "url": self._url,
            "reconnect_attempts": self._reconnect_attempts,
            "max_reconnect_attempts": self._max_reconnect_attempts,
            "has_given_up": self._given_up,
            "subscribed_tokens": len(self._subscribed),
            "trades_received": self._trades_received,
            "last_trade_at": self._last_trade_at.isoformat() if self._last_trade_at else None,
            "cached_tokens": len(self._cache),
            "checked_at": datetime.now(UTC).isoformat(),
        }
