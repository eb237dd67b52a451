"""PumpPortal trade feed messages.

Inbound frames are classified once, up front, into one of three variants
so the stream never has to sniff dictionaries further down:

- TradeEvent: a buy or sell on a subscribed token (has `mint` and `marketCapSol`)
- SubscriptionAck: confirmation of a subscribeTokenTrade request
- UnknownMessage: anything else, kept only for logging

API Documentation: https://pumpportal.fun/data-api/real-time
"""

from datetime import UTC, datetime
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field
from pydantic import ValidationError as PydanticValidationError

from launchpad.core.exceptions import StreamError

SUBSCRIBE_TOKEN_TRADE = "subscribeTokenTrade"
SUBSCRIPTION_ACK_TEXT = "Successfully subscribed to keys."


class TradeEvent(BaseModel):
    """A single trade on a pump.fun token.

    Attributes:
        mint: Token mint address.
        market_cap_sol: Token market cap in SOL right after the trade.
        tx_type: "buy" or "sell" (other values are passed through).
        sol_amount: SOL moved by the trade.
        token_amount: Tokens moved by the trade.
        observed_at: When this process received the trade.
    """

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    kind: Literal["trade"] = "trade"
    mint: str
    market_cap_sol: float = Field(alias="marketCapSol")
    tx_type: str | None = Field(default=None, alias="txType")
    sol_amount: float | None = Field(default=None, alias="solAmount")
    token_amount: float | None = Field(default=None, alias="tokenAmount")
    observed_at: datetime = Field(default_factory=lambda: datetime.now(UTC))


class SubscriptionAck(BaseModel):
    """Acknowledgment sent by PumpPortal after a subscription request."""

    kind: Literal["ack"] = "ack"
    message: str


class UnknownMessage(BaseModel):
    """Any frame that is neither a trade nor an acknowledgment."""

    kind: Literal["unknown"] = "unknown"
    payload: dict[str, Any] = Field(default_factory=dict)


FeedMessage = TradeEvent | SubscriptionAck | UnknownMessage


def parse_message(data: Any) -> FeedMessage:
    """Classify a decoded JSON frame.

    Args:
        data: Result of json.loads on the frame.

    Returns:
        The matching message variant.

    Raises:
        StreamError: If the frame looks like a trade but its fields are invalid.
    """
    if not isinstance(data, dict):
        return UnknownMessage(payload={"value": data})

    if "mint" in data and data.get("marketCapSol") is not None:
        try:
            return TradeEvent.model_validate(data)
        except PydanticValidationError as e:
            raise StreamError(f"Malformed trade for {data.get('mint')}: {e}") from e

    if data.get("message") == SUBSCRIPTION_ACK_TEXT:
        return SubscriptionAck(message=data["message"])

    return UnknownMessage(payload=data)


def build_subscribe_payload(mints: list[str]) -> dict[str, Any]:
    """Outbound subscription request for token trades."""
    return {"method": SUBSCRIBE_TOKEN_TRADE, "keys": list(mints)}
