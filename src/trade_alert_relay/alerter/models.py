"""Data models for the alerter module."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any

UNDEFINED = "undefined"
DEFAULT_FIRST_NAME = "friend"


def render_text(value: Any) -> str:
    """Render a JSON scalar the way it reads in a webhook template.

    Booleans are lowercase and whole floats drop their fractional part,
    so `true` and `10.0` arrive as "true" and "10".
    """
    if value is None:
        return UNDEFINED
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


class RelayError(Exception):
    """Base exception for relay errors."""


class InvalidPayload(RelayError):
    """Raised when an inbound payload is malformed or missing required fields."""


class DispatchFailure(RelayError):
    """Raised when an outbound message could not be delivered."""


class Destination(Enum):
    """Named outbound channels."""

    MAIN = "main"
    TREND = "trend"


class Suppressed(Enum):
    """Sentinel for alerts that are intentionally dropped."""

    SUPPRESSED = "suppressed"


SUPPRESSED = Suppressed.SUPPRESSED


@dataclass(frozen=True)
class ClassificationResult:
    """Display and routing decision for a MetaTrader signal.

    Attributes:
        display_label: Human-readable signal name.
        icon: Timeframe glyph, empty when the timeframe is unknown.
        destination: Channel the alert belongs to.
    """

    display_label: str
    icon: str
    destination: Destination


@dataclass(frozen=True)
class AlertRecord:
    """A MetaTrader expert advisor alert.

    The price is kept as received; it is only parsed when the message is
    rendered. The timestamp is carried for completeness but never rendered.
    """

    symbol: str
    signal: str
    timeframe: str = ""
    price: Any = None
    timestamp: Any = None

    @classmethod
    def from_dict(cls, data: Any) -> AlertRecord:
        """Create an AlertRecord from a decoded JSON payload.

        Raises:
            InvalidPayload: If the payload is not an object, or symbol or
                signal are missing, or signal is not a string.
        """
        if not isinstance(data, dict):
            raise InvalidPayload("Alert payload must be a JSON object")

        signal = data.get("signal")
        if not isinstance(signal, str):
            raise InvalidPayload("Alert payload requires a string 'signal' field")

        symbol = data.get("symbol")
        if symbol is None:
            raise InvalidPayload("Alert payload requires a 'symbol' field")

        timeframe = data.get("timeframe")

        return cls(
            symbol=str(symbol),
            signal=signal,
            timeframe=str(timeframe) if timeframe is not None else "",
            price=data.get("price"),
            timestamp=data.get("timestamp"),
        )


@dataclass(frozen=True)
class TradingViewAlert:
    """A charting platform webhook alert. Missing fields render as 'undefined'."""

    pair: str = UNDEFINED
    event: str = UNDEFINED
    timeframe: str = UNDEFINED
    timestamp: Any = None
    volume: str = UNDEFINED

    @classmethod
    def from_dict(cls, data: Any) -> TradingViewAlert:
        """Create a TradingViewAlert from a decoded JSON payload."""
        if not isinstance(data, dict):
            raise InvalidPayload("Alert payload must be a JSON object")

        return cls(
            pair=render_text(data.get("pair")),
            event=render_text(data.get("event")),
            timeframe=render_text(data.get("timeframe")),
            timestamp=data.get("timestamp"),
            volume=render_text(data.get("volume")),
        )


@dataclass(frozen=True)
class BotMessage:
    """A chat message delivered to the bot webhook."""

    chat_id: int | str
    first_name: str = DEFAULT_FIRST_NAME
    text: str = ""

    @property
    def command(self) -> str:
        """Lowercased message text used for command matching."""
        return self.text.lower()

    @classmethod
    def from_dict(cls, data: Any) -> BotMessage:
        """Create a BotMessage from the ``message`` object of a bot update."""
        if not isinstance(data, dict):
            raise InvalidPayload("Bot message must be a JSON object")

        chat = data.get("chat")
        if not isinstance(chat, dict) or chat.get("id") is None:
            raise InvalidPayload("Bot message requires a chat id")

        text = data.get("text")
        return cls(
            chat_id=chat["id"],
            first_name=str(chat.get("first_name") or DEFAULT_FIRST_NAME),
            text=text if isinstance(text, str) else "",
        )


class OutcomeKind(Enum):
    """Kinds of relay outcome."""

    DISPATCHED = "dispatched"
    SUPPRESSED = "suppressed"
    ACKNOWLEDGED = "acknowledged"
    INVALID = "invalid"
    FAILED = "failed"


@dataclass(frozen=True)
class RelayOutcome:
    """Tagged result of handling one inbound request.

    Attributes:
        kind: What happened to the request.
        detail: Short human-readable description.
        destination: Channel the message was sent to, if any.
        text: The message text that was (or would have been) sent.
    """

    kind: OutcomeKind
    detail: str = ""
    destination: Destination | None = None
    text: str | None = None

    @property
    def is_error(self) -> bool:
        """Return True for invalid or failed outcomes."""
        return self.kind in (OutcomeKind.INVALID, OutcomeKind.FAILED)
