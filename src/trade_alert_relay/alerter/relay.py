"""Relay service for inbound alerts and bot commands.

Each handler takes one decoded (or raw) request body, performs at most one
outbound dispatch and returns a RelayOutcome. Handlers never raise for bad
input or failed delivery; those become INVALID and FAILED outcomes.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Callable
from datetime import UTC, datetime
from typing import Any

from prometheus_client import Counter

from trade_alert_relay.alerter.classifier import classify
from trade_alert_relay.alerter.dispatcher import AlertDispatcher
from trade_alert_relay.alerter.formatter import (
    format_meta_alert,
    format_tradingview_alert,
    format_welcome,
)
from trade_alert_relay.alerter.models import (
    SUPPRESSED,
    AlertRecord,
    BotMessage,
    Destination,
    DispatchFailure,
    InvalidPayload,
    OutcomeKind,
    RelayOutcome,
    TradingViewAlert,
)

logger = logging.getLogger(__name__)

START_COMMAND = "/start"

# Prometheus metrics
RELAY_REQUESTS = Counter(
    "trade_alert_relay_requests_total",
    "Inbound requests handled by the relay",
    ["source", "outcome"],
)

Clock = Callable[[], datetime]


def utc_now() -> datetime:
    """Current time in UTC."""
    return datetime.now(UTC)


def parse_payload(body: Any) -> Any:
    """Decode a request body that may be raw JSON text or already decoded.

    Raises:
        InvalidPayload: If the text is not valid JSON.
    """
    if isinstance(body, bytes):
        try:
            body = body.decode("utf-8")
        except UnicodeDecodeError as e:
            raise InvalidPayload("Payload is not valid UTF-8") from e
    if isinstance(body, str):
        try:
            return json.loads(body)
        except ValueError as e:
            # JSONDecodeError, or an integer past the int digit limit
            raise InvalidPayload(f"Payload is not valid JSON: {e}") from e
    return body


class AlertRelay:
    """Relays TradingView and MetaTrader alerts and answers bot commands."""

    def __init__(
        self,
        dispatcher: AlertDispatcher,
        *,
        channel_link: str | None = None,
        clock: Clock = utc_now,
    ) -> None:
        """Initialize the relay.

        Args:
            dispatcher: Dispatcher used for all outbound messages.
            channel_link: Join link included in the /start greeting.
            clock: Source of the dispatch time for MetaTrader alerts.
        """
        self.dispatcher = dispatcher
        self.channel_link = channel_link
        self._clock = clock

    async def relay_tradingview(self, body: Any) -> RelayOutcome:
        """Format a TradingView alert and send it to the main channel."""
        try:
            alert = TradingViewAlert.from_dict(parse_payload(body))
        except InvalidPayload as e:
            return self._invalid("tradingview", e)

        text = format_tradingview_alert(alert)
        return await self._send("tradingview", Destination.MAIN, text)

    async def relay_meta_alert(self, body: Any) -> RelayOutcome:
        """Classify, format and route a MetaTrader alert."""
        try:
            record = AlertRecord.from_dict(parse_payload(body))
            classification = classify(record.signal, record.timeframe)
            if classification is SUPPRESSED:
                logger.info(f"Ignoring MT5 alert with signal {record.signal!r}")
                return self._count(
                    "meta",
                    RelayOutcome(kind=OutcomeKind.SUPPRESSED, detail="Ignored"),
                )
            text = format_meta_alert(record, classification, self._clock())
        except InvalidPayload as e:
            return self._invalid("meta", e)

        logger.debug(f"Formatted MT5 message:\n{text}")
        return await self._send("meta", classification.destination, text)

    async def handle_bot_update(self, update: Any) -> RelayOutcome:
        """Answer /start with a welcome message; acknowledge anything else."""
        try:
            update = parse_payload(update)
            raw_message = update.get("message") if isinstance(update, dict) else None
            if not raw_message:
                raise InvalidPayload("No message found")
            message = BotMessage.from_dict(raw_message)
        except InvalidPayload as e:
            return self._invalid("bot", e)

        if message.command != START_COMMAND:
            return self._count(
                "bot", RelayOutcome(kind=OutcomeKind.ACKNOWLEDGED, detail="OK")
            )

        text = format_welcome(message.first_name, self.channel_link)
        result = await self.dispatcher.dispatch(
            Destination.MAIN,
            text,
            chat_id=message.chat_id,
            disable_web_page_preview=True,
        )
        if not result.success:
            logger.error(f"Failed to send /start reply to chat {message.chat_id}")
            return self._count(
                "bot",
                RelayOutcome(
                    kind=OutcomeKind.FAILED,
                    detail="Failed to send welcome message",
                    destination=Destination.MAIN,
                    text=text,
                ),
            )

        logger.info(f"Sent welcome message to chat {message.chat_id}")
        return self._count(
            "bot",
            RelayOutcome(
                kind=OutcomeKind.DISPATCHED,
                detail="Welcome sent",
                destination=Destination.MAIN,
                text=text,
            ),
        )

    async def deliver(self, destination: Destination, text: str) -> None:
        """Send text to a destination, raising if delivery fails.

        Raises:
            DispatchFailure: If the message was not delivered.
        """
        result = await self.dispatcher.dispatch(destination, text)
        if not result.success:
            raise DispatchFailure(f"Delivery to {destination.name} failed")

    async def _send(self, source: str, destination: Destination, text: str) -> RelayOutcome:
        try:
            await self.deliver(destination, text)
        except DispatchFailure as e:
            logger.error(f"Failed to relay {source} alert: {e}")
            return self._count(
                source,
                RelayOutcome(
                    kind=OutcomeKind.FAILED,
                    detail="Failed to send message",
                    destination=destination,
                    text=text,
                ),
            )

        return self._count(
            source,
            RelayOutcome(
                kind=OutcomeKind.DISPATCHED,
                detail="OK",
                destination=destination,
                text=text,
            ),
        )

    def _invalid(self, source: str, error: InvalidPayload) -> RelayOutcome:
        logger.warning(f"Rejected {source} payload: {error}")
        return self._count(
            source, RelayOutcome(kind=OutcomeKind.INVALID, detail=str(error))
        )

    @staticmethod
    def _count(source: str, outcome: RelayOutcome) -> RelayOutcome:
        RELAY_REQUESTS.labels(source=source, outcome=outcome.kind.value).inc()
        return outcome
