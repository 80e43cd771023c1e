"""Tests for the relay service."""

import json
from datetime import UTC, datetime
from unittest.mock import AsyncMock, MagicMock

import pytest

from trade_alert_relay.alerter.classifier import TIMEFRAME_ICONS
from trade_alert_relay.alerter.dispatcher import AlertDispatcher
from trade_alert_relay.alerter.models import (
    Destination,
    DispatchFailure,
    InvalidPayload,
    OutcomeKind,
)
from trade_alert_relay.alerter.relay import AlertRelay, parse_payload

FIXED_NOW = datetime(2024, 3, 5, 14, 7, tzinfo=UTC)

# ============================================================================
# Fixtures
# ============================================================================


@pytest.fixture
def main_channel() -> MagicMock:
    """Create a mock main channel."""
    channel = MagicMock()
    channel.name = "telegram-main"
    channel.send = AsyncMock(return_value=True)
    return channel


@pytest.fixture
def trend_channel() -> MagicMock:
    """Create a mock trend channel."""
    channel = MagicMock()
    channel.name = "telegram-trend"
    channel.send = AsyncMock(return_value=True)
    return channel


@pytest.fixture
def relay(main_channel: MagicMock, trend_channel: MagicMock) -> AlertRelay:
    """Create a relay with both destinations configured."""
    dispatcher = AlertDispatcher(
        {Destination.MAIN: main_channel, Destination.TREND: trend_channel}
    )
    return AlertRelay(
        dispatcher,
        channel_link="https://t.me/+invite",
        clock=lambda: FIXED_NOW,
    )


# ============================================================================
# parse_payload Tests
# ============================================================================


class TestParsePayload:
    """Tests for body decoding."""

    def test_text(self) -> None:
        """Test JSON text is decoded."""
        assert parse_payload('{"a": 1}') == {"a": 1}

    def test_bytes(self) -> None:
        """Test JSON bytes are decoded."""
        assert parse_payload(b'{"a": 1}') == {"a": 1}

    def test_already_decoded(self) -> None:
        """Test decoded objects pass through."""
        payload = {"a": 1}
        assert parse_payload(payload) is payload

    def test_invalid_json(self) -> None:
        """Test malformed JSON raises InvalidPayload."""
        with pytest.raises(InvalidPayload):
            parse_payload("{symbol: EURUSD")

    def test_integer_past_digit_limit(self) -> None:
        """Test an integer too long to convert raises InvalidPayload."""
        with pytest.raises(InvalidPayload):
            parse_payload('{"price": 1' + "0" * 5000 + "}")


# ============================================================================
# MetaTrader Tests
# ============================================================================


class TestRelayMetaAlert:
    """Tests for MetaTrader alert relaying."""

    @pytest.mark.asyncio
    async def test_trend_alert_goes_to_trend(
        self,
        relay: AlertRelay,
        main_channel: MagicMock,
        trend_channel: MagicMock,
    ) -> None:
        """Test a trend alert is dispatched once to the trend channel."""
        body = json.dumps({"symbol": "EURUSD", "signal": "TREND_UP", "timeframe": "M5"})

        outcome = await relay.relay_meta_alert(body)

        assert outcome.kind == OutcomeKind.DISPATCHED
        assert outcome.destination == Destination.TREND
        trend_channel.send.assert_awaited_once()
        main_channel.send.assert_not_called()
        text = trend_channel.send.call_args.args[0]
        assert "*Signal:* Trend UP" in text
        assert f"*Timeframe:* {TIMEFRAME_ICONS['M5']} M5" in text

    @pytest.mark.asyncio
    async def test_bullish_cross_goes_to_main(
        self,
        relay: AlertRelay,
        main_channel: MagicMock,
        trend_channel: MagicMock,
    ) -> None:
        """Test priority order picks Bullish and routes to main."""
        body = json.dumps({"symbol": "EURUSD", "signal": "BULLISH_CROSS", "timeframe": "M1"})

        outcome = await relay.relay_meta_alert(body)

        assert outcome.kind == OutcomeKind.DISPATCHED
        assert outcome.destination == Destination.MAIN
        main_channel.send.assert_awaited_once()
        trend_channel.send.assert_not_called()
        assert "*Signal:* Bullish" in main_channel.send.call_args.args[0]

    @pytest.mark.asyncio
    async def test_uses_clock_for_time(self, relay: AlertRelay) -> None:
        """Test the message time comes from the clock."""
        outcome = await relay.relay_meta_alert(
            {
                "symbol": "XAUUSD",
                "signal": "BEARISH",
                "price": 2034.5,
                "timestamp": "2001-01-01T00:00:00Z",
            }
        )

        assert outcome.text is not None
        assert "*Time:* March 5, 2024, 2:07 PM UTC" in outcome.text
        assert "*Price:* 2034.50" in outcome.text

    @pytest.mark.asyncio
    async def test_suppressed(
        self,
        relay: AlertRelay,
        main_channel: MagicMock,
        trend_channel: MagicMock,
    ) -> None:
        """Test unrecognized signals are ignored without dispatch."""
        outcome = await relay.relay_meta_alert('{"symbol": "EURUSD", "signal": "NOISE_123"}')

        assert outcome.kind == OutcomeKind.SUPPRESSED
        assert outcome.is_error is False
        main_channel.send.assert_not_called()
        trend_channel.send.assert_not_called()

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "body",
        [
            "not json",
            "[1, 2]",
            '{"symbol": "EURUSD"}',
            '{"symbol": "EURUSD", "signal": 5}',
            '{"signal": "BULLISH"}',
            '{"symbol": "EURUSD", "signal": "BULLISH", "price": "abc"}',
            '{"symbol": "EURUSD", "signal": "BULLISH", "price": 1' + "0" * 400 + "}",
            '{"symbol": "EURUSD", "signal": "BULLISH", "price": 1' + "0" * 5000 + "}",
        ],
    )
    async def test_invalid_payload(
        self,
        relay: AlertRelay,
        main_channel: MagicMock,
        body: str,
    ) -> None:
        """Test malformed payloads are rejected without dispatch."""
        outcome = await relay.relay_meta_alert(body)

        assert outcome.kind == OutcomeKind.INVALID
        assert outcome.is_error is True
        main_channel.send.assert_not_called()

    @pytest.mark.asyncio
    async def test_dispatch_failure(self, relay: AlertRelay, main_channel: MagicMock) -> None:
        """Test a failed send is reported as FAILED, distinct from suppression."""
        main_channel.send.return_value = False

        outcome = await relay.relay_meta_alert({"symbol": "EURUSD", "signal": "BULLISH"})

        assert outcome.kind == OutcomeKind.FAILED
        assert outcome.detail == "Failed to send message"
        assert main_channel.send.await_count == 1

    @pytest.mark.asyncio
    async def test_unconfigured_trend_destination(self, main_channel: MagicMock) -> None:
        """Test routing to a destination without credentials fails."""
        relay = AlertRelay(AlertDispatcher({Destination.MAIN: main_channel}))

        outcome = await relay.relay_meta_alert({"symbol": "EURUSD", "signal": "TREND_UP"})

        assert outcome.kind == OutcomeKind.FAILED
        main_channel.send.assert_not_called()


# ============================================================================
# TradingView Tests
# ============================================================================


class TestRelayTradingView:
    """Tests for TradingView alert relaying."""

    @pytest.mark.asyncio
    async def test_always_main(
        self,
        relay: AlertRelay,
        main_channel: MagicMock,
        trend_channel: MagicMock,
    ) -> None:
        """Test alerts go to main without classification."""
        outcome = await relay.relay_tradingview(
            '{"pair": "BTCUSDT", "event": "TREND_UP", "timeframe": "1h", "volume": 10}'
        )

        assert outcome.kind == OutcomeKind.DISPATCHED
        assert outcome.destination == Destination.MAIN
        trend_channel.send.assert_not_called()
        text = main_channel.send.call_args.args[0]
        assert "*Event:* TREND_UP" in text
        assert "*Volume:* 10" in text

    @pytest.mark.asyncio
    async def test_invalid_json(self, relay: AlertRelay, main_channel: MagicMock) -> None:
        """Test malformed JSON is rejected."""
        outcome = await relay.relay_tradingview("{")

        assert outcome.kind == OutcomeKind.INVALID
        main_channel.send.assert_not_called()


# ============================================================================
# Bot Command Tests
# ============================================================================


class TestHandleBotUpdate:
    """Tests for bot command handling."""

    @pytest.mark.asyncio
    async def test_start_sends_welcome(
        self, relay: AlertRelay, main_channel: MagicMock
    ) -> None:
        """Test /start replies to the sender's chat."""
        update = {"message": {"chat": {"id": 777, "first_name": "Alice"}, "text": "/START"}}

        outcome = await relay.handle_bot_update(update)

        assert outcome.kind == OutcomeKind.DISPATCHED
        assert outcome.detail == "Welcome sent"
        main_channel.send.assert_awaited_once()
        args, kwargs = main_channel.send.call_args
        assert "Hi *Alice*" in args[0]
        assert "https://t.me/+invite" in args[0]
        assert kwargs == {"chat_id": 777, "disable_web_page_preview": True}

    @pytest.mark.asyncio
    async def test_start_default_name(
        self, relay: AlertRelay, main_channel: MagicMock
    ) -> None:
        """Test missing first name falls back to 'friend'."""
        await relay.handle_bot_update({"message": {"chat": {"id": 1}, "text": "/start"}})

        assert "Hi *friend*" in main_channel.send.call_args.args[0]

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "message",
        [
            {"chat": {"id": 1}, "text": "hello"},
            {"chat": {"id": 1}},
        ],
    )
    async def test_other_messages_acknowledged(
        self,
        relay: AlertRelay,
        main_channel: MagicMock,
        message: dict[str, object],
    ) -> None:
        """Test non-commands are acknowledged without sending."""
        outcome = await relay.handle_bot_update({"message": message})

        assert outcome.kind == OutcomeKind.ACKNOWLEDGED
        assert outcome.detail == "OK"
        main_channel.send.assert_not_called()

    @pytest.mark.asyncio
    async def test_no_message(self, relay: AlertRelay) -> None:
        """Test updates without a message are rejected."""
        outcome = await relay.handle_bot_update({"edited_message": {}})

        assert outcome.kind == OutcomeKind.INVALID
        assert outcome.detail == "No message found"

    @pytest.mark.asyncio
    async def test_welcome_failure(self, relay: AlertRelay, main_channel: MagicMock) -> None:
        """Test a failed reply is reported."""
        main_channel.send.return_value = False

        outcome = await relay.handle_bot_update(
            {"message": {"chat": {"id": 1}, "text": "/start"}}
        )

        assert outcome.kind == OutcomeKind.FAILED
        assert outcome.detail == "Failed to send welcome message"


class TestDeliver:
    """Tests for direct delivery."""

    @pytest.mark.asyncio
    async def test_raises_on_failure(self, relay: AlertRelay, main_channel: MagicMock) -> None:
        """Test DispatchFailure is raised when the send fails."""
        main_channel.send.return_value = False

        with pytest.raises(DispatchFailure):
            await relay.deliver(Destination.MAIN, "text")
