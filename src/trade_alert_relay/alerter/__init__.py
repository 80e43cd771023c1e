"""Alerting layer - classification, formatting and Telegram delivery."""

from trade_alert_relay.alerter.channels.telegram import TelegramChannel
from trade_alert_relay.alerter.classifier import classify
from trade_alert_relay.alerter.dispatcher import (
    AlertChannel,
    AlertDispatcher,
    DispatchResult,
)
from trade_alert_relay.alerter.formatter import (
    format_meta_alert,
    format_tradingview_alert,
    format_welcome,
)
from trade_alert_relay.alerter.models import (
    SUPPRESSED,
    AlertRecord,
    BotMessage,
    ClassificationResult,
    Destination,
    DispatchFailure,
    InvalidPayload,
    OutcomeKind,
    RelayError,
    RelayOutcome,
    TradingViewAlert,
)
from trade_alert_relay.alerter.relay import AlertRelay

__all__ = [
    "SUPPRESSED",
    "AlertChannel",
    "AlertDispatcher",
    "AlertRecord",
    "AlertRelay",
    "BotMessage",
    "ClassificationResult",
    "Destination",
    "DispatchFailure",
    "DispatchResult",
    "InvalidPayload",
    "OutcomeKind",
    "RelayError",
    "RelayOutcome",
    "TelegramChannel",
    "TradingViewAlert",
    "classify",
    "format_meta_alert",
    "format_tradingview_alert",
    "format_welcome",
]
