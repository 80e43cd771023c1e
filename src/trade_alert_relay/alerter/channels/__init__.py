"""Alert channel implementations."""

from trade_alert_relay.alerter.channels.telegram import TelegramChannel

__all__ = [
    "TelegramChannel",
]
