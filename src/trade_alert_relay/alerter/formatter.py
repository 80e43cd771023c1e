"""Alert message formatter for Telegram delivery.

This module turns inbound alert records into Telegram Markdown messages.
All functions are pure; the only failure is an unparseable MetaTrader price.
"""

from __future__ import annotations

import math
from datetime import UTC, datetime
from typing import Any

from trade_alert_relay.alerter.models import (
    AlertRecord,
    ClassificationResult,
    InvalidPayload,
    TradingViewAlert,
)

META_TITLE = "📊 *MT5 Alert Triggered!*"
TRADINGVIEW_TITLE = "📡 *Alert Triggered!*"
INVALID_DATE = "Invalid Date"
MISSING_PRICE = "N/A"


def format_price(price: Any) -> str:
    """Format a price with exactly two decimal places.

    Raises:
        InvalidPayload: If the price is not a finite number.
    """
    if price is None:
        return MISSING_PRICE
    if isinstance(price, bool):
        raise InvalidPayload(f"Invalid price: {price!r}")

    try:
        value = float(price)
    except (TypeError, ValueError, OverflowError) as e:
        raise InvalidPayload(f"Invalid price: {price!r}") from e

    if not math.isfinite(value):
        raise InvalidPayload(f"Invalid price: {price!r}")
    return f"{value:.2f}"


def format_long_time(moment: datetime) -> str:
    """Render a datetime as e.g. 'October 19, 2026, 5:03 PM' in UTC.

    Naive datetimes are taken to be UTC already.
    """
    if moment.tzinfo is not None:
        moment = moment.astimezone(UTC)
    hour = moment.hour % 12 or 12
    return f"{moment:%B} {moment.day}, {moment.year}, {hour}:{moment:%M} {moment:%p}"


def parse_timestamp(value: Any) -> datetime | None:
    """Parse an ISO-8601 string or numeric epoch milliseconds into an aware datetime.

    Epoch milliseconds must arrive as a JSON number; a string of bare digits
    is not a date and yields None.
    """
    if value is None or isinstance(value, bool):
        return None

    try:
        if isinstance(value, int | float):
            return datetime.fromtimestamp(value / 1000, tz=UTC)
        text = str(value).strip()
        if text.lstrip("-").isdigit():
            return None
        parsed = datetime.fromisoformat(text.replace("Z", "+00:00"))
    except (ValueError, OverflowError, OSError):
        return None

    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=UTC)
    return parsed


def format_timeframe(timeframe: str, icon: str) -> str:
    """Prefix a timeframe code with its icon when there is one."""
    if icon:
        return f"{icon} {timeframe}"
    return timeframe


def format_meta_alert(
    record: AlertRecord,
    classification: ClassificationResult,
    dispatched_at: datetime,
) -> str:
    """Format a classified MetaTrader alert.

    Args:
        record: The inbound alert.
        classification: Label, icon and destination for the alert.
        dispatched_at: Time the alert is being relayed; the record's own
            timestamp is not used.

    Returns:
        Telegram Markdown message text.
    """
    lines = [
        META_TITLE,
        "",
        f"*Symbol:* {record.symbol}",
        f"*Signal:* {classification.display_label}",
        f"*Timeframe:* {format_timeframe(record.timeframe, classification.icon)}",
        f"*Price:* {format_price(record.price)}",
        f"*Time:* {format_long_time(dispatched_at)} UTC",
    ]
    return "\n".join(lines)


def format_tradingview_alert(alert: TradingViewAlert) -> str:
    """Format a charting platform alert using its own timestamp."""
    moment = parse_timestamp(alert.timestamp)
    formatted_time = format_long_time(moment) if moment else INVALID_DATE

    lines = [
        TRADINGVIEW_TITLE,
        "",
        f"*Pair:* {alert.pair}",
        f"*Event:* {alert.event}",
        f"*Timeframe:* {alert.timeframe}",
        f"*Timestamp:* {formatted_time} UTC",
        f"*Volume:* {alert.volume}",
    ]
    return "\n".join(lines)


def format_welcome(first_name: str, channel_link: str | None) -> str:
    """Format the /start greeting with the channel join link."""
    return (
        f"👋 Hi *{first_name}*!\n\n"
        "Welcome to our trading alert system.\n"
        "Click below to join our private channel:\n"
        f"👉 [Join Now]({channel_link or ''})"
    )
