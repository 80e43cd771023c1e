"""Signal classification and channel routing for MetaTrader alerts.

Signal tags are matched by case-sensitive substring. The label rules are
evaluated in priority order and the first match wins; tags matching none of
them are suppressed. The destination is decided by a separate test on the
raw tag, so a tag like ``BULLISH_TREND`` is labelled "Bullish" but still
routed to the trend channel.
"""

from __future__ import annotations

from trade_alert_relay.alerter.models import (
    SUPPRESSED,
    ClassificationResult,
    Destination,
    InvalidPayload,
    Suppressed,
)

BULLISH_MARKER = "BULLISH"
BEARISH_MARKER = "BEARISH"
CROSS_MARKER = "CROSS"
VOLUME_SPIKE_MARKER = "VOLUME_SPIKE"
TREND_MARKER = "TREND"
TREND_PREFIX = "TREND_"

# (marker, label) in priority order
SIGNAL_LABELS: tuple[tuple[str, str], ...] = (
    (BULLISH_MARKER, "Bullish"),
    (BEARISH_MARKER, "Bearish"),
    (CROSS_MARKER, "EMA/SMA Cross"),
    (VOLUME_SPIKE_MARKER, "Volume Spike"),
)

TIMEFRAME_ICONS: dict[str, str] = {
    "M1": "⚡",
    "M5": "⏱️",
    "M15": "🕒",
}


def get_signal_label(signal: str) -> str | None:
    """Get the display label for a signal tag, or None if unrecognized."""
    for marker, label in SIGNAL_LABELS:
        if marker in signal:
            return label
    if TREND_MARKER in signal:
        return signal.replace(TREND_PREFIX, "Trend ", 1)
    return None


def get_destination(signal: str) -> Destination:
    """Get the destination channel for a signal tag."""
    if TREND_MARKER in signal:
        return Destination.TREND
    return Destination.MAIN


def get_timeframe_icon(timeframe: str) -> str:
    """Get the icon for a timeframe code, empty string when unknown."""
    return TIMEFRAME_ICONS.get(timeframe, "")


def classify(signal: object, timeframe: str) -> ClassificationResult | Suppressed:
    """Classify a signal tag and pick its destination.

    Args:
        signal: Raw signal tag from the alert payload.
        timeframe: Timeframe code such as "M5".

    Returns:
        ClassificationResult, or SUPPRESSED if the tag is not recognized.

    Raises:
        InvalidPayload: If signal is not a string.
    """
    if not isinstance(signal, str):
        raise InvalidPayload("Signal must be a string")

    label = get_signal_label(signal)
    if label is None:
        return SUPPRESSED

    return ClassificationResult(
        display_label=label,
        icon=get_timeframe_icon(timeframe),
        destination=get_destination(signal),
    )
