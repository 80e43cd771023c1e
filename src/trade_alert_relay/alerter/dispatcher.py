"""Alert dispatcher routing messages to destination channels."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Protocol

from trade_alert_relay.alerter.models import Destination

logger = logging.getLogger(__name__)


class AlertChannel(Protocol):
    """Protocol for message delivery channels."""

    name: str

    async def send(
        self,
        text: str,
        *,
        chat_id: int | str | None = None,
        disable_web_page_preview: bool = False,
    ) -> bool:
        """Send text to the channel. Returns True on success."""
        ...


@dataclass
class DispatchResult:
    """Result of a single dispatch attempt."""

    destination: Destination
    success: bool
    channel_name: str | None = None
    timestamp: datetime = field(default_factory=lambda: datetime.now(UTC))


class AlertDispatcher:
    """Dispatcher sending each message to the channel bound to its destination.

    Every call makes at most one delivery attempt. A destination with no
    channel configured counts as a failed dispatch.
    """

    def __init__(
        self,
        channels: dict[Destination, AlertChannel],
        *,
        dry_run: bool = False,
    ) -> None:
        """Initialize the dispatcher.

        Args:
            channels: Channel to use for each destination.
            dry_run: Log messages instead of sending them.
        """
        self.channels = channels
        self.dry_run = dry_run

    @property
    def destinations(self) -> list[Destination]:
        """Destinations that have a channel configured."""
        return [d for d in Destination if d in self.channels]

    async def dispatch(
        self,
        destination: Destination,
        text: str,
        *,
        chat_id: int | str | None = None,
        disable_web_page_preview: bool = False,
    ) -> DispatchResult:
        """Send text to the channel for a destination.

        Args:
            destination: Target destination.
            text: Message text.
            chat_id: Override the channel's default chat.
            disable_web_page_preview: Suppress link previews.

        Returns:
            DispatchResult describing the attempt.
        """
        channel = self.channels.get(destination)
        if channel is None:
            logger.error(f"No channel configured for {destination.name}")
            return DispatchResult(destination=destination, success=False)

        if self.dry_run:
            logger.info(f"[dry-run] Would send to {channel.name}:\n{text}")
            return DispatchResult(
                destination=destination, success=True, channel_name=channel.name
            )

        try:
            success = await channel.send(
                text,
                chat_id=chat_id,
                disable_web_page_preview=disable_web_page_preview,
            )
        except Exception as e:
            logger.error(f"Error sending to {channel.name}: {e}")
            success = False

        if success:
            logger.info(f"Dispatched to {destination.name} via {channel.name}")
        else:
            logger.warning(f"Dispatch to {destination.name} via {channel.name} failed")

        return DispatchResult(
            destination=destination, success=success, channel_name=channel.name
        )
