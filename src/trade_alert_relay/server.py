"""Webhook HTTP server.

Exposes the inbound webhook routes plus health and Prometheus metrics
endpoints on a single aiohttp application.
"""

from __future__ import annotations

import logging
import time
from typing import TYPE_CHECKING, Any

from aiohttp import web
from prometheus_client import generate_latest

from trade_alert_relay.alerter.channels.telegram import TelegramChannel
from trade_alert_relay.alerter.dispatcher import AlertChannel, AlertDispatcher
from trade_alert_relay.alerter.models import Destination, OutcomeKind, RelayOutcome
from trade_alert_relay.alerter.relay import AlertRelay

if TYPE_CHECKING:
    from trade_alert_relay.config import Settings

logger = logging.getLogger(__name__)

DEFAULT_HOST = "0.0.0.0"
DEFAULT_PORT = 5000

BANNER_TEXT = "🚀 TradingView Webhook + Telegram Bot Webhook Running"
INVALID_PAYLOAD_TEXT = "Invalid payload"

OUTCOME_STATUS = {
    OutcomeKind.DISPATCHED: 200,
    OutcomeKind.SUPPRESSED: 200,
    OutcomeKind.ACKNOWLEDGED: 200,
    OutcomeKind.INVALID: 400,
    OutcomeKind.FAILED: 500,
}


def build_dispatcher(settings: Settings, *, dry_run: bool = False) -> AlertDispatcher:
    """Create a dispatcher with a Telegram channel for each configured destination."""
    channels: dict[Destination, AlertChannel] = {}
    configured = {
        Destination.MAIN: (settings.telegram.bot_token, settings.telegram.chat_id),
        Destination.TREND: (settings.trend_telegram.bot_token, settings.trend_telegram.chat_id),
    }

    for destination, (bot_token, chat_id) in configured.items():
        if bot_token is None or chat_id is None:
            logger.warning("Telegram channel for %s not configured", destination.name)
            continue
        channels[destination] = TelegramChannel(
            bot_token=bot_token.get_secret_value(),
            chat_id=chat_id,
            name=f"telegram-{destination.value}",
            timeout=settings.telegram_timeout,
        )

    return AlertDispatcher(channels, dry_run=dry_run)


def outcome_response(outcome: RelayOutcome, invalid_text: str | None = None) -> web.Response:
    """Map a relay outcome to a plain-text HTTP response."""
    text = outcome.detail
    if outcome.kind == OutcomeKind.INVALID and invalid_text is not None:
        text = invalid_text
    return web.Response(text=text, status=OUTCOME_STATUS[outcome.kind])


class WebhookServer:
    """HTTP server for the relay webhooks.

    Example:
        ```python
        server = WebhookServer(relay)
        await server.start(port=5000)
        ...
        await server.stop()
        ```
    """

    def __init__(self, relay: AlertRelay) -> None:
        """Initialize the server.

        Args:
            relay: Relay service handling request bodies.
        """
        self.relay = relay
        self._start_time: float | None = None
        self._app: web.Application | None = None
        self._runner: web.AppRunner | None = None

    @classmethod
    def from_settings(cls, settings: Settings, *, dry_run: bool = False) -> WebhookServer:
        """Build a server and its relay from application settings."""
        dispatcher = build_dispatcher(settings, dry_run=dry_run)
        relay = AlertRelay(dispatcher, channel_link=settings.channel_link)
        return cls(relay)

    @property
    def is_running(self) -> bool:
        """Return True if the HTTP server is running."""
        return self._runner is not None

    async def _handle_index(self, _request: web.Request) -> web.Response:
        """Handle / banner route."""
        return web.Response(text=BANNER_TEXT)

    async def _handle_tradingview(self, request: web.Request) -> web.Response:
        """Handle /tradingview-webhook."""
        body = await request.text()
        outcome = await self.relay.relay_tradingview(body)
        return outcome_response(outcome, INVALID_PAYLOAD_TEXT)

    async def _handle_telegram(self, request: web.Request) -> web.Response:
        """Handle /telegram-webhook bot updates."""
        body = await request.text()
        outcome = await self.relay.handle_bot_update(body)
        return outcome_response(outcome)

    async def _handle_meta(self, request: web.Request) -> web.Response:
        """Handle /meta MetaTrader alerts, sent as raw text of any content type."""
        body = await request.text()
        logger.debug(f"Raw MT5 body: {body}")
        outcome = await self.relay.relay_meta_alert(body)
        return outcome_response(outcome, INVALID_PAYLOAD_TEXT)

    async def _handle_health(self, _request: web.Request) -> web.Response:
        """Handle /health endpoint."""
        uptime = time.time() - self._start_time if self._start_time else 0.0
        body: dict[str, Any] = {
            "status": "healthy",
            "uptime_seconds": uptime,
            "destinations": [d.name for d in self.relay.dispatcher.destinations],
            "dry_run": self.relay.dispatcher.dry_run,
        }
        return web.json_response(body)

    async def _handle_metrics(self, _request: web.Request) -> web.Response:
        """Handle /metrics endpoint (Prometheus format)."""
        return web.Response(
            body=generate_latest(),
            content_type="text/plain",
            charset="utf-8",
        )

    def create_app(self) -> web.Application:
        """Create the aiohttp application."""
        app = web.Application()
        app.router.add_get("/", self._handle_index)
        app.router.add_post("/tradingview-webhook", self._handle_tradingview)
        app.router.add_post("/telegram-webhook", self._handle_telegram)
        app.router.add_post("/meta", self._handle_meta)
        app.router.add_get("/health", self._handle_health)
        app.router.add_get("/metrics", self._handle_metrics)
        return app

    async def start(self, host: str = DEFAULT_HOST, port: int = DEFAULT_PORT) -> None:
        """Start serving webhooks.

        Args:
            host: Interface to bind.
            port: Port to listen on.
        """
        if self._runner:
            logger.warning("Webhook server already running")
            return

        self._app = self.create_app()
        self._runner = web.AppRunner(self._app)
        await self._runner.setup()

        site = web.TCPSite(self._runner, host, port)
        await site.start()
        self._start_time = time.time()

        logger.info("Webhook server running at http://%s:%d", host, port)

    async def stop(self) -> None:
        """Stop the HTTP server."""
        if self._runner:
            await self._runner.cleanup()
            self._runner = None
            self._app = None
            logger.info("Webhook server stopped")

    async def __aenter__(self) -> WebhookServer:
        """Async context manager entry."""
        await self.start()
        return self

    async def __aexit__(self, *args: Any) -> None:
        """Async context manager exit."""
        await self.stop()
