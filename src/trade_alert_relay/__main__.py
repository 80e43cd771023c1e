"""Command-line entry point: ``trade-alert-relay`` or ``python -m trade_alert_relay``."""

from __future__ import annotations

import argparse
import asyncio
import logging
import logging.config
import sys
from typing import NoReturn

from pydantic import ValidationError

from trade_alert_relay import __version__
from trade_alert_relay.config import Settings, clear_settings_cache, get_settings
from trade_alert_relay.server import WebhookServer
from trade_alert_relay.shutdown import GracefulShutdown

logger = logging.getLogger("trade_alert_relay")

EXIT_OK = 0
EXIT_SERVER_ERROR = 1
EXIT_BAD_CONFIG = 2

LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")
LOG_FORMAT = "%(asctime)s %(levelname)-8s %(name)s | %(message)s"

# Per-request chatter from the HTTP stack
QUIET_LOGGERS = ("httpx", "httpcore", "aiohttp.access")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="trade-alert-relay",
        description="Relay TradingView and MetaTrader alerts to Telegram channels.",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")

    serve = parser.add_argument_group("server")
    serve.add_argument("--host", help="interface to bind (default: HOST or 0.0.0.0)")
    serve.add_argument("--port", type=int, help="port to listen on (default: PORT or 5000)")
    serve.add_argument(
        "--dry-run",
        action="store_true",
        help="answer webhooks normally but log messages instead of sending them",
    )

    diagnostics = parser.add_argument_group("diagnostics")
    diagnostics.add_argument(
        "--config-check",
        action="store_true",
        help="print the resolved destinations and exit",
    )
    diagnostics.add_argument("--log-level", choices=LOG_LEVELS, help="override LOG_LEVEL")
    return parser


def setup_logging(level: str) -> None:
    """Send all records to stdout at ``level``, keeping HTTP libraries at WARNING."""
    logging.config.dictConfig(
        {
            "version": 1,
            "disable_existing_loggers": False,
            "formatters": {"relay": {"format": LOG_FORMAT}},
            "handlers": {
                "stdout": {
                    "class": "logging.StreamHandler",
                    "formatter": "relay",
                    "stream": "ext://sys.stdout",
                },
            },
            "root": {"level": level, "handlers": ["stdout"]},
            "loggers": {name: {"level": "WARNING"} for name in QUIET_LOGGERS},
        }
    )


def load_settings() -> Settings | None:
    """Read settings afresh, printing each validation error to stderr on failure."""
    clear_settings_cache()
    try:
        return get_settings()
    except ValidationError as e:
        print(f"Invalid configuration ({e.error_count()} errors):", file=sys.stderr)
        for error in e.errors():
            where = ".".join(str(loc) for loc in error["loc"])
            print(f"  {where}: {error['msg']}", file=sys.stderr)
        return None


def describe_destinations(settings: Settings) -> list[str]:
    """One line per destination plus the /start join link, secrets masked."""
    summary = settings.redacted_summary()
    lines = []
    destinations = {"main": settings.telegram, "trend": settings.trend_telegram}
    for label, channel in destinations.items():
        state = "ready" if channel.enabled else "disabled, alerts routed here will fail"
        chat = summary[f"{label}_channel"]
        token = summary[f"{label}_token"]
        lines.append(f"{label:<6}chat {chat}, token {token}: {state}")
    lines.append(f"join link for /start: {summary['channel_link']}")
    return lines


def check_config(settings: Settings) -> int:
    print(f"Configuration OK, will listen on {settings.host}:{settings.port}")
    for line in describe_destinations(settings):
        print(f"  {line}")
    return EXIT_OK


async def serve(settings: Settings, *, dry_run: bool, host: str, port: int) -> int:
    """Run the webhook server until SIGINT or SIGTERM."""
    server = WebhookServer.from_settings(settings, dry_run=dry_run)
    async with GracefulShutdown() as shutdown:
        try:
            await server.start(host=host, port=port)
        except OSError as e:
            logger.error("Cannot listen on %s:%d: %s", host, port, e)
            return EXIT_SERVER_ERROR
        shutdown.register_cleanup(server.stop)
        await shutdown.wait()
    return EXIT_OK


def main(argv: list[str] | None = None) -> NoReturn:
    args = build_parser().parse_args(argv)

    settings = load_settings()
    if settings is None:
        sys.exit(EXIT_BAD_CONFIG)

    if args.config_check:
        sys.exit(check_config(settings))

    setup_logging(args.log_level or settings.log_level)
    dry_run = args.dry_run or settings.dry_run
    host = args.host or settings.host
    port = args.port or settings.port

    logger.info("Trade Alert Relay %s%s", __version__, " (dry run)" if dry_run else "")
    for line in describe_destinations(settings):
        logger.info(line)

    sys.exit(asyncio.run(serve(settings, dry_run=dry_run, host=host, port=port)))


if __name__ == "__main__":
    main()
