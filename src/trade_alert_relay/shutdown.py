"""Graceful shutdown handling for the webhook server.

Usage:
    ```python
    async def main():
        shutdown = GracefulShutdown()

        async with shutdown:
            await server.start()
            shutdown.register_cleanup(server.stop)

            # Block until SIGINT/SIGTERM
            await shutdown.wait()
    ```
"""

from __future__ import annotations

import asyncio
import logging
import signal
import sys
from collections.abc import Callable
from contextlib import suppress
from typing import Any

logger = logging.getLogger(__name__)

# Default time allowed for cleanup callbacks, in seconds
DEFAULT_SHUTDOWN_TIMEOUT = 10.0

# Signals to trap for graceful shutdown
SHUTDOWN_SIGNALS = (signal.SIGTERM, signal.SIGINT)


class GracefulShutdown:
    """Signal-driven shutdown coordinator.

    Traps SIGTERM and SIGINT on the running event loop, exposes an event
    to wait on, and runs registered cleanup callbacks on exit. A second
    signal exits the process immediately.
    """

    def __init__(self, timeout: float = DEFAULT_SHUTDOWN_TIMEOUT) -> None:
        """Initialize the shutdown handler.

        Args:
            timeout: Maximum seconds to spend in each cleanup callback.
        """
        self._timeout = timeout
        self._shutdown_event: asyncio.Event | None = None
        self._shutdown_requested = False
        self._cleanup_callbacks: list[Callable[[], Any]] = []
        self._loop: asyncio.AbstractEventLoop | None = None

    @property
    def timeout(self) -> float:
        """Cleanup timeout in seconds."""
        return self._timeout

    @property
    def is_shutdown_requested(self) -> bool:
        """Check if shutdown has been requested."""
        return self._shutdown_requested

    def register_cleanup(self, callback: Callable[[], Any]) -> None:
        """Register a sync or async callback to run on shutdown."""
        self._cleanup_callbacks.append(callback)

    def request_shutdown(self) -> None:
        """Programmatically request shutdown."""
        if not self._shutdown_requested:
            self._shutdown_requested = True
            logger.info("Shutdown requested programmatically")
            if self._shutdown_event:
                self._shutdown_event.set()

    async def wait(self) -> None:
        """Block until a shutdown signal arrives or request_shutdown() is called."""
        if self._shutdown_event is None:
            self._shutdown_event = asyncio.Event()
        if self._shutdown_requested:
            self._shutdown_event.set()

        await self._shutdown_event.wait()

    def install_signal_handlers(self) -> None:
        """Install SIGTERM/SIGINT handlers on the running loop."""
        self._loop = asyncio.get_running_loop()
        if self._shutdown_event is None:
            self._shutdown_event = asyncio.Event()

        if sys.platform == "win32":
            # add_signal_handler is unavailable; rely on KeyboardInterrupt
            return

        for sig in SHUTDOWN_SIGNALS:
            try:
                self._loop.add_signal_handler(sig, self._handle_signal, sig)
            except (ValueError, OSError) as e:
                logger.warning("Could not install handler for %s: %s", sig.name, e)

    def remove_signal_handlers(self) -> None:
        """Remove installed signal handlers."""
        if self._loop is None or sys.platform == "win32":
            return

        for sig in SHUTDOWN_SIGNALS:
            with suppress(ValueError, OSError):
                self._loop.remove_signal_handler(sig)

    def _handle_signal(self, sig: signal.Signals) -> None:
        """Handle a shutdown signal."""
        if self._shutdown_requested:
            logger.warning("Received %s again - forcing exit!", sig.name)
            sys.exit(128 + sig.value)

        self._shutdown_requested = True
        logger.info("Received %s - shutting down...", sig.name)
        if self._shutdown_event:
            self._shutdown_event.set()

    async def run_cleanup_callbacks(self) -> None:
        """Run all registered cleanup callbacks."""
        for callback in self._cleanup_callbacks:
            try:
                result = callback()
                if asyncio.iscoroutine(result):
                    await asyncio.wait_for(result, timeout=self._timeout)
            except TimeoutError:
                logger.error("Cleanup callback timed out after %.1fs", self._timeout)
            except Exception as e:
                logger.error("Cleanup callback failed: %s", e)

    async def __aenter__(self) -> GracefulShutdown:
        """Install signal handlers."""
        self.install_signal_handlers()
        return self

    async def __aexit__(self, *_args: Any) -> None:
        """Remove signal handlers and run cleanup."""
        self.remove_signal_handlers()
        await self.run_cleanup_callbacks()
