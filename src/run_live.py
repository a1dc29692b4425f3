"""Main entry point for the live stock feed client."""

import asyncio
import logging
import signal
import sys
import threading

from src.config import FeedSettings
from src.feed import (
    ConnectionState,
    ConnectionSupervisor,
    MessageRouter,
    StockRecord,
    Watchlist,
)

logger = logging.getLogger(__name__)

SHUTDOWN_TIMEOUT = 5.0


class FeedRunner:
    """Owns the feed components and the event loop thread they run on.

    Display code reads ``get_snapshot()`` and ``get_connection_state()``;
    both are safe to call from any thread.
    """

    def __init__(self, settings: FeedSettings | None = None):
        """Initialize the runner.

        Args:
            settings: Feed settings. Defaults to built-in defaults.
        """
        self.settings = settings or FeedSettings()
        self._init_components()

        self._loop: asyncio.AbstractEventLoop | None = None
        self._thread: threading.Thread | None = None

    def _init_components(self) -> None:
        """Build watchlist, router, and supervisor from settings."""
        self.watchlist = Watchlist(
            capacity=self.settings.capacity,
            evict_on_metadata=self.settings.evict_on_metadata,
        )
        self.router = MessageRouter(self.watchlist)
        self.supervisor = ConnectionSupervisor(
            router=self.router,
            base_url=self.settings.url,
            stream_config=self.settings.stream,
            client_prefix=self.settings.client_prefix,
            reconnect_delay=self.settings.reconnect_delay,
            on_state_change=self._on_state_change,
        )

    def get_snapshot(self) -> list[StockRecord]:
        """Point-in-time copy of the tracked stocks in display order."""
        return self.watchlist.snapshot()

    def get_connection_state(self) -> ConnectionState:
        """Current connection state."""
        return self.supervisor.state

    def _on_state_change(self, state: ConnectionState) -> None:
        logger.info(f"Connection status: {state.value}")

    def _run_async_loop(self) -> None:
        """Run the event loop in a background thread until stopped."""
        loop = self._loop
        asyncio.set_event_loop(loop)
        try:
            loop.call_soon(self.supervisor.start)
            loop.run_forever()
        finally:
            loop.close()

    def start_background(self) -> None:
        """Start the feed client in a background thread."""
        if self._thread is not None:
            return
        logger.info(f"Starting feed client for {self.settings.url} in background...")
        self._loop = asyncio.new_event_loop()
        self._thread = threading.Thread(target=self._run_async_loop, daemon=True)
        self._thread.start()

    async def _shutdown(self) -> None:
        self.supervisor.stop()
        await self.supervisor.wait_closed()

    def stop(self) -> None:
        """Close the connection normally and stop the event loop thread."""
        if self._loop is None or self._thread is None:
            return
        logger.info("Shutting down...")

        if not self._loop.is_closed():
            future = asyncio.run_coroutine_threadsafe(self._shutdown(), self._loop)
            try:
                future.result(timeout=SHUTDOWN_TIMEOUT)
            except TimeoutError:
                logger.warning("Timed out waiting for connection to close")
            self._loop.call_soon_threadsafe(self._loop.stop)

        self._thread.join(timeout=SHUTDOWN_TIMEOUT)
        self._thread = None
        self._loop = None


def format_status(state: ConnectionState, records: list[StockRecord]) -> str:
    """One-line summary of connection state and tracked symbols."""
    if not records:
        return f"[{state.value}] no stocks yet"
    symbols = ", ".join(
        f"{r.symbol}={r.price:.2f}" if r.price is not None else f"{r.symbol}=N/A"
        for r in records
    )
    return f"[{state.value}] {len(records)} stocks: {symbols}"


def main() -> None:
    """Run the feed client until SIGINT or SIGTERM."""
    settings = FeedSettings.from_env()
    logging.basicConfig(
        level=getattr(logging, settings.log_level, logging.INFO),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

    runner = FeedRunner(settings)
    stop_event = threading.Event()

    def handle_shutdown(signum, frame):
        """Handle shutdown signals."""
        logger.info(f"Received signal {signum}, shutting down...")
        stop_event.set()

    signal.signal(signal.SIGTERM, handle_shutdown)
    signal.signal(signal.SIGINT, handle_shutdown)

    runner.start_background()
    try:
        while not stop_event.wait(settings.status_interval):
            logger.info(format_status(runner.get_connection_state(), runner.get_snapshot()))
    finally:
        runner.stop()
    sys.exit(0)


if __name__ == "__main__":
    main()
