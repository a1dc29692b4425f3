"""Connection state machine with fixed-delay reconnection."""

import asyncio
import functools
import logging
import secrets
import time
from collections.abc import Callable
from enum import Enum

from websockets.frames import CloseCode

from ..config import StreamConfig
from .errors import TransportOpenFailure, is_normal_closure
from .router import MessageRouter
from .transport import WebSocketTransport

logger = logging.getLogger(__name__)

DEFAULT_RECONNECT_DELAY = 5.0


class ConnectionState(Enum):
    """Connection status exposed to display code."""

    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    CONNECTED = "connected"
    ERRORED = "error"


def make_client_id(prefix: str) -> str:
    """Build a per-attempt client identifier from the wall clock and a random suffix."""
    return f"{prefix}-{int(time.time() * 1000)}-{secrets.token_hex(3)}"


class ConnectionSupervisor:
    """Drives one WebSocket session at a time and reconnects after abnormal closes.

    All methods and transport callbacks must run on the same event loop, which
    serializes state transitions. An abnormal close schedules a single
    reconnect after ``reconnect_delay`` seconds; retries continue until
    ``stop()`` is called or the server closes normally.
    """

    def __init__(
        self,
        router: MessageRouter,
        base_url: str,
        stream_config: StreamConfig | None = None,
        client_prefix: str = "quote-client",
        reconnect_delay: float = DEFAULT_RECONNECT_DELAY,
        transport_factory: Callable[..., WebSocketTransport] = WebSocketTransport,
        loop: asyncio.AbstractEventLoop | None = None,
        on_state_change: Callable[["ConnectionState"], None] | None = None,
    ):
        """Initialize supervisor.

        Args:
            router: Router receiving every inbound frame.
            base_url: Feed endpoint; the client id is appended as a path segment.
            stream_config: Configuration frame sent on every successful open.
            client_prefix: Prefix for generated client identifiers.
            reconnect_delay: Seconds to wait before reconnecting.
            transport_factory: Builds a transport from a URL and callbacks.
            loop: Event loop for the reconnect timer. Defaults to the running loop.
            on_state_change: Optional callback invoked after each transition.
        """
        self.router = router
        self.base_url = base_url.rstrip("/")
        self.stream_config = stream_config or StreamConfig()
        self.client_prefix = client_prefix
        self.reconnect_delay = reconnect_delay
        self.on_state_change = on_state_change
        self._transport_factory = transport_factory
        self._loop = loop
        self._state = ConnectionState.DISCONNECTED
        self._transport: WebSocketTransport | None = None
        self._session = 0
        self._reconnect_handle: asyncio.TimerHandle | None = None
        self._stopping = False
        self.client_id: str | None = None

    @property
    def state(self) -> ConnectionState:
        """Current connection state."""
        return self._state

    @property
    def reconnect_pending(self) -> bool:
        """True while a reconnect attempt is scheduled."""
        return self._reconnect_handle is not None

    def start(self) -> None:
        """Open a new session unless one is already connecting or connected."""
        if self._state in (ConnectionState.CONNECTING, ConnectionState.CONNECTED):
            logger.debug(f"start() ignored, already {self._state.value}")
            return

        self._stopping = False
        self._cancel_reconnect()

        self._session += 1
        session = self._session
        self.client_id = make_client_id(self.client_prefix)
        url = f"{self.base_url}/{self.client_id}"

        self._set_state(ConnectionState.CONNECTING)
        logger.info(f"Connecting to {url}...")

        try:
            self._transport = self._open_transport(url, session)
        except TransportOpenFailure as e:
            logger.error(str(e))
            self._set_state(ConnectionState.ERRORED)

    def stop(self) -> None:
        """Close the live session normally and cancel any pending reconnect."""
        self._stopping = True
        self._cancel_reconnect()

        if self._transport is not None:
            logger.info("Closing feed connection")
            self._transport.close(CloseCode.NORMAL_CLOSURE, "Client shutting down")

    def _open_transport(self, url: str, session: int) -> WebSocketTransport:
        transport = self._transport_factory(
            url,
            on_open=functools.partial(self._handle_open, session),
            on_message=functools.partial(self._handle_message, session),
            on_error=functools.partial(self._handle_error, session),
            on_close=functools.partial(self._handle_close, session),
        )
        try:
            transport.connect()
        except Exception as e:
            raise TransportOpenFailure(f"Failed to connect to {url}: {e}") from e
        return transport

    async def wait_closed(self) -> None:
        """Wait for the live session, if any, to finish closing."""
        if self._transport is not None:
            await self._transport.wait_closed()

    def _handle_open(self, session: int) -> None:
        if session != self._session:
            return
        self._set_state(ConnectionState.CONNECTED)
        logger.info(f"Feed connected as {self.client_id}")

        try:
            self._transport.send(self.stream_config.to_json())
        except Exception as e:
            logger.error(f"Failed to send configuration: {e}")
            return
        logger.info(f"Sent configuration: {self.stream_config}")

    def _handle_message(self, session: int, message: str | bytes) -> None:
        if session != self._session:
            return
        try:
            self.router.route(message)
        except Exception as e:
            logger.error(f"Error handling message: {e}")

    def _handle_error(self, session: int, error: Exception) -> None:
        if session != self._session:
            return
        logger.error(f"WebSocket error: {error}")
        self._set_state(ConnectionState.ERRORED)

    def _handle_close(self, session: int, code: int, reason: str) -> None:
        if session != self._session:
            return
        self._transport = None
        self._set_state(ConnectionState.DISCONNECTED)

        if is_normal_closure(code) or self._stopping:
            logger.info(f"Feed disconnected: {code} {reason}".rstrip())
            return

        logger.warning(f"WebSocket connection closed: {code} {reason}".rstrip())
        self._schedule_reconnect()

    def _schedule_reconnect(self) -> None:
        if self._reconnect_handle is not None:
            return
        loop = self._loop or asyncio.get_running_loop()
        logger.info(f"Reconnecting in {self.reconnect_delay:.1f}s...")
        self._reconnect_handle = loop.call_later(self.reconnect_delay, self._reconnect)

    def _reconnect(self) -> None:
        self._reconnect_handle = None
        logger.info("Attempting to reconnect...")
        self.start()

    def _cancel_reconnect(self) -> None:
        if self._reconnect_handle is not None:
            self._reconnect_handle.cancel()
            self._reconnect_handle = None

    def _set_state(self, state: ConnectionState) -> None:
        if state is self._state:
            return
        logger.debug(f"Connection state {self._state.value} -> {state.value}")
        self._state = state
        if self.on_state_change:
            self.on_state_change(state)
