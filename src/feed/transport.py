"""WebSocket transport delivering frames and lifecycle events through callbacks."""

import asyncio
import logging
from collections.abc import Callable

import websockets
from websockets.exceptions import ConnectionClosed
from websockets.frames import CloseCode

logger = logging.getLogger(__name__)

OnOpen = Callable[[], None]
OnMessage = Callable[[str | bytes], None]
OnError = Callable[[Exception], None]
OnClose = Callable[[int, str], None]


class WebSocketTransport:
    """A single client connection to one WebSocket endpoint.

    ``connect``, ``send`` and ``close`` return immediately; their outcomes are
    reported through the callbacks, all invoked on the event loop that called
    ``connect``. Every session ends with exactly one ``on_close`` call, even
    when the connection never opened (reported as code 1006).
    """

    def __init__(
        self,
        url: str,
        on_open: OnOpen,
        on_message: OnMessage,
        on_error: OnError,
        on_close: OnClose,
        open_timeout: float = 10.0,
        max_size: int = 1024 * 1024,
    ):
        """Initialize transport.

        Args:
            url: WebSocket endpoint, including any client identifier.
            on_open: Called once the handshake completes.
            on_message: Called with each raw inbound frame.
            on_error: Called when the connection fails.
            on_close: Called with (code, reason) when the session ends.
            open_timeout: Seconds allowed for the opening handshake.
            max_size: Maximum inbound frame size in bytes.
        """
        self.url = url
        self.on_open = on_open
        self.on_message = on_message
        self.on_error = on_error
        self.on_close = on_close
        self.open_timeout = open_timeout
        self.max_size = max_size
        self._ws: websockets.ClientConnection | None = None
        self._task: asyncio.Task | None = None
        self._close_requested: tuple[int, str] | None = None
        self._pending: set[asyncio.Task] = set()

    def connect(self) -> None:
        """Begin connecting. Must be called from a running event loop.

        Raises:
            RuntimeError: If already connected or no event loop is running.
        """
        if self._task is not None:
            raise RuntimeError("Transport already started")
        self._task = asyncio.get_running_loop().create_task(self._run())
        self._task.add_done_callback(self._on_task_done)

    def send(self, payload: str) -> None:
        """Queue a text frame for sending.

        Raises:
            RuntimeError: If the connection is not open.
        """
        if self._ws is None:
            raise RuntimeError("Transport is not open")
        self._spawn(self._send(self._ws, payload))

    def close(self, code: int = CloseCode.NORMAL_CLOSURE, reason: str = "") -> None:
        """Close the session with the given code. Idempotent.

        A session still in its opening handshake is abandoned. The requested
        code is the one reported to ``on_close``.
        """
        if self._close_requested is not None:
            return
        self._close_requested = (code, reason)
        if self._ws is not None:
            self._spawn(self._ws.close(code, reason))
        elif self._task is not None:
            self._task.cancel()

    async def wait_closed(self) -> None:
        """Wait until the session has ended and ``on_close`` has fired."""
        if self._task is not None:
            await asyncio.wait({self._task})

    async def _run(self) -> tuple[int, str]:
        """Connect and deliver frames until the connection ends.

        Returns:
            The (code, reason) the connection closed with.
        """
        try:
            async with websockets.connect(
                self.url, open_timeout=self.open_timeout, max_size=self.max_size
            ) as ws:
                self._ws = ws
                logger.info(f"Connected to {self.url}")
                self.on_open()

                async for message in ws:
                    self.on_message(message)

            return ws.close_code or CloseCode.ABNORMAL_CLOSURE, ws.close_reason or ""
        except ConnectionClosed as e:
            if e.rcvd is not None:
                return e.rcvd.code, e.rcvd.reason
            # dropped without a closing handshake
            logger.debug(f"Connection to {self.url} lost: {e!r}")
            self.on_error(e)
            return CloseCode.ABNORMAL_CLOSURE, ""
        except Exception as e:
            logger.debug(f"Connection to {self.url} failed: {e!r}")
            self.on_error(e)
            return CloseCode.ABNORMAL_CLOSURE, ""
        finally:
            self._ws = None

    def _on_task_done(self, task: asyncio.Task) -> None:
        """Report the end of the session, including one cancelled before it began."""
        if task.cancelled():
            code, reason = CloseCode.ABNORMAL_CLOSURE, ""
        else:
            code, reason = task.result()
        if self._close_requested is not None:
            code, reason = self._close_requested
        self.on_close(code, reason)

    async def _send(self, ws: websockets.ClientConnection, payload: str) -> None:
        try:
            await ws.send(payload)
        except ConnectionClosed as e:
            logger.warning(f"Send failed, connection closed: {e}")

    def _spawn(self, coro) -> None:
        task = asyncio.get_running_loop().create_task(coro)
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)
