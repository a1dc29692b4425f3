"""Feed client: WebSocket transport, connection supervisor, router, and watchlist."""

from .errors import (
    FeedError,
    MalformedFrameError,
    TransportOpenFailure,
    UnknownMessageTypeError,
)
from .router import MessageRouter, PriceUpdate, StockInfo
from .supervisor import ConnectionState, ConnectionSupervisor
from .transport import WebSocketTransport
from .watchlist import StockRecord, Watchlist

__all__ = [
    "ConnectionState",
    "ConnectionSupervisor",
    "FeedError",
    "MalformedFrameError",
    "MessageRouter",
    "PriceUpdate",
    "StockInfo",
    "StockRecord",
    "TransportOpenFailure",
    "UnknownMessageTypeError",
    "Watchlist",
    "WebSocketTransport",
]
