"""Decoding and dispatch of inbound feed frames."""

import json
import logging
import math
from dataclasses import dataclass
from datetime import datetime

from .errors import MalformedFrameError, UnknownMessageTypeError
from .watchlist import Watchlist

logger = logging.getLogger(__name__)

STOCK_INFO = "stock_info"
PRICE_UPDATE = "price_update"


@dataclass(frozen=True)
class StockInfo:
    """Descriptive data for a symbol from a stock_info frame."""

    symbol: str
    name: str | None
    industry: str | None
    timestamp: datetime | None


@dataclass(frozen=True)
class PriceUpdate:
    """Latest price for a symbol from a price_update frame."""

    symbol: str
    price: float
    timestamp: datetime | None


class MessageRouter:
    """Classifies raw frames by their ``type`` field and applies them to a Watchlist.

    Holds no state of its own. Frames must be routed in arrival order; the
    caller delivers them sequentially from a single event loop.
    """

    def __init__(self, watchlist: Watchlist):
        """Initialize router.

        Args:
            watchlist: Watchlist that receives decoded updates.
        """
        self.watchlist = watchlist

    def route(self, message: str | bytes) -> None:
        """Decode a raw frame and apply it to the watchlist.

        Malformed frames and unknown message types are logged and discarded.

        Args:
            message: Raw JSON frame from the feed.
        """
        try:
            decoded = self.decode(message)
        except UnknownMessageTypeError as e:
            logger.info(f"Ignoring frame with unknown type {e.message_type!r}")
            return
        except MalformedFrameError as e:
            logger.error(f"Failed to decode frame: {e}")
            return

        if isinstance(decoded, StockInfo):
            self.watchlist.upsert_metadata(
                decoded.symbol, decoded.name, decoded.industry, decoded.timestamp
            )
            logger.debug(f"Applied stock_info for {decoded.symbol}")
        else:
            self.watchlist.upsert_price(decoded.symbol, decoded.price, decoded.timestamp)
            logger.debug(f"Applied price_update for {decoded.symbol}: {decoded.price}")

    def decode(self, message: str | bytes) -> StockInfo | PriceUpdate:
        """Parse a raw frame into a typed message.

        Args:
            message: Raw JSON frame, text or UTF-8 bytes.

        Returns:
            StockInfo or PriceUpdate.

        Raises:
            MalformedFrameError: If the frame is not a JSON object or a
                required field is missing, mistyped, or out of range.
            UnknownMessageTypeError: If ``type`` is missing or unrecognized.
        """
        if isinstance(message, bytes):
            try:
                message = message.decode("utf-8")
            except UnicodeDecodeError as e:
                raise MalformedFrameError(f"Frame is not valid UTF-8: {e}") from e

        try:
            data = json.loads(message)
        except (ValueError, RecursionError) as e:
            # JSONDecodeError, int digit limit, or nesting too deep
            raise MalformedFrameError(f"Frame is not valid JSON: {e}") from e

        if not isinstance(data, dict):
            raise MalformedFrameError(f"Expected JSON object, got {type(data).__name__}")

        msg_type = data.get("type")
        if msg_type == STOCK_INFO:
            return StockInfo(
                symbol=_require_symbol(data),
                name=_optional_str(data, "name"),
                industry=_optional_str(data, "industry"),
                timestamp=_parse_timestamp(data.get("timestamp")),
            )
        if msg_type == PRICE_UPDATE:
            return PriceUpdate(
                symbol=_require_symbol(data),
                price=_require_price(data),
                timestamp=_parse_timestamp(data.get("timestamp")),
            )
        raise UnknownMessageTypeError(msg_type)


def _require_symbol(data: dict) -> str:
    symbol = data.get("symbol")
    if not isinstance(symbol, str) or not symbol:
        raise MalformedFrameError(f"Missing or invalid symbol: {symbol!r}")
    return symbol


def _require_price(data: dict) -> float:
    price = data.get("price")
    # bool is an int subclass
    if isinstance(price, bool) or not isinstance(price, (int, float)):
        raise MalformedFrameError(f"Missing or non-numeric price: {price!r}")
    try:
        value = float(price)
    except OverflowError:
        raise MalformedFrameError("Price out of range") from None
    if not math.isfinite(value):
        raise MalformedFrameError(f"Price must be finite, got {value}")
    return value


def _optional_str(data: dict, key: str) -> str | None:
    value = data.get(key)
    if value is None:
        return None
    if not isinstance(value, str):
        raise MalformedFrameError(f"Field {key!r} must be a string, got {value!r}")
    return value


def _parse_timestamp(iso_timestamp: object) -> datetime | None:
    """Parse an ISO8601 timestamp (e.g., "2024-01-01T12:00:00.123456Z").

    Returns:
        Parsed datetime, or None if absent or unparsable.
    """
    if not isinstance(iso_timestamp, str) or not iso_timestamp:
        return None
    try:
        return datetime.fromisoformat(iso_timestamp.replace("Z", "+00:00"))
    except ValueError:
        logger.debug(f"Unparsable timestamp: {iso_timestamp!r}")
        return None
