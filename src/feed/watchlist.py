"""Bounded, insertion-ordered cache of the most recently seen stocks."""

import dataclasses
import logging
import threading
from dataclasses import dataclass
from datetime import datetime

logger = logging.getLogger(__name__)

DEFAULT_CAPACITY = 10


@dataclass(frozen=True)
class StockRecord:
    """Latest known state for a single stock symbol.

    Attributes:
        symbol: Ticker symbol, unique within a watchlist.
        display_name: Company name from stock_info messages.
        category: Industry from stock_info messages.
        price: Last traded price, None until a price_update arrives.
        observed_at: Timestamp of the latest message mentioning the symbol.
    """

    symbol: str
    display_name: str | None = None
    category: str | None = None
    price: float | None = None
    observed_at: datetime | None = None


class Watchlist:
    """Thread-safe, symbol-unique list of stock records.

    Records keep the position they were inserted at; updates mutate them in
    place. Capacity is enforced by truncating to the first ``capacity``
    records after each price update, so a new symbol arriving while the list
    is full is dropped rather than evicting an older one.

    Metadata-only inserts skip the capacity rule unless ``evict_on_metadata``
    is set, so the list can briefly hold more than ``capacity`` records until
    the next price update trims it.
    """

    def __init__(self, capacity: int = DEFAULT_CAPACITY, evict_on_metadata: bool = False):
        """Initialize watchlist.

        Args:
            capacity: Maximum number of records kept by the price update path.
            evict_on_metadata: Apply the capacity rule to stock_info inserts too.
        """
        if capacity < 1:
            raise ValueError(f"capacity must be at least 1, got {capacity}")
        self.capacity = capacity
        self.evict_on_metadata = evict_on_metadata
        # dict preserves insertion order and keeps a key's position on reassignment
        self._records: dict[str, StockRecord] = {}
        self._lock = threading.RLock()

    def upsert_metadata(
        self,
        symbol: str,
        name: str | None,
        industry: str | None,
        timestamp: datetime | None,
    ) -> None:
        """Merge descriptive fields for a symbol.

        Args:
            symbol: Ticker symbol.
            name: Company name, may be None.
            industry: Industry classification, may be None.
            timestamp: Message timestamp.
        """
        with self._lock:
            existing = self._records.get(symbol)
            if existing is not None:
                self._records[symbol] = dataclasses.replace(
                    existing,
                    display_name=name,
                    category=industry,
                    observed_at=timestamp,
                )
                return

            self._records[symbol] = StockRecord(
                symbol=symbol,
                display_name=name,
                category=industry,
                observed_at=timestamp,
            )
            if self.evict_on_metadata:
                self._truncate()
            elif len(self._records) > self.capacity:
                logger.debug(
                    f"Watchlist holds {len(self._records)} records after "
                    f"metadata insert of {symbol} (capacity {self.capacity})"
                )

    def upsert_price(self, symbol: str, price: float, timestamp: datetime | None) -> None:
        """Merge a price update for a symbol, then apply the capacity rule.

        Args:
            symbol: Ticker symbol.
            price: Latest price. Not range-checked.
            timestamp: Message timestamp.
        """
        with self._lock:
            existing = self._records.get(symbol)
            if existing is not None:
                self._records[symbol] = dataclasses.replace(
                    existing, price=price, observed_at=timestamp
                )
            else:
                self._records[symbol] = StockRecord(
                    symbol=symbol, price=price, observed_at=timestamp
                )
            self._truncate()

    def _truncate(self) -> None:
        """Keep only the first ``capacity`` records. Caller holds the lock."""
        if len(self._records) <= self.capacity:
            return
        dropped = list(self._records)[self.capacity :]
        self._records = dict(list(self._records.items())[: self.capacity])
        logger.debug(f"Watchlist full, dropped {dropped}")

    def snapshot(self) -> list[StockRecord]:
        """Get a point-in-time copy of the records in insertion order.

        Returns:
            New list of immutable records. Safe to hold across updates.
        """
        with self._lock:
            return list(self._records.values())

    def get(self, symbol: str) -> StockRecord | None:
        """Get the current record for a symbol, or None if not tracked."""
        with self._lock:
            return self._records.get(symbol)

    def __len__(self) -> int:
        with self._lock:
            return len(self._records)

    def __contains__(self, symbol: object) -> bool:
        with self._lock:
            return symbol in self._records
