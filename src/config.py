"""Feed configuration loaded from environment variables."""

import json
import os
from dataclasses import asdict, dataclass, field

DEFAULT_FEED_URL = "wss://mockly.me/ws/stream"


@dataclass(frozen=True)
class StreamConfig:
    """Configuration frame sent to the feed once per connection.

    Attributes:
        frequency: Updates per second requested from the feed. Must be > 0.
        volatility: Simulated price volatility (0.02 = 2%). Must be >= 0.
    """

    frequency: float = 1.0
    volatility: float = 0.02

    def __post_init__(self):
        if not self.frequency > 0:
            raise ValueError(f"frequency must be > 0, got {self.frequency}")
        if not self.volatility >= 0:
            raise ValueError(f"volatility must be >= 0, got {self.volatility}")

    def to_json(self) -> str:
        """Serialize to the wire format."""
        return json.dumps(asdict(self))


@dataclass(frozen=True)
class FeedSettings:
    """Runtime settings for the feed client."""

    url: str = DEFAULT_FEED_URL
    client_prefix: str = "quote-client"
    stream: StreamConfig = field(default_factory=StreamConfig)
    reconnect_delay: float = 5.0
    capacity: int = 10
    evict_on_metadata: bool = False
    status_interval: float = 5.0
    log_level: str = "INFO"

    @classmethod
    def from_env(cls) -> "FeedSettings":
        """Load settings from environment variables.

        Environment variables:
            FEED_URL: Base WebSocket endpoint (client id is appended).
            FEED_CLIENT_PREFIX: Prefix for generated client ids.
            FEED_FREQUENCY: Requested update frequency (> 0).
            FEED_VOLATILITY: Requested price volatility (>= 0).
            FEED_RECONNECT_DELAY: Seconds between reconnect attempts (> 0).
            FEED_CAPACITY: Maximum number of tracked stocks (>= 1).
            FEED_EVICT_ON_METADATA: "true" to cap stock_info inserts as well.
            FEED_STATUS_INTERVAL: Seconds between status log lines (> 0).
            LOG_LEVEL: Logging level name.

        Returns:
            Settings with defaults for unset variables.

        Raises:
            ValueError: If a variable is set to an invalid value.
        """
        reconnect_delay = _env_float("FEED_RECONNECT_DELAY", 5.0)
        if reconnect_delay <= 0:
            raise ValueError("FEED_RECONNECT_DELAY must be > 0")
        status_interval = _env_float("FEED_STATUS_INTERVAL", 5.0)
        if status_interval <= 0:
            raise ValueError("FEED_STATUS_INTERVAL must be > 0")
        capacity = _env_int("FEED_CAPACITY", 10)
        if capacity < 1:
            raise ValueError("FEED_CAPACITY must be at least 1")

        try:
            stream = StreamConfig(
                frequency=_env_float("FEED_FREQUENCY", 1.0),
                volatility=_env_float("FEED_VOLATILITY", 0.02),
            )
        except ValueError as e:
            raise ValueError(f"Invalid stream configuration: {e}") from e

        return cls(
            url=os.environ.get("FEED_URL") or DEFAULT_FEED_URL,
            client_prefix=os.environ.get("FEED_CLIENT_PREFIX") or "quote-client",
            stream=stream,
            reconnect_delay=reconnect_delay,
            capacity=capacity,
            evict_on_metadata=os.environ.get("FEED_EVICT_ON_METADATA", "").lower() == "true",
            status_interval=status_interval,
            log_level=os.environ.get("LOG_LEVEL", "INFO").upper(),
        )


def _env_float(name: str, default: float) -> float:
    raw = os.environ.get(name)
    if not raw:
        return default
    try:
        return float(raw)
    except ValueError:
        raise ValueError(f"{name} must be a number, got {raw!r}") from None


def _env_int(name: str, default: int) -> int:
    raw = os.environ.get(name)
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError:
        raise ValueError(f"{name} must be an integer, got {raw!r}") from None
