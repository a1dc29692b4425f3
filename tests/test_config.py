"""Tests for StreamConfig and FeedSettings."""

import json

import pytest

from src.config import DEFAULT_FEED_URL, FeedSettings, StreamConfig

FEED_ENV_VARS = [
    "FEED_URL",
    "FEED_CLIENT_PREFIX",
    "FEED_FREQUENCY",
    "FEED_VOLATILITY",
    "FEED_RECONNECT_DELAY",
    "FEED_CAPACITY",
    "FEED_EVICT_ON_METADATA",
    "FEED_STATUS_INTERVAL",
    "LOG_LEVEL",
]


@pytest.fixture
def clean_env(monkeypatch):
    """Remove all feed environment variables."""
    for name in FEED_ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    return monkeypatch


class TestStreamConfig:
    """Tests for the outbound configuration frame."""

    def test_defaults(self):
        """Defaults request one update per second at 2% volatility."""
        config = StreamConfig()
        assert config.frequency == 1.0
        assert config.volatility == 0.02

    def test_to_json_matches_wire_format(self):
        """to_json produces the frequency/volatility object."""
        config = StreamConfig(frequency=2.5, volatility=0.1)
        assert json.loads(config.to_json()) == {"frequency": 2.5, "volatility": 0.1}

    def test_zero_volatility_is_allowed(self):
        """Volatility may be zero."""
        assert StreamConfig(volatility=0.0).volatility == 0.0

    @pytest.mark.parametrize("frequency", [0.0, -1.0, float("nan")])
    def test_rejects_non_positive_frequency(self, frequency):
        """Frequency must be strictly positive."""
        with pytest.raises(ValueError, match="frequency"):
            StreamConfig(frequency=frequency)

    def test_rejects_negative_volatility(self):
        """Volatility must not be negative."""
        with pytest.raises(ValueError, match="volatility"):
            StreamConfig(volatility=-0.01)


class TestFeedSettingsFromEnv:
    """Tests for FeedSettings.from_env."""

    def test_defaults_when_unset(self, clean_env):
        """Unset variables fall back to defaults."""
        # GIVEN an environment without feed variables
        # WHEN we load settings
        settings = FeedSettings.from_env()

        # THEN defaults are used
        assert settings == FeedSettings()
        assert settings.url == DEFAULT_FEED_URL
        assert settings.reconnect_delay == 5.0
        assert settings.capacity == 10
        assert settings.evict_on_metadata is False

    def test_reads_all_variables(self, clean_env):
        """Every variable is read and converted."""
        # GIVEN a fully configured environment
        clean_env.setenv("FEED_URL", "ws://localhost:9000/stream")
        clean_env.setenv("FEED_CLIENT_PREFIX", "test-client")
        clean_env.setenv("FEED_FREQUENCY", "4")
        clean_env.setenv("FEED_VOLATILITY", "0.5")
        clean_env.setenv("FEED_RECONNECT_DELAY", "1.5")
        clean_env.setenv("FEED_CAPACITY", "25")
        clean_env.setenv("FEED_EVICT_ON_METADATA", "TRUE")
        clean_env.setenv("FEED_STATUS_INTERVAL", "2")
        clean_env.setenv("LOG_LEVEL", "debug")

        # WHEN we load settings
        settings = FeedSettings.from_env()

        # THEN values are parsed
        assert settings.url == "ws://localhost:9000/stream"
        assert settings.client_prefix == "test-client"
        assert settings.stream == StreamConfig(frequency=4.0, volatility=0.5)
        assert settings.reconnect_delay == 1.5
        assert settings.capacity == 25
        assert settings.evict_on_metadata is True
        assert settings.status_interval == 2.0
        assert settings.log_level == "DEBUG"

    def test_non_numeric_value_names_variable(self, clean_env):
        """A non-numeric value raises ValueError naming the variable."""
        clean_env.setenv("FEED_RECONNECT_DELAY", "soon")

        with pytest.raises(ValueError, match="FEED_RECONNECT_DELAY"):
            FeedSettings.from_env()

    def test_non_integer_capacity_raises(self, clean_env):
        """Capacity must be an integer."""
        clean_env.setenv("FEED_CAPACITY", "2.5")

        with pytest.raises(ValueError, match="FEED_CAPACITY"):
            FeedSettings.from_env()

    def test_zero_capacity_raises(self, clean_env):
        """Capacity below 1 is rejected."""
        clean_env.setenv("FEED_CAPACITY", "0")

        with pytest.raises(ValueError, match="FEED_CAPACITY"):
            FeedSettings.from_env()

    def test_non_positive_reconnect_delay_raises(self, clean_env):
        """Reconnect delay must be positive."""
        clean_env.setenv("FEED_RECONNECT_DELAY", "0")

        with pytest.raises(ValueError, match="FEED_RECONNECT_DELAY"):
            FeedSettings.from_env()

    def test_invalid_frequency_raises(self, clean_env):
        """An out-of-range frequency is reported as a stream configuration error."""
        clean_env.setenv("FEED_FREQUENCY", "-1")

        with pytest.raises(ValueError, match="stream configuration"):
            FeedSettings.from_env()
