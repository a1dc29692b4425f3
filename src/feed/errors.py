"""Exceptions raised by the feed client components."""

from websockets.frames import CloseCode


class FeedError(Exception):
    """Base class for all feed client errors."""


class TransportOpenFailure(FeedError):
    """The transport could not begin connecting to the feed endpoint."""


class MalformedFrameError(FeedError):
    """An inbound frame could not be decoded into a known message shape."""


class UnknownMessageTypeError(FeedError):
    """An inbound frame carried a missing or unrecognized ``type`` field.

    Attributes:
        message_type: The raw ``type`` value, or None when absent.
    """

    def __init__(self, message_type: object):
        super().__init__(f"Unknown message type: {message_type!r}")
        self.message_type = message_type


def is_normal_closure(code: int | None) -> bool:
    """Return True if a close code means a deliberate, terminal shutdown."""
    return code == CloseCode.NORMAL_CLOSURE
