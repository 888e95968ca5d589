"""Peer-side helpers: presence reconstruction and a WebSocket client."""
from .presence import (
    PresenceReconstructor,
    TimelineEntry,
    TimeSeparator,
    with_time_separators,
)
from .session import ChatClient, ProtocolError

__all__ = [
    "ChatClient",
    "PresenceReconstructor",
    "ProtocolError",
    "TimeSeparator",
    "TimelineEntry",
    "with_time_separators",
]
