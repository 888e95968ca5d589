"""Presence, history and message routing for the chat relay."""
from .coordinator import (
    ConnectionState,
    DisplayNameTaken,
    DuplicateNamePolicy,
    PresenceCoordinator,
)
from .events import (
    EventType,
    JoinedEvent,
    LeftEvent,
    MessageEvent,
    ReconnectedEvent,
    format_timestamp,
    parse_event,
    parse_history,
)
from .history import HistoryLog
from .messages import MessageRouter
from .registry import SessionRegistry

__all__ = [
    "ConnectionState",
    "DisplayNameTaken",
    "DuplicateNamePolicy",
    "EventType",
    "HistoryLog",
    "JoinedEvent",
    "LeftEvent",
    "MessageEvent",
    "MessageRouter",
    "PresenceCoordinator",
    "ReconnectedEvent",
    "SessionRegistry",
    "format_timestamp",
    "parse_event",
    "parse_history",
]
