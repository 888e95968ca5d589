"""Wire-level event models shared by the server core and the client.

Every event carries a ``type`` tag so that history snapshots and live
broadcasts can be decoded without inspecting human-readable text. Field names
are camelCase because they go over the wire as-is.

Event types:
    - user_joined: a display name joined the chat (stored in history)
    - user_left: a named connection disconnected (stored in history)
    - receive_message: a chat message (stored in history)
    - user_reconnected: a name was re-announced (presence only, never stored)
"""
from datetime import datetime
from enum import Enum
from typing import Annotated, Any, Iterable, List, Literal, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter

TIMESTAMP_FORMAT = "%H:%M"


class EventType(str, Enum):
    """Tag carried in the ``type`` field of every server event."""
    JOINED = "user_joined"
    LEFT = "user_left"
    MESSAGE = "receive_message"
    RECONNECTED = "user_reconnected"


class _Event(BaseModel):
    model_config = ConfigDict(frozen=True)

    connectionId: str = Field(..., description="Transport-assigned connection ID")
    displayName: str = Field(..., description="Display name of the user")


class JoinedEvent(_Event):
    """A display name announced for the first time while nobody held it."""
    type: Literal["user_joined"] = "user_joined"
    message: str = Field(..., description="Human-readable system message")
    timestamp: str = Field(..., description="HH:MM label, not used for ordering")


class LeftEvent(_Event):
    """A named connection disconnected."""
    type: Literal["user_left"] = "user_left"
    message: str = Field(..., description="Human-readable system message")
    timestamp: str = Field(..., description="HH:MM label, not used for ordering")
    totalUsers: int = Field(default=0, description="Named connections still online")


class MessageEvent(_Event):
    """A chat message posted by a named connection."""
    type: Literal["receive_message"] = "receive_message"
    body: str = Field(..., description="Message text, passed through as sent")
    timestamp: str = Field(..., description="HH:MM label, not used for ordering")


class ReconnectedEvent(_Event):
    """A display name was re-announced by a new connection."""
    type: Literal["user_reconnected"] = "user_reconnected"


HistoryEvent = Annotated[
    Union[JoinedEvent, LeftEvent, MessageEvent],
    Field(discriminator="type"),
]

ServerEvent = Annotated[
    Union[JoinedEvent, LeftEvent, MessageEvent, ReconnectedEvent],
    Field(discriminator="type"),
]

_server_event_adapter: TypeAdapter = TypeAdapter(ServerEvent)
_history_adapter: TypeAdapter = TypeAdapter(List[HistoryEvent])


def format_timestamp(moment: datetime) -> str:
    """Render *moment* as a minute-granularity ``HH:MM`` label."""
    return moment.strftime(TIMESTAMP_FORMAT)


def parse_event(payload: Any) -> Union[JoinedEvent, LeftEvent, MessageEvent, ReconnectedEvent]:
    """Decode a wire dictionary into the matching event model.

    Raises:
        pydantic.ValidationError: If the payload has an unknown ``type`` or
            is missing fields.
    """
    return _server_event_adapter.validate_python(payload)


def parse_history(payloads: Iterable[Any]) -> List[Union[JoinedEvent, LeftEvent, MessageEvent]]:
    """Decode a history snapshot (oldest first) into event models."""
    return _history_adapter.validate_python(list(payloads))
