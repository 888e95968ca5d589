"""Client-side presence reconstruction.

A client never queries server state. It rebuilds the online-user set and a
display timeline from the history snapshot it receives on connect, then keeps
both current by applying live events.

The online view is approximate: it only knows what still fits in the bounded
history log. A user whose ``user_joined`` event was evicted, but who never
left, is missing from a freshly reconstructed view.
"""
from typing import Dict, Iterable, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field

from chat_relay.chat.events import (
    JoinedEvent,
    LeftEvent,
    MessageEvent,
    ReconnectedEvent,
)

AnyEvent = Union[JoinedEvent, LeftEvent, MessageEvent, ReconnectedEvent]


class TimelineEntry(BaseModel):
    """One rendered line of the chat timeline.

    Attributes:
        kind: "system" for join/leave notices, "chat" for messages.
        connectionId: Connection that produced the event.
        displayName: Name of the user the entry is about.
        text: System message or chat body.
        timestamp: HH:MM label copied from the event.
        isOwn: True for chat entries sent under the local user's name.
    """
    model_config = ConfigDict(frozen=True)

    kind: Literal["system", "chat"]
    connectionId: str
    displayName: str
    text: str
    timestamp: str
    isOwn: bool = False


class TimeSeparator(BaseModel):
    """Marker rendered between timeline entries whose time labels differ."""
    model_config = ConfigDict(frozen=True)

    label: str = Field(..., description="HH:MM label of the following entries")


class PresenceReconstructor:
    """Derives the online-user set and timeline from server events.

    Attributes:
        local_name: Display name chosen by this client (for ``isOwn``).
    """

    def __init__(self, local_name: Optional[str] = None) -> None:
        self.local_name = local_name
        # display name -> latest connection ID believed online
        self._online: Dict[str, str] = {}
        self._timeline: List[TimelineEntry] = []

    @property
    def online(self) -> Dict[str, str]:
        """Copy of the ``displayName -> connectionId`` online mapping."""
        return dict(self._online)

    @property
    def online_users(self) -> List[str]:
        """Sorted display names currently believed online."""
        return sorted(self._online)

    @property
    def timeline(self) -> List[TimelineEntry]:
        return list(self._timeline)

    def load_snapshot(self, events: Iterable[Union[JoinedEvent, LeftEvent, MessageEvent]]) -> None:
        """Replace all state by replaying a history snapshot in order."""
        self._online.clear()
        self._timeline.clear()
        for event in events:
            if isinstance(event, JoinedEvent):
                self._online[event.displayName] = event.connectionId
                self._timeline.append(self._system_entry(event))
            elif isinstance(event, LeftEvent):
                # Replay drops by name; whichever connection it carried is stale
                self._online.pop(event.displayName, None)
                self._timeline.append(self._system_entry(event))
            elif isinstance(event, MessageEvent):
                self._timeline.append(self._chat_entry(event))

    def apply(self, event: AnyEvent) -> None:
        """Apply one live broadcast."""
        if isinstance(event, JoinedEvent):
            known = (event.displayName in self._online
                     or event.connectionId in self._online.values())
            if not known:
                self._online[event.displayName] = event.connectionId
            self._timeline.append(self._system_entry(event))
        elif isinstance(event, ReconnectedEvent):
            self._online.pop(event.displayName, None)
            self._online[event.displayName] = event.connectionId
        elif isinstance(event, MessageEvent):
            self._timeline.append(self._chat_entry(event))
        elif isinstance(event, LeftEvent):
            for name, connection_id in list(self._online.items()):
                if connection_id == event.connectionId:
                    del self._online[name]
            self._timeline.append(self._system_entry(event))

    def _system_entry(self, event: Union[JoinedEvent, LeftEvent]) -> TimelineEntry:
        return TimelineEntry(
            kind="system",
            connectionId=event.connectionId,
            displayName=event.displayName,
            text=event.message,
            timestamp=event.timestamp,
        )

    def _chat_entry(self, event: MessageEvent) -> TimelineEntry:
        return TimelineEntry(
            kind="chat",
            connectionId=event.connectionId,
            displayName=event.displayName,
            text=event.body,
            timestamp=event.timestamp,
            isOwn=self.local_name is not None and event.displayName == self.local_name,
        )


def with_time_separators(
    entries: Iterable[TimelineEntry],
) -> List[Union[TimeSeparator, TimelineEntry]]:
    """Interleave time separators into a timeline for display.

    Consecutive entries sharing a time label are grouped; a separator goes
    before an entry only when its label differs from the previous entry's,
    and never before the first entry.
    """
    rendered: List[Union[TimeSeparator, TimelineEntry]] = []
    previous: Optional[str] = None
    for index, entry in enumerate(entries):
        if index > 0 and entry.timestamp != previous:
            rendered.append(TimeSeparator(label=entry.timestamp))
        rendered.append(entry)
        previous = entry.timestamp
    return rendered
