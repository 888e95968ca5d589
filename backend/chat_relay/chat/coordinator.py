"""Presence coordinator: join vs. rejoin vs. leave decisions.

Each connection moves through ``CONNECTED_UNNAMED -> CONNECTED_NAMED ->
DISCONNECTED``. The coordinator mutates the session registry and the history
log and returns the event the transport should deliver; it never sends
anything itself, so no lock is ever held across a network send.

Thread Safety:
    Mutations run under the lock shared with the message router. On a single
    asyncio event loop the methods are synchronous, so each one is applied
    atomically and the net effect of concurrent handlers is some serial order.
"""
import logging
import threading
from datetime import datetime
from enum import Enum
from typing import Callable, Dict, Optional, Tuple, Union

from .events import (
    HistoryEvent,
    JoinedEvent,
    LeftEvent,
    ReconnectedEvent,
    format_timestamp,
)
from .history import HistoryLog
from .registry import SessionRegistry

logger = logging.getLogger(__name__)

Clock = Callable[[], datetime]


class ConnectionState(str, Enum):
    """Lifecycle state of a single connection identity."""
    CONNECTED_UNNAMED = "connected_unnamed"
    CONNECTED_NAMED = "connected_named"
    DISCONNECTED = "disconnected"


class DuplicateNamePolicy(str, Enum):
    """What to do when a name is announced while another live connection holds it.

    Attributes:
        TAKEOVER: Register the new connection anyway and broadcast a reconnect.
        REJECT: Refuse the announcement, leaving the connection unnamed.
    """
    TAKEOVER = "takeover"
    REJECT = "reject"


class DisplayNameTaken(Exception):
    """Raised under the REJECT policy when another live connection holds the name."""

    def __init__(self, display_name: str) -> None:
        super().__init__(f"Display name '{display_name}' is already in use")
        self.display_name = display_name


class PresenceCoordinator:
    """Applies connect / name-announce / disconnect events to shared state.

    Attributes:
        history: Shared bounded history log.
        registry: Shared session registry.
        policy: Duplicate-name handling.
    """

    def __init__(
        self,
        history: HistoryLog,
        registry: SessionRegistry,
        lock: Optional[threading.Lock] = None,
        policy: DuplicateNamePolicy = DuplicateNamePolicy.TAKEOVER,
        clock: Clock = datetime.now,
    ) -> None:
        self.history = history
        self.registry = registry
        self.policy = DuplicateNamePolicy(policy)
        self._lock = lock or threading.Lock()
        self._clock = clock
        # connection_id -> state, for connections that have not disconnected
        self._states: Dict[str, ConnectionState] = {}

    def state_of(self, connection_id: str) -> ConnectionState:
        """Return the state of a connection (DISCONNECTED if unknown or gone)."""
        return self._states.get(connection_id, ConnectionState.DISCONNECTED)

    def connect(self, connection_id: str) -> Tuple[HistoryEvent, ...]:
        """Start tracking a new connection.

        Returns:
            The history snapshot to send to this connection only.
        """
        with self._lock:
            self._states[connection_id] = ConnectionState.CONNECTED_UNNAMED
            snapshot = self.history.snapshot()
        logger.info(f"[Presence] Connection {connection_id} opened, replaying {len(snapshot)} events")
        return snapshot

    def announce(
        self, connection_id: str, display_name: str
    ) -> Optional[Union[JoinedEvent, ReconnectedEvent]]:
        """Handle a display-name announcement from a connection.

        Args:
            connection_id: The announcing connection.
            display_name: Requested display name (trimmed before use).

        Returns:
            A JoinedEvent if nobody held the name (also appended to history),
            a ReconnectedEvent if a live connection already held it (not
            appended), or None if the announcement was silently rejected.

        Raises:
            DisplayNameTaken: Under the REJECT policy, when a different live
                connection already holds the name.
        """
        if not isinstance(display_name, str) or not display_name.strip():
            logger.debug(f"[Presence] Ignoring empty display name from {connection_id}")
            return None
        name = display_name.strip()

        with self._lock:
            if self.state_of(connection_id) is ConnectionState.DISCONNECTED:
                logger.debug(f"[Presence] Ignoring announce from closed connection {connection_id}")
                return None

            if (self.policy is DuplicateNamePolicy.REJECT
                    and self.registry.name_in_use(name, exclude=connection_id)):
                raise DisplayNameTaken(name)

            already_present = self.registry.name_in_use(name)
            self.registry.register(connection_id, name)
            self._states[connection_id] = ConnectionState.CONNECTED_NAMED

            if already_present:
                event = ReconnectedEvent(connectionId=connection_id, displayName=name)
            else:
                event = self.history.append(JoinedEvent(
                    connectionId=connection_id,
                    displayName=name,
                    message=f"{name} joined the chat",
                    timestamp=format_timestamp(self._clock()),
                ))

        if already_present:
            logger.info(f"[Presence] {name} reconnected on {connection_id}")
        else:
            logger.info(f"[Presence] {name} joined the chat")
        return event

    def disconnect(self, connection_id: str) -> Optional[LeftEvent]:
        """Retire a connection.

        Returns:
            The LeftEvent appended to history if the connection was named,
            otherwise None.
        """
        with self._lock:
            self._states.pop(connection_id, None)
            name = self.registry.remove(connection_id)
            if name is None:
                event = None
            else:
                event = self.history.append(LeftEvent(
                    connectionId=connection_id,
                    displayName=name,
                    message=f"{name} left the chat",
                    timestamp=format_timestamp(self._clock()),
                    totalUsers=len(self.registry),
                ))

        if event is None:
            logger.info(f"[Presence] Unnamed connection {connection_id} closed")
        else:
            logger.info(f"[Presence] {name} disconnected")
        return event

    def clear(self) -> None:
        with self._lock:
            self._states.clear()
