"""Chat relay service: wires the presence/history core to the transport.

The core (coordinator + message router) decides what changes and returns the
event to deliver; this service commits that decision first and only then fans
it out through the connection manager, so a delivery failure can never roll
back a history append or registry update.

Note:
    ``relay`` is a process-wide instance built from configuration at import.
    All WebSocket handlers share it.
"""
import logging
import threading
from datetime import datetime
from typing import Callable, List, Optional, Tuple

from fastapi import WebSocket

from chat_relay.config import RelayConfig, get_config

from .coordinator import DuplicateNamePolicy, PresenceCoordinator
from .events import HistoryEvent
from .history import HistoryLog
from .manager import ConnectionManager
from .messages import MessageRouter
from .registry import SessionRegistry

logger = logging.getLogger(__name__)


class ChatRelay:
    """Process-wide chat state plus the transport it broadcasts through.

    Attributes:
        history: Bounded history log.
        registry: Live connection -> display name map.
        coordinator: Presence state machine.
        messages: Chat message router.
        manager: WebSocket connection manager.
    """

    def __init__(
        self,
        history_capacity: int = 100,
        policy: DuplicateNamePolicy = DuplicateNamePolicy.TAKEOVER,
        send_timeout: float = 5.0,
        clock: Callable[[], datetime] = datetime.now,
    ) -> None:
        lock = threading.Lock()
        self.history = HistoryLog(history_capacity)
        self.registry = SessionRegistry()
        self.coordinator = PresenceCoordinator(
            self.history, self.registry, lock=lock, policy=policy, clock=clock
        )
        self.messages = MessageRouter(self.history, self.registry, lock=lock, clock=clock)
        self.manager = ConnectionManager(send_timeout=send_timeout)

    @classmethod
    def from_config(cls, config: RelayConfig) -> "ChatRelay":
        return cls(
            history_capacity=config.chat.history_capacity,
            policy=DuplicateNamePolicy(config.chat.duplicate_name_policy),
            send_timeout=config.chat.send_timeout_seconds,
        )

    async def connect(self, websocket: WebSocket) -> str:
        """Accept a socket and send it the current history snapshot.

        Returns:
            The backend-assigned connection ID.
        """
        connection_id = await self.manager.connect(websocket)
        snapshot = self.coordinator.connect(connection_id)
        await self.manager.send_to(connection_id, {
            "type": "load_history",
            "events": [event.model_dump() for event in snapshot],
        })
        return connection_id

    async def announce(self, connection_id: str, display_name: str) -> None:
        """Apply a display-name announcement and broadcast the outcome.

        Raises:
            DisplayNameTaken: Under the reject policy (nothing is broadcast).
        """
        event = self.coordinator.announce(connection_id, display_name)
        if event is not None:
            await self.manager.broadcast_all(event.model_dump())

    async def post_message(self, connection_id: str, body: str) -> None:
        """Record a chat message and broadcast it (dropped if sender is unnamed)."""
        event = self.messages.submit(connection_id, body)
        if event is not None:
            await self.manager.broadcast_all(event.model_dump())

    async def disconnect(self, connection_id: str) -> None:
        """Retire a connection and broadcast its departure if it was named."""
        self.manager.disconnect(connection_id)
        event = self.coordinator.disconnect(connection_id)
        if event is not None:
            await self.manager.broadcast_all(event.model_dump())

    async def send_users(self, connection_id: str) -> None:
        """Send the live user list to one connection."""
        await self.manager.send_to(connection_id, {
            "type": "users_list",
            "users": self.users(),
        })

    def history_snapshot(self) -> Tuple[HistoryEvent, ...]:
        return self.history.snapshot()

    def users(self) -> List[dict]:
        """Return ``[{connectionId, displayName}]`` for every named connection."""
        return [
            {"connectionId": connection_id, "displayName": name}
            for connection_id, name in self.registry.entries()
        ]

    def clear(self) -> None:
        """Drop all connections, names and history (used by tests)."""
        self.manager.clear()
        self.coordinator.clear()
        self.registry.clear()
        self.history.clear()


relay = ChatRelay.from_config(get_config())
