"""Message router: turns an inbound chat message into a history event."""
import logging
import threading
from datetime import datetime
from typing import Callable, Optional

from .events import MessageEvent, format_timestamp
from .history import HistoryLog
from .registry import SessionRegistry

logger = logging.getLogger(__name__)


class MessageRouter:
    """Resolves the sender's display name and records the message.

    Messages from connections that have not announced a name are dropped
    without telling the sender. The body is passed through unvalidated.
    """

    def __init__(
        self,
        history: HistoryLog,
        registry: SessionRegistry,
        lock: Optional[threading.Lock] = None,
        clock: Callable[[], datetime] = datetime.now,
    ) -> None:
        self.history = history
        self.registry = registry
        self._lock = lock or threading.Lock()
        self._clock = clock

    def submit(self, connection_id: str, body: str) -> Optional[MessageEvent]:
        """Record a message from ``connection_id``.

        Returns:
            The MessageEvent to broadcast, or None if the sender is unnamed.
        """
        with self._lock:
            display_name = self.registry.lookup(connection_id)
            if display_name is None:
                event = None
            else:
                event = self.history.append(MessageEvent(
                    connectionId=connection_id,
                    displayName=display_name,
                    body=body,
                    timestamp=format_timestamp(self._clock()),
                ))

        if event is None:
            logger.debug(f"[Messages] Dropped message from unnamed connection {connection_id}")
        else:
            logger.info(f"[Messages] Message from {display_name}: {body[:50]}")
        return event
