"""WebSocket connection manager for the chat relay.

This module owns the transport side of the relay: the set of live WebSocket
connections and the primitives for delivering events to one connection or to
all of them. It holds no chat state; presence and history live in the
coordinator and message router.

Key features:
    - Backend-assigned connection IDs (uuid4, never reused)
    - Targeted delivery for the initial history snapshot
    - Concurrent broadcast with asyncio.gather()
    - Per-send timeout so a slow client cannot stall a broadcast
    - Dead connections are dropped and closed so their handlers exit

Thread Safety:
    This implementation is designed for async/await usage with a single event loop.
    It is NOT thread-safe for concurrent access from multiple threads.

Performance Notes:
    - Broadcasting sends to a copy of the connection list, so connections
      opened or closed mid-broadcast do not disturb the fan-out
    - A failed connection is closed; its presence ends through the normal
      disconnect path, never by rolling back chat state
"""
import asyncio
import logging
import uuid
from typing import Dict, List, Optional

from fastapi import WebSocket

logger = logging.getLogger(__name__)

# Default time allowed for a single send before the target is considered dead
DEFAULT_SEND_TIMEOUT = 5.0

# WebSocket close code sent to connections dropped after a failed send
CLOSE_INTERNAL_ERROR = 1011


class ConnectionManager:
    """Tracks live WebSocket connections by backend-assigned connection ID.

    SECURITY: Connection IDs are generated here, never taken from the client.

    Attributes:
        active_connections: connection_id -> WebSocket for every live socket.
        send_timeout: Seconds allowed for one send before giving up on it.
    """

    def __init__(self, send_timeout: float = DEFAULT_SEND_TIMEOUT) -> None:
        """Initialize an empty connection manager."""
        self.active_connections: Dict[str, WebSocket] = {}
        self.send_timeout = send_timeout

    async def connect(self, websocket: WebSocket) -> str:
        """Accept a WebSocket connection and assign it a connection ID.

        Args:
            websocket: The WebSocket connection to accept.

        Returns:
            The backend-generated connection ID.
        """
        await websocket.accept()
        connection_id = str(uuid.uuid4())
        self.active_connections[connection_id] = websocket
        logger.info(f"[Manager] Connection {connection_id} accepted ({self.connection_count} live)")
        return connection_id

    def disconnect(self, connection_id: str) -> Optional[WebSocket]:
        """Stop delivering to a connection.

        Returns:
            The removed WebSocket, or None if it was already gone.
        """
        return self.active_connections.pop(connection_id, None)

    async def send_to(self, connection_id: str, message: dict) -> bool:
        """Send a message to a single connection.

        Args:
            connection_id: Target connection.
            message: JSON-serializable message.

        Returns:
            True if delivered, False if the connection is unknown or failed.
        """
        websocket = self.active_connections.get(connection_id)
        if websocket is None:
            return False
        if await self._safe_send(websocket, message):
            return True
        await self._cleanup_connections([connection_id])
        return False

    async def broadcast_all(self, message: dict) -> None:
        """Broadcast a message to every live connection concurrently.

        A failure on one connection never prevents delivery to the others;
        failed connections are dropped from the delivery set.

        Args:
            message: JSON-serializable message to broadcast.
        """
        connections = list(self.active_connections.items())
        if not connections:
            return

        results = await asyncio.gather(
            *[self._safe_send(ws, message) for _, ws in connections],
            return_exceptions=True
        )

        failed = [
            connection_id for (connection_id, _), success in zip(connections, results)
            if success is not True
        ]
        await self._cleanup_connections(failed)

    async def _safe_send(self, connection: WebSocket, message: dict) -> bool:
        """Send a message to a WebSocket connection with error handling.

        Returns:
            True if successful, False if the send failed or timed out.
        """
        try:
            await asyncio.wait_for(connection.send_json(message), timeout=self.send_timeout)
            return True
        except asyncio.TimeoutError:
            logger.warning(f"Send timed out after {self.send_timeout}s")
            return False
        except Exception as e:
            logger.debug(f"Failed to send to connection: {e}")
            return False

    async def _cleanup_connections(self, failed_connections: List[str]) -> None:
        """Drop failed connections and close their sockets.

        Closing makes the connection's own handler leave its receive loop, so
        the named user is retired through the normal disconnect path.
        """
        for connection_id in failed_connections:
            websocket = self.active_connections.pop(connection_id, None)
            if websocket is None:
                continue
            logger.debug(f"Removed dead connection {connection_id}")
            await self._safe_close(websocket)

    async def _safe_close(self, connection: WebSocket) -> None:
        try:
            await asyncio.wait_for(
                connection.close(code=CLOSE_INTERNAL_ERROR), timeout=self.send_timeout
            )
        except Exception as e:
            logger.debug(f"Failed to close connection: {e}")

    def clear(self) -> None:
        self.active_connections.clear()

    @property
    def connection_count(self) -> int:
        """Number of live connections."""
        return len(self.active_connections)
