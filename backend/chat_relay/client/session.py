"""WebSocket client session for the chat relay.

Connects with ``websockets``, replays the history snapshot the server sends
first, announces a display name and then keeps a ``PresenceReconstructor``
current while yielding each live event to the caller.

Example:
    async with ChatClient("ws://localhost:3000/ws/chat", "alice") as chat:
        await chat.send_message("Hello from Python!")
        async for event in chat.events():
            print(event)
"""
import json
import logging
from typing import Any, AsyncIterator, Awaitable, Callable, Dict, List, Optional

import websockets

from chat_relay.chat.events import parse_event, parse_history

from .presence import AnyEvent, PresenceReconstructor

logger = logging.getLogger(__name__)


class ProtocolError(Exception):
    """The server sent something the client protocol does not allow."""


class ChatClient:
    """One client connection to the relay.

    Attributes:
        url: WebSocket URL of the ``/ws/chat`` endpoint.
        display_name: Name announced after connecting.
        presence: Online users and timeline derived from server events.
        last_users: Most recent ``users_list`` reply.
    """

    def __init__(
        self,
        url: str,
        display_name: str,
        connect: Optional[Callable[[str], Awaitable[Any]]] = None,
    ) -> None:
        self.url = url
        self.display_name = display_name
        self.presence = PresenceReconstructor(local_name=display_name)
        self.last_users: List[Dict[str, str]] = []
        self._connect = connect or websockets.connect
        self._ws: Any = None

    async def __aenter__(self) -> "ChatClient":
        await self.open()
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.close()

    async def open(self) -> None:
        """Connect, load the history snapshot and announce the display name."""
        self._ws = await self._connect(self.url)
        frame = json.loads(await self._ws.recv())
        if frame.get("type") != "load_history":
            raise ProtocolError(f"Expected load_history, got {frame.get('type')!r}")

        self.presence.load_snapshot(parse_history(frame.get("events", [])))
        logger.info(
            f"[Client] Loaded {len(self.presence.timeline)} timeline entries, "
            f"{len(self.presence.online_users)} users online"
        )
        await self._send({"type": "user_join", "displayName": self.display_name})

    async def close(self) -> None:
        if self._ws is not None:
            await self._ws.close()
            self._ws = None

    async def send_message(self, body: str) -> None:
        await self._send({"type": "send_message", "message": body})

    async def request_users(self) -> None:
        """Ask for the live user list; the reply lands in ``last_users``."""
        await self._send({"type": "get_users"})

    async def events(self) -> AsyncIterator[AnyEvent]:
        """Yield live events after applying each to ``presence``.

        ``users_list`` replies update ``last_users`` and ``error`` frames are
        logged; neither is yielded.
        """
        if self._ws is None:
            raise ProtocolError("Client is not connected")

        async for raw in self._ws:
            frame = json.loads(raw)
            frame_type = frame.get("type")
            if frame_type == "users_list":
                self.last_users = frame.get("users", [])
                continue
            if frame_type == "error":
                logger.warning(f"[Client] Server error: {frame.get('error')}")
                continue

            event = parse_event(frame)
            self.presence.apply(event)
            yield event

    async def _send(self, message: dict) -> None:
        if self._ws is None:
            raise ProtocolError("Client is not connected")
        await self._ws.send(json.dumps(message))
