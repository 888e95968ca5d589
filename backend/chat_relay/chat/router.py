"""Chat router providing WebSocket and HTTP endpoints.

This module provides:
    - GET /chat/history: Current history snapshot
    - GET /chat/users: Live named connections
    - WebSocket /ws/chat: Real-time chat messaging

The WebSocket protocol supports:
    - History replay on connect
    - Join / rejoin disambiguation by display name
    - Real-time message broadcasting
    - Leave notifications on disconnect

Protocol Message Types (client -> server):
    - user_join: Announce a display name
    - send_message: Chat message
    - get_users: Request the live user list
"""
import asyncio
import json
import logging

from fastapi import APIRouter, WebSocket, WebSocketDisconnect
from fastapi.responses import JSONResponse

from .coordinator import DisplayNameTaken
from .service import relay

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/chat/history")
async def get_history() -> JSONResponse:
    """Get the history snapshot a newly connecting client would receive.

    Returns:
        JSON with the events array (oldest first) and the log capacity.
    """
    return JSONResponse({
        "events": [event.model_dump() for event in relay.history_snapshot()],
        "capacity": relay.history.capacity,
    })


@router.get("/chat/users")
async def get_users() -> JSONResponse:
    """Get the named connections currently online.

    Returns:
        JSON with a users array of ``{connectionId, displayName}``.
    """
    return JSONResponse({"users": relay.users()})


@router.websocket("/ws/chat")
async def websocket_chat_endpoint(websocket: WebSocket) -> None:
    """WebSocket endpoint for the relay's single chat.

    Protocol Flow:
        1. Client connects → Server assigns a connection ID
           → Server sends: {type: "load_history", events: [...]}
        2. Client sends: {type: "user_join", displayName}
           → Server broadcasts: {type: "user_joined", ...} for a new name
           → Server broadcasts: {type: "user_reconnected", ...} for a held name
        3. Client sends: {type: "send_message", message}
           → Server broadcasts: {type: "receive_message", ...}
        4. Client sends: {type: "get_users"}
           → Server sends: {type: "users_list", users: [...]}
        5. On disconnect → Server broadcasts: {type: "user_left", ...} if named

    Args:
        websocket: The WebSocket connection.
    """
    connection_id = await relay.connect(websocket)

    try:
        # Main message loop
        while True:
            raw = await websocket.receive_text()
            try:
                data = json.loads(raw)
            except json.JSONDecodeError:
                logger.warning(f"[WS] Ignoring non-JSON frame from {connection_id}")
                continue
            if not isinstance(data, dict):
                logger.warning(f"[WS] Ignoring non-object frame from {connection_id}")
                continue

            message_type = data.get("type")
            logger.debug("[WS] %s received: type=%s", connection_id, message_type)

            # --- Handle USER_JOIN (display name announcement) ---
            if message_type == "user_join":
                try:
                    await relay.announce(connection_id, data.get("displayName", ""))
                except DisplayNameTaken as e:
                    await relay.manager.send_to(connection_id, {
                        "type": "error",
                        "error": str(e)
                    })
                continue

            # --- Handle SEND_MESSAGE ---
            if message_type == "send_message":
                body = data.get("message")
                if isinstance(body, str):
                    await relay.post_message(connection_id, body)
                continue

            # --- Handle GET_USERS ---
            if message_type == "get_users":
                await relay.send_users(connection_id)
                continue

            await relay.manager.send_to(connection_id, {
                "type": "error",
                "error": f"Unknown message type: {message_type}"
            })

    except WebSocketDisconnect:
        logger.info(f"[WS] Connection {connection_id} closed by client")
    except Exception as e:
        logger.error(f"[WS] Connection {connection_id} failed: {e}", exc_info=True)
    finally:
        # Shielded so a cancelled handler still delivers its user_left
        await asyncio.shield(relay.disconnect(connection_id))
