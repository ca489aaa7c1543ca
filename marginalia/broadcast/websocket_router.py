"""WebSocket API for live updates.

Provides:
- WS /ws - Room (per-URL) events and the user's notification stream
"""

import asyncio
from typing import Any
from uuid import uuid4

import orjson
from fastapi import APIRouter, Query, WebSocket, WebSocketDisconnect
from jose import JWTError

from marginalia.auth.models import AuthenticatedUser
from marginalia.auth.security import authenticate
from marginalia.config import get_settings
from marginalia.core.context import ConnectionContext
from marginalia.core.logging import get_logger

from .events import ClientMessage, ServerMessage
from .hub import BroadcastHub, Subscriber


logger = get_logger(__name__)

router = APIRouter(tags=["realtime"])

AUTH_FAILED_CLOSE_CODE = 4001


class WebSocketSubscriber(Subscriber):
    """Hub subscriber backed by a WebSocket connection."""

    def __init__(self, websocket: WebSocket) -> None:
        super().__init__(str(uuid4()))
        self.websocket = websocket
        # The hub worker and the receive loop both send on this socket
        self._send_lock = asyncio.Lock()

    async def send(self, message: dict[str, Any]) -> None:
        async with self._send_lock:
            await self.websocket.send_json(message)


def authenticate_websocket(token: str) -> AuthenticatedUser | None:
    """Authenticate a WebSocket connection using a JWT token.

    Returns the user if valid, None otherwise.
    """
    try:
        return authenticate(token)
    except JWTError as e:
        logger.warning("websocket_auth_failed", error=str(e))
    return None


async def _error(subscriber: Subscriber, message: str) -> None:
    await subscriber.send({"type": ServerMessage.ERROR.value, "message": message})


async def handle_client_message(
    hub: BroadcastHub,
    subscriber: Subscriber,
    user: AuthenticatedUser | None,
    raw: str,
) -> None:
    """Apply one client message to the hub registries and acknowledge it."""
    try:
        message = orjson.loads(raw)
    except orjson.JSONDecodeError:
        await _error(subscriber, "Malformed message")
        return
    if not isinstance(message, dict) or not isinstance(message.get("type"), str):
        await _error(subscriber, "Message must be an object with a type")
        return

    try:
        kind = ClientMessage(message["type"])
    except ValueError:
        await _error(subscriber, f"Unknown message type: {message['type']}")
        return

    if kind in (ClientMessage.JOIN_ROOM, ClientMessage.LEAVE_ROOM):
        url = message.get("url")
        if not isinstance(url, str) or not url.strip():
            await _error(subscriber, "url is required")
            return
        url = url.strip()
        if kind is ClientMessage.JOIN_ROOM:
            hub.join_topic(subscriber, url)
            ack = ServerMessage.ROOM_JOINED
        else:
            hub.leave_topic(subscriber, url)
            ack = ServerMessage.ROOM_LEFT
        logger.debug("websocket_room_changed", action=kind.value, url=url)
        await subscriber.send({"type": ack.value, "url": url})

    elif kind in (
        ClientMessage.SUBSCRIBE_NOTIFICATIONS,
        ClientMessage.UNSUBSCRIBE_NOTIFICATIONS,
    ):
        # Only the token's own notification stream can be subscribed
        if user is None:
            await _error(subscriber, "Authentication required")
            return
        if kind is ClientMessage.SUBSCRIBE_NOTIFICATIONS:
            hub.subscribe_user(subscriber, user.user_id)
            ack = ServerMessage.NOTIFICATIONS_SUBSCRIBED
        else:
            hub.unsubscribe_user(subscriber, user.user_id)
            ack = ServerMessage.NOTIFICATIONS_UNSUBSCRIBED
        await subscriber.send({"type": ack.value, "userId": str(user.user_id)})

    elif kind is ClientMessage.PING:
        await subscriber.send({"type": ServerMessage.PONG.value})

    # PONG: client answered our ping, nothing to do


@router.websocket("/ws")
async def events_websocket(
    websocket: WebSocket,
    token: str | None = Query(None, description="JWT access token"),
) -> None:
    """WebSocket endpoint for live comment and notification events.

    Connect with: ws://host/ws?token=<jwt_token> (token optional)

    Messages you can send:
    - {"type": "joinRoom", "url": "..."} / {"type": "leaveRoom", "url": "..."}
    - {"type": "subscribeNotifications"} / {"type": "unsubscribeNotifications"}
    - {"type": "ping"}

    Messages received:
    - {"type": "<event>", "data": {...}} - newComment, commentEdited,
      commentDeleted, commentVoted, notification
    - Acknowledgements, {"type": "ping"} after client silence, and
      {"type": "error", "message": "..."}
    """
    user = None
    if token:
        user = authenticate_websocket(token)
        if user is None:
            await websocket.close(
                code=AUTH_FAILED_CLOSE_CODE, reason="Authentication failed"
            )
            return

    hub: BroadcastHub = websocket.app.state.hub
    ping_interval = get_settings().ws_ping_interval

    await websocket.accept()
    subscriber = WebSocketSubscriber(websocket)

    with ConnectionContext(
        subscriber.subscriber_id, user_id=user.user_id if user else None
    ):
        logger.info("websocket_connected", authenticated=user is not None)
        try:
            await subscriber.send(
                {
                    "type": ServerMessage.CONNECTED.value,
                    "connectionId": subscriber.subscriber_id,
                    "userId": str(user.user_id) if user else None,
                }
            )

            while True:
                try:
                    raw = await asyncio.wait_for(
                        websocket.receive_text(), timeout=ping_interval
                    )
                except TimeoutError:
                    await subscriber.send({"type": ServerMessage.PING.value})
                    continue

                await handle_client_message(hub, subscriber, user, raw)

        except WebSocketDisconnect:
            pass
        except Exception as e:
            logger.warning("websocket_error", error=str(e))
        finally:
            hub.disconnect(subscriber)
            logger.info("websocket_disconnected")
