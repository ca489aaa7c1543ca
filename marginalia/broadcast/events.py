"""Real-time event names and client protocol message types."""

from enum import Enum


class Event(str, Enum):
    """Server-pushed domain events."""

    # Topic (per-URL) events
    NEW_COMMENT = "newComment"
    COMMENT_EDITED = "commentEdited"
    COMMENT_DELETED = "commentDeleted"
    COMMENT_VOTED = "commentVoted"

    # User events
    NOTIFICATION = "notification"


class ClientMessage(str, Enum):
    """Messages a WebSocket client may send."""

    JOIN_ROOM = "joinRoom"
    LEAVE_ROOM = "leaveRoom"
    SUBSCRIBE_NOTIFICATIONS = "subscribeNotifications"
    UNSUBSCRIBE_NOTIFICATIONS = "unsubscribeNotifications"
    PING = "ping"
    PONG = "pong"


class ServerMessage(str, Enum):
    """Protocol (non-domain) messages sent by the server."""

    CONNECTED = "connected"
    ROOM_JOINED = "roomJoined"
    ROOM_LEFT = "roomLeft"
    NOTIFICATIONS_SUBSCRIBED = "notificationsSubscribed"
    NOTIFICATIONS_UNSUBSCRIBED = "notificationsUnsubscribed"
    PING = "ping"
    PONG = "pong"
    ERROR = "error"


def make_message(event: Event | ServerMessage, payload: dict | None = None) -> dict:
    """Envelope sent to subscribers: ``{"type": ..., "data": ...}``."""
    message: dict = {"type": event.value}
    if payload is not None:
        message["data"] = payload
    return message
