"""Real-time broadcast of comment and notification events.

Provides:
- Topic (per-URL) and user-scoped subscriptions
- Background send worker with best-effort delivery
- Optional Redis relay for multi-worker deployments

Note: the WebSocket router is imported directly in main.py to avoid circular
imports.
"""

from .events import ClientMessage, Event, ServerMessage, make_message
from .hub import BroadcastHub, Subscriber
from .relay import RedisRelay


__all__ = [
    "BroadcastHub",
    "ClientMessage",
    "Event",
    "RedisRelay",
    "ServerMessage",
    "Subscriber",
    "make_message",
]
