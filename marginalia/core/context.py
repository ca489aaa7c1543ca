"""Request context management using contextvars.

Every HTTP request and every WebSocket session gets an identifier that is
attached to all log lines emitted while handling it.
"""

from contextvars import ContextVar
from typing import Any
from uuid import UUID, uuid4


request_id_var: ContextVar[str] = ContextVar("request_id", default="")
user_id_var: ContextVar[str | None] = ContextVar("user_id", default=None)
connection_id_var: ContextVar[str | None] = ContextVar("connection_id", default=None)


def generate_request_id() -> str:
    """Generate a new unique request ID."""
    return str(uuid4())


def get_request_id() -> str:
    """Get the current request ID."""
    return request_id_var.get()


def set_request_id(request_id: str | None = None) -> str:
    """Set the request ID for the current context.

    Args:
        request_id: Optional request ID. If not provided, generates a new one.

    Returns:
        The request ID that was set.
    """
    rid = request_id or generate_request_id()
    request_id_var.set(rid)
    return rid


def get_user_id() -> str | None:
    """Get the current user ID."""
    return user_id_var.get()


def set_user_id(user_id: str | UUID | None) -> None:
    """Set the user ID for the current context."""
    user_id_var.set(str(user_id) if user_id is not None else None)


def get_connection_id() -> str | None:
    """Get the current WebSocket connection ID."""
    return connection_id_var.get()


def get_context() -> dict[str, Any]:
    """Get all non-empty context variables as a dictionary."""
    context: dict[str, Any] = {}

    request_id = get_request_id()
    if request_id:
        context["request_id"] = request_id

    user_id = get_user_id()
    if user_id:
        context["user_id"] = user_id

    connection_id = get_connection_id()
    if connection_id:
        context["connection_id"] = connection_id

    return context


def clear_context() -> None:
    """Clear all context variables."""
    request_id_var.set("")
    user_id_var.set(None)
    connection_id_var.set(None)


class ConnectionContext:
    """Context manager binding a WebSocket session to the log context.

    Usage:
        with ConnectionContext(connection_id, user_id=user.user_id):
            logger.info("websocket_message")  # includes connection_id, user_id
    """

    def __init__(self, connection_id: str, user_id: str | UUID | None = None) -> None:
        self.connection_id = connection_id
        self.user_id = user_id
        self._tokens: list[tuple[ContextVar, Any]] = []

    def __enter__(self) -> "ConnectionContext":
        self._tokens.append(
            (connection_id_var, connection_id_var.set(self.connection_id))
        )
        if self.user_id is not None:
            self._tokens.append((user_id_var, user_id_var.set(str(self.user_id))))
        return self

    def __exit__(self, *_: object) -> None:
        for var, token in reversed(self._tokens):
            var.reset(token)
        self._tokens.clear()
