# Core infrastructure
from marginalia.core.context import (
    ConnectionContext,
    clear_context,
    get_context,
    get_request_id,
    get_user_id,
    set_request_id,
    set_user_id,
)
from marginalia.core.logging import configure_structlog, get_logger
from marginalia.core.middleware import RequestContextMiddleware


__all__ = [
    "ConnectionContext",
    "RequestContextMiddleware",
    "clear_context",
    "configure_structlog",
    "get_context",
    "get_logger",
    "get_request_id",
    "get_user_id",
    "set_request_id",
    "set_user_id",
]
