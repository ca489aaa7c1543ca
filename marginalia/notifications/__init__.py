"""Notifications module.

Provides:
- Mention notifications created when a comment is posted
- Listing and mark-as-read for the recipient

Note: Dispatcher and router are imported directly to avoid circular imports.
"""

from marginalia.notifications.models import (
    NOTIFICATIONS_TABLES_CQL,
    Notification,
    NotificationType,
)


__all__ = [
    "NOTIFICATIONS_TABLES_CQL",
    "Notification",
    "NotificationType",
]
