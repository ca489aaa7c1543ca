"""Notification service layer.

Recipients list their most recent notifications and mark them read.
"""

from typing import TYPE_CHECKING
from uuid import UUID

import structlog

from marginalia.core.errors import NotFoundError

from .models import Notification


if TYPE_CHECKING:
    from marginalia.store.base import CommentStore


logger = structlog.get_logger(__name__)


class NotificationNotFoundError(NotFoundError):
    """Notification not found (or addressed to someone else)."""

    def __init__(self, message: str = "Notification not found"):
        super().__init__(message, "notification_not_found")


class NotificationService:
    """Service for a recipient's notifications."""

    def __init__(self, store: "CommentStore", list_limit: int = 50):
        self.store = store
        self.list_limit = list_limit

    async def list_for_user(self, user_id: UUID) -> list[Notification]:
        """Most recent notifications of ``user_id``, newest first."""
        return await self.store.list_notifications(user_id, self.list_limit)

    async def mark_read(self, user_id: UUID, notification_id: UUID) -> Notification:
        """Mark one of the user's notifications as read.

        Raises:
            NotificationNotFoundError: If missing or not addressed to ``user_id``
        """
        notification = await self.store.get_notification(notification_id)
        # Foreign notifications look missing so IDs cannot be enumerated
        if notification is None or notification.user_id != user_id:
            raise NotificationNotFoundError

        if notification.is_read:
            return notification

        await self.store.mark_notification_read(notification)
        logger.info("notification_marked_read", notification_id=str(notification_id))
        return notification.marked_read()
