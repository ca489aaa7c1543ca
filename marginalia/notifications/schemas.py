"""Pydantic schemas for notifications."""

from datetime import datetime
from uuid import UUID

from marginalia.comments.schemas import CamelModel

from .models import Notification, NotificationType


class NotificationResponse(CamelModel):
    """Response for a single notification."""

    id: UUID
    user_id: UUID
    type: NotificationType
    message: str
    comment_id: UUID
    url: str
    timestamp: datetime
    read: bool = False

    @classmethod
    def from_notification(cls, notification: Notification) -> "NotificationResponse":
        """Create response from Notification entity."""
        return cls(
            id=notification.notification_id,
            user_id=notification.user_id,
            type=notification.type,
            message=notification.message,
            comment_id=notification.comment_id,
            url=notification.url,
            timestamp=notification.created_at,
            read=notification.is_read,
        )


class MarkReadResponse(CamelModel):
    """Result of marking a notification read."""

    success: bool = True
