"""Database models for notifications.

Cassandra table definitions for:
- Notifications: partitioned by recipient, newest first
- Notifications by ID: O(1) lookup for mark-as-read

Notification types:
- MENTION: user was @mentioned in a comment
"""

from dataclasses import dataclass, replace
from datetime import UTC, datetime
from enum import Enum
from typing import Any
from uuid import UUID, uuid4

from marginalia.comments.models import as_utc


class NotificationType(str, Enum):
    """Types of notifications."""

    MENTION = "mention"


# ==============================================================================
# CQL Table Definitions
# ==============================================================================

NOTIFICATION_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.notifications (
    user_id UUID,
    created_at TIMESTAMP,
    notification_id UUID,
    type TEXT,
    message TEXT,
    comment_id UUID,
    url TEXT,
    is_read BOOLEAN,
    read_at TIMESTAMP,
    PRIMARY KEY ((user_id), created_at, notification_id)
) WITH CLUSTERING ORDER BY (created_at DESC, notification_id ASC)
"""

NOTIFICATIONS_BY_ID_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.notifications_by_id (
    notification_id UUID PRIMARY KEY,
    user_id UUID,
    created_at TIMESTAMP
)
"""

NOTIFICATIONS_TABLES_CQL = [
    NOTIFICATION_TABLE_CQL,
    NOTIFICATIONS_BY_ID_TABLE_CQL,
]


# ==============================================================================
# Entity Classes
# ==============================================================================


@dataclass
class Notification:
    """Notification addressed to one recipient."""

    notification_id: UUID
    user_id: UUID
    type: NotificationType
    message: str
    comment_id: UUID
    url: str
    created_at: datetime
    is_read: bool = False
    read_at: datetime | None = None

    @classmethod
    def from_row(cls, row: Any) -> "Notification":
        """Create Notification from Cassandra row."""
        return cls(
            notification_id=row.notification_id,
            user_id=row.user_id,
            type=NotificationType(row.type),
            message=row.message,
            comment_id=row.comment_id,
            url=row.url,
            created_at=as_utc(row.created_at),
            is_read=row.is_read or False,
            read_at=as_utc(row.read_at),
        )

    def marked_read(self) -> "Notification":
        """Copy of this notification flagged as read."""
        return replace(self, is_read=True, read_at=datetime.now(UTC))


# ==============================================================================
# Factory Functions
# ==============================================================================


def create_mention_notification(
    recipient_id: UUID,
    author_name: str,
    comment_id: UUID,
    url: str,
) -> Notification:
    """Create notification for an @mention."""
    return Notification(
        notification_id=uuid4(),
        user_id=recipient_id,
        type=NotificationType.MENTION,
        message=f"{author_name} mentioned you in a comment",
        comment_id=comment_id,
        url=url,
        created_at=datetime.now(UTC),
    )
