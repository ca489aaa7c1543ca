"""Mention notifications for newly created comments.

A comment produces at most one notification per distinct recipient, however
many times (or in however many spellings) the recipient is mentioned. Authors
never notify themselves. A failing lookup or insert is recorded and the
remaining recipients are still processed.
"""

from dataclasses import dataclass, field
from typing import TYPE_CHECKING
from uuid import UUID

import structlog

from marginalia.auth.models import UserRef
from marginalia.broadcast.events import Event
from marginalia.comments.mentions import iter_mentions
from marginalia.comments.models import Comment
from marginalia.comments.schemas import to_wire
from marginalia.core.errors import CollaboratorError

from .models import Notification, create_mention_notification
from .schemas import NotificationResponse


if TYPE_CHECKING:
    from marginalia.auth.directory import UserDirectory
    from marginalia.broadcast.hub import BroadcastHub
    from marginalia.store.base import CommentStore


logger = structlog.get_logger(__name__)


@dataclass
class DispatchResult:
    """Notifications written and collaborator failures hit along the way."""

    notifications: list[Notification] = field(default_factory=list)
    failures: list[CollaboratorError] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        """True when every recipient was notified."""
        return not self.failures


class NotificationDispatcher:
    """Turns the mentions in a comment into notifications."""

    def __init__(
        self,
        store: "CommentStore",
        directory: "UserDirectory",
        hub: "BroadcastHub",
    ):
        self.store = store
        self.directory = directory
        self.hub = hub

    async def dispatch(self, comment: Comment) -> DispatchResult:
        """Notify every user mentioned in ``comment``.

        Args:
            comment: Comment already acknowledged by the store

        Returns:
            DispatchResult with created notifications and collected failures
        """
        result = DispatchResult()

        recipients = await self._resolve_recipients(comment, result)
        for recipient in recipients:
            notification = create_mention_notification(
                recipient_id=recipient.user_id,
                author_name=comment.author_name,
                comment_id=comment.comment_id,
                url=comment.url,
            )
            try:
                await self.store.insert_notification(notification)
            except CollaboratorError as e:
                logger.warning(
                    "notification_insert_failed",
                    comment_id=str(comment.comment_id),
                    recipient_id=str(recipient.user_id),
                    error=e.message,
                )
                result.failures.append(e)
                continue

            result.notifications.append(notification)
            self.hub.publish_to_user(
                recipient.user_id,
                Event.NOTIFICATION,
                {
                    "notification": to_wire(
                        NotificationResponse.from_notification(notification)
                    )
                },
            )

        if result.notifications:
            logger.info(
                "mention_notifications_created",
                comment_id=str(comment.comment_id),
                count=len(result.notifications),
            )
        return result

    async def _resolve_recipients(
        self, comment: Comment, result: DispatchResult
    ) -> list[UserRef]:
        handles: dict[str, str] = {}
        for handle in iter_mentions(comment.raw_text):
            handles.setdefault(handle.lower(), handle)

        recipients: dict[UUID, UserRef] = {}
        for handle in handles.values():
            try:
                user = await self.directory.resolve_username(handle)
            except CollaboratorError as e:
                logger.warning("mention_resolution_failed", handle=handle, error=e.message)
                result.failures.append(e)
                continue

            if user is None or user.user_id == comment.author_id:
                continue
            recipients.setdefault(user.user_id, user)

        return list(recipients.values())
