"""Persistence contract consumed by the comment and notification services.

Implementations must provide per-row atomic writes; nothing above this layer
takes locks. Failures surface as ``StoreError``.
"""

from abc import ABC, abstractmethod
from uuid import UUID

from marginalia.comments.models import Comment, Vote, VoteKind
from marginalia.notifications.models import Notification


class CommentStore(ABC):
    """Storage for comments, votes and notifications."""

    # Comments

    @abstractmethod
    async def list_comments(self, url: str) -> list[Comment]:
        """All comments on a URL, newest first."""

    @abstractmethod
    async def get_comment(self, comment_id: UUID) -> Comment | None:
        """Comment by ID, or None."""

    @abstractmethod
    async def insert_comment(self, comment: Comment) -> None:
        """Persist a new comment."""

    @abstractmethod
    async def update_comment(self, comment: Comment) -> None:
        """Persist new content / edit timestamp of an existing comment."""

    @abstractmethod
    async def delete_comment(self, comment: Comment) -> None:
        """Remove a single comment (no cascade)."""

    # Votes

    @abstractmethod
    async def get_vote(self, comment_id: UUID, voter_id: UUID) -> Vote | None:
        """The voter's live vote on a comment, or None."""

    @abstractmethod
    async def list_votes(self, comment_id: UUID) -> list[Vote]:
        """All live votes on a comment."""

    @abstractmethod
    async def insert_vote(self, vote: Vote) -> None:
        """Insert a vote row.

        Raises:
            ConflictError: If a row already exists for (comment, voter)
        """

    @abstractmethod
    async def update_vote(
        self, comment_id: UUID, voter_id: UUID, kind: VoteKind
    ) -> None:
        """Change the kind of an existing vote row."""

    @abstractmethod
    async def delete_vote(self, comment_id: UUID, voter_id: UUID) -> None:
        """Delete a vote row if present."""

    @abstractmethod
    async def delete_votes_for_comment(self, comment_id: UUID) -> None:
        """Delete every vote row of a comment."""

    # Notifications

    @abstractmethod
    async def insert_notification(self, notification: Notification) -> None:
        """Persist a new notification."""

    @abstractmethod
    async def list_notifications(
        self, user_id: UUID, limit: int
    ) -> list[Notification]:
        """Most recent notifications of a recipient, newest first."""

    @abstractmethod
    async def get_notification(self, notification_id: UUID) -> Notification | None:
        """Notification by ID, or None."""

    @abstractmethod
    async def mark_notification_read(self, notification: Notification) -> None:
        """Flag a notification as read."""
