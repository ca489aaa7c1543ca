"""In-memory store.

Default backend for development and the fake used by tests. A single asyncio
lock makes each operation atomic, standing in for per-row atomicity of a real
database.
"""

import asyncio
import itertools
from dataclasses import replace
from uuid import UUID

from marginalia.comments.models import Comment, Vote, VoteKind, create_vote
from marginalia.core.errors import ConflictError
from marginalia.notifications.models import Notification
from marginalia.store.base import CommentStore


class InMemoryStore(CommentStore):
    """Dict-backed CommentStore."""

    def __init__(self) -> None:
        self._comments: dict[UUID, Comment] = {}
        self._order: dict[UUID, int] = {}
        self._votes: dict[UUID, dict[UUID, Vote]] = {}
        self._notifications: dict[UUID, Notification] = {}
        self._sequence = itertools.count()
        self._lock = asyncio.Lock()

    # ==========================================================================
    # Comments
    # ==========================================================================

    async def list_comments(self, url: str) -> list[Comment]:
        async with self._lock:
            matching = [c for c in self._comments.values() if c.url == url]
        # Newest first; later inserts win ties on identical timestamps
        matching.sort(
            key=lambda c: (c.created_at, self._order[c.comment_id]), reverse=True
        )
        return [replace(c) for c in matching]

    async def get_comment(self, comment_id: UUID) -> Comment | None:
        async with self._lock:
            comment = self._comments.get(comment_id)
        return replace(comment) if comment else None

    async def insert_comment(self, comment: Comment) -> None:
        async with self._lock:
            if comment.comment_id in self._comments:
                raise ConflictError("Comment already exists", "comment_exists")
            self._comments[comment.comment_id] = replace(comment)
            self._order[comment.comment_id] = next(self._sequence)

    async def update_comment(self, comment: Comment) -> None:
        async with self._lock:
            if comment.comment_id in self._comments:
                self._comments[comment.comment_id] = replace(comment)

    async def delete_comment(self, comment: Comment) -> None:
        async with self._lock:
            self._comments.pop(comment.comment_id, None)
            self._order.pop(comment.comment_id, None)

    # ==========================================================================
    # Votes
    # ==========================================================================

    async def get_vote(self, comment_id: UUID, voter_id: UUID) -> Vote | None:
        async with self._lock:
            return self._votes.get(comment_id, {}).get(voter_id)

    async def list_votes(self, comment_id: UUID) -> list[Vote]:
        async with self._lock:
            return list(self._votes.get(comment_id, {}).values())

    async def insert_vote(self, vote: Vote) -> None:
        async with self._lock:
            rows = self._votes.setdefault(vote.comment_id, {})
            if vote.voter_id in rows:
                raise ConflictError("Vote already exists", "vote_exists")
            rows[vote.voter_id] = vote

    async def update_vote(
        self, comment_id: UUID, voter_id: UUID, kind: VoteKind
    ) -> None:
        async with self._lock:
            rows = self._votes.setdefault(comment_id, {})
            rows[voter_id] = create_vote(comment_id, voter_id, kind)

    async def delete_vote(self, comment_id: UUID, voter_id: UUID) -> None:
        async with self._lock:
            rows = self._votes.get(comment_id)
            if rows is not None:
                rows.pop(voter_id, None)
                if not rows:
                    del self._votes[comment_id]

    async def delete_votes_for_comment(self, comment_id: UUID) -> None:
        async with self._lock:
            self._votes.pop(comment_id, None)

    # ==========================================================================
    # Notifications
    # ==========================================================================

    async def insert_notification(self, notification: Notification) -> None:
        async with self._lock:
            self._notifications[notification.notification_id] = replace(notification)
            self._order[notification.notification_id] = next(self._sequence)

    async def list_notifications(
        self, user_id: UUID, limit: int
    ) -> list[Notification]:
        async with self._lock:
            matching = [
                n for n in self._notifications.values() if n.user_id == user_id
            ]
        matching.sort(
            key=lambda n: (n.created_at, self._order[n.notification_id]),
            reverse=True,
        )
        return [replace(n) for n in matching[:limit]]

    async def get_notification(self, notification_id: UUID) -> Notification | None:
        async with self._lock:
            notification = self._notifications.get(notification_id)
        return replace(notification) if notification else None

    async def mark_notification_read(self, notification: Notification) -> None:
        async with self._lock:
            stored = self._notifications.get(notification.notification_id)
            if stored is not None:
                self._notifications[notification.notification_id] = (
                    stored.marked_read()
                )
