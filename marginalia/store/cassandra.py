# ruff: noqa: S608 - All CQL queries use keyspace from config, not user input
"""Cassandra-backed store.

Comments are written to both ``comments_by_url`` (listing) and
``comments_by_id`` (point lookups). Votes use a lightweight transaction on
insert so two concurrent first votes from one voter cannot both land.
"""

from typing import TYPE_CHECKING, Any
from uuid import UUID

from cassandra import DriverException, RequestExecutionException
from cassandra.cluster import NoHostAvailable

from marginalia.comments.models import Comment, Vote, VoteKind
from marginalia.core.errors import ConflictError, StoreError
from marginalia.core.logging import get_logger
from marginalia.notifications.models import Notification
from marginalia.store.base import CommentStore


if TYPE_CHECKING:
    from cassandra.cluster import Session


logger = get_logger(__name__)

_DRIVER_ERRORS = (DriverException, RequestExecutionException, NoHostAvailable)


class CassandraStore(CommentStore):
    """CommentStore over an async Cassandra session."""

    def __init__(self, session: "Session", keyspace: str):
        """Initialize with Cassandra session."""
        self.session = session
        self.keyspace = keyspace
        self._prepare_statements()

    def _prepare_statements(self) -> None:
        """Prepare CQL statements for efficient queries."""
        # Comments
        self._insert_comment_by_url = self.session.prepare(f"""
            INSERT INTO {self.keyspace}.comments_by_url
            (url, created_at, comment_id, parent_id, author_id, author_name,
             raw_text, text, edited_at)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
        """)

        self._insert_comment_by_id = self.session.prepare(f"""
            INSERT INTO {self.keyspace}.comments_by_id
            (comment_id, url, created_at, parent_id, author_id, author_name,
             raw_text, text, edited_at)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
        """)

        self._get_comments_by_url = self.session.prepare(f"""
            SELECT * FROM {self.keyspace}.comments_by_url
            WHERE url = ?
        """)

        self._get_comment = self.session.prepare(f"""
            SELECT * FROM {self.keyspace}.comments_by_id
            WHERE comment_id = ?
        """)

        self._update_comment_by_url = self.session.prepare(f"""
            UPDATE {self.keyspace}.comments_by_url
            SET raw_text = ?, text = ?, edited_at = ?
            WHERE url = ? AND created_at = ? AND comment_id = ?
        """)

        self._update_comment_by_id = self.session.prepare(f"""
            UPDATE {self.keyspace}.comments_by_id
            SET raw_text = ?, text = ?, edited_at = ?
            WHERE comment_id = ?
        """)

        self._delete_comment_by_url = self.session.prepare(f"""
            DELETE FROM {self.keyspace}.comments_by_url
            WHERE url = ? AND created_at = ? AND comment_id = ?
        """)

        self._delete_comment_by_id = self.session.prepare(f"""
            DELETE FROM {self.keyspace}.comments_by_id
            WHERE comment_id = ?
        """)

        # Votes
        self._get_vote = self.session.prepare(f"""
            SELECT * FROM {self.keyspace}.comment_votes
            WHERE comment_id = ? AND voter_id = ?
        """)

        self._get_votes = self.session.prepare(f"""
            SELECT * FROM {self.keyspace}.comment_votes
            WHERE comment_id = ?
        """)

        self._insert_vote = self.session.prepare(f"""
            INSERT INTO {self.keyspace}.comment_votes
            (comment_id, voter_id, kind, updated_at)
            VALUES (?, ?, ?, ?)
            IF NOT EXISTS
        """)

        self._update_vote = self.session.prepare(f"""
            UPDATE {self.keyspace}.comment_votes
            SET kind = ?, updated_at = toTimestamp(now())
            WHERE comment_id = ? AND voter_id = ?
        """)

        self._delete_vote = self.session.prepare(f"""
            DELETE FROM {self.keyspace}.comment_votes
            WHERE comment_id = ? AND voter_id = ?
        """)

        self._delete_votes = self.session.prepare(f"""
            DELETE FROM {self.keyspace}.comment_votes
            WHERE comment_id = ?
        """)

        # Notifications
        self._insert_notification = self.session.prepare(f"""
            INSERT INTO {self.keyspace}.notifications
            (user_id, created_at, notification_id, type, message, comment_id,
             url, is_read, read_at)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
        """)

        self._insert_notification_by_id = self.session.prepare(f"""
            INSERT INTO {self.keyspace}.notifications_by_id
            (notification_id, user_id, created_at)
            VALUES (?, ?, ?)
        """)

        self._get_notifications = self.session.prepare(f"""
            SELECT * FROM {self.keyspace}.notifications
            WHERE user_id = ?
            LIMIT ?
        """)

        self._get_notification_key = self.session.prepare(f"""
            SELECT user_id, created_at FROM {self.keyspace}.notifications_by_id
            WHERE notification_id = ?
        """)

        self._get_notification = self.session.prepare(f"""
            SELECT * FROM {self.keyspace}.notifications
            WHERE user_id = ? AND created_at = ? AND notification_id = ?
        """)

        self._mark_notification_read = self.session.prepare(f"""
            UPDATE {self.keyspace}.notifications
            SET is_read = true, read_at = toTimestamp(now())
            WHERE user_id = ? AND created_at = ? AND notification_id = ?
        """)

    async def _execute(self, statement: Any, params: list[Any]) -> Any:
        try:
            return await self.session.aexecute(statement, params)
        except _DRIVER_ERRORS as e:
            logger.error("store_query_failed", error=str(e))
            raise StoreError(f"Storage query failed: {e}") from e

    # ==========================================================================
    # Comments
    # ==========================================================================

    async def list_comments(self, url: str) -> list[Comment]:
        rows = await self._execute(self._get_comments_by_url, [url])
        return [Comment.from_row(row) for row in rows]

    async def get_comment(self, comment_id: UUID) -> Comment | None:
        result = await self._execute(self._get_comment, [comment_id])
        row = result.one()
        return Comment.from_row(row) if row else None

    async def insert_comment(self, comment: Comment) -> None:
        params = [
            comment.comment_id,
            comment.url,
            comment.created_at,
            comment.parent_id,
            comment.author_id,
            comment.author_name,
            comment.raw_text,
            comment.text,
            comment.edited_at,
        ]
        # by_id first: a row visible in listings must be addressable
        await self._execute(self._insert_comment_by_id, params)
        await self._execute(
            self._insert_comment_by_url,
            [
                comment.url,
                comment.created_at,
                comment.comment_id,
                comment.parent_id,
                comment.author_id,
                comment.author_name,
                comment.raw_text,
                comment.text,
                comment.edited_at,
            ],
        )

    async def update_comment(self, comment: Comment) -> None:
        await self._execute(
            self._update_comment_by_id,
            [comment.raw_text, comment.text, comment.edited_at, comment.comment_id],
        )
        await self._execute(
            self._update_comment_by_url,
            [
                comment.raw_text,
                comment.text,
                comment.edited_at,
                comment.url,
                comment.created_at,
                comment.comment_id,
            ],
        )

    async def delete_comment(self, comment: Comment) -> None:
        await self._execute(
            self._delete_comment_by_url,
            [comment.url, comment.created_at, comment.comment_id],
        )
        await self._execute(self._delete_comment_by_id, [comment.comment_id])

    # ==========================================================================
    # Votes
    # ==========================================================================

    async def get_vote(self, comment_id: UUID, voter_id: UUID) -> Vote | None:
        result = await self._execute(self._get_vote, [comment_id, voter_id])
        row = result.one()
        return Vote.from_row(row) if row else None

    async def list_votes(self, comment_id: UUID) -> list[Vote]:
        rows = await self._execute(self._get_votes, [comment_id])
        return [Vote.from_row(row) for row in rows]

    async def insert_vote(self, vote: Vote) -> None:
        result = await self._execute(
            self._insert_vote,
            [vote.comment_id, vote.voter_id, vote.kind.value, vote.updated_at],
        )
        if not result.was_applied:
            raise ConflictError("Vote already exists", "vote_exists")

    async def update_vote(
        self, comment_id: UUID, voter_id: UUID, kind: VoteKind
    ) -> None:
        await self._execute(self._update_vote, [kind.value, comment_id, voter_id])

    async def delete_vote(self, comment_id: UUID, voter_id: UUID) -> None:
        await self._execute(self._delete_vote, [comment_id, voter_id])

    async def delete_votes_for_comment(self, comment_id: UUID) -> None:
        await self._execute(self._delete_votes, [comment_id])

    # ==========================================================================
    # Notifications
    # ==========================================================================

    async def insert_notification(self, notification: Notification) -> None:
        await self._execute(
            self._insert_notification,
            [
                notification.user_id,
                notification.created_at,
                notification.notification_id,
                notification.type.value,
                notification.message,
                notification.comment_id,
                notification.url,
                notification.is_read,
                notification.read_at,
            ],
        )
        await self._execute(
            self._insert_notification_by_id,
            [
                notification.notification_id,
                notification.user_id,
                notification.created_at,
            ],
        )

    async def list_notifications(
        self, user_id: UUID, limit: int
    ) -> list[Notification]:
        rows = await self._execute(self._get_notifications, [user_id, limit])
        return [Notification.from_row(row) for row in rows]

    async def get_notification(self, notification_id: UUID) -> Notification | None:
        result = await self._execute(self._get_notification_key, [notification_id])
        key = result.one()
        if not key:
            return None

        result = await self._execute(
            self._get_notification, [key.user_id, key.created_at, notification_id]
        )
        row = result.one()
        return Notification.from_row(row) if row else None

    async def mark_notification_read(self, notification: Notification) -> None:
        await self._execute(
            self._mark_notification_read,
            [
                notification.user_id,
                notification.created_at,
                notification.notification_id,
            ],
        )
