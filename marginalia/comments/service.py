"""Comment system service layer.

Business logic for:
- Comment create / edit / delete with threading support
- Paginated threaded listings with vote tallies
- Votes

Writes are acknowledged by the store before any event is published.
"""

from dataclasses import dataclass, field
from typing import TYPE_CHECKING
from uuid import UUID

import structlog

from marginalia.auth.models import AuthenticatedUser
from marginalia.broadcast.events import Event
from marginalia.core.errors import ValidationError

from .exceptions import (
    CommentNotFoundError,
    NotCommentAuthorError,
    ParentMismatchError,
    ParentNotFoundError,
)
from .models import Comment, Tally, VoteKind, create_comment
from .schemas import CommentResponse, Pagination, to_wire
from .tree import CommentNode, build_comment_tree


if TYPE_CHECKING:
    from marginalia.broadcast.hub import BroadcastHub
    from marginalia.notifications.dispatcher import NotificationDispatcher
    from marginalia.store.base import CommentStore

    from .rendering import Renderer
    from .votes import VoteAggregator


logger = structlog.get_logger(__name__)

VOTE_REMOVE = "remove"
VOTE_TYPES = (VoteKind.UP.value, VoteKind.DOWN.value, VOTE_REMOVE)


@dataclass
class CreatedComment:
    """A stored comment plus non-fatal problems hit after the write."""

    comment: Comment
    warnings: list[str] = field(default_factory=list)


@dataclass
class CommentPage:
    """One page of a URL's comments as a forest."""

    forest: list[CommentNode]
    pagination: Pagination


class CommentService:
    """Service for comment management."""

    def __init__(
        self,
        store: "CommentStore",
        renderer: "Renderer",
        votes: "VoteAggregator",
        dispatcher: "NotificationDispatcher",
        hub: "BroadcastHub",
        max_length: int = 10000,
    ):
        self.store = store
        self.renderer = renderer
        self.votes = votes
        self.dispatcher = dispatcher
        self.hub = hub
        self.max_length = max_length

    # ==========================================================================
    # Validation
    # ==========================================================================

    @staticmethod
    def _require_url(url: str | None) -> str:
        url = (url or "").strip()
        if not url:
            msg = "URL is required"
            raise ValidationError(msg, "url_required")
        return url

    def _require_text(self, text: str | None) -> str:
        if not text or not text.strip():
            msg = "Text is required"
            raise ValidationError(msg, "text_required")
        if len(text) > self.max_length:
            msg = f"Text must be at most {self.max_length} characters"
            raise ValidationError(msg, "text_too_long")
        return text

    async def _get_owned(self, comment_id: UUID, user: AuthenticatedUser) -> Comment:
        comment = await self.store.get_comment(comment_id)
        if comment is None:
            raise CommentNotFoundError
        if comment.author_id != user.user_id:
            raise NotCommentAuthorError
        return comment

    # ==========================================================================
    # Create / Edit / Delete
    # ==========================================================================

    async def create_comment(
        self,
        user: AuthenticatedUser,
        url: str,
        text: str,
        parent_id: UUID | None = None,
    ) -> CreatedComment:
        """Create a comment and notify mentioned users.

        Notification failures do not undo the comment; they are returned as
        warnings.

        Raises:
            ValidationError: Missing URL/text or parent on another URL
            ParentNotFoundError: If ``parent_id`` does not exist
            CollaboratorError: If rendering or the insert fails
        """
        url = self._require_url(url)
        raw_text = self._require_text(text)

        if parent_id is not None:
            parent = await self.store.get_comment(parent_id)
            if parent is None:
                raise ParentNotFoundError
            if parent.url != url:
                raise ParentMismatchError

        html = self.renderer.render(raw_text)
        comment = create_comment(
            url=url,
            author_id=user.user_id,
            author_name=user.username,
            raw_text=raw_text,
            text=html,
            parent_id=parent_id,
        )
        await self.store.insert_comment(comment)

        logger.info(
            "comment_created",
            comment_id=str(comment.comment_id),
            url=url,
            parent_id=str(parent_id) if parent_id else None,
        )

        dispatch = await self.dispatcher.dispatch(comment)
        warnings = [failure.message for failure in dispatch.failures]
        if warnings:
            logger.warning(
                "notification_dispatch_failed",
                comment_id=str(comment.comment_id),
                failures=len(warnings),
                notified=len(dispatch.notifications),
            )

        self.hub.publish_to_topic(
            url,
            Event.NEW_COMMENT,
            {"url": url, "comment": to_wire(CommentResponse.from_comment(comment))},
        )
        return CreatedComment(comment=comment, warnings=warnings)

    async def edit_comment(
        self, user: AuthenticatedUser, comment_id: UUID, text: str
    ) -> tuple[Comment, Tally]:
        """Replace a comment's text. Author only.

        Returns:
            The edited comment and its current tally

        Raises:
            CommentNotFoundError: If the comment does not exist
            NotCommentAuthorError: If ``user`` is not the author
        """
        raw_text = self._require_text(text)
        comment = await self._get_owned(comment_id, user)

        edited = comment.edited(raw_text, self.renderer.render(raw_text))
        await self.store.update_comment(edited)

        logger.info("comment_edited", comment_id=str(comment_id))

        self.hub.publish_to_topic(
            edited.url,
            Event.COMMENT_EDITED,
            {
                "commentId": str(comment_id),
                "text": edited.text,
                "rawText": edited.raw_text,
                "editedAt": edited.edited_at.isoformat(),
            },
        )
        return edited, await self.votes.tally(comment_id)

    async def delete_comment(
        self, user: AuthenticatedUser, comment_id: UUID
    ) -> list[UUID]:
        """Delete a comment together with all of its replies. Author only.

        Returns:
            IDs of every deleted comment, the target first

        Raises:
            CommentNotFoundError: If the comment does not exist
            NotCommentAuthorError: If ``user`` is not the author
        """
        comment = await self._get_owned(comment_id, user)

        on_url = await self.store.list_comments(comment.url)
        subtree = self._collect_subtree(comment, on_url)

        # Deepest first so no reply outlives its parent
        for target in reversed(subtree):
            await self.store.delete_votes_for_comment(target.comment_id)
            await self.store.delete_comment(target)

        deleted_ids = [c.comment_id for c in subtree]
        logger.info(
            "comment_deleted",
            comment_id=str(comment_id),
            deleted_count=len(deleted_ids),
        )

        self.hub.publish_to_topic(
            comment.url,
            Event.COMMENT_DELETED,
            {
                "commentId": str(comment_id),
                "deletedIds": [str(cid) for cid in deleted_ids],
            },
        )
        return deleted_ids

    @staticmethod
    def _collect_subtree(root: Comment, comments: list[Comment]) -> list[Comment]:
        """Root followed by its descendants in breadth-first order."""
        children: dict[UUID, list[Comment]] = {}
        for c in comments:
            if c.parent_id is not None and c.parent_id != c.comment_id:
                children.setdefault(c.parent_id, []).append(c)

        ordered = [root]
        seen = {root.comment_id}
        index = 0
        while index < len(ordered):
            for child in children.get(ordered[index].comment_id, []):
                if child.comment_id not in seen:
                    seen.add(child.comment_id)
                    ordered.append(child)
            index += 1
        return ordered

    # ==========================================================================
    # Read
    # ==========================================================================

    async def list_comments(
        self, url: str, page: int = 1, limit: int = 20
    ) -> CommentPage:
        """Threaded view of one page of a URL's comments, newest first.

        Raises:
            ValidationError: If ``url`` is empty or paging is out of range
        """
        url = self._require_url(url)
        if page < 1 or limit < 1:
            msg = "page and limit must be positive"
            raise ValidationError(msg, "invalid_pagination")

        comments = await self.store.list_comments(url)
        start, end = Pagination.bounds(page, limit)
        page_comments = comments[start:end]

        tallies = await self.votes.tallies(c.comment_id for c in page_comments)
        return CommentPage(
            forest=build_comment_tree(page_comments, tallies),
            pagination=Pagination.from_counts(page, limit, len(comments)),
        )

    async def get_tally(self, comment_id: UUID) -> Tally:
        """Current tally of an existing comment.

        Raises:
            CommentNotFoundError: If the comment does not exist
        """
        if await self.store.get_comment(comment_id) is None:
            raise CommentNotFoundError
        return await self.votes.tally(comment_id)

    # ==========================================================================
    # Votes
    # ==========================================================================

    async def vote(
        self, user: AuthenticatedUser, comment_id: UUID, vote_type: str
    ) -> Tally:
        """Cast (``up``/``down``) or withdraw (``remove``) the user's vote.

        Raises:
            ValidationError: If ``vote_type`` is not recognised
            CommentNotFoundError: If the comment does not exist
        """
        if vote_type not in VOTE_TYPES:
            msg = 'Invalid vote type. Must be "up", "down", or "remove"'
            raise ValidationError(msg, "invalid_vote_type")

        comment = await self.store.get_comment(comment_id)
        if comment is None:
            raise CommentNotFoundError

        if vote_type == VOTE_REMOVE:
            tally = await self.votes.remove_vote(comment_id, user.user_id)
        else:
            tally = await self.votes.cast_vote(
                comment_id, user.user_id, VoteKind(vote_type)
            )

        logger.info(
            "vote_cast",
            comment_id=str(comment_id),
            vote_type=vote_type,
            upvotes=tally.upvotes,
            downvotes=tally.downvotes,
        )

        self.hub.publish_to_topic(
            comment.url,
            Event.COMMENT_VOTED,
            {
                "commentId": str(comment_id),
                "upvotes": tally.upvotes,
                "downvotes": tally.downvotes,
            },
        )
        return tally
