"""Pydantic schemas for the comment API.

Request/Response models for:
- Comment create / edit
- Votes
- Threaded listings with page-number pagination

JSON is camelCase on the wire; Python attributes stay snake_case.
"""

import math
from datetime import datetime
from typing import Any
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from .models import Comment, Tally
from .tree import CommentNode


class CamelModel(BaseModel):
    """Base model serialised with camelCase keys."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# ==============================================================================
# Request Schemas
# ==============================================================================


class CreateCommentRequest(CamelModel):
    """Request to create a new comment."""

    url: str = Field(..., max_length=2048)
    text: str
    parent_id: UUID | None = None


class UpdateCommentRequest(CamelModel):
    """Request to edit a comment."""

    text: str


class VoteRequest(CamelModel):
    """Request to vote on a comment.

    ``vote_type`` is one of ``up``, ``down`` or ``remove``; anything else is
    rejected by the service with a 400.
    """

    vote_type: str


# ==============================================================================
# Response Schemas
# ==============================================================================


class CommentResponse(CamelModel):
    """Comment with tally and nested replies."""

    id: UUID
    url: str
    text: str
    raw_text: str
    parent_id: UUID | None = None
    author_id: UUID
    author_name: str
    timestamp: datetime
    edited_at: datetime | None = None
    upvotes: int = 0
    downvotes: int = 0
    replies: list["CommentResponse"] = Field(default_factory=list)

    @classmethod
    def from_comment(
        cls, comment: Comment, tally: Tally | None = None
    ) -> "CommentResponse":
        """Create response from Comment entity (no replies)."""
        tally = tally or Tally()
        return cls(
            id=comment.comment_id,
            url=comment.url,
            text=comment.text,
            raw_text=comment.raw_text,
            parent_id=comment.parent_id,
            author_id=comment.author_id,
            author_name=comment.author_name,
            timestamp=comment.created_at,
            edited_at=comment.edited_at,
            upvotes=tally.upvotes,
            downvotes=tally.downvotes,
        )

    @classmethod
    def from_node(cls, node: CommentNode) -> "CommentResponse":
        """Create response from a tree node, replies included."""
        response = cls.from_comment(node.comment, node.tally)
        response.replies = [cls.from_node(reply) for reply in node.replies]
        return response


class CreateCommentResponse(CommentResponse):
    """Newly created comment.

    ``warnings`` lists notification deliveries that failed; the comment itself
    was stored.
    """

    warnings: list[str] = Field(default_factory=list)


class Pagination(CamelModel):
    """Page-number pagination metadata."""

    current_page: int
    total_pages: int
    total_comments: int
    has_next_page: bool
    has_prev_page: bool

    @classmethod
    def from_counts(cls, page: int, limit: int, total: int) -> "Pagination":
        """Compute metadata for ``page`` of ``total`` items at ``limit`` per page.

        >>> Pagination.from_counts(1, 3, 7).total_pages
        3
        """
        total_pages = math.ceil(total / limit) if limit > 0 else 0
        return cls(
            current_page=page,
            total_pages=total_pages,
            total_comments=total,
            has_next_page=page < total_pages,
            has_prev_page=page > 1,
        )

    @staticmethod
    def bounds(page: int, limit: int) -> tuple[int, int]:
        """Slice bounds of ``page`` over the newest-first list."""
        start = (page - 1) * limit
        return start, start + limit


class CommentListResponse(CamelModel):
    """One page of a URL's comments as a threaded forest."""

    comments: list[CommentResponse]
    pagination: Pagination


class VoteResponse(CamelModel):
    """Tally after a vote mutation."""

    success: bool = True
    upvotes: int
    downvotes: int


class TallyResponse(CamelModel):
    """Current tally of a comment."""

    upvotes: int
    downvotes: int


class DeleteResponse(CamelModel):
    """Result of deleting a comment and its replies."""

    success: bool = True
    deleted_ids: list[UUID]


def to_wire(model: BaseModel) -> dict[str, Any]:
    """JSON-ready dict with wire (camelCase) keys, for broadcast payloads."""
    return model.model_dump(mode="json", by_alias=True)
