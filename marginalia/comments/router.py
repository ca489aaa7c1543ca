"""Comment system API endpoints.

Provides routes for:
- Threaded, paginated listing per URL
- Comment create / edit / delete
- Votes and tallies
"""

from uuid import UUID

from fastapi import APIRouter, Query, status

from marginalia.auth.dependencies import CurrentUser
from marginalia.config import get_settings
from marginalia.core.errors import MarginaliaError, handle_error

from .dependencies import CommentServiceDep
from .schemas import (
    CommentListResponse,
    CommentResponse,
    CreateCommentRequest,
    CreateCommentResponse,
    DeleteResponse,
    TallyResponse,
    UpdateCommentRequest,
    VoteRequest,
    VoteResponse,
)


_settings = get_settings()

router = APIRouter(prefix="/api/comments", tags=["comments"])


@router.get(
    "",
    response_model=CommentListResponse,
    summary="List comments for a URL",
)
async def list_comments(
    comment_service: CommentServiceDep,
    url: str = Query(..., description="Page URL the comments are anchored to"),
    page: int = Query(1, ge=1),
    limit: int = Query(
        _settings.comments_default_page_size,
        ge=1,
        le=_settings.comments_max_page_size,
    ),
) -> CommentListResponse:
    """Get one page of a URL's comments (newest first) as a reply tree.

    Replies whose parent falls on another page are left out of this page.
    """
    try:
        result = await comment_service.list_comments(url, page=page, limit=limit)
    except MarginaliaError as e:
        raise handle_error(e) from e

    return CommentListResponse(
        comments=[CommentResponse.from_node(node) for node in result.forest],
        pagination=result.pagination,
    )


@router.post(
    "",
    response_model=CreateCommentResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create comment",
)
async def create_comment(
    data: CreateCommentRequest,
    comment_service: CommentServiceDep,
    user: CurrentUser,
) -> CreateCommentResponse:
    """Create a comment or reply. Mentioned users are notified."""
    try:
        created = await comment_service.create_comment(
            user, url=data.url, text=data.text, parent_id=data.parent_id
        )
    except MarginaliaError as e:
        raise handle_error(e) from e

    response = CommentResponse.from_comment(created.comment)
    return CreateCommentResponse(
        **response.model_dump(), warnings=created.warnings
    )


@router.put(
    "/{comment_id}",
    response_model=CommentResponse,
    summary="Edit comment",
)
async def edit_comment(
    comment_id: UUID,
    data: UpdateCommentRequest,
    comment_service: CommentServiceDep,
    user: CurrentUser,
) -> CommentResponse:
    """Edit own comment."""
    try:
        comment, tally = await comment_service.edit_comment(
            user, comment_id, data.text
        )
    except MarginaliaError as e:
        raise handle_error(e) from e

    return CommentResponse.from_comment(comment, tally)


@router.delete(
    "/{comment_id}",
    response_model=DeleteResponse,
    summary="Delete comment",
)
async def delete_comment(
    comment_id: UUID,
    comment_service: CommentServiceDep,
    user: CurrentUser,
) -> DeleteResponse:
    """Delete own comment and every reply beneath it."""
    try:
        deleted_ids = await comment_service.delete_comment(user, comment_id)
    except MarginaliaError as e:
        raise handle_error(e) from e

    return DeleteResponse(deleted_ids=deleted_ids)


@router.post(
    "/{comment_id}/vote",
    response_model=VoteResponse,
    summary="Vote on comment",
)
async def vote_comment(
    comment_id: UUID,
    data: VoteRequest,
    comment_service: CommentServiceDep,
    user: CurrentUser,
) -> VoteResponse:
    """Upvote, downvote or withdraw the current user's vote."""
    try:
        tally = await comment_service.vote(user, comment_id, data.vote_type)
    except MarginaliaError as e:
        raise handle_error(e) from e

    return VoteResponse(upvotes=tally.upvotes, downvotes=tally.downvotes)


@router.get(
    "/{comment_id}/votes",
    response_model=TallyResponse,
    summary="Get vote tally",
)
async def get_votes(
    comment_id: UUID,
    comment_service: CommentServiceDep,
) -> TallyResponse:
    """Current up/down tally of a comment."""
    try:
        tally = await comment_service.get_tally(comment_id)
    except MarginaliaError as e:
        raise handle_error(e) from e

    return TallyResponse(upvotes=tally.upvotes, downvotes=tally.downvotes)
