"""FastAPI dependencies for the comment system."""

from typing import Annotated

from fastapi import Depends, HTTPException, Request, status

from .service import CommentService


async def get_comment_service(request: Request) -> CommentService:
    """Get comment service from app state.

    Args:
        request: FastAPI request

    Returns:
        CommentService instance
    """
    service = getattr(request.app.state, "comment_service", None)
    if service is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Comment service not available",
        )
    return service


CommentServiceDep = Annotated[CommentService, Depends(get_comment_service)]
