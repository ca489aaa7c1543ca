"""Comment-specific errors."""

from marginalia.core.errors import ForbiddenError, NotFoundError, ValidationError


class CommentNotFoundError(NotFoundError):
    """Comment not found."""

    def __init__(self, message: str = "Comment not found"):
        super().__init__(message, "comment_not_found")


class ParentNotFoundError(NotFoundError):
    """Reply target does not exist."""

    def __init__(self, message: str = "Parent comment not found"):
        super().__init__(message, "parent_not_found")


class ParentMismatchError(ValidationError):
    """Reply target belongs to a different page."""

    def __init__(self, message: str = "Parent comment belongs to a different URL"):
        super().__init__(message, "parent_url_mismatch")


class NotCommentAuthorError(ForbiddenError):
    """Only the author may edit or delete a comment."""

    def __init__(self, message: str = "Not authorized"):
        super().__init__(message, "not_comment_author")
