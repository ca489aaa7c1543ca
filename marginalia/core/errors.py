"""Error taxonomy shared by every component.

Services raise these; only the HTTP/WebSocket boundary maps them to
caller-visible responses (see ``handle_error``).

- ValidationError: missing or malformed input, no state change
- NotFoundError: comment / notification / vote target missing
- ForbiddenError: actor is not the owning author or recipient
- ConflictError: duplicate row or concurrent write race
- CollaboratorError: store, renderer or directory failure
"""

from fastapi import HTTPException, status


class MarginaliaError(Exception):
    """Base application error."""

    def __init__(self, message: str, code: str = "error"):
        self.message = message
        self.code = code
        super().__init__(message)


class ValidationError(MarginaliaError):
    """Invalid input."""

    def __init__(self, message: str = "Invalid request", code: str = "validation_error"):
        super().__init__(message, code)


class NotFoundError(MarginaliaError):
    """Target does not exist."""

    def __init__(self, message: str = "Not found", code: str = "not_found"):
        super().__init__(message, code)


class ForbiddenError(MarginaliaError):
    """Actor may not perform the operation."""

    def __init__(self, message: str = "Not authorized", code: str = "forbidden"):
        super().__init__(message, code)


class ConflictError(MarginaliaError):
    """Write collided with existing state."""

    def __init__(self, message: str = "Conflict", code: str = "conflict"):
        super().__init__(message, code)


class CollaboratorError(MarginaliaError):
    """An external collaborator failed."""

    def __init__(
        self, message: str = "Upstream failure", code: str = "collaborator_error"
    ):
        super().__init__(message, code)


class StoreError(CollaboratorError):
    """Persistence backend failure."""

    def __init__(self, message: str = "Storage failure"):
        super().__init__(message, "store_error")


class RenderError(CollaboratorError):
    """Markdown rendering failure."""

    def __init__(self, message: str = "Failed to render comment"):
        super().__init__(message, "render_error")


class DirectoryError(CollaboratorError):
    """User directory failure."""

    def __init__(self, message: str = "User lookup failed"):
        super().__init__(message, "directory_error")


_STATUS_BY_CLASS: list[tuple[type[MarginaliaError], int]] = [
    (ValidationError, status.HTTP_400_BAD_REQUEST),
    (NotFoundError, status.HTTP_404_NOT_FOUND),
    (ForbiddenError, status.HTTP_403_FORBIDDEN),
    (ConflictError, status.HTTP_409_CONFLICT),
    (CollaboratorError, status.HTTP_503_SERVICE_UNAVAILABLE),
]


def status_for(error: MarginaliaError) -> int:
    """Get the HTTP status code for an error."""
    for error_class, status_code in _STATUS_BY_CLASS:
        if isinstance(error, error_class):
            return status_code
    return status.HTTP_500_INTERNAL_SERVER_ERROR


def handle_error(error: MarginaliaError) -> HTTPException:
    """Convert an application error to an HTTP exception.

    Args:
        error: Application error

    Returns:
        HTTPException with appropriate status code
    """
    return HTTPException(
        status_code=status_for(error),
        detail=error.message,
    )
