"""Notification API endpoints.

Provides:
- GET /api/notifications - Most recent notifications of the current user
- PUT /api/notifications/{id}/read - Mark one as read
"""

from uuid import UUID

from fastapi import APIRouter

from marginalia.auth.dependencies import CurrentUser
from marginalia.core.errors import MarginaliaError, handle_error

from .dependencies import NotificationServiceDep
from .schemas import MarkReadResponse, NotificationResponse


router = APIRouter(prefix="/api/notifications", tags=["notifications"])


@router.get(
    "",
    response_model=list[NotificationResponse],
    summary="List notifications",
)
async def list_notifications(
    user: CurrentUser,
    service: NotificationServiceDep,
) -> list[NotificationResponse]:
    """Get the current user's most recent notifications, newest first."""
    try:
        notifications = await service.list_for_user(user.user_id)
    except MarginaliaError as e:
        raise handle_error(e) from e
    return [NotificationResponse.from_notification(n) for n in notifications]


@router.put(
    "/{notification_id}/read",
    response_model=MarkReadResponse,
    summary="Mark notification as read",
)
async def mark_notification_read(
    notification_id: UUID,
    user: CurrentUser,
    service: NotificationServiceDep,
) -> MarkReadResponse:
    """Mark one of the current user's notifications as read."""
    try:
        await service.mark_read(user.user_id, notification_id)
    except MarginaliaError as e:
        raise handle_error(e) from e
    return MarkReadResponse()
