"""Auth API endpoints.

Only identity introspection lives here; tokens are issued by the account
service.
"""

from uuid import UUID

from fastapi import APIRouter
from pydantic import BaseModel

from marginalia.auth.dependencies import CurrentUser


router = APIRouter(prefix="/api/auth", tags=["auth"])


class MeResponse(BaseModel):
    """Authenticated user."""

    id: UUID
    username: str


@router.get("/me", response_model=MeResponse, summary="Current user")
async def me(user: CurrentUser) -> MeResponse:
    """Return the identity carried by the access token."""
    return MeResponse(id=user.user_id, username=user.username)
