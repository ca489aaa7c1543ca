"""FastAPI dependencies for authentication.

Provides:
- Bearer token extraction
- Current user
- Directory bookkeeping so authenticated usernames can be @mentioned
"""

from typing import Annotated

from fastapi import Depends, HTTPException, Request, status
from jose import JWTError

from marginalia.auth.directory import UserDirectory
from marginalia.auth.models import AuthenticatedUser
from marginalia.auth.security import authenticate
from marginalia.core.context import set_user_id
from marginalia.core.errors import CollaboratorError, handle_error


def get_token_from_header(request: Request) -> str | None:
    """Extract Bearer token from Authorization header."""
    auth_header = request.headers.get("Authorization")
    if not auth_header:
        return None

    expected_parts = 2
    parts = auth_header.split()
    if len(parts) != expected_parts or parts[0].lower() != "bearer":
        return None

    return parts[1]


async def _remember(request: Request, user: AuthenticatedUser) -> None:
    directory: UserDirectory | None = getattr(request.app.state, "user_directory", None)
    if directory is None:
        return
    try:
        await directory.remember(user)
    except CollaboratorError as e:
        raise handle_error(e) from e


async def get_current_user(
    request: Request,
    token: Annotated[str | None, Depends(get_token_from_header)],
) -> AuthenticatedUser:
    """Get the authenticated user from the access token.

    Raises:
        HTTPException(401): If token is missing, invalid, or expired
    """
    if not token:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Access token required",
            headers={"WWW-Authenticate": "Bearer"},
        )

    try:
        user = authenticate(token)
    except JWTError as e:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or expired token",
            headers={"WWW-Authenticate": "Bearer"},
        ) from e

    set_user_id(user.user_id)
    await _remember(request, user)
    return user


CurrentUser = Annotated[AuthenticatedUser, Depends(get_current_user)]
