"""Access token verification.

Tokens are HS256 JWTs carrying ``sub`` (user UUID) and ``username``.
Issuing tokens belongs to the account service; ``create_access_token`` is
kept for local tooling and tests.
"""

from datetime import UTC, datetime, timedelta
from typing import Any
from uuid import UUID

from jose import JWTError, jwt

from marginalia.auth.models import AuthenticatedUser
from marginalia.config.settings import get_settings


ACCESS_TOKEN_TYPE = "access"


def create_access_token(
    user_id: UUID,
    username: str,
    expires_delta: timedelta | None = None,
) -> str:
    """Create a signed access token.

    Args:
        user_id: User UUID (stored as ``sub``)
        username: Public handle used for @mentions
        expires_delta: Custom lifetime (defaults to settings)

    Returns:
        Encoded JWT
    """
    settings = get_settings()
    now = datetime.now(UTC)
    expire = now + (
        expires_delta or timedelta(minutes=settings.auth_access_token_expire_minutes)
    )
    payload = {
        "sub": str(user_id),
        "username": username,
        "type": ACCESS_TOKEN_TYPE,
        "iat": now,
        "exp": expire,
    }
    return jwt.encode(
        payload, settings.auth_secret_key, algorithm=settings.auth_algorithm
    )


def decode_access_token(token: str) -> dict[str, Any]:
    """Decode and validate an access token.

    Raises:
        JWTError: If the token is invalid, expired or not an access token
    """
    settings = get_settings()
    payload = jwt.decode(
        token, settings.auth_secret_key, algorithms=[settings.auth_algorithm]
    )
    if payload.get("type", ACCESS_TOKEN_TYPE) != ACCESS_TOKEN_TYPE:
        msg = "Invalid token type"
        raise JWTError(msg)
    if not payload.get("sub") or not payload.get("username"):
        msg = "Token is missing required claims"
        raise JWTError(msg)
    return payload


def authenticate(token: str) -> AuthenticatedUser:
    """Map an access token to the acting user.

    Raises:
        JWTError: If the token is invalid or carries a malformed subject
    """
    payload = decode_access_token(token)
    try:
        user_id = UUID(payload["sub"])
    except ValueError as e:
        msg = "Invalid subject claim"
        raise JWTError(msg) from e
    return AuthenticatedUser(user_id=user_id, username=payload["username"])
