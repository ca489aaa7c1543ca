"""Identity records the core consumes.

Accounts live with the credential issuer. The core only needs to know who is
acting (AuthenticatedUser) and to map @handles to user IDs (UserRef, backed
by the ``users_by_username`` lookup table).
"""

from dataclasses import dataclass
from uuid import UUID


# Username lookup - usernames are stored lowercased for case-insensitive match
USERS_BY_USERNAME_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.users_by_username (
    username TEXT PRIMARY KEY,
    user_id UUID,
    display_name TEXT,
    updated_at TIMESTAMP
)
"""

AUTH_TABLES_CQL = [
    USERS_BY_USERNAME_TABLE_CQL,
]


@dataclass(frozen=True)
class AuthenticatedUser:
    """Actor resolved from an access token."""

    user_id: UUID
    username: str


@dataclass(frozen=True)
class UserRef:
    """User resolved from an @handle."""

    user_id: UUID
    username: str
