# ruff: noqa: S608 - All CQL queries use keyspace from config, not user input
"""User directory: resolves @handles to user IDs.

The directory learns a username -> user_id mapping every time a user
authenticates (``remember``), so mentions can be resolved without owning the
account database.
"""

import asyncio
from abc import ABC, abstractmethod
from datetime import UTC, datetime
from typing import TYPE_CHECKING

from cassandra import DriverException, RequestExecutionException
from cassandra.cluster import NoHostAvailable

from marginalia.auth.models import AuthenticatedUser, UserRef
from marginalia.core.errors import DirectoryError


if TYPE_CHECKING:
    from cassandra.cluster import Session


class UserDirectory(ABC):
    """Username lookup contract."""

    @abstractmethod
    async def resolve_username(self, handle: str) -> UserRef | None:
        """Resolve a handle (case-insensitive). None when unknown."""

    @abstractmethod
    async def remember(self, user: AuthenticatedUser) -> None:
        """Record the user's current username."""


class InMemoryUserDirectory(UserDirectory):
    """Process-local directory for development and tests."""

    def __init__(self) -> None:
        self._users: dict[str, UserRef] = {}
        self._lock = asyncio.Lock()

    async def resolve_username(self, handle: str) -> UserRef | None:
        return self._users.get(handle.lower())

    async def remember(self, user: AuthenticatedUser) -> None:
        async with self._lock:
            self._users[user.username.lower()] = UserRef(
                user_id=user.user_id, username=user.username
            )


class CassandraUserDirectory(UserDirectory):
    """Directory backed by the ``users_by_username`` table."""

    def __init__(self, session: "Session", keyspace: str):
        self.session = session
        self.keyspace = keyspace
        # username -> user_id pairs already written by this process
        self._known: dict[str, UserRef] = {}
        self._prepare_statements()

    def _prepare_statements(self) -> None:
        self._get_user = self.session.prepare(f"""
            SELECT user_id, display_name FROM {self.keyspace}.users_by_username
            WHERE username = ?
        """)

        self._upsert_user = self.session.prepare(f"""
            INSERT INTO {self.keyspace}.users_by_username
            (username, user_id, display_name, updated_at)
            VALUES (?, ?, ?, ?)
        """)

    async def resolve_username(self, handle: str) -> UserRef | None:
        try:
            result = await self.session.aexecute(self._get_user, [handle.lower()])
        except (DriverException, RequestExecutionException, NoHostAvailable) as e:
            raise DirectoryError(f"User lookup failed: {e}") from e

        row = result.one()
        if not row:
            return None
        return UserRef(user_id=row.user_id, username=row.display_name or handle)

    async def remember(self, user: AuthenticatedUser) -> None:
        key = user.username.lower()
        if self._known.get(key) == UserRef(user.user_id, user.username):
            return

        try:
            await self.session.aexecute(
                self._upsert_user,
                [key, user.user_id, user.username, datetime.now(UTC)],
            )
        except (DriverException, RequestExecutionException, NoHostAvailable) as e:
            raise DirectoryError(f"Failed to record user: {e}") from e

        self._known[key] = UserRef(user.user_id, user.username)
