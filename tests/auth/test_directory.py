"""Tests for the user directory adapters."""

from unittest.mock import AsyncMock, Mock
from uuid import uuid4

import pytest
from cassandra import OperationTimedOut
from cassandra.cluster import Session

from marginalia.auth.directory import CassandraUserDirectory, InMemoryUserDirectory
from marginalia.auth.models import AuthenticatedUser, UserRef
from marginalia.core.errors import DirectoryError


class TestInMemoryUserDirectory:
    """Tests for the process-local directory."""

    @pytest.mark.asyncio
    async def test_resolve_is_case_insensitive(self) -> None:
        directory = InMemoryUserDirectory()
        user = AuthenticatedUser(user_id=uuid4(), username="Bob")
        await directory.remember(user)

        assert await directory.resolve_username("bob") == UserRef(user.user_id, "Bob")
        assert await directory.resolve_username("BOB") == UserRef(user.user_id, "Bob")

    @pytest.mark.asyncio
    async def test_unknown_handle_resolves_to_none(self) -> None:
        directory = InMemoryUserDirectory()
        assert await directory.resolve_username("nobody") is None

    @pytest.mark.asyncio
    async def test_remember_overwrites_previous_owner(self) -> None:
        directory = InMemoryUserDirectory()
        first = AuthenticatedUser(user_id=uuid4(), username="dana")
        second = AuthenticatedUser(user_id=uuid4(), username="Dana")
        await directory.remember(first)
        await directory.remember(second)

        resolved = await directory.resolve_username("dana")
        assert resolved.user_id == second.user_id


@pytest.fixture
def mock_session():
    """Mock Cassandra session."""
    session = Mock(spec=Session)
    session.prepare = Mock(return_value=Mock())
    session.aexecute = AsyncMock(return_value=Mock())
    return session


class TestCassandraUserDirectory:
    """Tests for the Cassandra-backed directory."""

    @pytest.mark.asyncio
    async def test_resolve_reads_lowercased_key(self, mock_session) -> None:
        user_id = uuid4()
        result = Mock()
        result.one.return_value = Mock(user_id=user_id, display_name="Bob")
        mock_session.aexecute.return_value = result

        directory = CassandraUserDirectory(mock_session, "test_keyspace")
        resolved = await directory.resolve_username("BoB")

        assert resolved == UserRef(user_id=user_id, username="Bob")
        _, params = mock_session.aexecute.call_args.args
        assert params == ["bob"]

    @pytest.mark.asyncio
    async def test_resolve_missing_row(self, mock_session) -> None:
        result = Mock()
        result.one.return_value = None
        mock_session.aexecute.return_value = result

        directory = CassandraUserDirectory(mock_session, "test_keyspace")
        assert await directory.resolve_username("ghost") is None

    @pytest.mark.asyncio
    async def test_remember_writes_once_per_mapping(self, mock_session) -> None:
        directory = CassandraUserDirectory(mock_session, "test_keyspace")
        user = AuthenticatedUser(user_id=uuid4(), username="Bob")

        await directory.remember(user)
        await directory.remember(user)

        assert mock_session.aexecute.await_count == 1
        _, params = mock_session.aexecute.call_args.args
        assert params[:3] == ["bob", user.user_id, "Bob"]

    @pytest.mark.asyncio
    async def test_driver_error_becomes_directory_error(self, mock_session) -> None:
        mock_session.aexecute.side_effect = OperationTimedOut("timed out")

        directory = CassandraUserDirectory(mock_session, "test_keyspace")
        with pytest.raises(DirectoryError):
            await directory.resolve_username("bob")
