"""Shared fixtures.

Environment is pinned before any marginalia import so the cached settings
pick it up.
"""

import os


os.environ["ENVIRONMENT"] = "testing"
os.environ["STORAGE_BACKEND"] = "memory"
os.environ["REDIS_ENABLED"] = "false"
os.environ["LOG_TO_FILE"] = "false"
os.environ["LOG_LEVEL"] = "WARNING"
os.environ["LOG_REQUESTS"] = "false"
os.environ["WS_PING_INTERVAL"] = "30"

from collections.abc import Callable, Iterator  # noqa: E402
from typing import Any  # noqa: E402
from uuid import uuid4  # noqa: E402

import pytest  # noqa: E402
import pytest_asyncio  # noqa: E402
from fastapi import FastAPI  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402

from marginalia.auth.directory import InMemoryUserDirectory  # noqa: E402
from marginalia.auth.models import AuthenticatedUser  # noqa: E402
from marginalia.auth.security import create_access_token  # noqa: E402
from marginalia.broadcast.hub import BroadcastHub, Subscriber  # noqa: E402
from marginalia.comments.rendering import MarkdownRenderer  # noqa: E402
from marginalia.comments.service import CommentService  # noqa: E402
from marginalia.comments.votes import VoteAggregator  # noqa: E402
from marginalia.main import create_app  # noqa: E402
from marginalia.notifications.dispatcher import NotificationDispatcher  # noqa: E402
from marginalia.store import InMemoryStore  # noqa: E402


class RecordingSubscriber(Subscriber):
    """Subscriber that keeps every message (or fails every send)."""

    def __init__(self, fail: bool = False) -> None:
        super().__init__()
        self.fail = fail
        self.messages: list[dict[str, Any]] = []

    async def send(self, message: dict[str, Any]) -> None:
        if self.fail:
            msg = "socket closed"
            raise ConnectionError(msg)
        self.messages.append(message)

    def of_type(self, event_type: str) -> list[dict[str, Any]]:
        return [m for m in self.messages if m["type"] == event_type]


# ==============================================================================
# Users and tokens
# ==============================================================================


@pytest.fixture
def alice() -> AuthenticatedUser:
    return AuthenticatedUser(user_id=uuid4(), username="alice")


@pytest.fixture
def bob() -> AuthenticatedUser:
    return AuthenticatedUser(user_id=uuid4(), username="Bob")


@pytest.fixture
def carol() -> AuthenticatedUser:
    return AuthenticatedUser(user_id=uuid4(), username="carol")


@pytest.fixture
def token_for() -> Callable[[AuthenticatedUser], str]:
    """Issue an access token for a user."""

    def _issue(user: AuthenticatedUser) -> str:
        return create_access_token(user.user_id, user.username)

    return _issue


@pytest.fixture
def auth_headers(token_for) -> Callable[[AuthenticatedUser], dict[str, str]]:
    """Authorization headers for a user."""

    def _headers(user: AuthenticatedUser) -> dict[str, str]:
        return {"Authorization": f"Bearer {token_for(user)}"}

    return _headers


# ==============================================================================
# Core components (in-memory)
# ==============================================================================


@pytest.fixture
def make_subscriber() -> type[RecordingSubscriber]:
    return RecordingSubscriber


@pytest.fixture
def store() -> InMemoryStore:
    return InMemoryStore()


@pytest_asyncio.fixture
async def directory(alice, bob, carol) -> InMemoryUserDirectory:
    """Directory that already knows alice, Bob and carol."""
    directory = InMemoryUserDirectory()
    for user in (alice, bob, carol):
        await directory.remember(user)
    return directory


@pytest.fixture
def hub() -> BroadcastHub:
    """Hub without a running worker; ``drain()`` delivers inline."""
    return BroadcastHub(queue_size=100)


@pytest.fixture
def votes(store) -> VoteAggregator:
    return VoteAggregator(store)


@pytest.fixture
def dispatcher(store, directory, hub) -> NotificationDispatcher:
    return NotificationDispatcher(store=store, directory=directory, hub=hub)


@pytest.fixture
def comment_service(store, votes, dispatcher, hub) -> CommentService:
    return CommentService(
        store=store,
        renderer=MarkdownRenderer(),
        votes=votes,
        dispatcher=dispatcher,
        hub=hub,
        max_length=500,
    )


# ==============================================================================
# HTTP
# ==============================================================================


@pytest.fixture
def app() -> FastAPI:
    return create_app()


@pytest.fixture
def client(app) -> Iterator[TestClient]:
    """Test client with the lifespan (fresh in-memory store per test)."""
    with TestClient(app) as test_client:
        yield test_client
