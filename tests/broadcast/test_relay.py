"""Tests for the Redis relay."""

import asyncio
from unittest.mock import AsyncMock, Mock

import orjson
import pytest

from marginalia.broadcast.relay import RedisRelay


@pytest.fixture
def mock_redis():
    """Mock async Redis client with a Pub/Sub handle."""
    pubsub = Mock()
    pubsub.subscribe = AsyncMock()
    pubsub.unsubscribe = AsyncMock()
    pubsub.aclose = AsyncMock()
    pubsub.get_message = AsyncMock(return_value=None)

    redis_mock = AsyncMock()
    redis_mock.pubsub = Mock(return_value=pubsub)
    return redis_mock


@pytest.mark.asyncio
async def test_publish_sends_envelope(mock_redis) -> None:
    relay = RedisRelay(mock_redis, channel="test:events")
    message = {"type": "newComment", "data": {"url": "https://a"}}

    await relay.publish("topic", "https://a", message)

    channel, payload = mock_redis.publish.await_args.args
    assert channel == "test:events"
    assert orjson.loads(payload) == {
        "scope": "topic",
        "key": "https://a",
        "message": message,
    }


@pytest.mark.asyncio
async def test_publish_error_propagates(mock_redis) -> None:
    mock_redis.publish.side_effect = ConnectionError("down")
    with pytest.raises(ConnectionError):
        await RedisRelay(mock_redis).publish("topic", "k", {})


def test_dispatch_forwards_to_local_delivery(mock_redis) -> None:
    relay = RedisRelay(mock_redis)
    relay._deliver = Mock(return_value=True)
    envelope = {"scope": "user", "key": "u1", "message": {"type": "notification"}}

    relay._dispatch(orjson.dumps(envelope).decode())

    relay._deliver.assert_called_once_with("user", "u1", {"type": "notification"})


@pytest.mark.parametrize("data", ["not json", '{"scope": "topic"}', "[]"])
def test_dispatch_ignores_bad_messages(mock_redis, data) -> None:
    relay = RedisRelay(mock_redis)
    relay._deliver = Mock()

    relay._dispatch(data)

    relay._deliver.assert_not_called()


@pytest.mark.asyncio
async def test_listener_delivers_channel_messages(mock_redis) -> None:
    pubsub = mock_redis.pubsub.return_value
    delivered = asyncio.Event()
    deliver = Mock(side_effect=lambda *_: delivered.set())
    envelope = orjson.dumps({"scope": "topic", "key": "https://a", "message": {}})
    pending = [{"type": "message", "data": envelope.decode()}]

    async def next_message(**_):
        if pending:
            return pending.pop(0)
        await asyncio.sleep(0.01)
        return None

    pubsub.get_message.side_effect = next_message
    relay = RedisRelay(mock_redis, channel="test:events")

    await relay.start(deliver)
    assert relay.is_running is True
    await asyncio.wait_for(delivered.wait(), timeout=1.0)
    await relay.stop()

    pubsub.subscribe.assert_awaited_once_with("test:events")
    deliver.assert_called_once_with("topic", "https://a", {})
    pubsub.aclose.assert_awaited_once()
    assert relay.is_running is False
