"""Redis Pub/Sub relay for multi-worker broadcast.

Every worker publishes to one channel and listens on it; events received
from the channel are delivered to the worker's local subscribers. A worker
therefore also receives its own publications through Redis, which keeps the
delivery path identical whether one or many workers are running.
"""

import asyncio
import contextlib
from collections.abc import Callable
from typing import TYPE_CHECKING, Any

import orjson
import structlog


if TYPE_CHECKING:
    from redis.asyncio import Redis


logger = structlog.get_logger(__name__)

LocalDelivery = Callable[[str, str, dict[str, Any]], bool]


class RedisRelay:
    """Forwards hub publications through a Redis channel."""

    def __init__(self, redis: "Redis", channel: str = "marginalia:events"):
        self.redis = redis
        self.channel = channel
        self._pubsub = None
        self._listener_task: asyncio.Task | None = None
        self._deliver: LocalDelivery | None = None

    @property
    def is_running(self) -> bool:
        """Check if the listener is active."""
        return self._listener_task is not None and not self._listener_task.done()

    async def publish(self, scope: str, key: str, message: dict[str, Any]) -> None:
        """Publish an event for every worker.

        Raises:
            redis.RedisError: If the publish fails
        """
        envelope = {"scope": scope, "key": key, "message": message}
        await self.redis.publish(self.channel, orjson.dumps(envelope))

    async def start(self, deliver: LocalDelivery) -> None:
        """Subscribe to the channel and start forwarding to ``deliver``."""
        if self.is_running:
            return

        self._deliver = deliver
        self._pubsub = self.redis.pubsub()
        await self._pubsub.subscribe(self.channel)
        self._listener_task = asyncio.create_task(
            self._listen(), name="broadcast_relay_listener"
        )
        logger.info("broadcast_relay_started", channel=self.channel)

    async def stop(self) -> None:
        """Stop listening and release the Pub/Sub connection."""
        if self._listener_task and not self._listener_task.done():
            self._listener_task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await self._listener_task
        self._listener_task = None

        if self._pubsub is not None:
            try:
                await self._pubsub.unsubscribe(self.channel)
                await self._pubsub.aclose()
            except Exception as e:
                logger.warning("broadcast_relay_close_failed", error=str(e))
            self._pubsub = None

        logger.info("broadcast_relay_stopped", channel=self.channel)

    async def _listen(self) -> None:
        while True:
            try:
                message = await self._pubsub.get_message(
                    ignore_subscribe_messages=True, timeout=1.0
                )
                if message and message["type"] == "message":
                    self._dispatch(message["data"])
            except asyncio.CancelledError:
                raise
            except Exception as e:
                logger.warning("broadcast_relay_listen_error", error=str(e))
                # Back off before retrying a broken connection
                await asyncio.sleep(1.0)

    def _dispatch(self, data: str | bytes) -> None:
        try:
            envelope = orjson.loads(data)
            scope, key, payload = envelope["scope"], envelope["key"], envelope["message"]
        except (orjson.JSONDecodeError, KeyError, TypeError) as e:
            logger.warning("broadcast_relay_bad_message", error=str(e))
            return
        if self._deliver is not None:
            self._deliver(scope, key, payload)
