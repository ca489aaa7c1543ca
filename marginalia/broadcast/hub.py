"""Topic- and user-scoped event fan-out.

Key features:
- Non-blocking publication (asyncio.Queue.put_nowait())
- Recipient set snapshotted when the event is published
- Background worker performs the sends; failing subscribers are dropped
- Optional Redis relay so every worker process sees every event

Delivery is best-effort and at-most-once. Subscribers that are not
registered when an event is published never see it.
"""

from __future__ import annotations

import asyncio
import contextlib
import threading
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any
from uuid import UUID, uuid4

import structlog

from .events import Event, make_message


if TYPE_CHECKING:
    from .relay import RedisRelay


logger = structlog.get_logger(__name__)

TOPIC_SCOPE = "topic"
USER_SCOPE = "user"


class Subscriber(ABC):
    """A connected client that can receive messages."""

    def __init__(self, subscriber_id: str | None = None) -> None:
        self.subscriber_id = subscriber_id or str(uuid4())

    @abstractmethod
    async def send(self, message: dict[str, Any]) -> None:
        """Deliver one message. Raises on transport failure."""

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.subscriber_id})"


@dataclass(frozen=True)
class _Delivery:
    """Message bound to the recipients registered at publish time."""

    recipients: tuple[Subscriber, ...]
    message: dict[str, Any]


@dataclass(frozen=True)
class _RelayPublish:
    """Message to hand to the relay before local delivery."""

    scope: str
    key: str
    message: dict[str, Any]


class BroadcastHub:
    """Registry of topic and user subscriptions with a send worker."""

    def __init__(
        self,
        queue_size: int = 10000,
        relay: RedisRelay | None = None,
        send_timeout: float = 5.0,
    ):
        """Initialize the hub.

        Args:
            queue_size: Maximum pending publications (dropped when full)
            relay: Optional cross-process relay
            send_timeout: Seconds a single send may take before the
                subscriber is dropped
        """
        self.queue_size = queue_size
        self.relay = relay
        self.send_timeout = send_timeout

        # Registries; the lock is never held across an await
        self._lock = threading.Lock()
        self._topics: dict[str, set[Subscriber]] = {}
        self._users: dict[UUID, set[Subscriber]] = {}
        self._memberships: dict[Subscriber, tuple[set[str], set[UUID]]] = {}

        self._queue: asyncio.Queue[_Delivery | _RelayPublish] = asyncio.Queue(
            maxsize=queue_size
        )
        self._running = False
        self._worker_task: asyncio.Task | None = None
        self._start_time = 0.0

        # Counters for monitoring
        self._published = 0
        self._delivered = 0
        self._dropped = 0
        self._send_failures = 0

    # ==========================================================================
    # Registration
    # ==========================================================================

    def _membership(self, subscriber: Subscriber) -> tuple[set[str], set[UUID]]:
        return self._memberships.setdefault(subscriber, (set(), set()))

    def join_topic(self, subscriber: Subscriber, url: str) -> None:
        """Receive events published on ``url``."""
        with self._lock:
            self._topics.setdefault(url, set()).add(subscriber)
            self._membership(subscriber)[0].add(url)
        logger.debug("topic_joined", subscriber=subscriber.subscriber_id, url=url)

    def leave_topic(self, subscriber: Subscriber, url: str) -> None:
        """Stop receiving events published on ``url``."""
        with self._lock:
            self._discard(self._topics, url, subscriber)
            membership = self._memberships.get(subscriber)
            if membership:
                membership[0].discard(url)
        logger.debug("topic_left", subscriber=subscriber.subscriber_id, url=url)

    def subscribe_user(self, subscriber: Subscriber, user_id: UUID) -> None:
        """Receive events addressed to ``user_id``."""
        with self._lock:
            self._users.setdefault(user_id, set()).add(subscriber)
            self._membership(subscriber)[1].add(user_id)
        logger.debug(
            "user_subscribed", subscriber=subscriber.subscriber_id, user_id=str(user_id)
        )

    def unsubscribe_user(self, subscriber: Subscriber, user_id: UUID) -> None:
        """Stop receiving events addressed to ``user_id``."""
        with self._lock:
            self._discard(self._users, user_id, subscriber)
            membership = self._memberships.get(subscriber)
            if membership:
                membership[1].discard(user_id)
        logger.debug(
            "user_unsubscribed",
            subscriber=subscriber.subscriber_id,
            user_id=str(user_id),
        )

    def disconnect(self, subscriber: Subscriber) -> None:
        """Remove ``subscriber`` from every registry."""
        with self._lock:
            membership = self._memberships.pop(subscriber, None)
            if membership is None:
                return
            urls, user_ids = membership
            for url in urls:
                self._discard(self._topics, url, subscriber)
            for user_id in user_ids:
                self._discard(self._users, user_id, subscriber)

    @staticmethod
    def _discard(registry: dict, key: Any, subscriber: Subscriber) -> None:
        members = registry.get(key)
        if members is None:
            return
        members.discard(subscriber)
        if not members:
            del registry[key]

    def topic_subscribers(self, url: str) -> set[Subscriber]:
        """Snapshot of subscribers joined to ``url``."""
        with self._lock:
            return set(self._topics.get(url, ()))

    def user_subscribers(self, user_id: UUID) -> set[Subscriber]:
        """Snapshot of subscribers listening as ``user_id``."""
        with self._lock:
            return set(self._users.get(user_id, ()))

    # ==========================================================================
    # Publication (non-blocking, never raises)
    # ==========================================================================

    def publish_to_topic(self, url: str, event: Event, payload: dict[str, Any]) -> bool:
        """Publish ``event`` to everyone joined to ``url``.

        Returns:
            True if queued, False if dropped
        """
        return self._publish(TOPIC_SCOPE, url, make_message(event, payload))

    def publish_to_user(
        self, user_id: UUID, event: Event, payload: dict[str, Any]
    ) -> bool:
        """Publish ``event`` to every connection of ``user_id``.

        Returns:
            True if queued, False if dropped
        """
        return self._publish(USER_SCOPE, str(user_id), make_message(event, payload))

    def _publish(self, scope: str, key: str, message: dict[str, Any]) -> bool:
        self._published += 1
        if self.relay is not None and self.relay.is_running:
            return self._enqueue(_RelayPublish(scope=scope, key=key, message=message))
        return self.deliver_local(scope, key, message)

    def deliver_local(self, scope: str, key: str, message: dict[str, Any]) -> bool:
        """Snapshot local recipients of (scope, key) and queue the sends.

        Also the entry point for events arriving through the relay.
        """
        try:
            recipients = self._snapshot(scope, key)
        except ValueError:
            logger.warning("broadcast_invalid_key", scope=scope, key=key)
            return False
        if not recipients:
            return True
        return self._enqueue(_Delivery(recipients=recipients, message=message))

    def _snapshot(self, scope: str, key: str) -> tuple[Subscriber, ...]:
        if scope == TOPIC_SCOPE:
            return tuple(self.topic_subscribers(key))
        if scope == USER_SCOPE:
            return tuple(self.user_subscribers(UUID(key)))
        msg = f"Unknown broadcast scope: {scope}"
        raise ValueError(msg)

    def _enqueue(self, item: _Delivery | _RelayPublish) -> bool:
        try:
            self._queue.put_nowait(item)
            return True
        except asyncio.QueueFull:
            self._dropped += 1
            logger.warning(
                "broadcast_queue_full",
                queue_size=self.queue_size,
                dropped_total=self._dropped,
            )
            return False

    # ==========================================================================
    # Background Worker
    # ==========================================================================

    async def start(self) -> None:
        """Start the send worker (and the relay listener, if any)."""
        if self._running:
            logger.warning("broadcast_hub_already_running")
            return

        self._running = True
        self._start_time = time.monotonic()
        self._worker_task = asyncio.create_task(
            self._worker_loop(), name="broadcast_worker"
        )
        if self.relay is not None:
            await self.relay.start(self.deliver_local)

        logger.info(
            "broadcast_hub_started",
            queue_size=self.queue_size,
            relay=self.relay is not None,
        )

    async def stop(self) -> None:
        """Flush pending sends and stop the worker."""
        if not self._running:
            return

        if self.relay is not None:
            await self.relay.stop()

        try:
            await asyncio.wait_for(self._queue.join(), timeout=5.0)
        except TimeoutError:
            logger.warning("broadcast_worker_stop_timeout", pending=self._queue.qsize())

        self._running = False
        if self._worker_task:
            self._worker_task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await self._worker_task
            self._worker_task = None

        logger.info(
            "broadcast_hub_stopped",
            published=self._published,
            delivered=self._delivered,
            dropped=self._dropped,
        )

    async def drain(self) -> None:
        """Wait until every queued publication has been handled."""
        if self._running:
            await self._queue.join()
            return

        # No worker: handle pending items inline
        while not self._queue.empty():
            item = self._queue.get_nowait()
            try:
                await self._handle(item)
            finally:
                self._queue.task_done()

    async def _worker_loop(self) -> None:
        while True:
            item = await self._queue.get()
            try:
                await self._handle(item)
            except asyncio.CancelledError:
                raise
            except Exception:
                logger.exception("broadcast_worker_error")
            finally:
                self._queue.task_done()

    async def _handle(self, item: _Delivery | _RelayPublish) -> None:
        if isinstance(item, _RelayPublish):
            await self._relay_or_fallback(item)
            return
        await asyncio.gather(
            *(self._send(subscriber, item.message) for subscriber in item.recipients)
        )

    async def _relay_or_fallback(self, item: _RelayPublish) -> None:
        try:
            await self.relay.publish(item.scope, item.key, item.message)
        except Exception as e:
            logger.warning(
                "broadcast_relay_publish_failed",
                scope=item.scope,
                error=str(e),
            )
            try:
                recipients = self._snapshot(item.scope, item.key)
            except ValueError:
                return
            await self._handle(_Delivery(recipients=recipients, message=item.message))

    async def _send(self, subscriber: Subscriber, message: dict[str, Any]) -> None:
        try:
            # A stalled socket must not hold up the shared worker
            await asyncio.wait_for(subscriber.send(message), timeout=self.send_timeout)
            self._delivered += 1
        except Exception as e:
            self._send_failures += 1
            logger.warning(
                "broadcast_send_failed",
                subscriber=subscriber.subscriber_id,
                event_type=message.get("type"),
                error=str(e) or type(e).__name__,
            )
            self.disconnect(subscriber)

    # ==========================================================================
    # Status/Monitoring
    # ==========================================================================

    @property
    def is_running(self) -> bool:
        """Check if worker is running."""
        return self._running

    @property
    def queue_length(self) -> int:
        """Get current queue length."""
        return self._queue.qsize()

    def stats(self) -> dict[str, Any]:
        """Hub statistics for monitoring."""
        with self._lock:
            topics = len(self._topics)
            users = len(self._users)
            subscribers = len(self._memberships)
        return {
            "running": self._running,
            "topics": topics,
            "users": users,
            "subscribers": subscribers,
            "queue_size": self.queue_size,
            "queue_length": self._queue.qsize(),
            "published": self._published,
            "delivered": self._delivered,
            "dropped": self._dropped,
            "send_failures": self._send_failures,
            "relay": self.relay is not None and self.relay.is_running,
            "uptime_seconds": (
                time.monotonic() - self._start_time if self._running else 0.0
            ),
        }
